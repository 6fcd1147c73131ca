#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/cli.py
"""Command-line interface for extracting text from EPUB files.

Examples
--------
Print the text of a book:
    $ epub2txt book.epub

Metadata only:
    $ epub2txt --meta --notext book.epub

Re-flow to 72 columns, ASCII only, with a separator between chapters:
    $ epub2txt -w 72 -a -s "-----" book.epub --out book.txt

Several books in one run:
    $ epub2txt *.epub

Use environment variables for defaults:
    $ export EPUB2TXT_META=true
    $ export EPUB2TXT_MAX_LINE_WIDTH=80
    $ epub2txt book.epub  # Will include metadata and wrap at 80 columns
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import os
import sys
from typing import IO, Iterator, Optional

from epub2txt import __version__
from epub2txt.constants import (
    ENV_PREFIX,
    EXIT_ERROR,
    EXIT_EXTRACTION_ERROR,
    EXIT_FILE_ERROR,
    EXIT_PARTIAL,
    EXIT_SECURITY_ERROR,
    EXIT_STRUCTURE_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
)
from epub2txt.converter import EpubConverter
from epub2txt.exceptions import (
    Epub2TxtError,
    ExtractionError,
    FileError,
    SecurityError,
    StructureError,
    ValidationError,
)
from epub2txt.logging_utils import configure_logging
from epub2txt.options import ConversionOptions

logger = logging.getLogger(__name__)

# Most severe first; a batch run exits with the most severe code it saw
EXIT_CODE_PRIORITY = (
    EXIT_SECURITY_ERROR,
    EXIT_ERROR,
    EXIT_EXTRACTION_ERROR,
    EXIT_STRUCTURE_ERROR,
    EXIT_FILE_ERROR,
    EXIT_VALIDATION_ERROR,
    EXIT_PARTIAL,
    EXIT_SUCCESS,
)

_TRUE_VALUES = ("true", "1", "yes", "on")


def positive_int(value: str) -> int:
    """Argparse type accepting integers greater than zero."""
    try:
        ivalue = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"{value} is not a valid integer") from e
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return ivalue


def get_env_var_value(key: str) -> Optional[str]:
    """Get environment variable with EPUB2TXT_ prefix.

    Parameters
    ----------
    key : str
        The parameter name (e.g., 'meta', 'max_line_width')

    Returns
    -------
    Optional[str]
        Environment variable value or None if not set

    """
    env_key = f"{ENV_PREFIX}{key.upper().replace('-', '_')}"
    return os.environ.get(env_key)


def apply_env_vars_to_parser(parser: argparse.ArgumentParser) -> None:
    """Apply environment variables as defaults to parser options.

    Command-line arguments still take precedence. Invalid values are
    reported as warnings and ignored.

    Parameters
    ----------
    parser : argparse.ArgumentParser
        The argument parser to modify

    """
    for action in parser._actions:
        if not action.option_strings or action.dest in ("help", "version"):
            continue

        env_value = get_env_var_value(action.dest)
        if env_value is None:
            continue

        env_key = f"{ENV_PREFIX}{action.dest.upper()}"
        if isinstance(action, argparse._StoreTrueAction):
            action.default = env_value.strip().lower() in _TRUE_VALUES
        elif action.choices:
            if env_value in action.choices:
                action.default = env_value
            else:
                logger.warning("Invalid choice for %s: %s. Choices: %s", env_key, env_value, list(action.choices))
        elif action.type is not None:
            try:
                action.default = action.type(env_value)
            except (ValueError, argparse.ArgumentTypeError) as e:
                logger.warning("Invalid value for %s: %s", env_key, e)
        else:
            action.default = env_value


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser, with environment defaults applied."""
    fields = ConversionOptions.__dataclass_fields__

    parser = argparse.ArgumentParser(
        prog="epub2txt",
        description="Extract plain text and metadata from EPUB files.",
        epilog=f"Option defaults can be set with {ENV_PREFIX}<OPTION> environment variables, "
        f"e.g. {ENV_PREFIX}META=true. Temporary files are created under "
        f"{ENV_PREFIX}TMPDIR, TMPDIR, TMP or TEMP.",
    )
    parser.add_argument("files", nargs="+", metavar="FILE", help="EPUB file(s) to convert")

    parser.add_argument("-m", "--meta", action="store_true", help=fields["meta"].metadata["help"])
    parser.add_argument("-n", "--notext", action="store_true", help=fields["notext"].metadata["help"])
    parser.add_argument("-c", "--calibre", action="store_true", help=fields["calibre"].metadata["help"])
    parser.add_argument(
        "-s",
        "--section-separator",
        dest="section_separator",
        metavar="TEXT",
        help=fields["section_separator"].metadata["help"],
    )
    parser.add_argument(
        "-w",
        "--width",
        dest="max_line_width",
        type=positive_int,
        metavar="N",
        help=fields["max_line_width"].metadata["help"],
    )
    parser.add_argument(
        "-a", "--ascii", dest="ascii_only", action="store_true", help=fields["ascii_only"].metadata["help"]
    )
    parser.add_argument("-o", "--out", metavar="PATH", help="Write output to PATH instead of stdout")
    parser.add_argument(
        "--strict",
        action="store_true",
        help=f"Exit with code {EXIT_PARTIAL} when any spine item was skipped or failed to render",
    )

    limits = parser.add_argument_group("archive limits")
    limits.add_argument(
        "--max-uncompressed-size",
        dest="max_uncompressed_size",
        type=positive_int,
        metavar="BYTES",
        help=fields["max_uncompressed_size"].metadata["help"],
    )
    limits.add_argument(
        "--max-compression-ratio",
        dest="max_compression_ratio",
        type=float,
        metavar="RATIO",
        help=fields["max_compression_ratio"].metadata["help"],
    )
    limits.add_argument(
        "--max-entries",
        dest="max_entries",
        type=positive_int,
        metavar="N",
        help=fields["max_entries"].metadata["help"],
    )

    logging_group = parser.add_argument_group("logging")
    logging_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    logging_group.add_argument("--log-file", metavar="PATH", help="Also write log messages to PATH")
    logging_group.add_argument(
        "--trace", action="store_true", help="Debug logging with timestamps and logger names"
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    apply_env_vars_to_parser(parser)
    return parser


def get_exit_code_for_exception(exception: BaseException) -> int:
    """Map an exception to an appropriate CLI exit code.

    Parameters
    ----------
    exception : BaseException
        The exception to map to an exit code

    Returns
    -------
    int
        The appropriate exit code for the exception type

    """
    # Security first: ZipFileSecurityError is also an ExtractionError
    if isinstance(exception, SecurityError):
        return EXIT_SECURITY_ERROR

    if isinstance(exception, ValidationError):
        return EXIT_VALIDATION_ERROR

    if isinstance(exception, (FileError, OSError)):
        return EXIT_FILE_ERROR

    if isinstance(exception, ExtractionError):
        return EXIT_EXTRACTION_ERROR

    if isinstance(exception, StructureError):
        return EXIT_STRUCTURE_ERROR

    return EXIT_ERROR


def most_severe_exit_code(current: int, new: int) -> int:
    """Return whichever of two exit codes ranks higher in ``EXIT_CODE_PRIORITY``."""
    if EXIT_CODE_PRIORITY.index(new) < EXIT_CODE_PRIORITY.index(current):
        return new
    return current


def build_options(parsed_args: argparse.Namespace) -> ConversionOptions:
    """Create conversion options from parsed arguments.

    Raises
    ------
    ValidationError
        If an option value is out of range

    """
    overrides = {
        name: getattr(parsed_args, name)
        for name in ConversionOptions.__dataclass_fields__
        if getattr(parsed_args, name, None) is not None
    }
    try:
        return ConversionOptions(**overrides)
    except ValueError as e:
        raise ValidationError(str(e), original_error=e) from e


@contextlib.contextmanager
def open_output(path: Optional[str]) -> Iterator[IO[str]]:
    """Yield the output stream: ``path`` opened for writing, or stdout."""
    if path is None:
        yield sys.stdout
        return

    try:
        handle = open(path, "w", encoding="utf-8")
    except OSError as e:
        raise FileError(f"Cannot open output file {path}: {e.strerror or e}", file_path=path, original_error=e) from e
    with handle:
        yield handle


def _setup_logging(parsed_args: argparse.Namespace) -> None:
    log_level = logging.DEBUG if parsed_args.trace else getattr(logging, parsed_args.log_level.upper())
    configure_logging(log_level, log_file=parsed_args.log_file, trace_mode=parsed_args.trace)


def process_files(converter: EpubConverter, files: list[str], stream: IO[str], strict: bool) -> int:
    """Convert ``files`` one after another into ``stream``.

    A fatal error on one file is reported and the next file is processed.

    Returns
    -------
    int
        The most severe exit code seen across all files

    """
    exit_code = EXIT_SUCCESS
    for file_path in files:
        try:
            result = converter.convert(file_path, stream)
        except Exception as e:
            file_code = get_exit_code_for_exception(e)
            message = e.message if isinstance(e, Epub2TxtError) else f"Unexpected error: {e}"
            logger.error("%s: %s", file_path, message)
            logger.debug("Conversion of %s failed", file_path, exc_info=True)
        else:
            file_code = EXIT_PARTIAL if strict and result.degraded else EXIT_SUCCESS
            if result.degraded:
                logger.info(
                    "%s: %d spine item(s) skipped, %d failed to render", file_path, result.skipped, result.failed
                )
        exit_code = most_severe_exit_code(exit_code, file_code)
    return exit_code


def main(args: list[str] | None = None) -> int:
    """Run the epub2txt command line.

    Parameters
    ----------
    args : list of str, optional
        Arguments without the program name; defaults to ``sys.argv[1:]``

    Returns
    -------
    int
        Process exit code

    """
    parser = create_parser()
    try:
        parsed_args = parser.parse_args(args)
    except SystemExit as e:
        # argparse exits 2 on usage errors and 0 for --help/--version
        return e.code if isinstance(e.code, int) else EXIT_SUCCESS

    _setup_logging(parsed_args)

    try:
        options = build_options(parsed_args)
    except ValidationError as e:
        logger.error("Invalid option: %s", e.message)
        return EXIT_VALIDATION_ERROR

    converter = EpubConverter(options)
    try:
        with open_output(parsed_args.out) as stream:
            exit_code = process_files(converter, parsed_args.files, stream, parsed_args.strict)
    except (FileError, OSError) as e:
        message = e.message if isinstance(e, FileError) else str(e)
        logger.error("Output error: %s", message)
        return EXIT_FILE_ERROR

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
