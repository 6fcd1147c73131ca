"""Logging setup for the epub2txt command-line entry point."""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

TRACE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
PLAIN_FORMAT = "%(levelname)s: %(message)s"


def configure_logging(
    log_level: int | str,
    log_file: Optional[str] = None,
    trace_mode: bool = False,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Install handlers on the root logger.

    Diagnostics go to stderr by default so they never interleave with the
    extracted text written to stdout. Python warnings (for example the ones
    BeautifulSoup emits for odd markup) are routed through logging as well.

    Parameters
    ----------
    log_level : int | str
        Numeric logging level or string name (e.g., "WARNING").
    log_file : str, optional
        Path of a file that receives a copy of every log record.
    trace_mode : bool, default False
        Emit timestamps and logger names.
    stream : IO[str], optional
        Console stream, defaults to ``sys.stderr``.

    Returns
    -------
    logging.Logger
        The configured root logger.

    """
    if isinstance(log_level, int):
        resolved_level = log_level
    else:
        resolved_level = getattr(logging, str(log_level).upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(
        TRACE_FORMAT if trace_mode else PLAIN_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S" if trace_mode else None,
    )

    console_handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as exc:
            root_logger.warning("Could not create log file %s: %s", log_file, exc)
        else:
            file_handler.setLevel(resolved_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            root_logger.debug("Logging to file: %s", log_file)

    logging.captureWarnings(True)
    return root_logger
