#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Security utilities for handling untrusted EPUB archives.

Every path that is derived from archive contents (ZIP entry names, the OPF
location in ``container.xml``, manifest hrefs) passes through one of these
functions before the filesystem is touched.

Functions
---------
- is_within: Check whether a canonical path lies inside a canonical root
- resolve_contained_path: Canonicalize a path and require it to stay inside a root
- validate_zip_archive: Pre-validate ZIP archives for security threats
- validate_safe_extraction_path: Compute a safe extraction target for a ZIP entry
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path, PurePosixPath

from epub2txt.constants import (
    DEFAULT_MAX_COMPRESSION_RATIO,
    DEFAULT_MAX_UNCOMPRESSED_SIZE,
    DEFAULT_MAX_ZIP_ENTRIES,
)
from epub2txt.exceptions import ExtractionError, PathTraversalError, ZipFileSecurityError

logger = logging.getLogger(__name__)


def is_within(path: Path, root: Path) -> bool:
    """Return True if ``path`` equals ``root`` or is one of its descendants.

    Both arguments must already be canonical. The comparison works on path
    segments, so ``/tmp/book-evil`` is not inside ``/tmp/book``.

    Examples
    --------
    >>> is_within(Path("/tmp/book/OEBPS/c1.xhtml"), Path("/tmp/book"))
    True
    >>> is_within(Path("/tmp/book-evil/x"), Path("/tmp/book"))
    False

    """
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def resolve_contained_path(candidate: str | Path, root: str | Path) -> Path:
    """Canonicalize ``candidate`` and verify it stays inside ``root``.

    Relative candidates are interpreted relative to ``root``; absolute
    candidates are taken as-is. Both paths are resolved (``.``, ``..`` and
    symlinks) before the containment check.

    Parameters
    ----------
    candidate : str or Path
        Archive-derived path to check
    root : str or Path
        Directory the result must stay inside

    Returns
    -------
    Path
        The canonical absolute path of ``candidate``

    Raises
    ------
    PathTraversalError
        If the candidate is empty, cannot be resolved, or resolves outside
        ``root``

    Examples
    --------
    >>> resolve_contained_path("OEBPS/content.opf", "/tmp/sandbox")  # doctest: +SKIP
    PosixPath('/tmp/sandbox/OEBPS/content.opf')

    >>> resolve_contained_path("../../etc/passwd", "/tmp/sandbox")  # doctest: +SKIP
    PathTraversalError: Path escapes containment root: '../../etc/passwd' is outside /tmp/sandbox

    """
    candidate_str = str(candidate)
    if not candidate_str.strip():
        raise PathTraversalError(candidate_str, str(root), message="Empty path cannot be resolved")
    if "\x00" in candidate_str:
        raise PathTraversalError(candidate_str, str(root), message=f"Path contains NUL byte: {candidate_str!r}")

    try:
        root_resolved = Path(root).resolve()
        target = Path(candidate_str)
        if not target.is_absolute():
            target = root_resolved / target
        target_resolved = target.resolve()
    except (OSError, RuntimeError, ValueError) as e:
        raise PathTraversalError(
            candidate_str, str(root), message=f"Cannot resolve path {candidate_str!r}: {e}", original_error=e
        ) from e

    if not is_within(target_resolved, root_resolved):
        raise PathTraversalError(
            candidate_str,
            str(root_resolved),
            message=f"Path {candidate_str!r} resolves to {target_resolved}, outside {root_resolved}",
        )

    return target_resolved


def validate_zip_archive(
    file_path: str | Path,
    max_compression_ratio: float = DEFAULT_MAX_COMPRESSION_RATIO,
    max_uncompressed_size: int = DEFAULT_MAX_UNCOMPRESSED_SIZE,
    max_entries: int = DEFAULT_MAX_ZIP_ENTRIES,
) -> None:
    """Validate a ZIP archive for security threats before extraction.

    Parameters
    ----------
    file_path : str or Path
        Path to the ZIP archive to validate
    max_compression_ratio : float, default 100.0
        Maximum allowed compression ratio (uncompressed/compressed)
    max_uncompressed_size : int, default 1073741824
        Maximum total uncompressed size in bytes (default: 1GB)
    max_entries : int, default 10000
        Maximum number of entries in the archive

    Raises
    ------
    ZipFileSecurityError
        If the archive fails security validation
    ExtractionError
        If the archive cannot be read for some other reason

    """
    try:
        with zipfile.ZipFile(file_path, "r") as zf:
            entries = zf.infolist()

            if len(entries) > max_entries:
                raise ZipFileSecurityError(
                    f"ZIP archive contains too many entries: {len(entries)} > {max_entries}", file_path=str(file_path)
                )

            total_uncompressed = 0
            total_compressed = 0

            for entry in entries:
                name_norm = entry.filename.replace("\\", "/")

                if len(name_norm) >= 2 and name_norm[1] == ":":
                    raise ZipFileSecurityError(
                        f"ZIP archive contains Windows absolute path: {entry.filename}", file_path=str(file_path)
                    )

                p = PurePosixPath(name_norm)
                if any(part == ".." for part in p.parts) or name_norm.startswith("/"):
                    raise ZipFileSecurityError(
                        f"ZIP archive contains suspicious path: {entry.filename}", file_path=str(file_path)
                    )

                total_uncompressed += entry.file_size
                total_compressed += entry.compress_size

                if total_uncompressed > max_uncompressed_size:
                    raise ZipFileSecurityError(
                        f"ZIP archive uncompressed size too large: "
                        f"{total_uncompressed / (1024 * 1024):.1f}MB > "
                        f"{max_uncompressed_size / (1024 * 1024):.1f}MB",
                        file_path=str(file_path),
                    )

            if total_compressed > 0:
                compression_ratio = total_uncompressed / total_compressed
                if compression_ratio > max_compression_ratio:
                    raise ZipFileSecurityError(
                        f"ZIP archive has suspicious compression ratio: {compression_ratio:.1f}:1",
                        file_path=str(file_path),
                    )

    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Invalid ZIP archive: {e}", file_path=str(file_path), original_error=e) from e
    except OSError as e:
        raise ExtractionError(f"Could not read ZIP archive: {e}", file_path=str(file_path), original_error=e) from e


def validate_safe_extraction_path(output_dir: str | Path, zip_entry_name: str) -> Path:
    """Validate and return a safe extraction path for a ZIP entry.

    Prevents Zip Slip attacks by rejecting absolute names, drive letters and
    ``..`` components, then checking that the joined, resolved target is
    still inside ``output_dir``.

    Parameters
    ----------
    output_dir : str or Path
        The base directory where files should be extracted
    zip_entry_name : str
        The filename from the archive entry (``ZipInfo.filename``)

    Returns
    -------
    Path
        A safe, validated absolute path for extraction

    Raises
    ------
    ZipFileSecurityError
        If the name contains dangerous patterns or would escape ``output_dir``

    Examples
    --------
    >>> validate_safe_extraction_path("/tmp/out", "OEBPS/c1.xhtml")  # doctest: +SKIP
    PosixPath('/tmp/out/OEBPS/c1.xhtml')

    >>> validate_safe_extraction_path("/tmp/out", "../etc/passwd")  # doctest: +SKIP
    ZipFileSecurityError: Unsafe path component in archive entry: ../etc/passwd (contains '..')

    """
    normalized_name = zip_entry_name.replace("\\", "/")

    if len(normalized_name) >= 2 and normalized_name[1] == ":":
        raise ZipFileSecurityError(f"Unsafe Windows absolute path in archive entry: {zip_entry_name}")
    if "\x00" in normalized_name:
        raise ZipFileSecurityError(f"NUL byte in archive entry name: {zip_entry_name!r}")

    rel_path = PurePosixPath(normalized_name)

    if rel_path.is_absolute():
        raise ZipFileSecurityError(f"Unsafe absolute path in archive entry: {zip_entry_name}")

    for part in rel_path.parts:
        if part == "..":
            raise ZipFileSecurityError(f"Unsafe path component in archive entry: {zip_entry_name} (contains '{part}')")

    try:
        return resolve_contained_path(Path(*rel_path.parts) if rel_path.parts else Path("."), output_dir)
    except PathTraversalError as e:
        raise ZipFileSecurityError(
            f"Path escapes output directory: {zip_entry_name}", original_error=e
        ) from e
