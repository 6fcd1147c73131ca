#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/sandbox.py
"""Extraction sandbox for one EPUB conversion.

A ``Sandbox`` owns a uniquely named temporary directory for the lifetime of
a single conversion. It is used as a context manager so that the directory
is removed on every exit path::

    with Sandbox() as sandbox:
        sandbox.extract("book.epub")
        ...  # read sandbox.root

Unpacking is delegated to an ``ArchiveExtractor``. The default
``ZipArchiveExtractor`` works in process with ``zipfile`` and places every
entry through ``validate_safe_extraction_path``.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import sys
import tempfile
import zipfile
from pathlib import Path
from types import TracebackType
from typing import Optional, Protocol

from epub2txt.constants import (
    DEFAULT_MAX_COMPRESSION_RATIO,
    DEFAULT_MAX_UNCOMPRESSED_SIZE,
    DEFAULT_MAX_ZIP_ENTRIES,
    SANDBOX_DIR_MODE,
    SANDBOX_FILE_MODE,
    SANDBOX_PREFIX,
    TEMP_BASE_ENV_VARS,
)
from epub2txt.exceptions import ExtractionError, SandboxError
from epub2txt.utils.security import validate_safe_extraction_path, validate_zip_archive

logger = logging.getLogger(__name__)


def resolve_temp_base() -> str:
    """Return the directory new sandboxes are created in.

    The first non-empty variable of ``EPUB2TXT_TMPDIR``, ``TMPDIR``, ``TMP``
    and ``TEMP`` wins; otherwise the platform default from
    ``tempfile.gettempdir()`` is used.
    """
    for name in TEMP_BASE_ENV_VARS:
        value = os.environ.get(name)
        if value and value.strip():
            return value
    return tempfile.gettempdir()


class ArchiveExtractor(Protocol):
    """Unpacks an archive into a directory."""

    def extract(self, archive_path: Path, target_dir: Path) -> None:
        """Extract every entry of ``archive_path`` below ``target_dir``.

        Raises
        ------
        ExtractionError
            If the archive is unreadable, corrupt or rejected

        """
        ...


class ZipArchiveExtractor:
    """In-process ZIP extraction with zip-slip and zip-bomb checks.

    Parameters
    ----------
    max_compression_ratio : float
        Maximum allowed compression ratio (uncompressed/compressed)
    max_uncompressed_size : int
        Maximum total uncompressed size in bytes
    max_entries : int
        Maximum number of entries in the archive

    """

    def __init__(
        self,
        max_compression_ratio: float = DEFAULT_MAX_COMPRESSION_RATIO,
        max_uncompressed_size: int = DEFAULT_MAX_UNCOMPRESSED_SIZE,
        max_entries: int = DEFAULT_MAX_ZIP_ENTRIES,
    ):
        """Initialize the extractor with archive limits."""
        self.max_compression_ratio = max_compression_ratio
        self.max_uncompressed_size = max_uncompressed_size
        self.max_entries = max_entries

    def extract(self, archive_path: Path, target_dir: Path) -> None:
        """Extract ``archive_path`` into ``target_dir``.

        The whole entry list is validated before the first byte is written,
        so a hostile entry name aborts extraction without touching the disk.

        Raises
        ------
        ZipFileSecurityError
            If the archive exceeds the configured limits or has unsafe names
        ExtractionError
            If the archive is unreadable or not a ZIP file

        """
        validate_zip_archive(
            archive_path,
            max_compression_ratio=self.max_compression_ratio,
            max_uncompressed_size=self.max_uncompressed_size,
            max_entries=self.max_entries,
        )

        try:
            with zipfile.ZipFile(archive_path, "r") as zf:
                targets = [(info, validate_safe_extraction_path(target_dir, info.filename)) for info in zf.infolist()]
                for info, target in targets:
                    if info.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as source, open(target, "wb") as dest:
                        shutil.copyfileobj(source, dest)
        except zipfile.BadZipFile as e:
            raise ExtractionError(
                f"Invalid ZIP archive {archive_path}: {e}", file_path=str(archive_path), original_error=e
            ) from e
        except (OSError, EOFError, RuntimeError, NotImplementedError) as e:
            raise ExtractionError(
                f"Could not extract {archive_path}: {e}", file_path=str(archive_path), original_error=e
            ) from e


def normalize_permissions(root: Path) -> None:
    """Make an extracted tree owner-writable and read-only for everyone else.

    Directories get ``0o755`` and regular files ``0o644``. Symlinks are left
    alone (``os.chmod`` would follow them out of the tree).
    """
    os.chmod(root, SANDBOX_DIR_MODE)
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames:
            path = os.path.join(dirpath, name)
            if not os.path.islink(path):
                os.chmod(path, SANDBOX_DIR_MODE)
        for name in filenames:
            path = os.path.join(dirpath, name)
            if stat.S_ISREG(os.lstat(path).st_mode):
                os.chmod(path, SANDBOX_FILE_MODE)


class Sandbox:
    """A temporary extraction directory owned by one conversion.

    Parameters
    ----------
    base_dir : str or Path, optional
        Directory to create the sandbox in. Defaults to ``resolve_temp_base()``.
    extractor : ArchiveExtractor, optional
        Archive extraction strategy. Defaults to ``ZipArchiveExtractor()``.

    Attributes
    ----------
    root : Path or None
        Canonical sandbox directory while acquired, None otherwise

    """

    def __init__(self, base_dir: str | Path | None = None, extractor: Optional[ArchiveExtractor] = None):
        """Initialize an unacquired sandbox."""
        self.base_dir = base_dir
        self.extractor: ArchiveExtractor = extractor or ZipArchiveExtractor()
        self.root: Optional[Path] = None

    @property
    def active(self) -> bool:
        """Whether the sandbox directory currently exists under our ownership."""
        return self.root is not None

    def acquire(self) -> Path:
        """Create the sandbox directory.

        The name is ``epub2txt.<pid>.<random>`` below the base directory.

        Returns
        -------
        Path
            Canonical path of the new directory

        Raises
        ------
        SandboxError
            If the sandbox is already acquired or the directory cannot be created

        """
        if self.root is not None:
            raise SandboxError(f"Sandbox already acquired: {self.root}", file_path=str(self.root))

        base = str(self.base_dir) if self.base_dir is not None else resolve_temp_base()
        try:
            created = tempfile.mkdtemp(prefix=f"{SANDBOX_PREFIX}.{os.getpid()}.", dir=base)
        except OSError as e:
            raise SandboxError(
                f"Can't create temporary directory in {base}: {e.strerror or e}", file_path=base, original_error=e
            ) from e

        self.root = Path(created).resolve()
        logger.debug("Sandbox created: %s", self.root)
        return self.root

    def extract(self, archive_path: str | Path) -> Path:
        """Unpack ``archive_path`` into the sandbox and normalize permissions.

        Returns
        -------
        Path
            The sandbox root

        Raises
        ------
        SandboxError
            If the sandbox has not been acquired
        ExtractionError
            If the archive cannot be extracted

        """
        if self.root is None:
            raise SandboxError("Sandbox must be acquired before extraction")

        archive = Path(archive_path)
        logger.debug("Extracting %s into %s", archive, self.root)
        self.extractor.extract(archive, self.root)

        try:
            normalize_permissions(self.root)
        except OSError as e:
            raise SandboxError(
                f"Cannot fix permissions in {self.root}: {e.strerror or e}",
                file_path=str(self.root),
                original_error=e,
            ) from e
        logger.debug("Extraction finished, permissions fixed")
        return self.root

    def release(self) -> None:
        """Delete the sandbox directory.

        Safe to call more than once and on a sandbox that was never acquired.
        Failure to delete is logged, not raised.
        """
        root, self.root = self.root, None
        if root is None:
            return

        logger.debug("Deleting temporary directory: %s", root)

        def _on_error(func, path, exc):  # noqa: ANN001
            if isinstance(exc, tuple):
                exc = exc[1]
            logger.warning("Could not remove %s during sandbox cleanup: %s", path, exc)

        if sys.version_info >= (3, 12):
            shutil.rmtree(root, onexc=_on_error)
        else:
            shutil.rmtree(root, onerror=_on_error)

    def __enter__(self) -> Sandbox:
        """Acquire the sandbox."""
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Release the sandbox on every exit path."""
        self.release()
