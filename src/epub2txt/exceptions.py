#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Custom exceptions for the epub2txt library.

This module defines specialized exception classes for the error conditions
that can occur while unpacking an EPUB archive, resolving its package
documents and rendering its content. These exceptions provide more specific
error information than generic built-ins.

Exception Hierarchy
-------------------
- Epub2TxtError (base exception)

  - ValidationError (parameter/option validation)

  - FileError (file access and I/O)
    - FileNotFoundError (file doesn't exist)
    - FileAccessError (permissions, unreadable files)
    - SandboxError (temporary directory creation/deletion)

  - ExtractionError (archive unreadable, corrupt or rejected)
    - ZipFileSecurityError (zip bombs, unsafe entry names)

  - StructureError (required EPUB XML structure absent)
    - MalformedContainerError (META-INF/container.xml)
    - MalformedManifestError (OPF manifest/spine)

  - SecurityError (security violations)
    - PathTraversalError (a resolved path escapes its containment root)
    - ZipFileSecurityError

  - RenderError (content document to text conversion failures)

"""

from __future__ import annotations


class Epub2TxtError(Exception):
    """Base exception class for all epub2txt-specific errors.

    Catching this will catch all library-specific errors.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(Epub2TxtError):
    """Exception raised for invalid input parameters or options.

    Parameters
    ----------
    message : str
        Description of the validation error, naming the offending option
    original_error : Exception, optional
        The original exception that caused this error

    """


class FileError(Epub2TxtError):
    """Base exception for file access and I/O errors.

    Parameters
    ----------
    message : str
        Description of the file error
    file_path : str, optional
        Path to the problematic file
    original_error : Exception, optional
        The original exception that caused this error

    Attributes
    ----------
    file_path : str or None
        Path to the file that caused the error

    """

    def __init__(self, message: str, file_path: str | None = None, original_error: Exception | None = None):
        """Initialize the file error with path and message."""
        super().__init__(message, original_error=original_error)
        self.file_path = file_path


class FileNotFoundError(FileError):
    """Exception raised when an input file cannot be found."""

    def __init__(self, file_path: str, message: str | None = None, original_error: Exception | None = None):
        """Initialize the file not found error."""
        if message is None:
            message = f"File not found: {file_path}"
        super().__init__(message, file_path=file_path, original_error=original_error)


class FileAccessError(FileError):
    """Exception raised when an input file exists but cannot be read."""

    def __init__(self, file_path: str, message: str | None = None, original_error: Exception | None = None):
        """Initialize the file access error."""
        if message is None:
            message = f"File not found or not readable: {file_path}"
        super().__init__(message, file_path=file_path, original_error=original_error)


class SandboxError(FileError):
    """Exception raised when the extraction sandbox cannot be created or used.

    Parameters
    ----------
    message : str
        Description of the sandbox failure
    file_path : str, optional
        The sandbox directory, or the base directory it was to be created in
    original_error : Exception, optional
        The original exception that caused this error

    """


class ExtractionError(Epub2TxtError):
    """Exception raised when an EPUB archive cannot be unpacked.

    Covers archives that are unreadable, are not valid ZIP files, or whose
    contents are rejected before extraction.

    Parameters
    ----------
    message : str
        Description of the extraction failure
    file_path : str, optional
        Path to the archive
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, file_path: str | None = None, original_error: Exception | None = None):
        """Initialize the extraction error."""
        super().__init__(message, original_error=original_error)
        self.file_path = file_path


class StructureError(Epub2TxtError):
    """Base exception for EPUB descriptors that lack required XML structure.

    Parameters
    ----------
    message : str
        Description of what is missing or malformed
    document : str, optional
        The descriptor that was being read (e.g. ``META-INF/container.xml``)
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, document: str | None = None, original_error: Exception | None = None):
        """Initialize the structure error."""
        super().__init__(message, original_error=original_error)
        self.document = document


class MalformedContainerError(StructureError):
    """Exception raised when ``container.xml`` does not name a usable rootfile."""


class MalformedManifestError(StructureError):
    """Exception raised when the OPF document has no usable manifest."""


class SecurityError(Epub2TxtError):
    """Base exception for security violations.

    This exception covers security-related errors such as:
    - Path traversal attempts (zip-slip)
    - Zip bomb attacks
    - Other security violations

    """


class PathTraversalError(SecurityError):
    """Exception raised when an archive-derived path escapes its containment root.

    Parameters
    ----------
    candidate : str
        The path that was being resolved
    root : str
        The directory it was required to stay inside
    message : str, optional
        Custom error message. If not provided, a default message is generated
    original_error : Exception, optional
        The original exception that caused this error

    Attributes
    ----------
    candidate : str
        The offending path
    root : str
        The containment root

    """

    def __init__(
        self,
        candidate: str,
        root: str,
        message: str | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the path traversal error."""
        if message is None:
            message = f"Path escapes containment root: {candidate!r} is outside {root}"
        super().__init__(message, original_error=original_error)
        self.candidate = candidate
        self.root = root


class ZipFileSecurityError(ExtractionError, SecurityError):
    """Exception raised when a ZIP archive is rejected for security reasons.

    This includes zip bombs, excessive entry counts and entry names that would
    be written outside the extraction directory.

    """


class RenderError(Epub2TxtError):
    """Exception raised when a content document cannot be converted to text.

    Parameters
    ----------
    message : str
        Description of the rendering failure
    file_path : str, optional
        The content document being rendered
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(self, message: str, file_path: str | None = None, original_error: Exception | None = None):
        """Initialize the render error."""
        super().__init__(message, original_error=original_error)
        self.file_path = file_path
