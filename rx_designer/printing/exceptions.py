# rx_designer/printing/exceptions.py
"""
Consistent error types for the print hand-off.

No Qt dependencies — this module is pure Python so it can be used
in non-GUI contexts (tests, CLI tools, batch reprints).
"""
from __future__ import annotations


class PrintError(Exception):
    """Base exception for all printing errors."""


class PrintConfigError(PrintError):
    """Invalid or incomplete page / profile configuration."""


class PrintExportError(PrintError):
    """Error while producing output (PDF, PNG or a printer job)."""


class PrintBlockedError(PrintError):
    """The layout still has validation errors; printing is not allowed."""

    def __init__(self, message: str, codes=()):
        super().__init__(message)
        self.codes = tuple(codes)


# ---------------------------------------------------------------------------
# Error-mapping helpers
# ---------------------------------------------------------------------------

_OS_PATTERNS: list[tuple[type, str]] = [
    (PermissionError, "Permission denied writing the output file. Choose another location."),
    (FileNotFoundError, "The output folder does not exist."),
    (IsADirectoryError, "The output path is a folder, not a file."),
    (OSError, "Could not write the output file. Check disk space and the path."),
]


def _chain(new: PrintError, cause: BaseException) -> PrintError:
    """Attach *cause* as ``__cause__`` (mimics ``raise new from cause``)."""
    new.__cause__ = cause
    return new


def map_exception(exc: BaseException) -> PrintError:
    """
    Wrap a low-level exception into the appropriate ``PrintError`` subclass
    with a user-friendly message while preserving the original as ``__cause__``.

    If *exc* is already a ``PrintError`` it is returned unchanged.
    """
    if isinstance(exc, PrintError):
        return exc

    for exc_type, message in _OS_PATTERNS:
        if isinstance(exc, exc_type):
            return _chain(PrintExportError(message), exc)

    if isinstance(exc, (ValueError, KeyError)):
        return _chain(PrintConfigError(str(exc)), exc)

    return _chain(PrintExportError(str(exc)), exc)


def friendly_message(exc: BaseException) -> str:
    """Return a short, UI-safe description for *exc*."""
    mapped = map_exception(exc)
    return str(mapped)
