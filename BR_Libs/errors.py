"""
Error types raised by the Blur Redactor core.

Load, render and export failures carry a human-readable reason. History
navigation errors are not failures of the application; they signal that a
requested move (undo at the oldest entry, redo at the newest, jump outside
the stored range) did not happen, so callers can leave UI state untouched.
"""


class RedactorError(Exception):
    """Base class for all redactor errors."""


class InvalidInputError(RedactorError, ValueError):
    """Source image or file is absent, empty, unreadable or corrupted."""


class UnsupportedFormatError(RedactorError, ValueError):
    """Source decodes fine but its format is not accepted."""


class ContextUnavailableError(RedactorError, RuntimeError):
    """A raster surface needed for the operation could not be obtained."""


class ExportFailedError(RedactorError, RuntimeError):
    """Composite could not be produced or serialized."""


class HistoryNavigationError(RedactorError, LookupError):
    """Requested history move is not possible from the current position."""


class NothingToUndo(HistoryNavigationError):
    pass


class NothingToRedo(HistoryNavigationError):
    pass


class HistoryOutOfRange(HistoryNavigationError, IndexError):
    pass
