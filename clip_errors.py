"""Exceptions raised by the clipboard history core."""
from typing import Optional


class ClipboardManagerError(Exception):
    """Base exception for clipboard manager errors."""
    pass


class PersistenceError(ClipboardManagerError):
    """History could not be read from or written to durable storage."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class MalformedDataError(PersistenceError):
    """Persisted history exists but cannot be deserialized."""
    pass


class CapabilityUnavailable(ClipboardManagerError):
    """A host capability (clipboard, paste simulation, hotkeys) is not usable."""
    pass
