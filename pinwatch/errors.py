"""
Pinwatch errors.
"""

class PinwatchError(Exception):
    """Base exception for all Pinwatch errors."""
    pass

class ConfigurationError(PinwatchError):
    """Errors in configuration."""
    pass

class WatchRegistrationError(PinwatchError):
    """A directory could not be watched at startup."""
    pass

class DocumentError(PinwatchError):
    """Errors reading a tracked JSON document."""

    def __init__(self, path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path

class UnreadableDocumentError(DocumentError):
    """The document could not be read (missing, locked, permission denied)."""
    pass

class MalformedDocumentError(DocumentError):
    """The document is not a JSON object (truncated, mid-write, wrong type)."""
    pass
