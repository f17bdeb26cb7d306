class FacemoodError(Exception):
    """Base exception for the live emotion pipeline."""


class BootstrapFailure(FacemoodError):
    """Raised when the vision engine, detector, classifier or labels fail to load."""


class CaptureFailure(FacemoodError):
    """Raised when camera access is denied or the stream cannot be opened."""


class PerPassFailure(FacemoodError):
    """Raised when detection or classification fails inside a single pass."""
