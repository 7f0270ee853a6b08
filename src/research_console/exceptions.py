"""Custom exceptions for the research console."""


class ResearchConsoleError(Exception):
    """Base exception for research console errors."""

    pass


class MalformedEventError(ResearchConsoleError):
    """Raised when a progress event matches neither the estimate nor the step shape."""

    pass


class StreamConnectionError(ResearchConsoleError):
    """Raised when the progress stream cannot be opened or drops mid-run."""

    pass


class CancelRequestError(ResearchConsoleError):
    """Raised when the backend rejects or fails a cancel request."""

    pass


class ApiError(ResearchConsoleError):
    """Raised when a research API request fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
