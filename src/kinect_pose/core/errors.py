from typing import Optional


class PoseRelayError(Exception):
    """Recoverable failure reported as a value by the streamer and the snapshot writer."""

    def __init__(self, operation: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.cause = cause


class StreamConnectionError(PoseRelayError):
    """Address resolution or connect failure."""


class SendError(PoseRelayError):
    """Write failure on the stream, or send attempted while disconnected."""


class PersistenceError(PoseRelayError):
    """Snapshot file could not be created or written."""
