"""Exceptions shared by the metadata service components."""


class ConfigMissingError(Exception):
    """Raised when a required startup setting is absent."""

    def __init__(self, variable: str, hint: str = ""):
        self.variable = variable
        message = f"Missing required environment variable {variable}"
        if hint:
            message = f"{message}: {hint}"
        super().__init__(message)


class StoreUnavailableError(Exception):
    """Raised when the metadata store cannot be reached.

    Transient: ingestion retries through broker redelivery, queries fail fast.
    """

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Metadata store unavailable during '{operation}'")


class PoisonMessageError(Exception):
    """Raised when an inbound event payload cannot be parsed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Malformed video-uploaded event: {reason}")


class VideoNotFoundError(Exception):
    """Raised when a video is not found in the repository."""

    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__(f"Video with id {video_id} not found")

