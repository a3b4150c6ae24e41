import json
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from src.shared.exceptions import PoisonMessageError
from src.shared.videos_repository import VIDEO_ID_PATTERN, VideoMetadata


class UploadedVideo(BaseModel):
    id: str = Field(pattern=VIDEO_ID_PATTERN)
    name: str


class VideoUploadedEvent(BaseModel):
    video: UploadedVideo

    def to_metadata(self) -> VideoMetadata:
        return VideoMetadata(id=self.video.id, name=self.video.name)


class Settlement(str, Enum):
    """How the subscriber must settle a delivery."""

    ACK = "ack"
    REQUEUE = "requeue"
    REJECT = "reject"


class VideosRepository(Protocol):
    """Protocol for the metadata store used by ingestion and queries."""

    def list_videos(self, skip: int = 0, limit: int | None = None) -> list[VideoMetadata]:
        ...

    def get_video(self, video_id: str) -> VideoMetadata:
        ...

    def upsert_video(self, video: VideoMetadata) -> None:
        ...


def parse_video_uploaded_event(body: bytes) -> VideoUploadedEvent:
    """
    Parse a raw message body into a VideoUploadedEvent.

    Args:
        body: JSON-encoded payload as delivered by the broker.

    Returns:
        The validated event.

    Raises:
        PoisonMessageError: If the body is not UTF-8 JSON, nests too deeply
            or holds an oversized number literal, or does not match the event
            schema.
    """
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise PoisonMessageError(f"body is not valid JSON ({e})") from e

    try:
        return VideoUploadedEvent.model_validate(data)
    except ValidationError as e:
        raise PoisonMessageError(f"{e.error_count()} validation error(s)") from e
