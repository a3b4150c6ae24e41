import json

import pytest

from src.metadata_service.rabbitmq_consumer import RabbitMQConsumerConfig
from src.shared.exceptions import StoreUnavailableError, VideoNotFoundError
from src.shared.videos_repository import VideoMetadata


class FakeVideosRepository:
    """In-memory store keyed on video id."""

    def __init__(self, videos: list[VideoMetadata] | None = None) -> None:
        self.videos: dict[str, VideoMetadata] = {v.id: v for v in videos or []}
        self.upsert_calls: list[VideoMetadata] = []

    def list_videos(self, skip: int = 0, limit: int | None = None) -> list[VideoMetadata]:
        videos = list(self.videos.values())[skip:]
        return videos if limit is None else videos[:limit]

    def get_video(self, video_id: str) -> VideoMetadata:
        if video_id not in self.videos:
            raise VideoNotFoundError(video_id)
        return self.videos[video_id]

    def upsert_video(self, video: VideoMetadata) -> None:
        self.upsert_calls.append(video)
        self.videos[video.id] = video


class UnavailableVideosRepository(FakeVideosRepository):
    """Store whose every call fails as if the database were down."""

    def list_videos(self, skip: int = 0, limit: int | None = None) -> list[VideoMetadata]:
        raise StoreUnavailableError("list_videos")

    def get_video(self, video_id: str) -> VideoMetadata:
        raise StoreUnavailableError("get_video")

    def upsert_video(self, video: VideoMetadata) -> None:
        self.upsert_calls.append(video)
        raise StoreUnavailableError("upsert_video")


@pytest.fixture
def video_id() -> str:
    return "abc123"


@pytest.fixture
def video_name() -> str:
    return "My Clip"


@pytest.fixture
def message_body(video_id: str, video_name: str) -> bytes:
    return json.dumps({"video": {"id": video_id, "name": video_name}}).encode("utf-8")


@pytest.fixture
def fake_repository() -> FakeVideosRepository:
    return FakeVideosRepository()


@pytest.fixture
def unavailable_repository() -> UnavailableVideosRepository:
    return UnavailableVideosRepository()


@pytest.fixture
def consumer_config() -> RabbitMQConsumerConfig:
    return RabbitMQConsumerConfig(
        host="rabbitmq",
        port=5672,
        username="guest",
        password="guest",
        connect_retries=3,
        retry_delay_seconds=0.0,
        requeue_delay_seconds=0.0,
    )
