import logging
import re
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, Field, ValidationError
from pymongo.errors import ConnectionFailure

from src.shared.exceptions import StoreUnavailableError, VideoNotFoundError

logger = logging.getLogger(__name__)

VIDEO_ID_PATTERN = r"^[A-Za-z0-9._:-]{1,128}$"

_video_id_re = re.compile(VIDEO_ID_PATTERN)


def is_valid_video_id(video_id: Optional[str]) -> bool:
    """Return True if ``video_id`` matches the upstream identifier format."""
    return video_id is not None and _video_id_re.fullmatch(video_id) is not None


class VideoMetadata(BaseModel):
    id: str = Field(pattern=VIDEO_ID_PATTERN)
    name: str


class MongoVideosRepository:
    """Repository for managing video metadata in MongoDB.

    Documents are keyed on ``_id`` so the store itself guarantees at most one
    record per video id. Ids that are 24-character hex strings may also be
    stored as ObjectId by older writers; reads and writes match either form.
    """

    def __init__(self, client, db_name: str = "metadata") -> None:
        """Initialize the repository with a MongoDB client and database name.

        Args:
            client: MongoDB client instance (or mongomock client for testing).
            db_name: Database name (default: "metadata").
        """
        self._client = client
        self._collection = client[db_name]["videos"]

    def ping(self) -> None:
        """Check that the server is reachable.

        Raises:
            StoreUnavailableError: If the server cannot be reached.
        """
        try:
            self._client.admin.command("ping")
        except ConnectionFailure as e:
            raise StoreUnavailableError("ping", e) from e

    def list_videos(
        self,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[VideoMetadata]:
        """List stored videos in natural order.

        Args:
            skip: Number of records to skip.
            limit: Maximum number of records to return; None returns all.

        Raises:
            StoreUnavailableError: If the server cannot be reached.
        """
        try:
            cursor = self._collection.find().skip(skip)
            if limit is not None:
                cursor = cursor.limit(limit)
            documents = list(cursor)
        except ConnectionFailure as e:
            raise StoreUnavailableError("list_videos", e) from e
        videos = []
        for doc in documents:
            video = self._to_model(doc)
            if video is not None:
                videos.append(video)
        return videos

    def get_video(self, video_id: str) -> VideoMetadata:
        """Retrieve a single video by id.

        Raises:
            VideoNotFoundError: If the video does not exist.
            StoreUnavailableError: If the server cannot be reached.
        """
        try:
            doc = self._collection.find_one(self._id_filter(video_id))
        except ConnectionFailure as e:
            raise StoreUnavailableError("get_video", e) from e
        video = self._to_model(doc) if doc is not None else None
        if video is None:
            raise VideoNotFoundError(video_id)
        return video

    def upsert_video(self, video: VideoMetadata) -> None:
        """Insert the video, or overwrite the existing record with the same id.

        Raises:
            StoreUnavailableError: If the server cannot be reached.
        """
        try:
            if ObjectId.is_valid(video.id):
                result = self._collection.update_one(
                    {"_id": ObjectId(video.id)},
                    {"$set": {"name": video.name}},
                )
                if result.matched_count:
                    return
            self._collection.update_one(
                {"_id": video.id},
                {"$set": {"name": video.name}},
                upsert=True,
            )
        except ConnectionFailure as e:
            raise StoreUnavailableError("upsert_video", e) from e

    @staticmethod
    def _id_filter(video_id: str) -> dict:
        if ObjectId.is_valid(video_id):
            return {"_id": {"$in": [video_id, ObjectId(video_id)]}}
        return {"_id": video_id}

    @staticmethod
    def _to_model(doc: dict) -> Optional[VideoMetadata]:
        try:
            return VideoMetadata(id=str(doc["_id"]), name=doc["name"])
        except (KeyError, ValidationError):
            logger.warning(
                "Skipping malformed video document",
                extra={"document_id": str(doc.get("_id"))},
            )
            return None
