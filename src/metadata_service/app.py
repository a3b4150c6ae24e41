import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.metadata_service.domain import VideosRepository
from src.shared.exceptions import StoreUnavailableError, VideoNotFoundError
from src.shared.videos_repository import VideoMetadata, is_valid_video_id

logger = logging.getLogger(__name__)


class VideoListResponse(BaseModel):
    videos: list[VideoMetadata]


class VideoResponse(BaseModel):
    video: VideoMetadata


class NoOpVideosRepository:
    def list_videos(self, skip: int = 0, limit: Optional[int] = None) -> list[VideoMetadata]:
        return []

    def get_video(self, video_id: str) -> VideoMetadata:
        raise VideoNotFoundError(video_id)

    def upsert_video(self, video: VideoMetadata) -> None:
        pass


def create_app(videos_repository: VideosRepository | None = None) -> FastAPI:
    if videos_repository is None:
        videos_repository = NoOpVideosRepository()

    app = FastAPI(title="Metadata Service")

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(
        request: Request, exc: StoreUnavailableError
    ) -> JSONResponse:
        logger.error(
            "Metadata store unavailable",
            extra={"operation": exc.operation, "path": request.url.path},
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "Metadata store unavailable"},
        )

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    @app.get("/videos", response_model=VideoListResponse)
    def get_videos(
        skip: int = Query(default=0, ge=0),
        limit: Optional[int] = Query(default=None, ge=1),
    ) -> VideoListResponse:
        """List video metadata. Without ``limit`` every record is returned."""
        videos = videos_repository.list_videos(skip=skip, limit=limit)
        return VideoListResponse(videos=videos)

    @app.get(
        "/video",
        response_model=VideoResponse,
        responses={404: {"description": "Video not found"}, 400: {"description": "Invalid video id"}},
    )
    def get_video(video_id: Optional[str] = Query(default=None, alias="id")):
        """Return a single video's metadata by id."""
        if not is_valid_video_id(video_id):
            raise HTTPException(status_code=400, detail="Invalid video id")

        try:
            video = videos_repository.get_video(video_id)
        except VideoNotFoundError:
            return Response(status_code=404)

        return VideoResponse(video=video)

    return app


app = create_app()
