import logging

from bson.errors import InvalidDocument
from pymongo.errors import ConnectionFailure, PyMongoError

from src.metadata_service.domain import (
    Settlement,
    VideosRepository,
    parse_video_uploaded_event,
)
from src.shared.exceptions import PoisonMessageError, StoreUnavailableError

logger = logging.getLogger(__name__)


def process_video_uploaded_message(
    body: bytes,
    repository: VideosRepository,
) -> Settlement:
    """
    Turn one video-uploaded delivery into a store write.

    The returned settlement is ACK only once ``upsert_video`` has returned, so
    a crash between write and acknowledgment yields a harmless duplicate
    upsert on redelivery rather than a lost record.

    Args:
        body: Raw message body.
        repository: Metadata store to write to.

    Returns:
        ACK on success, REQUEUE when the store is unavailable, REJECT for a
        malformed payload or a write the store refuses outright.
    """
    try:
        event = parse_video_uploaded_event(body)
    except PoisonMessageError as e:
        logger.warning("Rejecting malformed message", extra={"reason": e.reason})
        return Settlement.REJECT

    video = event.to_metadata()

    try:
        repository.upsert_video(video)
    except StoreUnavailableError:
        logger.warning(
            "Metadata store unavailable, message left for redelivery",
            extra={"video_id": video.id},
        )
        return Settlement.REQUEUE
    except ConnectionFailure:
        raise
    except (PyMongoError, InvalidDocument) as e:
        logger.warning(
            "Metadata store refused the write, rejecting message",
            extra={"video_id": video.id, "error": repr(e)},
        )
        return Settlement.REJECT

    logger.info("Video metadata recorded", extra={"video_id": video.id})
    return Settlement.ACK
