import json

import pytest

from src.metadata_service.domain import VideoUploadedEvent, parse_video_uploaded_event
from src.shared.exceptions import PoisonMessageError
from src.shared.videos_repository import VideoMetadata


@pytest.mark.unit
def test_should_parse_valid_event(message_body: bytes, video_id: str, video_name: str) -> None:
    event = parse_video_uploaded_event(message_body)

    assert isinstance(event, VideoUploadedEvent)
    assert event.video.id == video_id
    assert event.video.name == video_name


@pytest.mark.unit
def test_should_ignore_unknown_fields() -> None:
    body = json.dumps({
        "video": {"id": "abc123", "name": "My Clip", "duration": 12},
        "published_by": "upload-service",
    }).encode("utf-8")

    event = parse_video_uploaded_event(body)

    assert event.video.id == "abc123"


@pytest.mark.unit
def test_should_project_event_into_metadata(message_body: bytes) -> None:
    event = parse_video_uploaded_event(message_body)

    assert event.to_metadata() == VideoMetadata(id="abc123", name="My Clip")


@pytest.mark.unit
@pytest.mark.parametrize("invalid_body,description", [
    (b"not-json", "non-JSON body"),
    (b"\xff\xfe\x00", "non-UTF-8 body"),
    (b"{}", "empty JSON object"),
    (b"[]", "JSON array"),
    (b'{"video": null}', "null video"),
    (b'{"video": {"name": "My Clip"}}', "missing id"),
    (b'{"video": {"id": "abc123"}}', "missing name"),
    (b'{"video": {"id": "", "name": "My Clip"}}', "empty id"),
    (b'{"video": {"id": "bad id!", "name": "My Clip"}}', "malformed id"),
    (b'{"video": {"id": 123, "name": "My Clip"}}', "numeric id"),
    (b"[" * 100000 + b"]" * 100000, "nesting deeper than the parser allows"),
    (
        b'{"video": {"id": "abc123", "name": "My Clip"}, "n": 1' + b"0" * 5000 + b"}",
        "integer literal beyond the conversion limit",
    ),
])
def test_should_raise_poison_message_for_malformed_payload(
    invalid_body: bytes,
    description: str,
) -> None:
    with pytest.raises(PoisonMessageError):
        parse_video_uploaded_event(invalid_body)
