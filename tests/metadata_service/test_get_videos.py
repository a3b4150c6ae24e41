import pytest
from fastapi.testclient import TestClient

from src.metadata_service.app import create_app
from src.shared.videos_repository import VideoMetadata
from tests.metadata_service.conftest import FakeVideosRepository, UnavailableVideosRepository


@pytest.fixture
def sample_videos() -> list[VideoMetadata]:
    return [
        VideoMetadata(id="video-1", name="First clip"),
        VideoMetadata(id="video-2", name="Second clip"),
    ]


@pytest.fixture
def client(sample_videos):
    app = create_app(FakeVideosRepository(sample_videos))
    return TestClient(app)


def test_should_return_200_when_videos_endpoint_called(client):
    response = client.get("/videos")

    assert response.status_code == 200, f"expected status code 200, got {response.status_code}"


def test_should_return_videos_wrapped_in_object(client):
    response = client.get("/videos")
    data = response.json()

    assert isinstance(data["videos"], list), f"expected list, got {type(data['videos'])}"
    assert len(data["videos"]) == 2, f"expected 2 videos, got {len(data['videos'])}"


def test_should_return_video_1_data(client):
    response = client.get("/videos")
    data = response.json()

    video_1 = next((v for v in data["videos"] if v["id"] == "video-1"), None)
    assert video_1 is not None, "expected to find video-1 in results"
    assert video_1 == {"id": "video-1", "name": "First clip"}


def test_should_return_empty_list_when_store_is_empty():
    client = TestClient(create_app(FakeVideosRepository()))

    response = client.get("/videos")

    assert response.status_code == 200
    assert response.json() == {"videos": []}


def test_should_page_through_videos_when_limit_given(client):
    first_page = client.get("/videos", params={"limit": 1}).json()["videos"]
    second_page = client.get("/videos", params={"skip": 1, "limit": 1}).json()["videos"]

    assert [v["id"] for v in first_page] == ["video-1"]
    assert [v["id"] for v in second_page] == ["video-2"]


@pytest.mark.parametrize("params", [{"limit": 0}, {"skip": -1}, {"limit": "many"}])
def test_should_reject_invalid_paging_parameters(client, params):
    response = client.get("/videos", params=params)

    assert response.status_code == 422, f"expected status code 422, got {response.status_code}"


def test_should_return_503_when_store_unavailable():
    client = TestClient(create_app(UnavailableVideosRepository()))

    response = client.get("/videos")

    assert response.status_code == 503
    assert response.json() == {"detail": "Metadata store unavailable"}
