"""Tests for the HTTP adapter."""

import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile

from posegen.api import http_api
from posegen.api.multimodal import upload_manager
from posegen.api.multimodal.upload_manager import PreviewStore
from posegen.core.controller import MISSING_CHARACTER_MESSAGE, PoseStudioController
from posegen.core.types import RequestState
from posegen.image.service import PoseGenerationService


@pytest.fixture
def generation_client(fake_client_factory, responses):
    return fake_client_factory([responses.image(data="MQ=="), responses.text_only(), responses.image(data="Mw==")])


@pytest.fixture
def controller(generation_client, tmp_path):
    controller = PoseStudioController(
        PoseGenerationService(generation_client),
        previews=PreviewStore(base_dir=str(tmp_path / "previews")),
    )
    yield controller
    controller.close()


@pytest.fixture
def api(controller):
    http_api.app.dependency_overrides[http_api.get_controller] = lambda: controller
    yield TestClient(http_api.app)
    http_api.app.dependency_overrides.clear()


def upload(api, path, content, mime_type="image/png", name="image.png"):
    return api.post(path, files={"file": (name, content, mime_type)})


def test_initial_state(api):
    body = api.get("/api/state").json()

    assert body["status"] == "initial"
    assert body["results"] is None
    assert body["options"] == {"prompt": "", "image_count": 1, "quality": "High"}
    assert body["can_generate"] is False


def test_generate_without_character_reports_error(api):
    response = api.post("/api/generate")

    assert response.status_code == 200
    assert response.json()["status"] == "error"
    assert response.json()["error"] == MISSING_CHARACTER_MESSAGE


def test_upload_rejects_unsupported_type(api):
    response = upload(api, "/api/character", b"GIF89a", mime_type="image/gif", name="a.gif")

    assert response.status_code == 400
    assert "unsupported type" in response.json()["error"]


def test_full_generation_flow(api, make_image, generation_client):
    character = upload(api, "/api/character", make_image(640, 480)).json()
    assert character["character"]["selected"] is True
    assert character["character"]["preview_url"].startswith("/previews/")

    upload(api, "/api/references", make_image(), name="ref1.png")
    upload(api, "/api/references", make_image(), name="ref2.png")
    after_removal = api.delete("/api/references/0").json()
    assert len(after_removal["references"]) == 1

    options = api.put("/api/options", json={"prompt": "waving", "image_count": 3, "quality": "Ultra"}).json()
    assert options["options"] == {"prompt": "waving", "image_count": 3, "quality": "Ultra"}

    body = api.post("/api/generate").json()

    assert body["status"] == "success"
    assert [item["image"] for item in body["results"]] == [
        "data:image/png;base64,MQ==",
        "data:image/png;base64,Mw==",
    ]
    assert len(generation_client.payloads) == 3
    assert len(generation_client.payloads[0]["contents"][0]["parts"]) == 3


def test_pose_reference_can_be_cleared(api, make_image):
    selected = upload(api, "/api/pose-reference", make_image(), name="pose.png").json()
    assert selected["pose_reference"]["selected"] is True

    cleared = api.delete("/api/pose-reference").json()

    assert cleared["pose_reference"] == {"selected": False, "preview_url": None}


def test_invalid_options_and_indices_return_400(api):
    assert api.put("/api/options", json={"image_count": 9}).status_code == 400
    assert api.delete("/api/references/0").status_code == 400


def test_generate_while_loading_returns_409(api, controller):
    controller._state = RequestState(is_loading=True)

    response = api.post("/api/generate")

    assert response.status_code == 409


def test_malformed_options_body_returns_400(api):
    response = api.put("/api/options", json={"image_count": "many"})

    assert response.status_code == 400
    assert "image_count" in response.json()["error"]


def test_non_numeric_reference_index_returns_400(api):
    response = api.delete("/api/references/first")

    assert response.status_code == 400
    assert "error" in response.json()


def test_upload_read_is_bounded_by_size_limit(api, monkeypatch):
    monkeypatch.setattr(http_api, "MAX_FILE_SIZE_BYTES", 16)
    monkeypatch.setattr(upload_manager, "MAX_FILE_SIZE_BYTES", 16)
    requested_sizes = []
    original_read = UploadFile.read

    async def recording_read(self, size=-1):
        requested_sizes.append(size)
        return await original_read(self, size)

    monkeypatch.setattr(UploadFile, "read", recording_read)

    response = upload(api, "/api/character", b"\x89PNG" + b"0" * 200)

    assert response.status_code == 400
    assert "exceeds max size" in response.json()["error"]
    assert requested_sizes == [17]


def test_preview_urls_are_served_by_the_app(fake_client_factory, responses, make_image):
    controller = PoseStudioController(
        PoseGenerationService(fake_client_factory([responses.image()])),
        previews=http_api.preview_store,
    )
    http_api.app.dependency_overrides[http_api.get_controller] = lambda: controller
    try:
        client = TestClient(http_api.app)
        content = make_image(32, 32)

        preview_url = upload(api=client, path="/api/character", content=content).json()["character"]["preview_url"]
        served = client.get(preview_url)

        assert served.status_code == 200
        assert served.content == content

        controller.close()
        assert client.get(preview_url).status_code == 404
    finally:
        controller.close()
        http_api.app.dependency_overrides.clear()
