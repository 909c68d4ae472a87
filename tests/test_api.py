"""HTTP API tests."""

import pytest
from fastapi.testclient import TestClient

from sharing_image.core.config import settings
from sharing_image.main import app


@pytest.fixture
def client():
    with TestClient(app) as client:
        # Start every test from an empty template list
        templates = client.get("/v1/templates").json()["data"]
        for _ in templates:
            client.delete("/v1/templates/1")
        client.put("/v1/config", json={"upload": None})
        yield client


def register(client, path):
    response = client.post("/v1/attachments", json={"path": path})
    assert response.status_code == 200
    return response.json()["data"]["id"]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["services"]["format"] == settings.IMAGE_FORMAT


class TestTemplates:
    """Template CRUD and layer editing."""

    def test_create_and_get(self, client, sample_template):
        response = client.post("/v1/templates", json=sample_template)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == 1
        assert data["template"]["width"] == 1200
        assert data["template"]["layers"][0]["dynamic"] is True

        response = client.get("/v1/templates/1")
        assert response.json()["data"]["template"]["title"] == "Post card"

    def test_list_ids_are_one_based(self, client):
        client.post("/v1/templates", json={"title": "First"})
        client.post("/v1/templates", json={"title": "Second"})

        data = client.get("/v1/templates").json()["data"]

        assert [(t["id"], t["template"]["title"]) for t in data] == [(1, "First"), (2, "Second")]

    def test_missing_template(self, client):
        response = client.get("/v1/templates/3")

        assert response.status_code == 404
        assert response.json() == {"message": "Wrong template id"}

    def test_invalid_template(self, client):
        response = client.post("/v1/templates", json={"width": "wide"})

        assert response.status_code == 400
        assert "message" in response.json()

    def test_update_replaces(self, client):
        client.post("/v1/templates", json={"title": "Old", "layers": [{"type": "filter", "blur": "1"}]})

        response = client.put("/v1/templates/1", json={"title": "New"})

        assert response.status_code == 200
        template = client.get("/v1/templates/1").json()["data"]["template"]
        assert template["title"] == "New"
        assert template["layers"] == []

    def test_update_from_editor_form(self, client):
        client.post("/v1/templates", json={"title": "Old"})

        response = client.put("/v1/templates/1", json={
            "sharing_image_editor[title]": "Form",
            "sharing_image_editor[layers][0][type]": "rectangle",
            "sharing_image_editor[layers][0][x]": "10",
            "sharing_image_editor[layers][0][y]": "",
        })

        template = response.json()["data"]["template"]
        assert template["title"] == "Form"
        assert template["layers"][0]["x"] == 10
        assert template["layers"][0]["y"] is None

    def test_delete_shifts_ids(self, client):
        client.post("/v1/templates", json={"title": "First"})
        client.post("/v1/templates", json={"title": "Second"})

        assert client.delete("/v1/templates/1").status_code == 200

        data = client.get("/v1/templates").json()["data"]
        assert [(t["id"], t["template"]["title"]) for t in data] == [(1, "Second")]

    def test_delete_and_raise_layers(self, client, sample_template):
        client.post("/v1/templates", json=sample_template)

        response = client.delete("/v1/templates/1/layers/1")
        types = [layer["type"] for layer in response.json()["data"]["template"]["layers"]]
        assert types == ["text", "rectangle", "filter"]

        response = client.post("/v1/templates/1/layers/2/raise")
        types = [layer["type"] for layer in response.json()["data"]["template"]["layers"]]
        assert types == ["text", "filter", "rectangle"]

        assert client.delete("/v1/templates/1/layers/9").status_code == 404


class TestAttachments:
    def test_register_and_get(self, client, image_files):
        attachment_id = register(client, image_files[1])

        data = client.get(f"/v1/attachments/{attachment_id}").json()["data"]

        assert data["mimeType"] == "image/png"
        assert data["filename"] == "attachment-1.png"

    def test_register_missing_file(self, client, tmp_path):
        response = client.post("/v1/attachments", json={"path": str(tmp_path / "nope.png")})

        assert response.status_code == 400

    def test_delete(self, client, image_files):
        attachment_id = register(client, image_files[2])

        assert client.delete(f"/v1/attachments/{attachment_id}").status_code == 200
        assert client.get(f"/v1/attachments/{attachment_id}").status_code == 404


class TestConfig:
    def test_update_config(self, client):
        response = client.put("/v1/config", json={"upload": "cards"})

        assert response.json()["data"] == {"upload": "cards"}

        data = client.get("/v1/config").json()["data"]
        assert data["upload"] == "cards"
        assert data["format"] == settings.IMAGE_FORMAT
        assert data["quality"] == settings.IMAGE_QUALITY


class TestGenerator:
    """Preview, save and compose."""

    def test_preview_returns_image(self, client, sample_template, image_files):
        attachment_id = register(client, image_files[2])
        sample_template["layers"][1]["attachment"] = str(attachment_id)

        response = client.post("/v1/generator/preview", json={"template": sample_template, "index": 3})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.content.startswith(b"\xff\xd8")

    def test_preview_with_missing_image_attachment(self, client):
        template = {"layers": [{"type": "image", "attachment": 987654}]}

        response = client.post("/v1/generator/preview", json={"template": template})

        assert response.status_code == 500
        assert "987654" in response.json()["message"]

    def test_save_writes_upload(self, client):
        client.put("/v1/config", json={"upload": "previews"})

        response = client.post("/v1/generator/save", json={"template": {"width": 100, "height": 50}})

        url = response.json()["data"]
        assert url.startswith(f"{settings.UPLOADS_URL}/previews/")
        assert url.endswith(".jpg")

        path = settings.UPLOADS_PATH / "previews" / url.rsplit("/", 1)[1]
        assert path.read_bytes().startswith(b"\xff\xd8")

    def test_compose(self, client, image_files):
        background = register(client, image_files[1])
        client.post("/v1/templates", json={
            "width": 80,
            "height": 40,
            "layers": [{"type": "text", "dynamic": "dynamic", "preset": "title", "fontsize": 10}],
        })

        response = client.post("/v1/generator/compose", json={
            "template": 1,
            "fieldset": {"attachment": background, "captions": {"0": "Hello"}},
            "context": {"title": "Post"},
        })

        assert response.status_code == 200
        url = response.json()["data"]
        path = settings.UPLOADS_PATH / url[len(settings.UPLOADS_URL) + 1:]
        assert path.is_file()

    def test_compose_missing_template(self, client):
        response = client.post("/v1/generator/compose", json={"template": 4})

        assert response.status_code == 404

    def test_compose_missing_permanent_background(self, client):
        client.post("/v1/templates", json={"background": "permanent"})

        response = client.post("/v1/generator/compose", json={"template": 1})

        assert response.status_code == 400

    def test_compose_zero_template_rejected(self, client):
        response = client.post("/v1/generator/compose", json={"template": 0})

        assert response.status_code == 422
