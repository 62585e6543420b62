import io

import pytest
from PIL import Image

from app import create_app
from config import Settings
from errors import RemoteCallFailure
from gemini_service import SearchResult, GroundingSource
from image_utils import ImageRef
from session_state import SessionStore


def make_png_bytes(w=4, h=4, color=(250, 204, 21)) -> bytes:
    img = Image.new("RGB", (w, h), color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class FakeService:
    """Stands in for GeminiService; records calls and never touches the network."""

    def __init__(self):
        self.calls = []
        self.fail = set()
        self.edit_hook = None
        self._edits = 0

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail:
            raise RemoteCallFailure(f"{name} failed: quota exhausted")

    def generate_image(self, prompt, aspect_ratio="1:1"):
        self._record("generate_image", prompt, aspect_ratio)
        return ImageRef(b"generated-jpeg", "image/jpeg")

    def edit_image(self, prompt, image_base64, mime_type):
        self._record("edit_image", prompt, image_base64, mime_type)
        if self.edit_hook:
            self.edit_hook()
        self._edits += 1
        return ImageRef(f"edited-{self._edits}".encode(), "image/png")

    def enhance_prompt(self, prompt):
        self._record("enhance_prompt", prompt)
        return f"{prompt}, golden hour, 35mm film"

    def pro_task(self, prompt):
        self._record("pro_task", prompt)
        return "Step 1: think.\nStep 2: answer."

    def grounded_search(self, prompt):
        self._record("grounded_search", prompt)
        return SearchResult(
            text="Team A won the most medals.",
            sources=[GroundingSource("https://example.com/medals", "Medal table")],
        )


@pytest.fixture()
def png_bytes():
    return make_png_bytes()


@pytest.fixture()
def settings():
    return Settings(api_key=None, secret_key="test-secret")


@pytest.fixture()
def service():
    return FakeService()


@pytest.fixture()
def store():
    return SessionStore()


@pytest.fixture()
def app(settings, service, store):
    app = create_app(settings=settings, service=service, store=store)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        with client.session_transaction() as sess:
            sess["sid"] = "test-session"
        yield client


@pytest.fixture()
def client_state(client, store):
    # the app must register the session in this very store
    assert "test-session" not in store
    client.get("/api/editor/history")
    assert "test-session" in store
    return store.get("test-session")


@pytest.fixture()
def upload(client, png_bytes):
    def _upload(name="cat.png"):
        data = {"image": (io.BytesIO(png_bytes), name, "image/png")}
        return client.post("/api/editor/upload", data=data, content_type="multipart/form-data")
    return _upload
