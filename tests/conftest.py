"""Shared fixtures for the pose generator tests."""

import os
import tempfile
from io import BytesIO

# Keep preview files created by the HTTP app out of the project tree.
os.environ.setdefault("PREVIEW_BASE_DIR", tempfile.mkdtemp(prefix="posegen-previews-"))

import pytest
from PIL import Image

from posegen.core.types import ImageResource


class FakeGenerationClient:
    """Scripted stand-in for `GeminiImageClient`.

    Each call consumes the next scripted outcome (the last one repeats). An
    exception outcome is raised instead of returned.
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.payloads = []

    async def generate_content(self, payload):
        index = min(len(self.payloads), len(self.outcomes) - 1)
        self.payloads.append(payload)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def image_response(data="aW1hZ2U=", mime_type="image/png", caption=None):
    parts = [{"inlineData": {"mimeType": mime_type, "data": data}}]
    if caption is not None:
        parts.append({"text": caption})
    return {"candidates": [{"content": {"role": "model", "parts": parts}}]}


def text_only_response(text="I can't help with that."):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


@pytest.fixture
def make_image():
    """Return a factory producing encoded image bytes of a given size."""

    def _make(width=64, height=48, fmt="PNG"):
        buffer = BytesIO()
        Image.new("RGB", (width, height), (200, 40, 40)).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_resource(make_image):
    """Return a factory producing in-memory PNG resources."""

    def _make(width=64, height=48, name="character.png"):
        return ImageResource(name=name, mime_type="image/png", data=make_image(width, height))

    return _make


@pytest.fixture
def broken_resource():
    return ImageResource(name="broken.png", mime_type="image/png", data=b"not an image at all")


@pytest.fixture
def fake_client_factory():
    return FakeGenerationClient


@pytest.fixture
def responses():
    """Expose the response builders to tests."""

    class _Responses:
        image = staticmethod(image_response)
        text_only = staticmethod(text_only_response)

    return _Responses
