"""Shared fixtures for the agent tests."""

import pytest

from airfoil_agent.core.provider import MetadataKind
from tests.helpers import FakeProvider, make_image_base64


@pytest.fixture
def provider() -> FakeProvider:
    """A provider supporting everything, with sample metadata."""
    return FakeProvider(
        values={
            MetadataKind.TRACK_TITLE: "Blue in Green",
            MetadataKind.TRACK_ARTIST: "Miles Davis",
            MetadataKind.TRACK_ALBUM: "Kind of Blue",
        }
    )


@pytest.fixture
def png_base64() -> str:
    return make_image_base64("PNG")


@pytest.fixture
def jpeg_base64() -> str:
    return make_image_base64("JPEG")
