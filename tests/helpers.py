"""Test doubles and helpers shared by the agent tests."""

import base64
import io

from PIL import Image

from airfoil_agent.core.provider import CapabilityProvider, MetadataKind, RemoteControlKind


class FakeProvider(CapabilityProvider):
    """Configurable provider that records the calls it receives."""

    def __init__(
        self,
        *,
        remote_control: bool = True,
        metadata: bool = True,
        remote_result: bool = True,
        values: dict[MetadataKind, str | None] | None = None,
    ) -> None:
        self.remote_control = remote_control
        self.metadata = metadata
        self.remote_result = remote_result
        self.values = values if values is not None else {}
        self.remote_calls: list[RemoteControlKind] = []
        self.metadata_calls: list[MetadataKind] = []

    @property
    def supports_remote_control(self) -> bool:
        return self.remote_control

    def handle_remote_control(self, kind: RemoteControlKind) -> bool:
        self.remote_calls.append(kind)
        return self.remote_result

    @property
    def supports_metadata(self) -> bool:
        return self.metadata

    def handle_metadata(self, kind: MetadataKind) -> str | None:
        self.metadata_calls.append(kind)
        return self.values.get(kind)


class ExplodingProvider(FakeProvider):
    """Provider whose handlers raise."""

    def handle_remote_control(self, kind: RemoteControlKind) -> bool:
        raise RuntimeError("remote control exploded")

    def handle_metadata(self, kind: MetadataKind) -> str | None:
        raise RuntimeError("metadata exploded")


def make_image_base64(fmt: str, size: tuple[int, int] = (8, 6), mode: str = "RGB") -> str:
    """Encode a small generated image as base64 in the given format."""
    color: tuple[int, ...] = (200, 40, 90) if mode == "RGB" else (10, 200, 40, 90)
    img = Image.new(mode, size, color)
    # A second colour so pixel comparisons mean something
    img.paste((0, 0, 255) if mode == "RGB" else (0, 0, 255, 255), (0, 0, size[0] // 2, size[1] // 2))
    out = io.BytesIO()
    img.save(out, format=fmt)
    return base64.b64encode(out.getvalue()).decode("ascii")


def decode_image(image64: str) -> Image.Image:
    """Decode base64 image data into a loaded Pillow image."""
    img = Image.open(io.BytesIO(base64.b64decode(image64)))
    img.load()
    return img


def frame(text: str) -> str:
    """Frame a message body the way Airfoil does."""
    return f"{len(text.encode('utf-8'))};{text}"


