"""
Album art normalization.

Airfoil only displays PNG album art. Artwork handed over by a provider is
passed through when it is already PNG and re-encoded with Pillow
otherwise; artwork that cannot be converted is dropped.
"""

import base64
import binascii
import io
import logging

from PIL import Image

from airfoil_agent.exceptions import ImageConversionError

logger = logging.getLogger(__name__)

PNG_FORMAT = "PNG"

# Modes Pillow can write to PNG directly; anything else is converted first
_PNG_MODES = frozenset({"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"})


class ImageNormalizer:
    """
    Normalizes album art to base64-encoded PNG.

    Airfoil only accepts PNG album art. Host applications may hand over
    whatever their artwork source provides (usually JPEG), so the agent
    converts it. PNG input is passed through untouched to avoid a
    pointless re-encode.

    Conversion failures never escape `normalize()`: bad artwork degrades
    to "no artwork" instead of disturbing the connection.
    """

    def normalize(self, image64: str) -> str:
        """
        Return `image64` as base64 PNG, or "" if it cannot be converted.
        """
        try:
            return self.to_png_base64(image64)
        except ImageConversionError as e:
            logger.debug("Album art discarded: %s", e)
            return ""

    def to_png_base64(self, image64: str) -> str:
        """
        Convert base64 image data to base64 PNG.

        Raises:
            ImageConversionError: The data is not valid base64 or not a
                decodable image.
        """
        data = self._decode_base64(image64)

        try:
            with Image.open(io.BytesIO(data)) as img:
                # Force a full decode so truncated data fails here.
                img.load()
                if img.format == PNG_FORMAT:
                    return image64

                source_format = img.format
                png = self._encode_png(img)
        except Exception as e:
            # Format plugins raise arbitrary types (e.g. NotImplementedError
            # for unsupported DDS pixel formats), not just OSError
            raise ImageConversionError(f"Cannot decode image: {type(e).__name__}: {e}") from e

        logger.debug("Converted %s album art to PNG (%d bytes)", source_format, len(png))
        return base64.b64encode(png).decode("ascii")

    @staticmethod
    def _decode_base64(image64: str) -> bytes:
        # Whitespace (line-wrapped base64) is tolerated, anything else is not.
        compact = "".join(image64.split())
        if not compact:
            raise ImageConversionError("Empty image data")

        try:
            return base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageConversionError(f"Invalid base64 image data: {e}") from e

    @staticmethod
    def _encode_png(img: Image.Image) -> bytes:
        if img.mode not in _PNG_MODES:
            has_alpha = "A" in img.getbands() or "transparency" in img.info
            img = img.convert("RGBA" if has_alpha else "RGB")

        out = io.BytesIO()
        img.save(out, format=PNG_FORMAT)
        return out.getvalue()


_default_normalizer = ImageNormalizer()


def normalize_image(image64: str) -> str:
    """Normalize album art with the shared default normalizer."""
    return _default_normalizer.normalize(image64)
