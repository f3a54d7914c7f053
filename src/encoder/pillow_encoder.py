# src/encoder/pillow_encoder.py — v1
"""WebP encoder backed by Pillow's WEBP plugin.

Pillow does not expose libwebp's preset tuning directly, so each preset is
expressed as the Pillow save options that approximate it.
"""

from __future__ import annotations

import io
import logging
from typing import Any

from PIL import Image, ImageOps, UnidentifiedImageError, features

from webpexpress.core.errors import EncodeError
from webpexpress.core.models import ConversionConfig
from webpexpress.encoder.base_encoder import BaseEncoder

logger = logging.getLogger(__name__)

# Extra Pillow save() options per preset, merged over the base options.
PRESET_OPTIONS: dict[str, dict[str, Any]] = {
    "default": {},
    "picture": {"alpha_quality": 100},
    "photo": {"method": 6},
    "drawing": {"alpha_quality": 100, "exact": True},
    "icon": {"alpha_quality": 100, "exact": True, "method": 6},
    "text": {"alpha_quality": 100, "exact": True, "method": 6, "lossless": False},
}

_WEBP_MODES = ("RGB", "RGBA")


class PillowWebPEncoder(BaseEncoder):
    """Encode images to lossy WebP with Pillow.

    Args:
        method: Default compression effort, 0 (fast) to 6 (slowest, smallest).
            Presets may raise it.
        strip_metadata: Drop EXIF from the output.
    """

    def __init__(self, method: int = 4, strip_metadata: bool = True) -> None:
        if not 0 <= method <= 6:
            raise ValueError(f"method must be between 0 and 6, got {method}")
        self._method = method
        self._strip_metadata = strip_metadata

    @property
    def output_extension(self) -> str:
        return ".webp"

    @property
    def name(self) -> str:
        return "pillow"

    @staticmethod
    def is_available() -> bool:
        """True if the installed Pillow was built with WebP support."""
        return bool(features.check("webp"))

    def save_options(self, config: ConversionConfig) -> dict[str, Any]:
        """Build the Pillow save() keyword arguments for a config."""
        options: dict[str, Any] = {
            "format": "WEBP",
            "quality": config.quality,
            "method": self._method,
        }
        preset = PRESET_OPTIONS.get(config.preset)
        if preset is None:
            raise EncodeError(f"unsupported preset {config.preset!r}")
        for key, value in preset.items():
            if key == "method":
                options[key] = max(options[key], value)
            else:
                options[key] = value
        if self._strip_metadata:
            options["exif"] = b""
        return options

    def encode(self, image_bytes: bytes, config: ConversionConfig) -> bytes:
        if not image_bytes:
            raise EncodeError("empty input")

        try:
            img = Image.open(io.BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError) as e:
            raise EncodeError(f"not a decodable image: {e}") from e
        except (OSError, ValueError, SyntaxError) as e:
            raise EncodeError(f"image decode failed: {e}") from e

        img = ImageOps.exif_transpose(img) or img
        img = _to_webp_mode(img)

        options = self.save_options(config)
        buffer = io.BytesIO()
        try:
            img.save(buffer, **options)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeError(f"WebP encoder rejected image: {e}") from e

        data = buffer.getvalue()
        logger.debug(
            "Encoded %dx%d %s image: %d -> %d bytes (q=%d, preset=%s)",
            img.width, img.height, img.mode,
            len(image_bytes), len(data), config.quality, config.preset,
        )
        return data


def _to_webp_mode(img: Image.Image) -> Image.Image:
    """Convert palette, greyscale, CMYK etc. to a mode WebP accepts."""
    if img.mode in _WEBP_MODES:
        return img
    has_alpha = "A" in img.getbands() or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")
