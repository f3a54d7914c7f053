# src/encoder/encoder_factory.py — v1
"""Factory: instantiate the image encoder from configuration."""

from __future__ import annotations

import logging

from webpexpress.config.settings import Settings
from webpexpress.encoder.base_encoder import BaseEncoder

logger = logging.getLogger(__name__)


class UnsupportedEncoderError(ValueError):
    """Raised when an encoder backend is not registered."""


def create_encoder(settings: Settings | None = None) -> BaseEncoder:
    """Instantiate the configured encoder backend.

    Args:
        settings: Application settings. Defaults to the Pillow backend.

    Returns:
        Configured BaseEncoder instance.

    Raises:
        UnsupportedEncoderError: If the backend is unknown.
    """
    backend = "pillow" if settings is None else settings.encoder_backend
    method = 4 if settings is None else settings.encoder_method

    if backend == "pillow":
        from webpexpress.encoder.pillow_encoder import PillowWebPEncoder

        if not PillowWebPEncoder.is_available():
            logger.warning("Installed Pillow reports no WebP support; encodes will fail")
        return PillowWebPEncoder(method=method)

    raise UnsupportedEncoderError(f"Unsupported encoder backend: {backend!r}")
