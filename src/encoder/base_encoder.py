# src/encoder/base_encoder.py — v1
"""Abstract image encoder interface.

An encoder is a pure in-memory transform: bytes in, bytes out. Reading the
source and writing the result belong to the worker pool, so encode failures
stay distinguishable from I/O failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from webpexpress.core.models import ConversionConfig


class BaseEncoder(ABC):
    """Unified interface for output codecs."""

    @abstractmethod
    def encode(self, image_bytes: bytes, config: ConversionConfig) -> bytes:
        """Encode raw image bytes.

        Raises:
            EncodeError: If the bytes are not a decodable image or the
                codec rejects the configuration.
        """

    @property
    @abstractmethod
    def output_extension(self) -> str:
        """File extension of encoded output, including the dot."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Encoder identifier."""
