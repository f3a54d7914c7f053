# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides real image files made with Pillow, a scripted encoder whose output
is chosen per input size, and settings that ignore any local .env.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from webpexpress.config.settings import Settings
from webpexpress.core.models import ConversionConfig
from webpexpress.encoder.base_encoder import BaseEncoder


class ScriptedEncoder(BaseEncoder):
    """Encoder double: output size (or error) chosen by input length.

    Inputs with no rule encode to half their size. When a gate is given,
    every encode blocks until the gate is set.
    """

    def __init__(
        self,
        outputs: dict[int, int | Exception] | None = None,
        gate: threading.Event | None = None,
    ) -> None:
        self.outputs = outputs or {}
        self.gate = gate
        self.calls: list[tuple[int, ConversionConfig]] = []
        self._lock = threading.Lock()

    @property
    def output_extension(self) -> str:
        return ".webp"

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def call_sizes(self) -> list[int]:
        with self._lock:
            return [size for size, _ in self.calls]

    def encode(self, image_bytes: bytes, config: ConversionConfig) -> bytes:
        with self._lock:
            self.calls.append((len(image_bytes), config))
        if self.gate is not None:
            self.gate.wait(timeout=10)
        outcome = self.outputs.get(len(image_bytes), len(image_bytes) // 2)
        if isinstance(outcome, Exception):
            raise outcome
        return b"W" * outcome


# === FIXTURES: Settings ===


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only (no .env)."""
    return Settings(_env_file=None, max_workers=4)


# === FIXTURES: Encoders ===


@pytest.fixture
def make_encoder() -> Callable[..., ScriptedEncoder]:
    """Factory for ScriptedEncoder instances."""
    return ScriptedEncoder


# === FIXTURES: Files ===


@pytest.fixture
def write_bytes(tmp_path: Path) -> Callable[[str, int], Path]:
    """Write a file of exactly `size` bytes under tmp_path/src."""
    src = tmp_path / "src"
    src.mkdir(exist_ok=True)

    def _write(name: str, size: int) -> Path:
        path = src / name
        path.write_bytes(b"x" * size)
        return path

    return _write


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """Create a real image file with Pillow."""
    src = tmp_path / "images"
    src.mkdir(exist_ok=True)

    def _make(
        name: str,
        size: tuple[int, int] = (64, 48),
        mode: str = "RGB",
        fmt: str | None = None,
    ) -> Path:
        path = src / name
        color = (200, 40, 40, 255)[: len(mode)] if mode in ("RGB", "RGBA") else 128
        img = Image.new(mode, size, color)
        # A gradient keeps the encoder honest (not a single flat block).
        for x in range(0, size[0], 4):
            for y in range(size[1]):
                value = (x * 255 // max(size[0], 1))
                if mode == "RGB":
                    img.putpixel((x, y), (value, 255 - value, 90))
                elif mode == "RGBA":
                    img.putpixel((x, y), (value, 255 - value, 90, 128))
                else:
                    img.putpixel((x, y), value)
        img.save(path, format=fmt)
        return path

    return _make


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    """Empty destination directory."""
    out = tmp_path / "out"
    out.mkdir()
    return out
