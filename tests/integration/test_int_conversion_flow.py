# tests/integration/test_int_conversion_flow.py — v1
"""Integration: real Pillow encoding through ConversionSession.

Covers the full add -> start -> settle -> resubmit cycle against real
image files and a real destination directory.
"""

from __future__ import annotations

import io
import os

import pytest
from PIL import Image

from webpexpress.api.facade import ConversionSession
from webpexpress.core.models import ConversionConfig
from webpexpress.encoder.pillow_encoder import PillowWebPEncoder

pytestmark = pytest.mark.skipif(
    not PillowWebPEncoder.is_available(), reason="Pillow built without WebP",
)

TIMEOUT = 30


@pytest.fixture
def session(settings):
    with ConversionSession(settings=settings) as s:
        yield s


class TestRealConversion:
    def test_batch_of_mixed_formats(self, session, make_image, out_dir):
        sources = [
            make_image("photo.jpg", size=(120, 90), fmt="JPEG"),
            make_image("logo.png", size=(64, 64), mode="RGBA"),
            make_image("scan.bmp", size=(80, 60), fmt="BMP"),
            make_image("grey.png", size=(50, 50), mode="L"),
        ]
        session.add_files(sources)
        run = session.start(out_dir, ConversionConfig(quality=75, preset="picture"))
        result = run.wait(TIMEOUT)

        assert result.success_count == 4
        assert result.failure_count == 0
        for src in sources:
            out = out_dir / (src.stem + ".webp")
            with Image.open(out) as img:
                assert img.format == "WEBP"
                assert img.size == Image.open(src).size

        with Image.open(out_dir / "logo.webp") as img:
            assert img.mode == "RGBA"

    def test_totals_match_disk(self, session, make_image, out_dir):
        sources = [make_image(f"img{n}.bmp", size=(100, 100), fmt="BMP") for n in range(3)]
        session.add_files(sources)
        result = session.start(out_dir).wait(TIMEOUT)

        source_total = sum(os.path.getsize(p) for p in sources)
        output_total = sum(os.path.getsize(out_dir / f"img{n}.webp") for n in range(3))
        assert result.raw_bytes_delta == source_total - output_total
        # Uncompressed BMP always shrinks.
        assert result.total_bytes_saved > 0

    def test_retry_after_fixing_source(self, session, make_image, tmp_path, out_dir):
        good = make_image("good.png")
        broken = tmp_path / "images" / "broken.png"
        broken.write_bytes(b"\x89PNG\r\n\x1a\n garbage")
        session.add_files([good, broken])

        first = session.start(out_dir).wait(TIMEOUT)
        assert (first.success_count, first.failure_count) == (1, 1)
        row = next(r for r in session.rows() if r.filename == "broken.png")
        assert row.state == "fail"
        assert row.error

        buf = io.BytesIO()
        Image.new("RGB", (16, 16), (0, 0, 255)).save(buf, format="PNG")
        broken.write_bytes(buf.getvalue())

        second = session.start(out_dir).wait(TIMEOUT)
        assert second.total_items == 1
        assert second.success_count == 1
        assert (out_dir / "broken.webp").exists()
        assert all(r.state == "success" for r in session.rows())

    def test_no_partial_files_left(self, session, make_image, out_dir):
        session.add_files([make_image(f"{n}.png") for n in range(6)])
        session.start(out_dir).wait(TIMEOUT)
        assert not any(p.name.endswith(".part") for p in out_dir.iterdir())
        assert len(list(out_dir.iterdir())) == 6

    def test_readd_after_success_reconverts(self, session, make_image, out_dir):
        src = make_image("again.png")
        session.add_files([src])
        session.start(out_dir).wait(TIMEOUT)
        assert session.rows()[0].state == "success"

        session.add_files([src])
        assert session.rows()[0].state == "unstarted"
        assert session.start(out_dir).wait(TIMEOUT).success_count == 1
