# tests/unit/test_main.py — v2
"""Tests for main.py — CLI parsing and command dispatch."""

from __future__ import annotations

import logging

import pytest

from webpexpress.encoder.pillow_encoder import PillowWebPEncoder
from webpexpress.logging.logger import ROOT_LOGGER
from webpexpress.main import EXIT_ERROR, EXIT_OK, EXIT_PARTIAL, _build_parser, main

needs_webp = pytest.mark.skipif(
    not PillowWebPEncoder.is_available(), reason="Pillow built without WebP",
)


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    # No stray .env; no handlers leaking between tests.
    monkeypatch.chdir(tmp_path)
    yield
    logging.getLogger(ROOT_LOGGER).handlers.clear()


class TestParser:
    def test_convert_args(self, tmp_path):
        args = _build_parser().parse_args(
            ["convert", "a.png", "b.jpg", "-o", str(tmp_path), "-q", "90", "-p", "photo", "-j", "3"]
        )
        assert [p.name for p in args.files] == ["a.png", "b.jpg"]
        assert args.output == tmp_path
        assert (args.quality, args.preset, args.workers) == (90, "photo", 3)

    def test_output_required(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["convert", "a.png"])

    def test_unknown_preset(self, tmp_path):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["convert", "a.png", "-o", str(tmp_path), "-p", "retro"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "webpexpress" in capsys.readouterr().out


class TestCommands:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_ERROR
        assert "usage" in capsys.readouterr().out.lower()

    def test_presets(self, capsys):
        assert main(["presets"]) == EXIT_OK
        assert capsys.readouterr().out.split() == [
            "default", "picture", "photo", "drawing", "icon", "text",
        ]


class TestConvert:
    def test_destination_must_exist(self, make_image, tmp_path):
        src = make_image("a.png")
        assert main(["convert", str(src), "-o", str(tmp_path / "missing")]) == EXIT_ERROR

    def test_invalid_quality(self, make_image, out_dir):
        src = make_image("a.png")
        assert main(["convert", str(src), "-o", str(out_dir), "-q", "53"]) == EXIT_ERROR
        assert list(out_dir.iterdir()) == []

    def test_no_images(self, tmp_path, out_dir):
        notes = tmp_path / "notes.txt"
        notes.write_text("hi", encoding="utf-8")
        assert main(["convert", str(notes), "-o", str(out_dir)]) == EXIT_ERROR

    @needs_webp
    def test_converts(self, make_image, out_dir, capsys):
        a = make_image("a.png")
        b = make_image("b.jpg", fmt="JPEG")
        code = main(["convert", str(a), str(b), "-o", str(out_dir), "-q", "70"])
        assert code == EXIT_OK
        assert sorted(p.name for p in out_dir.iterdir()) == ["a.webp", "b.webp"]
        out = capsys.readouterr().out
        assert "Converted:    2" in out
        assert "Failed:       0" in out

    @needs_webp
    def test_partial_failure(self, make_image, out_dir, tmp_path, capsys):
        good = make_image("good.png")
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"not really a png")
        code = main(["convert", str(good), str(bad), "-o", str(out_dir)])
        assert code == EXIT_PARTIAL
        assert (out_dir / "good.webp").exists()
        assert not (out_dir / "bad.webp").exists()
        out = capsys.readouterr().out
        assert "FAIL" in out
        assert "Failed:       1" in out
