from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from image_ocr.batch_module import list_image_relpaths, output_json_path, run_batch
from image_ocr.contracts import ExtractConfig, Point, Quad, RawObservation
from image_ocr.engines.base import OcrEngine
from image_ocr.errors import ImageLoadError, ValidationError

_CONFIG = ExtractConfig(languages=("en-US",))


class _FakeEngine(OcrEngine):
    """Returns one line per image whose text names the file."""

    origin_bottom_left = True

    def __init__(self) -> None:
        self.seen: list[str] = []

    def backend_id(self) -> str:
        return "fake"

    def supported_languages(self) -> tuple[str, ...]:
        return ("en-US",)

    def recognize(self, *, image, image_file, languages, recognition, timeout_s):
        self.seen.append(Path(image_file).name)
        return [
            RawObservation(
                candidates=(f"text of {Path(image_file).name}",),
                confidence=0.75,
                quad=Quad(
                    top_left=Point(0.1, 0.8),
                    top_right=Point(0.8, 0.8),
                    bottom_right=Point(0.8, 0.7),
                    bottom_left=Point(0.1, 0.7),
                ),
            )
        ]


def _write_image(path: Path, fmt: str | None = None, size: tuple[int, int] = (40, 30)) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, "white").save(path, format=fmt)


class TestBatch(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.root = self.tmp / "images"
        self.out = self.tmp / "out"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, engine: _FakeEngine, **kwargs):
        with patch("image_ocr.module.get_engine", return_value=engine):
            return run_batch(config=_CONFIG, root_dir=self.root, **kwargs)

    def test_enumeration_filters_and_sorts(self) -> None:
        _write_image(self.root / "b.png")
        _write_image(self.root / "a.jpg")
        _write_image(self.root / "sub" / "c.webp")
        _write_image(self.root / "e.JPEG", fmt="JPEG")
        (self.root / "notes.txt").write_text("skip me", encoding="utf-8")
        (self.root / "scan.tiff").write_bytes(b"")

        self.assertEqual(list_image_relpaths(self.root), ["a.jpg", "b.png", "e.JPEG", "sub/c.webp"])

    def test_merge_order_is_lexicographic(self) -> None:
        for name in ("b.png", "c.webp", "a.jpg"):
            _write_image(self.root / name)

        engine = _FakeEngine()
        result = self._run(engine, output_dir=self.out, merge=True)

        self.assertEqual(engine.seen, ["a.jpg", "b.png", "c.webp"])
        self.assertEqual(result.files, ["a.jpg", "b.png", "c.webp"])
        self.assertTrue(result.ok)

        merged = (self.out / "merged_output.txt").read_text(encoding="utf-8")
        self.assertEqual(merged, "text of a.jpg\n\ntext of b.png\n\ntext of c.webp\n\n")
        self.assertEqual(result.merged_text, merged)
        self.assertEqual(result.merged_path, self.out / "merged_output.txt")

        for name in ("a.jpg", "b.png", "c.webp"):
            payload = json.loads((self.out / f"{name}.json").read_text(encoding="utf-8"))
            self.assertEqual(payload["texts"], f"text of {name}")
            self.assertEqual(payload["info"]["filename"], name)

    def test_outputs_are_byte_stable_across_runs(self) -> None:
        _write_image(self.root / "x.png")
        _write_image(self.root / "y.png")

        self._run(_FakeEngine(), output_dir=self.out, merge=True)
        first = {p.name: p.read_bytes() for p in sorted(self.out.iterdir())}
        self._run(_FakeEngine(), output_dir=self.out, merge=True)
        second = {p.name: p.read_bytes() for p in sorted(self.out.iterdir())}
        self.assertEqual(first, second)

    def test_nested_files_are_written_flat_by_basename(self) -> None:
        _write_image(self.root / "deep" / "er" / "page.png")
        result = self._run(_FakeEngine(), output_dir=self.out)

        self.assertEqual(result.outputs, [self.out / "page.png.json"])
        self.assertEqual(output_json_path(self.out, "deep/er/page.png"), self.out / "page.png.json")

    def test_merge_without_output_dir_writes_nothing(self) -> None:
        _write_image(self.root / "a.png")
        result = self._run(_FakeEngine(), merge=True)

        self.assertIsNone(result.merged_path)
        self.assertEqual(result.merged_text, "text of a.png\n\n")
        self.assertEqual(result.outputs, [])
        self.assertFalse(self.out.exists())

    def test_existing_merged_output_is_overwritten(self) -> None:
        _write_image(self.root / "a.png")
        self.out.mkdir(parents=True)
        (self.out / "merged_output.txt").write_text("stale content from a previous run\n", encoding="utf-8")

        self._run(_FakeEngine(), output_dir=self.out, merge=True)
        self.assertEqual((self.out / "merged_output.txt").read_text(encoding="utf-8"), "text of a.png\n\n")

    def test_first_failure_aborts_remaining_files(self) -> None:
        _write_image(self.root / "a.png")
        (self.root / "b.png").write_bytes(b"corrupt")
        _write_image(self.root / "c.png")
        _write_image(self.root / "d.png")

        engine = _FakeEngine()
        with self.assertRaises(ImageLoadError):
            self._run(engine, output_dir=self.out, merge=True)

        self.assertEqual(engine.seen, ["a.png"])
        self.assertTrue((self.out / "a.png.json").exists())
        for name in ("b.png", "c.png", "d.png"):
            self.assertFalse((self.out / f"{name}.json").exists())
        self.assertFalse((self.out / "merged_output.txt").exists())

    def test_continue_on_error_records_and_proceeds(self) -> None:
        _write_image(self.root / "a.png")
        (self.root / "b.png").write_bytes(b"corrupt")
        _write_image(self.root / "c.png")

        with self.assertLogs("image_ocr.batch_module", level="ERROR"):
            result = self._run(_FakeEngine(), output_dir=self.out, merge=True, continue_on_error=True)

        self.assertFalse(result.ok)
        self.assertEqual(result.files, ["a.png", "c.png"])
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].relpath, "b.png")
        self.assertEqual(result.errors[0].code, "OCR_IMAGE_LOAD_FAILED")
        self.assertFalse((self.out / "b.png.json").exists())
        self.assertEqual(
            (self.out / "merged_output.txt").read_text(encoding="utf-8"),
            "text of a.png\n\ntext of c.png\n\n",
        )

    def test_continue_on_error_records_oversized_image(self) -> None:
        _write_image(self.root / "a.png")
        _write_image(self.root / "b.png", size=(400, 300))
        _write_image(self.root / "c.png")

        with patch("PIL.Image.MAX_IMAGE_PIXELS", 10_000):
            with self.assertLogs("image_ocr.batch_module", level="ERROR"):
                result = self._run(_FakeEngine(), output_dir=self.out, continue_on_error=True)

        self.assertEqual(result.files, ["a.png", "c.png"])
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].relpath, "b.png")
        self.assertEqual(result.errors[0].code, "OCR_IMAGE_LOAD_FAILED")
        self.assertTrue((self.out / "c.png.json").exists())

    def test_missing_root_dir_is_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self._run(_FakeEngine(), output_dir=self.out)
        self.assertEqual(ctx.exception.detail["path"], str(self.root))
        self.assertFalse(self.out.exists())

    def test_root_dir_that_is_a_file_is_rejected(self) -> None:
        self.root.parent.mkdir(parents=True, exist_ok=True)
        self.root.write_bytes(b"")
        with self.assertRaises(ValidationError):
            self._run(_FakeEngine(), output_dir=self.out)

    def test_unreadable_subdirectory_aborts_enumeration(self) -> None:
        _write_image(self.root / "a.png")

        def _walk(top, onerror=None, **_kwargs):
            yield str(top), ["locked"], ["a.png"]
            onerror(PermissionError(13, "Permission denied", os.path.join(top, "locked")))

        engine = _FakeEngine()
        with patch("image_ocr.batch_module.os.walk", side_effect=_walk):
            with self.assertRaises(ImageLoadError) as ctx:
                self._run(engine, output_dir=self.out)
        self.assertEqual(ctx.exception.path, os.path.join(self.root, "locked"))
        self.assertEqual(engine.seen, [])

    def test_debug_images_written_beside_sources(self) -> None:
        _write_image(self.root / "a.jpg")
        _write_image(self.root / "sub" / "b.webp")

        result = self._run(_FakeEngine(), debug=True)

        expected = [self.root / "a_boxes.png", self.root / "sub" / "b_boxes.png"]
        self.assertEqual(result.debug_images, expected)
        for path in expected:
            with Image.open(path) as img:
                self.assertEqual(img.format, "PNG")


if __name__ == "__main__":
    unittest.main()
