from __future__ import annotations

import csv
import io
import logging
import re
import subprocess
from pathlib import Path
from typing import Any

from PIL import Image

from ..contracts import Point, Quad, RawObservation, RecognitionConfig, RecognitionLevel
from ..errors import EngineError, EngineUnavailableError
from .base import OcrEngine

logger = logging.getLogger(__name__)

# BCP-47 style tags <-> tesseract traineddata codes.
_TAG_TO_TESS: dict[str, str] = {
    "zh-Hans": "chi_sim",
    "zh-Hant": "chi_tra",
    "en-US": "eng",
    "ja-JP": "jpn",
    "ko-KR": "kor",
    "fr-FR": "fra",
    "de-DE": "deu",
    "es-ES": "spa",
    "it-IT": "ita",
    "pt-BR": "por",
    "ru-RU": "rus",
    "uk-UA": "ukr",
    "pl-PL": "pol",
    "th-TH": "tha",
    "vi-VN": "vie",
    "ar-SA": "ara",
}
_TESS_TO_TAG: dict[str, str] = {v: k for k, v in _TAG_TO_TESS.items()}

# Not recognition languages.
_PSEUDO_LANGS = frozenset({"osd", "equ"})

_VERSION_RE = re.compile(r"tesseract\s+v?(\d+)(?:\.(\d+))?", re.IGNORECASE)

_LineKey = tuple[int, int, int, int]


def tag_to_tesseract(tag: str) -> str:
    return _TAG_TO_TESS.get(tag, tag)


def tesseract_to_tag(code: str) -> str:
    return _TESS_TO_TAG.get(code, code)


def _int(row: dict[str, Any], key: str, default: int = 0) -> int:
    return int(row.get(key, "") or default)


def _normalize_confidence(raw_conf: float) -> float:
    # Tesseract TSV is 0..100; clamp into [0, 1]
    return max(0.0, min(1.0, raw_conf / 100.0))


def _box_quad(*, left: int, top: int, width: int, height: int, image_w: int, image_h: int) -> Quad:
    x0 = left / image_w
    x1 = (left + width) / image_w
    y0 = top / image_h
    y1 = (top + height) / image_h
    return Quad(
        top_left=Point(x=x0, y=y0),
        top_right=Point(x=x1, y=y0),
        bottom_right=Point(x=x1, y=y1),
        bottom_left=Point(x=x0, y=y1),
    )


def parse_tsv_lines(
    tsv: str, *, image_w: int, image_h: int, minimum_text_height: float
) -> list[RawObservation] | None:
    """
    Parse tesseract TSV output into line-level observations, in TSV order.

    Returns None when the TSV contains no data rows at all (no result set).
    Lines whose pixel height is below `minimum_text_height * image_h` are not
    reported. A line with no non-empty words yields an observation with no
    candidates.
    """

    reader = csv.DictReader(io.StringIO(tsv), delimiter="\t", quoting=csv.QUOTE_NONE)

    seen_any_row = False
    boxes: dict[_LineKey, tuple[int, int, int, int]] = {}
    words: dict[_LineKey, list[str]] = {}
    confs: dict[_LineKey, list[float]] = {}

    for row in reader:
        seen_any_row = True

        # level meanings: 1=page,2=block,3=para,4=line,5=word
        try:
            level = _int(row, "level")
            key = (
                _int(row, "page_num", 1),
                _int(row, "block_num"),
                _int(row, "par_num"),
                _int(row, "line_num"),
            )
            left = _int(row, "left")
            top = _int(row, "top")
            width = _int(row, "width")
            height = _int(row, "height")
        except ValueError:
            # Malformed geometry rows are dropped (no guessing).
            continue

        if level == 4:
            boxes[key] = (left, top, width, height)
            words.setdefault(key, [])
            confs.setdefault(key, [])
        elif level == 5:
            text = (row.get("text") or "").strip()
            if text == "":
                continue
            words.setdefault(key, []).append(text)
            try:
                raw_conf = float(row.get("conf", "") or "-1")
            except ValueError:
                raw_conf = -1.0
            if raw_conf >= 0:
                confs.setdefault(key, []).append(raw_conf)

    if not seen_any_row:
        return None

    min_height_px = minimum_text_height * image_h
    observations: list[RawObservation] = []
    for key, (left, top, width, height) in boxes.items():
        if height < min_height_px:
            continue
        line_words = words.get(key, [])
        line_confs = confs.get(key, [])
        confidence = _normalize_confidence(sum(line_confs) / len(line_confs)) if line_confs else 0.0
        observations.append(
            RawObservation(
                candidates=(" ".join(line_words),) if line_words else (),
                confidence=confidence,
                quad=_box_quad(
                    left=left, top=top, width=width, height=height, image_w=image_w, image_h=image_h
                ),
            )
        )
    return observations


class TesseractCliEngine(OcrEngine):
    """
    Tesseract OCR via the `tesseract` CLI, parsed from TSV output.

    The decoded image is piped to tesseract as PNG on stdin so every format
    Pillow can decode is accepted. Boxes are reported in top-left-origin pixel
    space, scaled here into the unit square.
    """

    origin_bottom_left = False

    def __init__(self, *, tesseract_cmd: str = "tesseract") -> None:
        self.tesseract_cmd = tesseract_cmd

    def backend_id(self) -> str:
        return "tesseract"

    def _run(self, args: list[str], *, timeout_s: float, input_bytes: bytes | None = None) -> subprocess.CompletedProcess:
        cmd = [self.tesseract_cmd, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                input=input_bytes,
                check=False,
                capture_output=True,
                timeout=timeout_s,
            )
        except FileNotFoundError as e:
            raise EngineUnavailableError(
                f"{self.tesseract_cmd} binary not found on PATH",
                detail={"expected_command": self.tesseract_cmd},
            ) from e
        except subprocess.TimeoutExpired as e:
            raise EngineError(
                "OCR backend timed out", code="OCR_TIMEOUT", detail={"timeout_s": timeout_s}
            ) from e

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace")
            raise EngineError(
                "OCR backend returned a non-zero exit code",
                code="OCR_BACKEND_ERROR",
                detail={
                    "returncode": proc.returncode,
                    "stderr": stderr[-4000:],  # truncate
                },
            )
        return proc

    def available_revisions(self) -> tuple[int, ...]:
        proc = self._run(["--version"], timeout_s=30.0)
        # Old releases print the banner on stderr.
        banner = proc.stdout.decode("utf-8", errors="replace") + proc.stderr.decode("utf-8", errors="replace")
        m = _VERSION_RE.search(banner)
        if m is None:
            return (1,)
        major = int(m.group(1))
        # 4.x introduced the LSTM recognizer.
        return (1, 2) if major >= 4 else (1,)

    def supported_languages(self) -> tuple[str, ...]:
        proc = self._run(["--list-langs"], timeout_s=30.0)
        out = proc.stdout.decode("utf-8", errors="replace")
        tags: list[str] = []
        for line in out.splitlines():
            code = line.strip()
            if not code or code.lower().startswith("list of available languages") or code in _PSEUDO_LANGS:
                continue
            tag = tesseract_to_tag(code)
            if tag not in tags:
                tags.append(tag)
        return tuple(tags)

    def build_args(self, *, languages: tuple[str, ...], recognition: RecognitionConfig) -> list[str]:
        codes: list[str] = []
        for tag in languages:
            code = tag_to_tesseract(tag)
            if code not in codes and code not in _PSEUDO_LANGS:
                codes.append(code)
        if not codes:
            codes = ["eng"]
        if not recognition.automatically_detects_language:
            # Without detection only the primary requested language is loaded;
            # with it, tesseract picks per word among all requested models.
            codes = codes[:1]

        if recognition.revision >= 2:
            oem = 1 if recognition.level == RecognitionLevel.ACCURATE else 3
        else:
            oem = 0

        args = ["stdin", "stdout", "-l", "+".join(codes), "--oem", str(oem)]
        if not recognition.uses_language_correction:
            args.extend(["-c", "load_system_dawg=0", "-c", "load_freq_dawg=0"])
        # Request TSV output (line + word rows with boxes, conf and text).
        args.append("tsv")
        return args

    def recognize(
        self,
        *,
        image: Image.Image,
        image_file: Path,
        languages: tuple[str, ...],
        recognition: RecognitionConfig,
        timeout_s: float,
    ) -> list[RawObservation] | None:
        buf = io.BytesIO()
        image.save(buf, format="PNG")

        args = self.build_args(languages=languages, recognition=recognition)
        logger.debug("Recognizing %s", image_file)
        proc = self._run(args, timeout_s=timeout_s, input_bytes=buf.getvalue())

        width, height = image.size
        return parse_tsv_lines(
            proc.stdout.decode("utf-8", errors="replace"),
            image_w=width,
            image_h=height,
            minimum_text_height=recognition.minimum_text_height,
        )
