from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .contracts import ImageInfo, Observation, OcrResult, RawObservation
from .errors import ResultParseError
from .geometry import normalize_quad


def assemble_result(
    raw_observations: Iterable[RawObservation], info: ImageInfo, *, origin_bottom_left: bool
) -> OcrResult:
    """
    Build an `OcrResult` from engine observations, in engine order.

    Only the top-ranked candidate of each observation is used; observations
    with no candidate are dropped from both `observations` and `texts`.
    """

    observations: list[Observation] = []
    for raw in raw_observations:
        if not raw.candidates:
            continue
        observations.append(
            Observation(
                text=raw.candidates[0],
                confidence=raw.confidence,
                quad=normalize_quad(raw.quad, origin_bottom_left=origin_bottom_left),
            )
        )

    return OcrResult(
        texts="\n".join(o.text for o in observations),
        observations=observations,
        info=info,
    )


def serialize_result(result: OcrResult) -> str:
    """
    Stable JSON serialization. Floats use shortest round-trip repr, so no
    precision is lost.
    """

    payload: dict[str, Any] = result.to_dict()
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def parse_result(text: str) -> OcrResult:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ResultParseError("OCR result is not valid JSON", detail={"error": repr(e)}) from e

    if not isinstance(payload, dict):
        raise ResultParseError("OCR result must be a JSON object")

    try:
        return OcrResult.from_dict(payload)
    except (KeyError, TypeError, ValueError) as e:
        raise ResultParseError("OCR result has an unexpected shape", detail={"error": repr(e)}) from e


def extract_texts(result_json: str) -> str:
    """
    Read the `texts` field back out of a serialized result.
    """

    try:
        payload = json.loads(result_json)
    except (TypeError, ValueError) as e:
        raise ResultParseError("OCR result is not valid JSON", detail={"error": repr(e)}) from e
    texts = payload.get("texts") if isinstance(payload, dict) else None
    if not isinstance(texts, str):
        raise ResultParseError("OCR result is missing a string 'texts' field")
    return texts


def write_text_atomic(*, text: str, out_file: Path) -> None:
    """
    Write to a sibling temp file, then rename over `out_file`. Readers see
    either the previous content or the complete new content, never a
    truncated file.
    """

    out_file.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=out_file.parent, prefix=f".{out_file.name}.", suffix=".tmp")
    tmp_file = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_file, out_file)
    except BaseException:
        tmp_file.unlink(missing_ok=True)
        raise


def write_result_json(*, result_json: str, out_file: Path) -> None:
    """
    Write an already-serialized result. Serialization happens before the file
    is opened, so a failed extraction never leaves partial JSON behind.
    """

    write_text_atomic(text=result_json, out_file=out_file)


def write_merged_text(*, text: str, out_file: Path) -> None:
    write_text_atomic(text=text, out_file=out_file)
