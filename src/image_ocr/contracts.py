from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class EngineName(str, Enum):
    """
    OCR backends supported by this package.

    Engines are recognition black boxes: they return raw text candidates,
    confidences and geometry. Normalization happens outside the engine.
    """

    TESSERACT_CLI = "tesseract_cli"


class RecognitionLevel(str, Enum):
    ACCURATE = "accurate"
    FAST = "fast"


@dataclass(frozen=True, slots=True)
class Point:
    """
    Normalized image coordinates after conversion:
    - (0, 0) is top-left
    - (1, 1) is bottom-right
    """

    x: float
    y: float

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Point":
        return Point(x=float(d["x"]), y=float(d["y"]))

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True, slots=True)
class Quad:
    """
    Four labelled corners of a (possibly rotated) text region.

    Corner identity is kept as reported by the engine; it is never recomputed
    from the geometry.
    """

    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    def corners(self) -> tuple[Point, Point, Point, Point]:
        # Stroke order: TL -> TR -> BR -> BL
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Quad":
        return Quad(
            top_left=Point.from_dict(d["topLeft"]),
            top_right=Point.from_dict(d["topRight"]),
            bottom_right=Point.from_dict(d["bottomRight"]),
            bottom_left=Point.from_dict(d["bottomLeft"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "topLeft": self.top_left.to_dict(),
            "topRight": self.top_right.to_dict(),
            "bottomRight": self.bottom_right.to_dict(),
            "bottomLeft": self.bottom_left.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class RawObservation:
    """
    One recognized line exactly as the engine reported it.

    `candidates` are ranked best-first and may be empty. `quad` is in the
    engine's native unit square (see `OcrEngine.origin_bottom_left`).
    """

    candidates: tuple[str, ...]
    confidence: float
    quad: Quad


@dataclass(frozen=True, slots=True)
class Observation:
    text: str
    confidence: float  # engine confidence 0..1, passed through unmodified
    quad: Quad

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Observation":
        return Observation(
            text=str(d["text"]),
            confidence=float(d["confidence"]),
            quad=Quad.from_dict(d["quad"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "confidence": self.confidence, "quad": self.quad.to_dict()}


@dataclass(frozen=True, slots=True)
class ImageInfo:
    filename: str
    filepath: str  # absolute, relative to the working directory at invocation
    width: int
    height: int

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ImageInfo":
        return ImageInfo(
            filename=str(d["filename"]),
            filepath=str(d["filepath"]),
            width=int(d["width"]),
            height=int(d["height"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "filepath": self.filepath,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True, slots=True)
class OcrResult:
    """
    Per-image OCR output; the unit of serialization.

    `texts` is the newline join of `observations[i].text` in engine order.
    """

    texts: str
    observations: list[Observation]
    info: ImageInfo

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "OcrResult":
        observations_raw = d.get("observations")
        if not isinstance(observations_raw, list):
            raise TypeError("OcrResult.observations must be a list")
        info_raw = d.get("info")
        if not isinstance(info_raw, dict):
            raise TypeError("OcrResult.info must be an object")
        return OcrResult(
            texts=str(d.get("texts", "")),
            observations=[Observation.from_dict(o) for o in observations_raw],
            info=ImageInfo.from_dict(info_raw),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "texts": self.texts,
            "observations": [o.to_dict() for o in self.observations],
            "info": self.info.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class RecognitionConfig:
    """
    Fixed recognition configuration handed to the engine.

    `revision` is negotiated once per run (see
    `engines.base.negotiate_recognition_config`) and never re-checked per image.
    """

    level: RecognitionLevel = RecognitionLevel.ACCURATE
    uses_language_correction: bool = True
    minimum_text_height: float = 0.01  # fraction of image height
    revision: int = 1
    automatically_detects_language: bool = True

    def __post_init__(self) -> None:
        if self.minimum_text_height < 0.0 or self.minimum_text_height > 1.0:
            raise ValueError("minimum_text_height must be within [0.0, 1.0]")
        if self.revision < 1:
            raise ValueError("revision must be >= 1")


@dataclass(frozen=True, slots=True)
class ExtractConfig:
    """
    Per-run extraction configuration.

    Built once at startup by the CLI; library modules do not read environment
    variables or assume any paths.
    """

    languages: tuple[str, ...]
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    engine: EngineName = EngineName.TESSERACT_CLI
    timeout_s: float = 120.0
    tesseract_cmd: str = "tesseract"

    def __post_init__(self) -> None:
        if not isinstance(self.languages, tuple):
            raise TypeError("languages must be a tuple of language tags")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive")


@dataclass(frozen=True, slots=True)
class BatchFileError:
    code: str
    message: str
    relpath: str
    detail: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "relpath": self.relpath, "detail": self.detail}


@dataclass(frozen=True, slots=True)
class BatchResult:
    """
    Accumulated outcome of one batch run, returned by `run_batch`.

    `files` lists relative paths that were processed successfully, in
    processing order. `errors` is only populated under continue-on-error.
    """

    files: list[str]
    outputs: list[Path]
    merged_text: str
    merged_path: Path | None
    debug_images: list[Path]
    errors: list[BatchFileError]

    @property
    def ok(self) -> bool:
        return not self.errors
