"""
Image OCR extraction (text + per-line geometry).

Pipeline:
- Decode an image (Pillow) and run a recognition engine on it
- Normalize engine geometry into top-left-origin, y-down, [0, 1] quads
- Assemble a deterministic JSON result per image
- Batch mode: sorted recursive traversal, per-file JSON, optional merged text
  and optional debug overlays

Data access:
- No environment variable reads in this package
- All filesystem locations are passed in explicitly by the caller
"""

from .artifacts import assemble_result, parse_result, serialize_result
from .batch_module import run_batch
from .contracts import (
    BatchFileError,
    BatchResult,
    EngineName,
    ExtractConfig,
    ImageInfo,
    Observation,
    OcrResult,
    Point,
    Quad,
    RawObservation,
    RecognitionConfig,
    RecognitionLevel,
)
from .debug_render import render_debug
from .errors import (
    EngineError,
    EngineUnavailableError,
    ImageDecodeError,
    ImageEncodeError,
    ImageLoadError,
    NoTextFoundError,
    OcrToolError,
    ResultParseError,
    ValidationError,
)
from .geometry import normalize_quad
from .languages import supported_languages
from .module import extract_text, extract_text_json

__all__ = [
    "BatchFileError",
    "BatchResult",
    "EngineError",
    "EngineName",
    "EngineUnavailableError",
    "ExtractConfig",
    "ImageDecodeError",
    "ImageEncodeError",
    "ImageInfo",
    "ImageLoadError",
    "NoTextFoundError",
    "Observation",
    "OcrResult",
    "OcrToolError",
    "Point",
    "Quad",
    "RawObservation",
    "RecognitionConfig",
    "RecognitionLevel",
    "ResultParseError",
    "ValidationError",
    "assemble_result",
    "extract_text",
    "extract_text_json",
    "normalize_quad",
    "parse_result",
    "render_debug",
    "run_batch",
    "serialize_result",
    "supported_languages",
]
