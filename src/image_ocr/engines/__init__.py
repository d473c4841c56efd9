from __future__ import annotations

from ..contracts import EngineName, ExtractConfig
from .base import OcrEngine, negotiate_recognition_config
from .tesseract_cli import TesseractCliEngine


def get_engine(config: ExtractConfig) -> OcrEngine:
    if config.engine == EngineName.TESSERACT_CLI:
        return TesseractCliEngine(tesseract_cmd=config.tesseract_cmd)
    raise ValueError(f"Unsupported OCR engine: {config.engine}")


__all__ = ["OcrEngine", "TesseractCliEngine", "get_engine", "negotiate_recognition_config"]
