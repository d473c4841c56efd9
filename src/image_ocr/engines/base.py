from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image

from ..contracts import RawObservation, RecognitionConfig, RecognitionLevel
from ..errors import EngineError

logger = logging.getLogger(__name__)


class OcrEngine(ABC):
    """
    Interface for OCR recognition engines.

    IMPORTANT:
    - Engines return ranked text candidates, a confidence and four corner
      points per recognized line, in engine order.
    - Geometry is in the engine's native unit square; `origin_bottom_left`
      declares its vertical convention. Engines must NOT normalize it.
    - `None` means the engine produced no result set at all; an empty list is
      a valid "nothing recognized" answer.
    """

    origin_bottom_left: bool = True

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def available_revisions(self) -> tuple[int, ...]:
        return (1,)

    @abstractmethod
    def supported_languages(self) -> tuple[str, ...]:
        raise NotImplementedError

    @abstractmethod
    def recognize(
        self,
        *,
        image: Image.Image,
        image_file: Path,
        languages: tuple[str, ...],
        recognition: RecognitionConfig,
        timeout_s: float,
    ) -> list[RawObservation] | None:
        raise NotImplementedError


def negotiate_recognition_config(
    engine: OcrEngine,
    *,
    level: RecognitionLevel = RecognitionLevel.ACCURATE,
    uses_language_correction: bool = True,
    minimum_text_height: float = 0.01,
    automatically_detects_language: bool = True,
) -> RecognitionConfig:
    """
    Probe the engine once and pin the newest recognition revision it offers.

    The returned config is immutable and reused for every image in the run.
    """

    try:
        revisions = engine.available_revisions()
    except (EngineError, OSError) as e:
        logger.warning("Could not probe %s revisions (%s); using revision 1", engine.backend_id(), e)
        revisions = ()

    revision = max(revisions) if revisions else 1
    logger.debug("Using %s recognition revision %d", engine.backend_id(), revision)
    return RecognitionConfig(
        level=level,
        uses_language_correction=uses_language_correction,
        minimum_text_height=minimum_text_height,
        revision=revision,
        automatically_detects_language=automatically_detects_language,
    )
