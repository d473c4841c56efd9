from __future__ import annotations

import logging

from .engines.base import OcrEngine
from .errors import EngineError

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGES: tuple[str, ...] = ("zh-Hans", "zh-Hant", "en-US", "ja-JP")


def supported_languages(engine: OcrEngine) -> tuple[str, ...]:
    """
    Recognition languages the engine reports, in engine order.

    A failed or empty query is not an error: the fixed fallback set is
    returned instead. The result doubles as the default requested-language
    set for every extraction.
    """

    try:
        languages = engine.supported_languages()
    except (EngineError, OSError) as e:
        logger.warning(
            "Could not query %s languages (%s); falling back to %s",
            engine.backend_id(),
            e,
            ", ".join(FALLBACK_LANGUAGES),
        )
        return FALLBACK_LANGUAGES

    if not languages:
        logger.warning("%s reported no languages; using fallback set", engine.backend_id())
        return FALLBACK_LANGUAGES
    return tuple(languages)
