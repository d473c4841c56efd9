from __future__ import annotations

import logging
from pathlib import Path

from .artifacts import assemble_result, serialize_result
from .contracts import ExtractConfig, OcrResult
from .engines import get_engine
from .errors import NoTextFoundError
from .image_io import image_info_for, load_image

logger = logging.getLogger(__name__)


def extract_text(*, config: ExtractConfig, image_file: Path) -> OcrResult:
    """
    Run OCR on one image file and return the normalized result.

    Raises:
    - ImageLoadError / ImageDecodeError when the file cannot become a pixel buffer
    - NoTextFoundError when the engine returns no result set at all
    - EngineError for backend failures

    An empty-but-present result set is not an error: it yields a result with
    no observations and empty `texts`.
    """

    image = load_image(image_file)
    info = image_info_for(image_file, image)

    engine = get_engine(config)
    raw_observations = engine.recognize(
        image=image,
        image_file=image_file,
        languages=config.languages,
        recognition=config.recognition,
        timeout_s=config.timeout_s,
    )
    if raw_observations is None:
        raise NoTextFoundError(
            f"OCR engine returned no result set for {image_file}",
            detail={"path": str(image_file), "backend": engine.backend_id()},
        )

    result = assemble_result(raw_observations, info, origin_bottom_left=engine.origin_bottom_left)
    logger.info("%s: %d observation(s)", image_file, len(result.observations))
    return result


def extract_text_json(*, config: ExtractConfig, image_file: Path) -> str:
    return serialize_result(extract_text(config=config, image_file=image_file))
