from __future__ import annotations

import logging
from pathlib import Path

from PIL import ImageDraw

from .artifacts import parse_result
from .contracts import OcrResult
from .geometry import quad_to_raster_polygon
from .image_io import load_image, save_png

logger = logging.getLogger(__name__)

BOX_COLOR = (255, 0, 0)
BOX_WIDTH = 1


def debug_image_path(image_file: Path) -> Path:
    """
    `<dir>/<stem>_boxes.png` next to the source, whatever its format.
    """

    return image_file.with_name(f"{image_file.stem}_boxes.png")


def render_debug_result(*, image_file: Path, result: OcrResult) -> Path:
    image = load_image(image_file)
    width, height = image.size

    draw = ImageDraw.Draw(image)
    for obs in result.observations:
        polygon = quad_to_raster_polygon(obs.quad, width=width, height=height)
        # Closed outline, no fill.
        draw.line(polygon + [polygon[0]], fill=BOX_COLOR, width=BOX_WIDTH)

    out_file = debug_image_path(image_file)
    save_png(image, out_file)
    logger.info("Debug image saved to %s", out_file)
    return out_file


def render_debug(*, image_file: Path, result_json: str) -> Path:
    """
    Paint every observation's quad onto a copy of the source image.

    The serialized result is read back first; a result that cannot be parsed
    raises ResultParseError before anything is written.
    """

    result = parse_result(result_json)
    return render_debug_result(image_file=image_file, result=result)
