"""Pillow-backed image decoding/encoding helpers."""
from __future__ import annotations

import os
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .contracts import ImageInfo
from .errors import ImageDecodeError, ImageEncodeError, ImageLoadError

SUPPORTED_EXTENSIONS: tuple[str, ...] = ("jpg", "jpeg", "png", "webp")


def is_image_file(path: str | Path) -> bool:
    """Return True if the file extension (case-insensitive) is a supported image type."""
    suffix = Path(path).suffix
    return suffix[1:].lower() in SUPPORTED_EXTENSIONS if suffix else False


def load_image(image_file: Path) -> Image.Image:
    """Decode an image file into an in-memory RGB pixel buffer.

    Raises ImageLoadError when the file cannot be opened as an image, and
    ImageDecodeError when it opens but its pixel data cannot be materialized.
    """
    try:
        img = Image.open(image_file)
    except (Image.DecompressionBombError, UnidentifiedImageError, OSError) as e:
        # DecompressionBombError: pixel count above Image.MAX_IMAGE_PIXELS
        raise ImageLoadError(str(image_file), detail={"error": repr(e)}) from e

    try:
        with img:
            img.load()
            return img.convert("RGB")
    except (OSError, ValueError, SyntaxError) as e:
        raise ImageDecodeError(str(image_file), detail={"error": repr(e)}) from e


def image_info_for(image_file: Path, image: Image.Image) -> ImageInfo:
    """Describe a decoded image; `filepath` is made absolute against the working directory."""
    width, height = image.size
    return ImageInfo(
        filename=image_file.name,
        filepath=os.path.abspath(image_file),
        width=int(width),
        height=int(height),
    )


def save_png(image: Image.Image, out_file: Path) -> None:
    """Encode an image as PNG, raising ImageEncodeError on failure."""
    try:
        image.save(out_file, format="PNG")
    except (OSError, ValueError, KeyError) as e:
        raise ImageEncodeError(str(out_file), detail={"error": repr(e)}) from e
