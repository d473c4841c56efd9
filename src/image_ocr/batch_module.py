from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from .artifacts import extract_texts, serialize_result, write_merged_text, write_result_json
from .contracts import BatchFileError, BatchResult, ExtractConfig
from .debug_render import render_debug
from .errors import ImageLoadError, OcrToolError, ValidationError
from .image_io import is_image_file
from .module import extract_text

logger = logging.getLogger(__name__)

MERGED_OUTPUT_NAME = "merged_output.txt"
MERGE_SEPARATOR = "\n\n"


def iter_image_relpaths(root_dir: Path) -> Iterator[str]:
    """
    Yield POSIX relative paths of supported images under `root_dir`, in
    filesystem order. Callers sort.
    """

    def _raise_walk_error(err: OSError) -> None:
        path = err.filename or str(root_dir)
        raise ImageLoadError(str(path), detail={"error": repr(err)}) from err

    for dirpath, _dirnames, filenames in os.walk(root_dir, onerror=_raise_walk_error):
        for name in filenames:
            if not is_image_file(name):
                continue
            full = Path(dirpath) / name
            yield full.relative_to(root_dir).as_posix()


def list_image_relpaths(root_dir: Path) -> list[str]:
    # Deterministic: lexicographic by relative path, independent of walk order.
    return sorted(iter_image_relpaths(root_dir))


def output_json_path(output_dir: Path, relpath: str) -> Path:
    """
    `<output_dir>/<basename incl. extension>.json`; nested inputs are flattened.
    """

    return output_dir / f"{Path(relpath).name}.json"


def run_batch(
    *,
    config: ExtractConfig,
    root_dir: Path,
    output_dir: Path | None = None,
    merge: bool = False,
    debug: bool = False,
    continue_on_error: bool = False,
) -> BatchResult:
    """
    OCR every supported image under `root_dir`, sequentially, in sorted order.

    Failure policy:
    - default: the first per-file error propagates and aborts the batch; files
      after it are not processed and no outputs exist for them
    - continue_on_error: per-file `OcrToolError`s are recorded in
      `BatchResult.errors` and the batch moves on; failed files contribute
      nothing to the outputs or the merge

    Merged text is written to `<output_dir>/merged_output.txt` only when both
    `merge` and `output_dir` are set; it is always returned in the result.
    """

    if not root_dir.is_dir():
        raise ValidationError(f"Image directory not found: {root_dir}", detail={"path": str(root_dir)})

    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    relpaths = list_image_relpaths(root_dir)
    logger.info("Found %d image(s) under %s", len(relpaths), root_dir)

    files: list[str] = []
    outputs: list[Path] = []
    debug_images: list[Path] = []
    errors: list[BatchFileError] = []
    merged_parts: list[str] = []

    for relpath in relpaths:
        image_file = root_dir / relpath
        logger.info("Processing %s", relpath)
        try:
            result_json = serialize_result(extract_text(config=config, image_file=image_file))

            if output_dir is not None:
                out_file = output_json_path(output_dir, relpath)
                write_result_json(result_json=result_json, out_file=out_file)
                outputs.append(out_file)

            if merge:
                merged_parts.append(extract_texts(result_json) + MERGE_SEPARATOR)

            if debug:
                debug_images.append(render_debug(image_file=image_file, result_json=result_json))
        except OcrToolError as e:
            if not continue_on_error:
                raise
            logger.error("%s failed [%s]: %s", relpath, e.code, e.message)
            errors.append(BatchFileError(code=e.code, message=e.message, relpath=relpath, detail=e.detail))
            continue

        files.append(relpath)

    merged_text = "".join(merged_parts)
    merged_path: Path | None = None
    if merge and output_dir is not None:
        merged_path = output_dir / MERGED_OUTPUT_NAME
        write_merged_text(text=merged_text, out_file=merged_path)

    return BatchResult(
        files=files,
        outputs=outputs,
        merged_text=merged_text,
        merged_path=merged_path,
        debug_images=debug_images,
        errors=errors,
    )
