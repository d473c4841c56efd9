from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from .artifacts import serialize_result, write_result_json
from .batch_module import run_batch
from .contracts import ExtractConfig
from .debug_render import render_debug
from .engines import get_engine, negotiate_recognition_config
from .errors import OcrToolError, ValidationError
from .languages import supported_languages
from .module import extract_text

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="image-ocr",
        description="Perform OCR on a single image or a batch of images; emit text + line geometry as JSON.",
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--img", type=Path, default=None, help="Path to a single image file.")
    mode.add_argument(
        "--img-dir", type=Path, default=None, help="Directory containing images for batch mode (recursive)."
    )
    p.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output directory for single image mode (prints JSON to stdout if omitted).",
    )
    p.add_argument("--output-dir", type=Path, default=None, help="Output directory for batch mode.")
    p.add_argument(
        "--merge",
        action="store_true",
        help="Merge all text outputs into merged_output.txt in batch mode.",
    )
    p.add_argument("--debug", action="store_true", help="Draw bounding boxes into <image>_boxes.png.")
    p.add_argument("--lang", action="store_true", help="Show supported recognition languages and exit.")
    p.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Batch mode: record per-file failures and keep going instead of aborting.",
    )
    p.add_argument("--timeout-s", type=float, default=120.0, help="OCR engine timeout per image in seconds.")
    p.add_argument("--tesseract-cmd", default="tesseract", help="tesseract executable (default: tesseract).")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return p


def _process_single_image(*, config: ExtractConfig, image_file: Path, output_dir: Path | None, debug: bool) -> None:
    result_json = serialize_result(extract_text(config=config, image_file=image_file))

    if output_dir is not None:
        out_file = output_dir / f"{image_file.stem}.json"
        write_result_json(result_json=result_json, out_file=out_file)
        print(f"OCR result saved to: {out_file}")
    else:
        print(result_json, end="")

    if debug:
        out_image = render_debug(image_file=image_file, result_json=result_json)
        print(f"Debug image saved to: {out_image}")


def run(args: argparse.Namespace) -> int:
    if not args.lang and args.img is None and args.img_dir is None:
        raise ValidationError("Either --img or --img-dir must be provided")

    # Probe once; languages and revision stay fixed for the whole run.
    base = ExtractConfig(languages=(), timeout_s=args.timeout_s, tesseract_cmd=args.tesseract_cmd)
    engine = get_engine(base)
    languages = supported_languages(engine)

    if args.lang:
        print("Supported recognition languages:")
        for tag in languages:
            print(f"- {tag}")
        return 0

    config = replace(base, languages=languages, recognition=negotiate_recognition_config(engine))

    if args.img is not None:
        _process_single_image(config=config, image_file=args.img, output_dir=args.output, debug=args.debug)
        return 0

    result = run_batch(
        config=config,
        root_dir=args.img_dir,
        output_dir=args.output_dir,
        merge=args.merge,
        debug=args.debug,
        continue_on_error=args.continue_on_error,
    )
    for path in result.debug_images:
        print(f"Debug image saved to: {path}")
    if result.merged_path is not None:
        print(f"Merged text saved to: {result.merged_path}")
    print(f"Processed {len(result.files)} image(s), {len(result.errors)} failure(s)")
    return 0 if result.ok else 1


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        return run(args)
    except ValidationError as e:
        logger.error("%s", e.message)
        return 2
    except OcrToolError as e:
        logger.error("OCR processing failed [%s]: %s", e.code, e.message)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
