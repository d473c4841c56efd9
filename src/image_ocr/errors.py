from __future__ import annotations

from typing import Any


class OcrToolError(Exception):
    """
    Base class for every failure surfaced by this package.

    `code` is a stable identifier (suitable for logs and batch error records);
    `detail` carries optional machine-readable context.
    """

    code = "OCR_ERROR"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ImageLoadError(OcrToolError):
    code = "OCR_IMAGE_LOAD_FAILED"

    def __init__(self, path: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(f"Failed to load image: {path}", detail={"path": path, **(detail or {})})
        self.path = path


class ImageDecodeError(OcrToolError):
    code = "OCR_IMAGE_DECODE_FAILED"

    def __init__(self, path: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(
            f"Failed to convert image to a pixel buffer: {path}",
            detail={"path": path, **(detail or {})},
        )
        self.path = path


class ImageEncodeError(OcrToolError):
    code = "OCR_IMAGE_ENCODE_FAILED"

    def __init__(self, path: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(f"Failed to encode image: {path}", detail={"path": path, **(detail or {})})
        self.path = path


class NoTextFoundError(OcrToolError):
    code = "OCR_NO_RESULT_SET"


class ResultParseError(OcrToolError):
    code = "OCR_RESULT_PARSE_FAILED"


class ValidationError(OcrToolError):
    code = "CLI_VALIDATION_ERROR"


class EngineError(OcrToolError):
    """
    Backend failure (non-zero exit, timeout, ...). `code` is set per instance.
    """

    code = "OCR_BACKEND_ERROR"

    def __init__(self, message: str, *, code: str | None = None, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message, detail=detail)
        if code is not None:
            self.code = code


class EngineUnavailableError(EngineError):
    code = "OCR_BACKEND_NOT_INSTALLED"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message, detail=detail)
