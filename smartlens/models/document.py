"""Upload and text-extraction models for the SmartLens pipeline.

These models represent the earliest stages of ingestion:
    1. A user uploads a photo, scan or PDF      -> UploadedAsset
    2. An extraction engine reads it            -> ExtractionResult

All models are frozen Pydantic v2 models.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

PDF_MEDIA_TYPE = "application/pdf"
IMAGE_MEDIA_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})
SUPPORTED_MEDIA_TYPES = IMAGE_MEDIA_TYPES | {PDF_MEDIA_TYPE}


class UploadedAsset(BaseModel):
    """A raw uploaded file, alive only for the duration of one request.

    The bytes are excluded from serialisation and repr so that logging or
    dumping the asset never spills megabytes of binary into output.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    filename: str
    # Declared by the client; validated against SUPPORTED_MEDIA_TYPES.
    media_type: str
    # Byte count as received; checked against max_upload_bytes.
    size: int = Field(ge=0)
    data: bytes = Field(repr=False, exclude=True)

    @property
    def is_pdf(self) -> bool:
        return self.media_type == PDF_MEDIA_TYPE


class ExtractionSource(str, Enum):  # noqa: UP042
    """Which engine produced an extraction result."""

    PRIMARY_OCR = "primary-ocr"
    VISION_FALLBACK = "vision-fallback"
    PDF_TEXT_LAYER = "pdf-text-layer"


class ExtractionResult(BaseModel):
    """Text read from a document by one extraction engine.

    ``text`` is trimmed on construction, so every length comparison made
    downstream (fallback selection, the minimum-length gate, duplicate
    lookup) sees the same string.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    source: ExtractionSource
    # OCR self-reported certainty, 0-100.  None for vision and PDF text layers.
    confidence: float | None = Field(default=None, ge=0.0, le=100.0)

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        return value.strip()

    @property
    def length(self) -> int:
        return len(self.text)
