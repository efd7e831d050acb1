"""Tesseract OCR provider: the primary text extraction engine.

Wraps pytesseract's word-level ``image_to_data`` output.  Text is rebuilt
line by line from the word boxes and the confidence reported upward is the
mean confidence of the recognised words, on Tesseract's native 0-100 scale.
"""

from __future__ import annotations

import asyncio
import io
import time
from typing import Any

import pytesseract
from PIL import Image, ImageOps

from smartlens.interfaces.ocr_provider import IOCRProvider
from smartlens.models.document import ExtractionResult, ExtractionSource
from smartlens.utils.errors import OCRExtractionError
from smartlens.utils.logging import get_logger


class TesseractOCRProvider(IOCRProvider):
    """OCR provider backed by Google Tesseract via pytesseract.

    Tesseract is CPU-bound and blocking, so each call runs in a worker
    thread to keep the event loop free for other requests.
    """

    def __init__(self, lang: str = "eng", config: str = "") -> None:
        self._lang = lang
        self._config = config
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IOCRProvider interface
    # ------------------------------------------------------------------

    async def extract_text(self, image_bytes: bytes) -> ExtractionResult:
        start = time.perf_counter()
        try:
            text, confidence = await asyncio.to_thread(self._recognise, image_bytes)
        except Exception as exc:
            elapsed = time.perf_counter() - start
            self._logger.error(
                "ocr_extraction_failed",
                provider="tesseract",
                error=str(exc),
                processing_time=round(elapsed, 3),
            )
            raise OCRExtractionError(
                f"Tesseract OCR failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        elapsed = time.perf_counter() - start
        self._logger.info(
            "ocr_extraction_complete",
            provider="tesseract",
            chars=len(text),
            confidence=round(confidence, 2),
            processing_time=round(elapsed, 3),
        )
        return ExtractionResult(
            text=text,
            source=ExtractionSource.PRIMARY_OCR,
            confidence=confidence,
        )

    def get_provider_name(self) -> str:
        return "tesseract"

    def is_available(self) -> bool:
        """Check that the Tesseract binary can be found."""
        try:
            pytesseract.get_tesseract_version()
            return True
        except pytesseract.TesseractNotFoundError:
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _recognise(self, image_bytes: bytes) -> tuple[str, float]:
        with Image.open(io.BytesIO(image_bytes)) as opened:
            # Phone photos carry their rotation in EXIF; Tesseract ignores it.
            image = ImageOps.exif_transpose(opened).convert("L")
        data = pytesseract.image_to_data(
            image,
            lang=self._lang,
            config=self._config,
            output_type=pytesseract.Output.DICT,
        )
        return self._assemble(data)

    @staticmethod
    def _assemble(data: dict[str, list[Any]]) -> tuple[str, float]:
        """Rebuild text and mean word confidence from ``image_to_data`` output.

        Entries with empty text or a negative confidence (layout boxes, not
        words) are skipped.  Words sharing a (block, paragraph, line) key are
        joined with spaces; each line ends with a newline.
        """
        lines: list[list[str]] = []
        confidences: list[float] = []
        current_key: tuple[int, int, int] | None = None

        for i in range(len(data["text"])):
            word = str(data["text"][i]).strip()
            conf = float(data["conf"][i])
            if not word or conf < 0:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            if key != current_key:
                lines.append([])
                current_key = key
            lines[-1].append(word)
            confidences.append(conf)

        text = "\n".join(" ".join(words) for words in lines)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return text, min(100.0, confidence)
