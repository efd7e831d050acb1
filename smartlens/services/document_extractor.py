"""PDF text extraction from the embedded text layer.

Reads the PDF with PyMuPDF (fitz): each page's words are joined by single
spaces and pages are separated by newlines.  A PDF whose whole text layer
is shorter than a small threshold is almost certainly a scan, so when a
vision model is configured the raw PDF is sent to it and its transcription
is used if it is strictly longer.
"""

from __future__ import annotations

import asyncio

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention

from smartlens.models.document import PDF_MEDIA_TYPE, ExtractionResult, ExtractionSource
from smartlens.services.vision_fallback import VisionFallbackEngine
from smartlens.utils.errors import OCRExtractionError
from smartlens.utils.logging import get_logger


class DocumentTextExtractor:
    """Extracts text from PDF uploads."""

    def __init__(
        self,
        vision_fallback: VisionFallbackEngine,
        text_layer_min_length: int = 50,
    ) -> None:
        self._fallback = vision_fallback
        self._text_layer_min_length = text_layer_min_length
        self._logger = get_logger(__name__)

    async def extract(self, data: bytes) -> ExtractionResult:
        """Return the PDF's text layer, or the vision transcription of a scan.

        Raises
        ------
        OCRExtractionError
            If the document cannot be opened or parsed.  A single bad page
            fails the whole document.
        """
        try:
            text, page_count = await asyncio.to_thread(self._read_text_layer, data)
        except Exception as exc:
            self._logger.error("pdf_extraction_failed", error=str(exc))
            raise OCRExtractionError(
                f"Failed to extract text from PDF: {exc}",
                provider_name="pymupdf",
            ) from exc

        layer = ExtractionResult(text=text, source=ExtractionSource.PDF_TEXT_LAYER)
        self._logger.info("pdf_text_layer_read", pages=page_count, chars=layer.length)

        if layer.length >= self._text_layer_min_length:
            return layer

        if not self._fallback.is_available():
            self._logger.info("pdf_looks_scanned_no_fallback", chars=layer.length)
            return layer

        self._logger.info("pdf_looks_scanned_escalating", chars=layer.length)
        fallback = await self._fallback.try_extract(data, PDF_MEDIA_TYPE)
        if fallback is not None and fallback.length > layer.length:
            return fallback
        return layer

    @staticmethod
    def _read_text_layer(data: bytes) -> tuple[str, int]:
        with fitz.open(stream=data, filetype="pdf") as doc:
            pages = []
            for page in doc:
                # get_text("words") yields (x0, y0, x1, y1, word, block, line, word_no).
                words = page.get_text("words")
                pages.append(" ".join(w[4] for w in words))
            return "\n".join(pages).strip(), len(pages)
