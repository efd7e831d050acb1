"""Abstract base class for primary OCR engines.

Defines the contract for the local engine that reads text from image bytes
and reports how sure it is.  The vision fallback is not an OCR provider:
it has no confidence score and lives in
:mod:`smartlens.services.vision_fallback`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from smartlens.models.document import ExtractionResult


# Concrete implementation: TesseractOCRProvider (smartlens/providers/ocr/)
class IOCRProvider(ABC):
    """Contract for OCR engines that return text plus a 0-100 confidence."""

    @abstractmethod
    async def extract_text(self, image_bytes: bytes) -> ExtractionResult:
        """Run OCR on *image_bytes*.

        Returns
        -------
        ExtractionResult
            Tagged ``primary-ocr`` with ``confidence`` set.  An image with
            no recognisable text yields empty text and confidence 0 rather
            than an error.

        Raises
        ------
        smartlens.utils.errors.OCRExtractionError
            If the engine itself fails (unreadable image, missing binary).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"tesseract"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the engine's binaries/libraries are present."""
