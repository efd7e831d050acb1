"""Image text extraction with confidence-based escalation.

Two engines, run strictly in sequence:

    1. The primary OCR engine reads the image and reports a confidence.
    2. Only if that confidence is below the threshold, and a vision model
       is configured, the same bytes go to the vision fallback.

The fallback has no confidence score of its own, so the two results are
compared by length in :func:`choose_extraction`.  A fallback that is not
clearly longer (more than 20% by default) loses, which keeps a truncated
or refused vision response from replacing a usable OCR read.
"""

from __future__ import annotations

from smartlens.interfaces.ocr_provider import IOCRProvider
from smartlens.models.document import ExtractionResult
from smartlens.services.vision_fallback import VisionFallbackEngine
from smartlens.utils.errors import OCRExtractionError
from smartlens.utils.logging import get_logger


def choose_extraction(
    primary: ExtractionResult,
    fallback: ExtractionResult | None,
    length_ratio: float = 1.2,
) -> ExtractionResult:
    """Pick between a primary OCR result and an optional fallback result.

    The fallback wins only when ``len(fallback) > len(primary) * length_ratio``.
    The chosen result is therefore never shorter than the primary one.
    """
    if fallback is None:
        return primary
    if fallback.length > primary.length * length_ratio:
        return fallback
    return primary


class ImageTextExtractor:
    """Extracts text from JPEG/PNG uploads."""

    def __init__(
        self,
        ocr_provider: IOCRProvider,
        vision_fallback: VisionFallbackEngine,
        confidence_threshold: float = 70.0,
        length_ratio: float = 1.2,
    ) -> None:
        self._ocr = ocr_provider
        self._fallback = vision_fallback
        self._confidence_threshold = confidence_threshold
        self._length_ratio = length_ratio
        self._logger = get_logger(__name__)

    async def extract(self, data: bytes, media_type: str) -> ExtractionResult:
        """Return the better of the primary OCR read and, if needed, the fallback.

        Raises
        ------
        OCRExtractionError
            If the primary engine fails.  Fallback failures never raise.
        """
        engine = self._ocr.get_provider_name()
        try:
            primary = await self._ocr.extract_text(data)
        except OCRExtractionError:
            raise
        except Exception as exc:
            raise OCRExtractionError(
                f"Failed to extract text from image: {exc}",
                provider_name=engine,
            ) from exc

        confidence = primary.confidence if primary.confidence is not None else 0.0
        self._logger.info(
            "ocr_primary_complete",
            engine=engine,
            chars=primary.length,
            confidence=round(confidence, 2),
        )

        if confidence >= self._confidence_threshold:
            return primary

        if not self._fallback.is_available():
            self._logger.info(
                "ocr_low_confidence_no_fallback",
                confidence=round(confidence, 2),
                threshold=self._confidence_threshold,
            )
            return primary

        self._logger.info(
            "ocr_escalating_to_vision",
            confidence=round(confidence, 2),
            threshold=self._confidence_threshold,
        )
        fallback = await self._fallback.try_extract(data, media_type)
        chosen = choose_extraction(primary, fallback, self._length_ratio)
        self._logger.info(
            "ocr_result_chosen",
            source=chosen.source.value,
            primary_chars=primary.length,
            fallback_chars=fallback.length if fallback is not None else None,
        )
        return chosen
