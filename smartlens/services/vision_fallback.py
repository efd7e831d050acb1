"""Vision-model fallback for text extraction.

When the primary OCR engine is unsure of itself, or a PDF turns out to be a
scan with no text layer, the raw document is sent to a multimodal LLM with
an instruction to transcribe it verbatim.  The result carries no confidence
score; callers decide whether to trust it by comparing lengths.

Escalation is best-effort.  :meth:`VisionFallbackEngine.try_extract` turns
every failure into ``None`` after logging it, so a broken or rate-limited
vision model can never fail an upload that the primary engine handled.
"""

from __future__ import annotations

import time

from smartlens.interfaces.llm_provider import ILLMProvider
from smartlens.models.document import ExtractionResult, ExtractionSource
from smartlens.utils.errors import LLMError
from smartlens.utils.logging import get_logger

_VERBATIM_PROMPT = (
    "Extract all text from this document (handwritten or printed). "
    "Return only the exact text you see, preserving line breaks and formatting. "
    "Do not add any commentary or explanations."
)


class VisionFallbackEngine:
    """Reads documents through a vision-capable LLM.

    Constructed with ``llm_provider=None`` when no LLM credential is
    configured; it then reports itself unavailable and is never called.
    """

    def __init__(self, llm_provider: ILLMProvider | None) -> None:
        self._llm = llm_provider
        self._logger = get_logger(__name__)

    def is_available(self) -> bool:
        """Return ``True`` if a credentialed, vision-capable provider is wired in."""
        return (
            self._llm is not None
            and self._llm.is_available()
            and self._llm.supports_vision()
        )

    async def extract(self, data: bytes, media_type: str | None = None) -> ExtractionResult:
        """Transcribe *data* verbatim.

        Raises
        ------
        LLMError
            If no provider is configured or the call fails.
        """
        if self._llm is None or not self.is_available():
            raise LLMError("Vision fallback is not configured")

        start = time.perf_counter()
        raw = await self._llm.vision_extract(data, _VERBATIM_PROMPT, media_type=media_type)
        result = ExtractionResult(text=raw, source=ExtractionSource.VISION_FALLBACK)
        self._logger.info(
            "vision_fallback_complete",
            provider=self._llm.get_provider_name(),
            media_type=media_type,
            chars=result.length,
            processing_time=round(time.perf_counter() - start, 3),
        )
        return result

    async def try_extract(self, data: bytes, media_type: str | None = None) -> ExtractionResult | None:
        """Like :meth:`extract` but returns ``None`` instead of raising."""
        try:
            return await self.extract(data, media_type)
        except Exception as exc:
            self._logger.warning(
                "vision_fallback_failed",
                media_type=media_type,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None
