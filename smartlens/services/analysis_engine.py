"""LLM-backed structured document analysis.

Sends the extracted text to the configured LLM with a prompt asking for one
JSON object (summary, key points, keywords, sentiment, category, action
items, entities), with depth scaled to the document's length.  The first
balanced JSON object in the response is parsed into an
:class:`~smartlens.models.analysis.AnalysisResult`.

Analysis is an enrichment, not a gate.  :meth:`AnalysisEngine.analyze`
raises on any failure and :func:`classify_analysis_failure` maps the error
to an :class:`~smartlens.models.analysis.AnalysisFailureReason`; the
orchestrator persists the note either way.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass

from pydantic import ValidationError

from smartlens.interfaces.llm_provider import ILLMProvider
from smartlens.models.analysis import AnalysisFailureReason, AnalysisResult
from smartlens.utils.errors import (
    AnalysisParseError,
    ConfigurationError,
    CredentialError,
    LLMTimeoutError,
    RateLimitError,
)
from smartlens.utils.json_span import find_first_json_object
from smartlens.utils.logging import get_logger

_SYSTEM_PROMPT = (
    "You are a document analyst. You read notes, handouts and scanned pages "
    "and respond with exactly one JSON object and nothing else."
)

_ANALYSIS_PROMPT_TEMPLATE = """\
You are analyzing a document of about {word_count} words. Adjust the depth \
and detail of your analysis to the content's length and complexity.

ADAPTIVE ANALYSIS RULES:
- Short documents (< 500 words): a concise summary and the essential points
- Medium documents (500-2000 words): a comprehensive summary and detailed points
- Long documents (2000-5000 words): an extensive summary and thorough analysis
- Very long documents (5000+ words): an in-depth summary and exhaustive point extraction

Do NOT artificially limit yourself:
- Summary: short documents 3-5 sentences, long documents 15-20+ sentences
- Key points: every major theme, roughly one per 200-300 words (about {key_point_hint} here)
- Keywords: from 5-8 for short documents up to 15-20+ for long ones

Text to analyze:
\"\"\"
{text}
\"\"\"

Respond in JSON format:
{{
  "summary": "Summary proportional to document length...",
  "keyPoints": ["point1", "point2", ...],
  "keywords": ["keyword1", "keyword2", ...],
  "sentiment": "one of: positive, negative, neutral, mixed",
  "category": "one of: work, personal, study, meeting, todo, notes, other",
  "actionItems": ["action1", ...],
  "entities": {{
    "people": ["person1", ...],
    "dates": ["date1", ...],
    "places": ["place1", ...]
  }}
}}
"""


def build_analysis_prompt(text: str) -> str:
    """Render the analysis prompt for *text*."""
    word_count = len(text.split())
    key_point_hint = max(3, round(word_count / 250))
    return _ANALYSIS_PROMPT_TEMPLATE.format(
        word_count=word_count,
        key_point_hint=key_point_hint,
        text=text,
    )


# ----------------------------------------------------------------------
# Response parsing
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class ParsedAnalysis:
    result: AnalysisResult


@dataclass(frozen=True)
class UnparseableAnalysis:
    raw_text: str
    reason: str


def parse_analysis_response(raw_text: str) -> ParsedAnalysis | UnparseableAnalysis:
    """Parse the first balanced JSON object in *raw_text*.

    Prose or code fences around the object are ignored; anything after the
    first complete object is ignored too.
    """
    span = find_first_json_object(raw_text)
    if span is None:
        return UnparseableAnalysis(raw_text=raw_text, reason="no JSON object in response")
    try:
        data = json.loads(span)
    except json.JSONDecodeError as exc:
        return UnparseableAnalysis(raw_text=raw_text, reason=f"invalid JSON: {exc.msg}")
    try:
        return ParsedAnalysis(result=AnalysisResult.model_validate(data))
    except ValidationError as exc:
        return UnparseableAnalysis(
            raw_text=raw_text,
            reason=f"unexpected analysis shape: {exc.error_count()} error(s)",
        )


# ----------------------------------------------------------------------
# Failure classification
# ----------------------------------------------------------------------

_CREDENTIAL_MARKERS = ("api key", "authentication", "unauthorized", "permission denied", "401")
_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "too many requests", "429")


def classify_analysis_failure(exc: BaseException) -> AnalysisFailureReason:
    """Map an analysis error to the reason reported to the user.

    Typed provider errors are checked first; other exceptions fall back to
    matching well-known phrases in their message.
    """
    if isinstance(exc, (TimeoutError, LLMTimeoutError)):
        return AnalysisFailureReason.TIMEOUT
    if isinstance(exc, ConfigurationError):
        return AnalysisFailureReason.UNCONFIGURED
    if isinstance(exc, CredentialError):
        return AnalysisFailureReason.CREDENTIAL_INVALID

    message = str(exc).lower()
    if "quota" in message:
        return AnalysisFailureReason.QUOTA_EXCEEDED
    if isinstance(exc, RateLimitError) or any(m in message for m in _RATE_LIMIT_MARKERS):
        return AnalysisFailureReason.RATE_LIMITED
    if "timeout" in message or "timed out" in message:
        return AnalysisFailureReason.TIMEOUT
    if any(m in message for m in _CREDENTIAL_MARKERS):
        return AnalysisFailureReason.CREDENTIAL_INVALID
    return AnalysisFailureReason.UNKNOWN


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------

class AnalysisEngine:
    """Produces an :class:`AnalysisResult` from extracted text."""

    def __init__(
        self,
        llm_provider: ILLMProvider | None,
        timeout_seconds: float = 30.0,
        temperature: float = 0.3,
        max_tokens: int = 4096,
    ) -> None:
        self._llm = llm_provider
        self._timeout = timeout_seconds
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    def is_available(self) -> bool:
        return self._llm is not None and self._llm.is_available()

    async def analyze(self, text: str) -> AnalysisResult:
        """Analyze *text* within the configured time budget.

        Raises
        ------
        ConfigurationError
            No LLM credential is configured.
        LLMTimeoutError
            No response within ``timeout_seconds``.  The in-flight call is
            cancelled.
        AnalysisParseError
            The response held no usable JSON object.
        smartlens.utils.errors.LLMError
            Any other provider failure.
        """
        if self._llm is None or not self._llm.is_available():
            raise ConfigurationError("AI analysis not configured")

        provider = self._llm.get_provider_name()
        start = time.perf_counter()
        try:
            raw = await asyncio.wait_for(
                self._llm.complete(
                    system_prompt=_SYSTEM_PROMPT,
                    user_prompt=build_analysis_prompt(text),
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:  # noqa: UP041
            self._logger.warning("analysis_timeout", provider=provider, timeout=self._timeout)
            raise LLMTimeoutError(
                f"Analysis timeout - no response within {self._timeout:g}s",
                provider_name=provider,
            ) from exc

        parsed = parse_analysis_response(raw)
        if isinstance(parsed, UnparseableAnalysis):
            self._logger.warning(
                "analysis_unparseable",
                provider=provider,
                reason=parsed.reason,
                response_chars=len(raw),
            )
            raise AnalysisParseError(
                f"Failed to parse LLM response: {parsed.reason}",
                provider_name=provider,
            )

        self._logger.info(
            "analysis_complete",
            provider=provider,
            key_points=len(parsed.result.key_points),
            category=parsed.result.category.value,
            processing_time=round(time.perf_counter() - start, 3),
        )
        return parsed.result
