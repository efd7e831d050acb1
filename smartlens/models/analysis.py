"""Structured document analysis models.

:class:`AnalysisResult` is the typed form of the JSON object the analysis
LLM is asked to produce.  Field aliases mirror the camelCase keys in the
prompt (``keyPoints``, ``actionItems``) so the model's output validates
directly, and ``model_dump(by_alias=True)`` writes the same shape back to
the database and API.

:class:`AnalysisFailureReason` is the taxonomy used when analysis could not
produce a result; it travels on the upload response instead of an error.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Sentiment(str, Enum):  # noqa: UP042
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    MIXED = "mixed"


class NoteCategory(str, Enum):  # noqa: UP042
    WORK = "work"
    PERSONAL = "personal"
    STUDY = "study"
    MEETING = "meeting"
    TODO = "todo"
    NOTES = "notes"
    OTHER = "other"


def _coerce_string_list(value: Any) -> list[str]:
    """Accept null, a bare string, or a list of scalars from the model."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    raise ValueError(f"expected a list of strings, got {type(value).__name__}")


class AnalysisEntities(BaseModel):
    """Named entities mentioned in the document."""

    model_config = ConfigDict(frozen=True)

    people: list[str] = Field(default_factory=list)
    dates: list[str] = Field(default_factory=list)
    places: list[str] = Field(default_factory=list)

    @field_validator("people", "dates", "places", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _coerce_string_list(value)


class AnalysisResult(BaseModel):
    """AI-generated structured analysis embedded in a Note.

    Owned by its Note; never stored or referenced on its own.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    summary: str = ""
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")
    keywords: list[str] = Field(default_factory=list)
    sentiment: Sentiment = Sentiment.NEUTRAL
    category: NoteCategory = NoteCategory.OTHER
    action_items: list[str] = Field(default_factory=list, alias="actionItems")
    entities: AnalysisEntities = Field(default_factory=AnalysisEntities)

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("key_points", "keywords", "action_items", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _coerce_string_list(value)

    @field_validator("sentiment", mode="before")
    @classmethod
    def _sentiment(cls, value: Any) -> Sentiment:
        # Models sometimes echo the whole menu ("positive/negative") or
        # capitalise; anything outside the vocabulary reads as neutral.
        try:
            return Sentiment(str(value).strip().lower())
        except ValueError:
            return Sentiment.NEUTRAL

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> NoteCategory:
        try:
            return NoteCategory(str(value).strip().lower())
        except ValueError:
            return NoteCategory.OTHER

    @field_validator("entities", mode="before")
    @classmethod
    def _entities(cls, value: Any) -> Any:
        return {} if value is None else value


class AnalysisFailureReason(str, Enum):  # noqa: UP042
    """Why a note was persisted without an analysis."""

    QUOTA_EXCEEDED = "quota-exceeded"
    RATE_LIMITED = "rate-limited"
    TIMEOUT = "timeout"
    CREDENTIAL_INVALID = "credential-invalid"
    UNCONFIGURED = "unconfigured"
    UNKNOWN = "unknown"

    @property
    def message(self) -> str:
        """Human-readable explanation shown to the user."""
        return _FAILURE_MESSAGES[self]


_FAILURE_MESSAGES: dict[AnalysisFailureReason, str] = {
    AnalysisFailureReason.QUOTA_EXCEEDED: "API quota exceeded. Please try again later.",
    AnalysisFailureReason.RATE_LIMITED: "Rate limit exceeded. Please wait a moment and try again.",
    AnalysisFailureReason.TIMEOUT: "Analysis timed out. Please try again.",
    AnalysisFailureReason.CREDENTIAL_INVALID: "AI analysis credentials are invalid. Please check configuration.",
    AnalysisFailureReason.UNCONFIGURED: "AI analysis not configured.",
    AnalysisFailureReason.UNKNOWN: "AI analysis temporarily unavailable.",
}
