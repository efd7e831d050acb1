"""Central orchestrator for the document ingestion pipeline.

Takes one uploaded document from raw bytes to a persisted Note:

    RECEIVED -> VALIDATED -> EXTRACTED -> LENGTH_CHECKED
        -> DUPLICATE -> RESPONDED
        -> FRESH -> STORED -> ANALYZED_OR_DEGRADED -> PERSISTED -> RESPONDED

Progress is tracked in a frozen :class:`IngestionState` that each stage
replaces via ``model_copy(update={...})`` and logs.  The stages run strictly
in sequence; only the analysis call is time-boxed.

Two classes of failure behave differently:

    * Validation, extraction, storage and persistence failures abort the
      upload and propagate as :class:`~smartlens.utils.errors.SmartLensError`
      subclasses.  The HTTP layer turns them into error responses.
    * Analysis failures never abort.  The note is persisted without an
      analysis and the outcome carries an
      :class:`~smartlens.models.analysis.AnalysisFailureReason`.
"""

from __future__ import annotations

import re
import time
from pathlib import PurePosixPath
from typing import Any

import structlog

from smartlens.config.settings import PipelineConfig
from smartlens.interfaces.note_repository import INoteRepository
from smartlens.interfaces.storage_provider import IStorageProvider
from smartlens.models.analysis import AnalysisFailureReason
from smartlens.models.document import SUPPORTED_MEDIA_TYPES, ExtractionResult, UploadedAsset
from smartlens.models.note import Note, NoteDraft, derive_title
from smartlens.models.pipeline import IngestionOutcome, IngestionStage, IngestionState
from smartlens.services.analysis_engine import AnalysisEngine, classify_analysis_failure
from smartlens.services.document_extractor import DocumentTextExtractor
from smartlens.services.duplicate_detector import DuplicateDetector
from smartlens.services.image_extractor import ImageTextExtractor
from smartlens.utils.errors import (
    ExtractionTooShortError,
    FileTooLargeError,
    NoFileError,
    PersistenceError,
    StorageError,
    UnsupportedTypeError,
    UserNotFoundError,
)
from smartlens.utils.logging import get_logger

_SUCCESS_MESSAGE = "File uploaded, text extracted, and analyzed successfully!"
_DUPLICATE_MESSAGE = "Duplicate content detected. Returning existing note with analysis."

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def build_asset_path(user_id: int, filename: str, epoch_ms: int | None = None) -> str:
    """Return the storage path ``user_<id>/<epoch_ms>_<filename>``.

    Directory components are dropped from *filename* and characters outside
    ``[A-Za-z0-9._-]`` become underscores.
    """
    if epoch_ms is None:
        epoch_ms = int(time.time() * 1000)
    name = PurePosixPath(filename.replace("\\", "/")).name
    safe = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._") or "upload"
    return f"user_{user_id}/{epoch_ms}_{safe}"


class IngestionOrchestrator:
    """Runs one upload through validation, extraction, dedupe, storage,
    analysis and persistence.

    All collaborators are injected.  ``analysis_engine`` is ``None`` when no
    LLM credential is configured; notes are then persisted with the
    ``unconfigured`` failure reason.
    """

    def __init__(
        self,
        image_extractor: ImageTextExtractor,
        document_extractor: DocumentTextExtractor,
        duplicate_detector: DuplicateDetector,
        analysis_engine: AnalysisEngine | None,
        storage: IStorageProvider,
        note_repository: INoteRepository,
        config: PipelineConfig | None = None,
    ) -> None:
        self._image_extractor = image_extractor
        self._document_extractor = document_extractor
        self._duplicate_detector = duplicate_detector
        self._analysis_engine = analysis_engine
        self._storage = storage
        self._notes = note_repository
        self._config = config or PipelineConfig()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def ingest(
        self,
        user_id: int,
        asset: UploadedAsset | None,
        title: str | None = None,
    ) -> IngestionOutcome:
        """Run the full pipeline for one upload.

        Raises
        ------
        UploadValidationError
            No file, unsupported type, too large, or unknown user.
        OCRExtractionError
            The extraction engine for the document's type failed.
        ExtractionTooShortError
            The trimmed text is below the minimum length.  No note is
            created.
        StorageError, PersistenceError
            The original could not be stored or the note could not be saved.
        """
        if asset is None:
            self._logger.info("upload_rejected", user_id=user_id, reason="no_file")
            raise NoFileError()

        state = IngestionState(
            user_id=user_id,
            filename=asset.filename,
            media_type=asset.media_type,
        )
        self._log_transition(state, size=asset.size)

        await self._validate(asset, user_id)
        state = self._advance(state, IngestionStage.VALIDATED)

        extraction = await self._extract(asset)
        state = self._advance(state, IngestionStage.EXTRACTED, extraction=extraction)

        if extraction.length < self._config.min_text_length:
            self._logger.info(
                "upload_rejected",
                user_id=user_id,
                reason="text_too_short",
                chars=extraction.length,
                min_length=self._config.min_text_length,
            )
            raise ExtractionTooShortError(extraction.text, self._config.min_text_length)
        state = self._advance(state, IngestionStage.LENGTH_CHECKED)

        existing = await self._duplicate_detector.find_duplicate(user_id, extraction.text)
        if existing is not None:
            state = self._advance(state, IngestionStage.DUPLICATE, is_duplicate=True, note=existing)
            self._advance(state, IngestionStage.RESPONDED)
            return IngestionOutcome(
                note=existing,
                message=_DUPLICATE_MESSAGE,
                extracted_text_length=extraction.length,
                analysis_completed=existing.analysis_result is not None,
                is_duplicate=True,
            )
        state = self._advance(state, IngestionStage.FRESH)

        asset_path = build_asset_path(user_id, asset.filename)
        asset_url = await self._storage.store(asset.data, asset_path, asset.media_type)
        state = self._advance(
            state, IngestionStage.STORED, asset_path=asset_path, asset_url=asset_url
        )

        state = await self._analyze(state, extraction)

        draft = NoteDraft(
            user_id=user_id,
            title=self._title_for(title, extraction.text),
            original_image_url=asset_url,
            extracted_text=extraction.text,
            extraction_source=extraction.source,
            analysis_result=state.analysis,
        )
        note = await self._persist(draft, asset_path)
        state = self._advance(state, IngestionStage.PERSISTED, note=note)

        failure = state.analysis_failure
        message = (
            _SUCCESS_MESSAGE
            if failure is None
            else f"File uploaded and text extracted. {failure.message}"
        )
        outcome = IngestionOutcome(
            note=note,
            message=message,
            extracted_text_length=extraction.length,
            analysis_completed=note.analysis_result is not None,
            analysis_error=failure.message if failure is not None else None,
            analysis_failure_reason=failure,
            is_duplicate=False,
        )
        self._advance(state, IngestionStage.RESPONDED)
        return outcome

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _validate(self, asset: UploadedAsset, user_id: int) -> None:
        if asset.media_type not in SUPPORTED_MEDIA_TYPES:
            self._logger.info(
                "upload_rejected", user_id=user_id, reason="unsupported_type",
                media_type=asset.media_type,
            )
            raise UnsupportedTypeError()
        if asset.size > self._config.max_upload_bytes:
            self._logger.info(
                "upload_rejected", user_id=user_id, reason="too_large", size=asset.size,
            )
            raise FileTooLargeError()
        if not await self._notes.user_exists(user_id):
            self._logger.info("upload_rejected", user_id=user_id, reason="unknown_user")
            raise UserNotFoundError()

    async def _extract(self, asset: UploadedAsset) -> ExtractionResult:
        if asset.is_pdf:
            return await self._document_extractor.extract(asset.data)
        return await self._image_extractor.extract(asset.data, asset.media_type)

    async def _analyze(self, state: IngestionState, extraction: ExtractionResult) -> IngestionState:
        if self._analysis_engine is None or not self._analysis_engine.is_available():
            return self._advance(
                state,
                IngestionStage.ANALYZED_OR_DEGRADED,
                analysis_failure=AnalysisFailureReason.UNCONFIGURED,
            )
        try:
            analysis = await self._analysis_engine.analyze(extraction.text)
        except Exception as exc:
            reason = classify_analysis_failure(exc)
            self._logger.warning(
                "analysis_degraded",
                user_id=state.user_id,
                reason=reason.value,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return self._advance(
                state, IngestionStage.ANALYZED_OR_DEGRADED, analysis_failure=reason
            )
        return self._advance(state, IngestionStage.ANALYZED_OR_DEGRADED, analysis=analysis)

    def _title_for(self, title: str | None, text: str) -> str:
        if title and title.strip():
            return title.strip()
        return derive_title(text, self._config.title_max_chars)

    async def _persist(self, draft: NoteDraft, asset_path: str) -> Note:
        try:
            return await self._notes.insert(draft)
        except PersistenceError:
            # Remove the stored original so a failed save leaves no orphan.
            try:
                await self._storage.delete(asset_path)
            except StorageError as cleanup_exc:
                self._logger.error(
                    "asset_cleanup_failed", path=asset_path, error=str(cleanup_exc)
                )
            raise

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _advance(self, state: IngestionState, stage: IngestionStage, **updates: Any) -> IngestionState:
        new_state = state.model_copy(update={"stage": stage, **updates})
        self._log_transition(new_state)
        return new_state

    def _log_transition(self, state: IngestionState, **extra: Any) -> None:
        self._logger.info(
            "ingestion_stage",
            stage=state.stage.value,
            user_id=state.user_id,
            filename=state.filename,
            media_type=state.media_type,
            chars=state.extraction.length if state.extraction is not None else None,
            source=state.extraction.source.value if state.extraction is not None else None,
            **extra,
        )
