"""Integration tests for IngestionOrchestrator.

Runs the real extractors, duplicate detector, analysis engine, SQLite note
repository and local bucket together.  Only the OCR engine and the LLM are
mocked.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from smartlens.config.settings import PipelineConfig
from smartlens.models.analysis import AnalysisFailureReason
from smartlens.models.document import ExtractionSource, UploadedAsset
from smartlens.pipeline.orchestrator import IngestionOrchestrator, build_asset_path
from smartlens.providers.notes.sqlite_note_repository import SQLiteNoteRepository
from smartlens.providers.storage.local_storage import LocalStorageProvider
from smartlens.services.analysis_engine import AnalysisEngine
from smartlens.services.document_extractor import DocumentTextExtractor
from smartlens.services.duplicate_detector import DuplicateDetector
from smartlens.services.image_extractor import ImageTextExtractor
from smartlens.services.vision_fallback import VisionFallbackEngine
from smartlens.utils.errors import (
    ExtractionTooShortError,
    FileTooLargeError,
    NoFileError,
    PersistenceError,
    UnsupportedTypeError,
    UserNotFoundError,
)

# ======================================================================
# Helpers
# ======================================================================


def _build_orchestrator(
    *,
    ocr: MagicMock,
    llm: MagicMock | None,
    note_repository: Any,
    storage: Any,
    config: PipelineConfig | None = None,
    analysis_timeout: float = 5.0,
) -> IngestionOrchestrator:
    config = config or PipelineConfig()
    vision = VisionFallbackEngine(llm)
    return IngestionOrchestrator(
        image_extractor=ImageTextExtractor(
            ocr_provider=ocr,
            vision_fallback=vision,
            confidence_threshold=config.ocr_confidence_threshold,
            length_ratio=config.fallback_length_ratio,
        ),
        document_extractor=DocumentTextExtractor(
            vision_fallback=vision,
            text_layer_min_length=config.pdf_text_layer_min_length,
        ),
        duplicate_detector=DuplicateDetector(note_repository),
        analysis_engine=AnalysisEngine(llm, timeout_seconds=analysis_timeout) if llm is not None else None,
        storage=storage,
        note_repository=note_repository,
        config=config,
    )


def _image(user_id: int, data: bytes, filename: str = "page.png", media_type: str = "image/png") -> UploadedAsset:
    return UploadedAsset(user_id=user_id, filename=filename, media_type=media_type, size=len(data), data=data)


def _stored_files(root: Path) -> list[Path]:
    return [p for p in root.rglob("*") if p.is_file()]


# ======================================================================
# Asset paths
# ======================================================================


class TestBuildAssetPath:
    def test_layout(self) -> None:
        assert build_asset_path(4, "receipt.jpg", epoch_ms=1700000000000) == "user_4/1700000000000_receipt.jpg"

    def test_unsafe_characters_replaced(self) -> None:
        assert build_asset_path(1, "my scan (1).png", epoch_ms=5) == "user_1/5_my_scan_1_.png"

    def test_directory_components_dropped(self) -> None:
        assert build_asset_path(1, "../../etc/passwd", epoch_ms=5) == "user_1/5_passwd"
        assert build_asset_path(1, "C:\\Users\\me\\note.pdf", epoch_ms=5) == "user_1/5_note.pdf"

    def test_empty_name(self) -> None:
        assert build_asset_path(1, "...", epoch_ms=5) == "user_1/5_upload"

    def test_default_timestamp(self) -> None:
        assert re.fullmatch(r"user_2/\d{13}_a\.png", build_asset_path(2, "a.png"))


# ======================================================================
# Happy paths
# ======================================================================


class TestFreshUploads:
    @pytest.mark.asyncio
    async def test_confident_ocr_creates_analyzed_note(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
        sample_text: str,
        tmp_path: Path,
    ) -> None:
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage
        )

        outcome = await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert outcome.is_duplicate is False
        assert outcome.analysis_completed is True
        assert outcome.analysis_failure_reason is None
        assert outcome.message == "File uploaded, text extracted, and analyzed successfully!"
        assert outcome.extracted_text_length == len(sample_text)

        note = outcome.note
        assert note.extracted_text == sample_text
        assert note.extraction_source is ExtractionSource.PRIMARY_OCR
        assert note.title == sample_text[:50].strip() + "..."
        assert note.analysis_result is not None
        assert note.analysis_result.summary.startswith("Kickoff meeting")
        assert re.fullmatch(r"http://testserver/assets/user_\d+/\d{13}_page\.png", note.original_image_url)

        mock_llm.vision_extract.assert_not_awaited()
        stored_note = await note_repository.get(note.id)
        assert stored_note is not None
        assert stored_note.extracted_text == sample_text
        assert stored_note.analysis_result == note.analysis_result
        stored = _stored_files(tmp_path / "bucket")
        assert len(stored) == 1
        assert stored[0].read_bytes() == png_bytes

    @pytest.mark.asyncio
    async def test_explicit_title_is_kept(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
    ) -> None:
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage
        )

        outcome = await orchestrator.ingest(user_id, _image(user_id, png_bytes), title="  Kickoff  ")

        assert outcome.note.title == "Kickoff"

    @pytest.mark.asyncio
    async def test_low_confidence_escalates_to_longer_vision_text(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
        ocr_result_factory,
    ) -> None:
        primary_text = "smudged handwriting " * 11
        vision_text = "Clearly transcribed handwriting about the garden plan. " * 6
        assert len(vision_text.strip()) > 1.5 * len(primary_text.strip())
        mock_ocr.extract_text = AsyncMock(return_value=ocr_result_factory(primary_text, 40.0))
        mock_llm.vision_extract = AsyncMock(return_value=vision_text)
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage
        )

        outcome = await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert outcome.note.extracted_text == vision_text.strip()
        assert outcome.note.extraction_source is ExtractionSource.VISION_FALLBACK
        mock_llm.vision_extract.assert_awaited_once()
        # Analysis ran on the chosen text, not the primary OCR output.
        assert vision_text.strip() in mock_llm.complete.await_args.kwargs["user_prompt"]

    @pytest.mark.asyncio
    async def test_pdf_text_layer(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        pdf_factory,
        sample_text: str,
    ) -> None:
        pdf = pdf_factory(sample_text)
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage
        )

        outcome = await orchestrator.ingest(
            user_id, _image(user_id, pdf, filename="minutes.pdf", media_type="application/pdf")
        )

        assert outcome.note.extraction_source is ExtractionSource.PDF_TEXT_LAYER
        assert "kickoff meeting" in outcome.note.extracted_text
        mock_ocr.extract_text.assert_not_awaited()
        mock_llm.vision_extract.assert_not_awaited()


# ======================================================================
# Rejections
# ======================================================================


class TestRejections:
    @pytest.mark.asyncio
    async def test_scanned_pdf_without_llm_is_too_short(
        self,
        mock_ocr: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        pdf_factory,
        tmp_path: Path,
    ) -> None:
        pdf = pdf_factory("ten chars!")
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=None, note_repository=note_repository, storage=storage
        )

        with pytest.raises(ExtractionTooShortError) as exc_info:
            await orchestrator.ingest(
                user_id, _image(user_id, pdf, filename="scan.pdf", media_type="application/pdf")
            )

        assert exc_info.value.extracted_length == 10
        assert exc_info.value.extracted_text == "ten chars!"
        assert await note_repository.list_for_user(user_id) == []
        assert _stored_files(tmp_path / "bucket") == []

    @pytest.mark.asyncio
    async def test_short_image_text_reports_exact_count(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
        ocr_result_factory,
    ) -> None:
        mock_ocr.extract_text = AsyncMock(return_value=ocr_result_factory("  " + "x" * 199 + "\n", 95.0))
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage
        )

        with pytest.raises(ExtractionTooShortError) as exc_info:
            await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert exc_info.value.extracted_length == 199
        assert "Found: 199 characters" in exc_info.value.message
        mock_llm.complete.assert_not_awaited()
        assert await note_repository.list_for_user(user_id) == []

    @pytest.mark.asyncio
    async def test_exactly_minimum_length_is_accepted(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
        ocr_result_factory,
    ) -> None:
        mock_ocr.extract_text = AsyncMock(return_value=ocr_result_factory("y" * 200, 95.0))
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage
        )

        outcome = await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert outcome.extracted_text_length == 200

    @pytest.mark.asyncio
    async def test_no_file(
        self, mock_ocr: MagicMock, note_repository: SQLiteNoteRepository, storage: LocalStorageProvider
    ) -> None:
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=None, note_repository=note_repository, storage=storage
        )
        with pytest.raises(NoFileError):
            await orchestrator.ingest(1, None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("media_type", ["image/gif", "text/plain", "", "application/octet-stream"])
    async def test_unsupported_type(
        self,
        mock_ocr: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        media_type: str,
    ) -> None:
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=None, note_repository=note_repository, storage=storage
        )
        with pytest.raises(UnsupportedTypeError):
            await orchestrator.ingest(user_id, _image(user_id, b"data", media_type=media_type))
        mock_ocr.extract_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_too_large(
        self,
        mock_ocr: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
    ) -> None:
        orchestrator = _build_orchestrator(
            ocr=mock_ocr,
            llm=None,
            note_repository=note_repository,
            storage=storage,
            config=PipelineConfig(max_upload_bytes=100),
        )
        asset = UploadedAsset(user_id=user_id, filename="a.png", media_type="image/png", size=101, data=b"x")

        with pytest.raises(FileTooLargeError):
            await orchestrator.ingest(user_id, asset)
        mock_ocr.extract_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_user(
        self,
        mock_ocr: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        png_bytes: bytes,
    ) -> None:
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=None, note_repository=note_repository, storage=storage
        )
        with pytest.raises(UserNotFoundError):
            await orchestrator.ingest(4242, _image(4242, png_bytes))
        mock_ocr.extract_text.assert_not_awaited()


# ======================================================================
# Duplicates
# ======================================================================


class TestDuplicates:
    @pytest.mark.asyncio
    async def test_same_text_different_bytes_returns_existing_note(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
        other_png_bytes: bytes,
        tmp_path: Path,
    ) -> None:
        assert png_bytes != other_png_bytes
        storage_spy = MagicMock(wraps=storage)
        storage_spy.store = AsyncMock(wraps=storage.store)
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage_spy
        )

        first = await orchestrator.ingest(user_id, _image(user_id, png_bytes, filename="one.png"))
        second = await orchestrator.ingest(user_id, _image(user_id, other_png_bytes, filename="two.png"))

        assert second.is_duplicate is True
        assert second.note.id == first.note.id
        assert second.analysis_completed is True
        assert second.message == "Duplicate content detected. Returning existing note with analysis."
        assert storage_spy.store.await_count == 1
        assert mock_llm.complete.await_count == 1
        assert len(await note_repository.list_for_user(user_id)) == 1
        assert len(_stored_files(tmp_path / "bucket")) == 1

    @pytest.mark.asyncio
    async def test_duplicates_are_per_user(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
    ) -> None:
        other_user = await note_repository.create_user("Other", "other@example.com")
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage
        )

        mine = await orchestrator.ingest(user_id, _image(user_id, png_bytes))
        theirs = await orchestrator.ingest(other_user, _image(other_user, png_bytes))

        assert theirs.is_duplicate is False
        assert theirs.note.id != mine.note.id

    @pytest.mark.asyncio
    async def test_duplicate_of_unanalyzed_note(
        self,
        mock_ocr: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
    ) -> None:
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=None, note_repository=note_repository, storage=storage
        )

        await orchestrator.ingest(user_id, _image(user_id, png_bytes))
        again = await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert again.is_duplicate is True
        assert again.analysis_completed is False

    @pytest.mark.asyncio
    async def test_failed_duplicate_check_proceeds_as_fresh(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
    ) -> None:
        repo_spy = MagicMock(wraps=note_repository)
        repo_spy.user_exists = AsyncMock(wraps=note_repository.user_exists)
        repo_spy.insert = AsyncMock(wraps=note_repository.insert)
        repo_spy.find_by_text = AsyncMock(side_effect=PersistenceError("database is locked"))
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=repo_spy, storage=storage
        )

        outcome = await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert outcome.is_duplicate is False
        repo_spy.insert.assert_awaited_once()


# ======================================================================
# Degraded analysis
# ======================================================================


class TestDegradedAnalysis:
    @pytest.mark.asyncio
    async def test_timeout_persists_note_without_analysis(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
    ) -> None:
        async def _never_resolves(**_: Any) -> str:
            await asyncio.sleep(3600)
            return ""

        mock_llm.complete = AsyncMock(side_effect=_never_resolves)
        orchestrator = _build_orchestrator(
            ocr=mock_ocr,
            llm=mock_llm,
            note_repository=note_repository,
            storage=storage,
            analysis_timeout=0.05,
        )

        outcome = await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert outcome.analysis_completed is False
        assert outcome.analysis_failure_reason is AnalysisFailureReason.TIMEOUT
        assert outcome.analysis_error == "Analysis timed out. Please try again."
        assert outcome.message == "File uploaded and text extracted. Analysis timed out. Please try again."
        stored = await note_repository.get(outcome.note.id)
        assert stored is not None
        assert stored.analysis_result is None

    @pytest.mark.asyncio
    async def test_no_llm_is_unconfigured(
        self,
        mock_ocr: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
    ) -> None:
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=None, note_repository=note_repository, storage=storage
        )

        outcome = await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert outcome.analysis_failure_reason is AnalysisFailureReason.UNCONFIGURED
        assert outcome.note.analysis_result is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("response", "expected"),
        [
            ("not json at all", AnalysisFailureReason.UNKNOWN),
            (RuntimeError("You exceeded your current quota"), AnalysisFailureReason.QUOTA_EXCEEDED),
            (RuntimeError("429 Too Many Requests"), AnalysisFailureReason.RATE_LIMITED),
        ],
    )
    async def test_failures_are_classified(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
        response: Any,
        expected: AnalysisFailureReason,
    ) -> None:
        if isinstance(response, Exception):
            mock_llm.complete = AsyncMock(side_effect=response)
        else:
            mock_llm.complete = AsyncMock(return_value=response)
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=note_repository, storage=storage
        )

        outcome = await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert outcome.analysis_failure_reason is expected
        assert outcome.note.id > 0


# ======================================================================
# Persistence failure
# ======================================================================


class TestPersistenceFailure:
    @pytest.mark.asyncio
    async def test_failed_insert_removes_stored_asset(
        self,
        mock_ocr: MagicMock,
        mock_llm: MagicMock,
        note_repository: SQLiteNoteRepository,
        storage: LocalStorageProvider,
        user_id: int,
        png_bytes: bytes,
        tmp_path: Path,
    ) -> None:
        repo_spy = MagicMock(wraps=note_repository)
        repo_spy.user_exists = AsyncMock(wraps=note_repository.user_exists)
        repo_spy.find_by_text = AsyncMock(wraps=note_repository.find_by_text)
        repo_spy.insert = AsyncMock(side_effect=PersistenceError("Note store insert failed: disk I/O error"))
        orchestrator = _build_orchestrator(
            ocr=mock_ocr, llm=mock_llm, note_repository=repo_spy, storage=storage
        )

        with pytest.raises(PersistenceError):
            await orchestrator.ingest(user_id, _image(user_id, png_bytes))

        assert _stored_files(tmp_path / "bucket") == []
        assert await note_repository.list_for_user(user_id) == []
