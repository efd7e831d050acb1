"""Shared pytest fixtures for the SmartLens test suite."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import fitz
import pytest
import pytest_asyncio
from PIL import Image

from smartlens.config.settings import PipelineConfig, Settings
from smartlens.interfaces.llm_provider import ILLMProvider
from smartlens.interfaces.ocr_provider import IOCRProvider
from smartlens.models.document import ExtractionResult, ExtractionSource
from smartlens.providers.notes.sqlite_note_repository import SQLiteNoteRepository
from smartlens.providers.storage.local_storage import LocalStorageProvider

# ---------------------------------------------------------------------------
# Sample content
# ---------------------------------------------------------------------------

SAMPLE_NOTE_TEXT = (
    "Project kickoff meeting with Dana and Luis on March 3rd in Lisbon. "
    "We agreed to ship the ingestion service by the end of the quarter, "
    "review the storage costs every month, and keep the OCR threshold at "
    "seventy. Action: Dana drafts the rollout plan; Luis books the venue."
)

SAMPLE_ANALYSIS: dict[str, Any] = {
    "summary": "Kickoff meeting agreeing the ingestion service timeline.",
    "keyPoints": ["Ship by end of quarter", "Monthly storage cost review"],
    "keywords": ["kickoff", "ingestion", "OCR"],
    "sentiment": "positive",
    "category": "meeting",
    "actionItems": ["Dana drafts the rollout plan", "Luis books the venue"],
    "entities": {"people": ["Dana", "Luis"], "dates": ["March 3rd"], "places": ["Lisbon"]},
}


@pytest.fixture
def sample_text() -> str:
    """A note body comfortably above the 200-character minimum."""
    assert len(SAMPLE_NOTE_TEXT) >= 200
    return SAMPLE_NOTE_TEXT


@pytest.fixture
def analysis_payload() -> dict[str, Any]:
    return json.loads(json.dumps(SAMPLE_ANALYSIS))


@pytest.fixture
def analysis_response_text() -> str:
    """A model response with prose and a fenced JSON object."""
    return "Here is the analysis:\n```json\n" + json.dumps(SAMPLE_ANALYSIS) + "\n```\nHope this helps!"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def _png_bytes(color: str = "white") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (64, 32), color=color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _png_bytes()


@pytest.fixture
def other_png_bytes() -> bytes:
    """A byte-different image (for duplicate-by-text tests)."""
    return _png_bytes("lightgray")


def make_pdf(*page_texts: str) -> bytes:
    """Build a PDF whose pages carry the given text layers."""
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            # Wrap so every word lands inside the page box.
            page.insert_text((72, 72), "\n".join(textwrap.wrap(text, 70)), fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


# ---------------------------------------------------------------------------
# Results & collaborators
# ---------------------------------------------------------------------------


def make_ocr_result(text: str, confidence: float) -> ExtractionResult:
    return ExtractionResult(text=text, source=ExtractionSource.PRIMARY_OCR, confidence=confidence)


@pytest.fixture
def pdf_factory():  # noqa: ANN201
    return make_pdf


@pytest.fixture
def ocr_result_factory():  # noqa: ANN201
    return make_ocr_result


@pytest.fixture
def mock_ocr() -> MagicMock:
    """An OCR provider returning high-confidence text; override per test."""
    ocr = MagicMock(spec=IOCRProvider)
    ocr.get_provider_name.return_value = "mock-ocr"
    ocr.is_available.return_value = True
    ocr.extract_text = AsyncMock(return_value=make_ocr_result(SAMPLE_NOTE_TEXT, 85.0))
    return ocr


@pytest.fixture
def mock_llm(analysis_response_text: str) -> MagicMock:
    """A credentialed, vision-capable LLM provider."""
    llm = MagicMock(spec=ILLMProvider)
    llm.get_provider_name.return_value = "mock-llm"
    llm.is_available.return_value = True
    llm.supports_vision.return_value = True
    llm.complete = AsyncMock(return_value=analysis_response_text)
    llm.vision_extract = AsyncMock(return_value="")
    return llm


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a temp database and bucket, with no LLM keys."""
    return Settings(
        anthropic_api_key="",
        openai_api_key="",
        database_path=str(tmp_path / "smartlens.db"),
        storage_dir=str(tmp_path / "assets"),
        storage_public_base_url="http://testserver/assets",
        config_path=str(tmp_path / "missing.yaml"),
        app_env="test",
    )


# ---------------------------------------------------------------------------
# Real SQLite store and local bucket
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def note_repository(tmp_path: Path) -> SQLiteNoteRepository:
    repo = SQLiteNoteRepository(db_path=tmp_path / "notes.db")
    await repo.initialize()
    return repo


@pytest_asyncio.fixture
async def user_id(note_repository: SQLiteNoteRepository) -> int:
    return await note_repository.create_user("Test User", "test@example.com")


@pytest_asyncio.fixture
async def storage(tmp_path: Path) -> LocalStorageProvider:
    provider = LocalStorageProvider(root=tmp_path / "bucket", public_base_url="http://testserver/assets")
    await provider.initialize()
    return provider
