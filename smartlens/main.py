"""SmartLens FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and serves stored originals under ``/assets``.

Also exposes :func:`build_pipeline` so the CLI can run the same pipeline
outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from smartlens import __version__
from smartlens.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    TrustedUserMiddleware,
    configure_cors,
)
from smartlens.api.routes import router as api_router
from smartlens.config.loader import load_pipeline_config
from smartlens.config.settings import PipelineConfig, Settings
from smartlens.interfaces.llm_provider import ILLMProvider
from smartlens.pipeline.orchestrator import IngestionOrchestrator
from smartlens.providers.llm.anthropic_provider import AnthropicLLMProvider
from smartlens.providers.llm.openai_provider import OpenAILLMProvider
from smartlens.providers.notes.sqlite_note_repository import SQLiteNoteRepository
from smartlens.providers.ocr.tesseract_provider import TesseractOCRProvider
from smartlens.providers.storage.local_storage import LocalStorageProvider
from smartlens.services.analysis_engine import AnalysisEngine
from smartlens.services.document_extractor import DocumentTextExtractor
from smartlens.services.duplicate_detector import DuplicateDetector
from smartlens.services.image_extractor import ImageTextExtractor
from smartlens.services.vision_fallback import VisionFallbackEngine
from smartlens.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# LLM provider selection
# ---------------------------------------------------------------------------


_LLM_PROVIDERS: dict[str, type[ILLMProvider]] = {
    "anthropic": AnthropicLLMProvider,
    "openai": OpenAILLMProvider,
}


def _build_llm_provider(app_settings: Settings) -> ILLMProvider | None:
    """Select the LLM provider based on configured API keys.

    Priority order: Anthropic -> OpenAI.  Returns ``None`` when neither key
    is set; the vision fallback and analysis are then disabled.
    """
    available = app_settings.get_available_llm_providers()
    if not available:
        return None
    provider_cls = _LLM_PROVIDERS[available[0]]
    return provider_cls(settings=app_settings)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_all(
    app_settings: Settings,
    pipeline_config: PipelineConfig | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    pipeline_config = pipeline_config or load_pipeline_config(app_settings.config_path)

    # -- LLM (shared by vision fallback and analysis) --
    llm = _build_llm_provider(app_settings)

    # -- Extraction --
    ocr = TesseractOCRProvider()
    vision_fallback = VisionFallbackEngine(llm_provider=llm)
    image_extractor = ImageTextExtractor(
        ocr_provider=ocr,
        vision_fallback=vision_fallback,
        confidence_threshold=pipeline_config.ocr_confidence_threshold,
        length_ratio=pipeline_config.fallback_length_ratio,
    )
    document_extractor = DocumentTextExtractor(
        vision_fallback=vision_fallback,
        text_layer_min_length=pipeline_config.pdf_text_layer_min_length,
    )

    # -- Persistence & storage --
    note_repository = SQLiteNoteRepository(db_path=app_settings.database_path)
    storage = LocalStorageProvider(
        root=app_settings.storage_dir,
        public_base_url=app_settings.storage_public_base_url,
    )

    # -- Analysis --
    analysis_engine = (
        AnalysisEngine(llm_provider=llm, timeout_seconds=pipeline_config.analysis_timeout_seconds)
        if llm is not None
        else None
    )

    orchestrator = IngestionOrchestrator(
        image_extractor=image_extractor,
        document_extractor=document_extractor,
        duplicate_detector=DuplicateDetector(note_repository),
        analysis_engine=analysis_engine,
        storage=storage,
        note_repository=note_repository,
        config=pipeline_config,
    )

    provider_registry: dict[str, Any] = {
        "ocr": ocr.is_available(),
        "vision_fallback": vision_fallback.is_available(),
        "analysis": analysis_engine is not None and analysis_engine.is_available(),
        "llm_provider": llm.get_provider_name() if llm is not None else None,
        "storage": storage.get_provider_name(),
        "note_store": note_repository.get_provider_name(),
    }

    return {
        "settings": app_settings,
        "pipeline_config": pipeline_config,
        "llm": llm,
        "note_repository": note_repository,
        "storage": storage,
        "orchestrator": orchestrator,
        "provider_registry": provider_registry,
    }


def build_pipeline(custom_settings: Settings | None = None) -> dict[str, Any]:
    """Construct all pipeline services for standalone (CLI) use.

    Callers must ``await`` the ``initialize()`` methods of
    ``note_repository`` and ``storage`` before ingesting.
    """
    return _build_all(custom_settings or settings)


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


def _make_lifespan(app_settings: Settings):  # noqa: ANN202
    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        """Initialise the note store and storage bucket on startup."""
        components = _build_all(app_settings)

        for key, value in components.items():
            setattr(application.state, key, value)

        await components["note_repository"].initialize()
        await components["storage"].initialize()

        _logger.info(
            "app_startup",
            version=__version__,
            environment=app_settings.app_env,
            providers=components["provider_registry"],
        )

        yield

        _logger.info("app_shutdown")

    return _lifespan


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = app_settings or settings
    application = FastAPI(
        title="SmartLens API",
        version=__version__,
        description=(
            "Upload a photo, scan or PDF; SmartLens extracts its text, "
            "deduplicates it, analyzes it with an LLM and saves it as a note."
        ),
        lifespan=_make_lifespan(app_settings),
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(TrustedUserMiddleware)
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    # -- Stored originals --
    application.mount(
        "/assets",
        StaticFiles(directory=app_settings.storage_dir, check_dir=False),
        name="assets",
    )

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "smartlens.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
