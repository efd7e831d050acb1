"""Ingestion pipeline orchestration."""

from smartlens.pipeline.orchestrator import IngestionOrchestrator, build_asset_path

__all__ = ["IngestionOrchestrator", "build_asset_path"]
