"""Business-logic services for the ingestion pipeline."""

from smartlens.services.analysis_engine import (
    AnalysisEngine,
    classify_analysis_failure,
    parse_analysis_response,
)
from smartlens.services.document_extractor import DocumentTextExtractor
from smartlens.services.duplicate_detector import DuplicateDetector
from smartlens.services.image_extractor import ImageTextExtractor, choose_extraction
from smartlens.services.vision_fallback import VisionFallbackEngine

__all__ = [
    "AnalysisEngine",
    "DocumentTextExtractor",
    "DuplicateDetector",
    "ImageTextExtractor",
    "VisionFallbackEngine",
    "choose_extraction",
    "classify_analysis_failure",
    "parse_analysis_response",
]
