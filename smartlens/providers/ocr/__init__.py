"""Primary OCR engine implementations.

TesseractOCRProvider is the only primary engine.  Low-confidence results are
escalated to the vision fallback by ImageTextExtractor, not here.
"""

from smartlens.providers.ocr.tesseract_provider import TesseractOCRProvider

__all__ = ["TesseractOCRProvider"]
