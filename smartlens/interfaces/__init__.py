"""Public interface definitions for every external collaborator.

The pipeline reaches OCR engines, LLMs, object storage and the note store
only through the abstract base classes in this package.  Concrete adapters
live in ``smartlens/providers/`` and are wired together in
``smartlens/main.py``; tests inject mocks built with ``MagicMock(spec=...)``.

    Interface          ->  Concrete implementations
    ------------------------------------------------------------
    IOCRProvider       ->  TesseractOCRProvider
    ILLMProvider       ->  AnthropicLLMProvider, OpenAILLMProvider
    IStorageProvider   ->  LocalStorageProvider
    INoteRepository    ->  SQLiteNoteRepository
"""

from smartlens.interfaces.llm_provider import ILLMProvider
from smartlens.interfaces.note_repository import INoteRepository
from smartlens.interfaces.ocr_provider import IOCRProvider
from smartlens.interfaces.storage_provider import IStorageProvider

__all__ = [
    "ILLMProvider",
    "INoteRepository",
    "IOCRProvider",
    "IStorageProvider",
]
