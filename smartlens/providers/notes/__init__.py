"""Note persistence providers.

SQLiteNoteRepository stores users and notes in data/smartlens.db.
"""

from smartlens.providers.notes.sqlite_note_repository import SQLiteNoteRepository

__all__ = ["SQLiteNoteRepository"]
