"""Abstract base class for note and user persistence.

Only the queries the pipeline and the notes API need are part of the
contract: equality lookups, insert, delete, and newest-first listing.
Account management lives outside this service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from smartlens.models.note import Note, NoteDraft


class INoteRepository(ABC):
    """Contract for the note store.

    All operations are async to support network-backed databases.  Failures
    raise :class:`~smartlens.utils.errors.PersistenceError`.
    """

    @abstractmethod
    async def user_exists(self, user_id: int) -> bool:
        """Return ``True`` if *user_id* still maps to an account."""

    @abstractmethod
    async def find_by_text(self, user_id: int, extracted_text: str) -> list[Note]:
        """Return the user's notes whose extracted text equals *extracted_text*.

        The comparison is exact (no normalisation).  Newest first.
        """

    @abstractmethod
    async def insert(self, draft: NoteDraft) -> Note:
        """Insert *draft* and return the stored note with id and timestamp."""

    @abstractmethod
    async def get(self, note_id: int) -> Note | None:
        """Return the note with *note_id*, or ``None``."""

    @abstractmethod
    async def list_for_user(self, user_id: int) -> list[Note]:
        """Return every note owned by *user_id*, newest first."""

    @abstractmethod
    async def delete(self, note_id: int) -> bool:
        """Delete the note; return ``False`` if it did not exist."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite"``."""
