"""Content-addressed duplicate detection.

Two uploads are duplicates when their trimmed extracted text is identical
for the same user, regardless of the bytes of the original files.  A
re-photographed page that OCRs to the same text collapses onto the Note that
already exists.

The check is a plain read before the insert.  Two identical uploads racing
each other can both miss and both insert; that window is accepted.
"""

from __future__ import annotations

from smartlens.interfaces.note_repository import INoteRepository
from smartlens.models.note import Note
from smartlens.utils.errors import PersistenceError
from smartlens.utils.logging import get_logger


class DuplicateDetector:
    def __init__(self, note_repository: INoteRepository) -> None:
        self._notes = note_repository
        self._logger = get_logger(__name__)

    async def find_duplicate(self, user_id: int, extracted_text: str) -> Note | None:
        """Return the newest existing note with exactly this text, or ``None``.

        A failed lookup is logged and treated as "no duplicate": the upload
        proceeds as fresh rather than failing on a read.
        """
        try:
            matches = await self._notes.find_by_text(user_id, extracted_text)
        except PersistenceError as exc:
            self._logger.warning("duplicate_check_failed", user_id=user_id, error=str(exc))
            return None

        if not matches:
            return None
        self._logger.info(
            "duplicate_detected",
            user_id=user_id,
            note_id=matches[0].id,
            matches=len(matches),
        )
        return matches[0]
