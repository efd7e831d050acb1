"""Abstract base class for object storage of uploaded originals.

The pipeline treats storage as "store bytes, get URL".  Implementations may
write to a local directory, S3, or any bucket-style service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IStorageProvider(ABC):
    """Contract for storing original uploads and returning a public URL."""

    @abstractmethod
    async def store(self, data: bytes, path: str, content_type: str) -> str:
        """Store *data* at *path* and return its public URL.

        Raises
        ------
        smartlens.utils.errors.StorageError
            If the bucket is missing or the write fails.  The message keeps
            the backend's wording (e.g. ``"Bucket not found"``) so the HTTP
            layer can map it to a specific user-facing message.
        """

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the object at *path*; a missing object is not an error."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"local"``."""
