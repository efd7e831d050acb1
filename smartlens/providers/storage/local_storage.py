"""Filesystem-backed storage provider.

Treats a local directory as the bucket: objects are files under it and
public URLs are ``<public_base_url>/<path>``.  The bucket directory must
already exist -- ``initialize()`` creates it at startup -- so a misconfigured
deployment fails with the same "Bucket not found" error a hosted object store
would give.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from smartlens.interfaces.storage_provider import IStorageProvider
from smartlens.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)


class LocalStorageProvider(IStorageProvider):
    """Stores uploaded originals as files under a bucket directory."""

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self._root = Path(root)
        self._public_base_url = public_base_url.rstrip("/")

    async def initialize(self) -> None:
        """Create the bucket directory if it does not exist."""
        try:
            await asyncio.to_thread(self._root.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                f"Failed to create bucket {self._root}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("storage_initialized", root=str(self._root))

    async def store(self, data: bytes, path: str, content_type: str) -> str:
        if not self._root.is_dir():
            raise StorageError(
                f"Bucket not found: {self._root}",
                provider_name=self.get_provider_name(),
            )
        target = self._resolve(path)
        if target.exists():
            # Upsert is off: an existing object is never silently replaced.
            raise StorageError(
                f"The resource already exists: {path}",
                provider_name=self.get_provider_name(),
            )
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise StorageError(
                f"Failed to write {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "asset_stored",
            path=path,
            content_type=content_type,
            bytes=len(data),
        )
        return f"{self._public_base_url}/{path}"

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError(
                f"Failed to delete {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("asset_deleted", path=path)

    def get_provider_name(self) -> str:
        return "local"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(self, path: str) -> Path:
        root = self._root.resolve()
        target = (root / path).resolve()
        if root not in target.parents:
            raise StorageError(
                f"Object path escapes the bucket: {path}",
                provider_name=self.get_provider_name(),
            )
        return target

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
