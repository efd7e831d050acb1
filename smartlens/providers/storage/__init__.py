"""Object storage providers for original uploads."""

from smartlens.providers.storage.local_storage import LocalStorageProvider

__all__ = ["LocalStorageProvider"]
