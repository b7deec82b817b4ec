"""
Storage abstractions.

Production Integration Points:
- MetadataStorage → PostgreSQL
"""

from esap.storage.base import (
    MetadataStorage,
    StorageProvider,
    Collections,
)
from esap.storage.local import InMemoryMetadataStorage, create_local_storage

__all__ = [
    "MetadataStorage",
    "StorageProvider",
    "Collections",
    "InMemoryMetadataStorage",
    "create_local_storage",
]
