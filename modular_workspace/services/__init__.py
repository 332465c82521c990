"""
Services for the Modular Workspace.

Services:
    - RemoteDataGateway: HTTP client for the per-user document store
    - DurableStorage backends: MemoryStorage, JsonFileStorage, RedisStorage
    - LocalCacheStore: Per-module document cache with sync timestamps
    - PendingWriteSet: Modules awaiting a confirmed remote write
    - SyncEngine: Read-through cache with debounced background sync
    - default_document: Seed documents per module
"""

from .cache_store import LocalCacheStore, StorageKeys
from .defaults import default_document
from .gateway import RemoteDataGateway
from .local_storage import (
    DurableStorage,
    JsonFileStorage,
    MemoryStorage,
    RedisStorage,
    open_storage,
)
from .pending import PendingWriteSet
from .sync_engine import SyncEngine, SyncStatus, WorkMode

__all__ = [
    "RemoteDataGateway",
    "DurableStorage",
    "MemoryStorage",
    "JsonFileStorage",
    "RedisStorage",
    "open_storage",
    "LocalCacheStore",
    "StorageKeys",
    "PendingWriteSet",
    "SyncEngine",
    "SyncStatus",
    "WorkMode",
    "default_document",
]
