"""
Local Cache Store.

In-memory map from module identifier to its last-known document, paired
with a map from module identifier to its last successful sync time in
epoch milliseconds. The whole cache is serialized to durable storage on
every change as a single blob:

    {"cache": [[id, doc], ...], "syncTimes": [[id, ms], ...], "timestamp": ms}

Invariants:
    - A key absent from the cache has no sync time.
    - Sync times never decrease for a given key.
    - Every local write bumps the key's generation, which lets in-flight
      refreshes and pushes detect that the document changed under them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from modular_workspace.lib.exceptions import SerializationError, StorageError
from modular_workspace.lib.json_codec import dumps, loads
from modular_workspace.services.local_storage import DurableStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageKeys:
    """Durable storage keys for one workspace namespace."""

    namespace: str

    @property
    def prefix(self) -> str:
        return f"{self.namespace}_"

    @property
    def cache(self) -> str:
        return f"{self.namespace}_cache"

    @property
    def pending(self) -> str:
        return f"{self.namespace}_pending"

    @property
    def work_mode(self) -> str:
        return f"{self.namespace}_workMode"


def epoch_ms(clock: Callable[[], float] = time.time) -> int:
    return int(clock() * 1000)


class LocalCacheStore:
    """Per-module document cache with sync timestamps."""

    def __init__(
        self,
        storage: DurableStorage,
        keys: StorageKeys,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._keys = keys
        self._clock = clock
        self._documents: dict[str, Any] = {}
        self._sync_times: dict[str, int] = {}
        self._generations: dict[str, int] = {}

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def module_ids(self) -> list[str]:
        return list(self._documents)

    def get(self, module_id: str) -> Any | None:
        return self._documents.get(module_id)

    def last_sync(self, module_id: str) -> int | None:
        return self._sync_times.get(module_id)

    def generation(self, module_id: str) -> int:
        return self._generations.get(module_id, 0)

    def now_ms(self) -> int:
        return epoch_ms(self._clock)

    def put(self, module_id: str, document: Any, synced_at: int | None = None) -> None:
        """Store a document that came from (or was confirmed by) the server."""
        self._documents[module_id] = document
        if synced_at is not None:
            self.mark_synced(module_id, synced_at)

    def put_local(self, module_id: str, document: Any) -> None:
        """Store a locally written document, replacing whatever was cached."""
        self._documents[module_id] = document
        self._generations[module_id] = self.generation(module_id) + 1

    def mark_synced(self, module_id: str, at: int) -> None:
        if module_id not in self._documents:
            return
        previous = self._sync_times.get(module_id, 0)
        self._sync_times[module_id] = max(previous, at)

    def clear(self) -> None:
        self._documents.clear()
        self._sync_times.clear()
        self._generations.clear()

    def snapshot(self) -> dict[str, Any]:
        return dict(self._documents)

    def serialize(self) -> str:
        return dumps(
            {
                "cache": [[k, v] for k, v in self._documents.items()],
                "syncTimes": [[k, v] for k, v in self._sync_times.items()],
                "timestamp": self.now_ms(),
            }
        )

    def persist(self) -> None:
        """Write the whole cache to durable storage; failures are logged."""
        try:
            self._storage.set_item(self._keys.cache, self.serialize())
        except (StorageError, SerializationError) as e:
            logger.error("Cannot persist local cache: %s", e)

    def recover_persisted(self, module_ids: Iterable[str]) -> dict[str, Any]:
        """Return the durably cached documents for the given modules.

        Used at startup to keep unsynced local writes. A missing or corrupted
        blob yields an empty mapping.
        """
        wanted = set(module_ids)
        if not wanted:
            return {}
        try:
            raw = self._storage.get_item(self._keys.cache)
        except StorageError as e:
            logger.error("Cannot read persisted cache: %s", e)
            return {}
        if not raw:
            return {}
        try:
            blob = loads(raw)
        except SerializationError:
            logger.error("Persisted cache is corrupted, ignoring it")
            return {}
        entries = blob.get("cache") if isinstance(blob, dict) else None
        if not isinstance(entries, list):
            return {}
        recovered = {}
        for entry in entries:
            if isinstance(entry, list) and len(entry) == 2 and entry[0] in wanted:
                recovered[entry[0]] = entry[1]
        return recovered

    def discard_persisted(self) -> None:
        """Drop the durable cache blob so the session starts from server truth."""
        try:
            self._storage.remove_item(self._keys.cache)
        except StorageError as e:
            logger.error("Cannot remove persisted cache: %s", e)
