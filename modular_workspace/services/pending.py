"""
Pending-Write Set.

Module identifiers whose cached document has not yet been confirmed by
the gateway. Unlike the cache blob, this set is trusted across restarts:
it is reloaded from durable storage at startup because it records writes
that may never have reached the server.

The set also keeps per-module failure bookkeeping for the retry policy.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

from modular_workspace.config.settings import RetryPolicy
from modular_workspace.lib.exceptions import StorageError
from modular_workspace.services.local_storage import DurableStorage

logger = logging.getLogger(__name__)


class PendingWriteSet:
    """Set of module identifiers awaiting a confirmed remote write."""

    def __init__(self, storage: DurableStorage, storage_key: str) -> None:
        self._storage = storage
        self._storage_key = storage_key
        self._ids: set[str] = set()
        self._failures: dict[str, int] = {}
        self._last_failure_at: dict[str, float] = {}

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __bool__(self) -> bool:
        return bool(self._ids)

    def snapshot(self) -> list[str]:
        """Current members, sorted for stable iteration."""
        return sorted(self._ids)

    def add(self, module_id: str) -> None:
        self._ids.add(module_id)

    def confirm(self, module_id: str) -> None:
        """Remove a module after its push was confirmed."""
        self._ids.discard(module_id)
        self._failures.pop(module_id, None)
        self._last_failure_at.pop(module_id, None)

    def record_failure(self, module_id: str, at: float) -> int:
        """Record a failed push and return the consecutive failure count."""
        count = self._failures.get(module_id, 0) + 1
        self._failures[module_id] = count
        self._last_failure_at[module_id] = at
        return count

    def failures(self, module_id: str) -> int:
        return self._failures.get(module_id, 0)

    def reset_failures(self) -> None:
        """Forget failure history so every pending module is retried."""
        self._failures.clear()
        self._last_failure_at.clear()

    def is_due(self, module_id: str, policy: RetryPolicy, now: float) -> bool:
        """Whether an automatic sweep should retry this module now."""
        failures = self._failures.get(module_id, 0)
        if failures == 0:
            return True
        if policy.exhausted(failures):
            return False
        last = self._last_failure_at.get(module_id, 0.0)
        return now - last >= policy.backoff_for(failures)

    def load(self) -> None:
        """Reload the set from durable storage; a corrupted blob counts as empty."""
        self._ids = set()
        self.reset_failures()
        try:
            raw = self._storage.get_item(self._storage_key)
        except StorageError as e:
            logger.error("Cannot read pending writes: %s", e)
            return
        if not raw:
            return
        try:
            loaded = json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Pending-write blob is corrupted, ignoring it")
            return
        if not isinstance(loaded, list):
            logger.error("Pending-write blob is not a list, ignoring it")
            return
        self._ids = {str(m) for m in loaded}
        if self._ids:
            logger.info("Pending writes awaiting synchronization: %d", len(self._ids))

    def persist(self) -> None:
        """Mirror the set to durable storage (the key is removed when empty)."""
        try:
            if self._ids:
                self._storage.set_item(self._storage_key, json.dumps(self.snapshot()))
            else:
                self._storage.remove_item(self._storage_key)
        except StorageError as e:
            logger.error("Cannot persist pending writes: %s", e)

    def clear(self) -> None:
        self._ids.clear()
        self.reset_failures()
