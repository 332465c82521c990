"""
Sync Engine for the Modular Workspace.

Orchestrates the offline-first cache against the remote gateway:

- Read-through: a cache hit returns immediately and may start a
  background refresh when the entry is older than the staleness
  threshold; a miss fetches from the gateway or falls back to the
  default document.
- Debounced write: every local write marks the module pending and
  restarts one shared timer. When it fires, the most recently written
  module is pushed, then every other pending module is swept.
- Pending sweep: pushes each pending module's cached document. Runs on
  debounce, reconnect, visibility regained, a periodic interval and on
  demand. At most one sweep runs at a time; overlapping requests are
  dropped.

Everything runs on a single event loop. Suspension points are gateway
calls and timers only, so the cache and the pending set are never
mutated concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from modular_workspace.config.settings import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_STALE_AFTER_SECONDS,
    DEFAULT_SYNC_INTERVAL_SECONDS,
    RetryPolicy,
)
from modular_workspace.lib.exceptions import GatewayError, SerializationError, StorageError
from modular_workspace.lib.json_codec import dumps, normalize
from modular_workspace.services.cache_store import LocalCacheStore, StorageKeys
from modular_workspace.services.defaults import default_document
from modular_workspace.services.gateway import RemoteDataGateway
from modular_workspace.services.local_storage import DurableStorage
from modular_workspace.services.pending import PendingWriteSet

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str], None]
RefreshListener = Callable[[str, Any], None]


class WorkMode(StrEnum):
    """Legacy work-mode preference.

    Both values schedule writes identically (debounced push). The value is
    still stored and reported so existing preferences survive.
    """

    LOCAL = "local"
    AUTO = "auto"


_WORK_MODES = frozenset(mode.value for mode in WorkMode)

WORK_MODE_DESCRIPTION = (
    "Local work - changes are saved locally and synchronized automatically "
    "a few seconds after the last edit"
)


@dataclass(frozen=True)
class SyncStatus:
    """Snapshot of the connectivity indicator."""

    online: bool
    syncing: bool
    pending_count: int

    @property
    def label(self) -> str:
        if self.syncing:
            return "Syncing"
        if not self.online:
            return "Offline"
        return "Online"

    @property
    def description(self) -> str:
        if self.syncing:
            text = "Synchronizing data with the server..."
        elif not self.online:
            text = "No connection - changes are saved locally"
        else:
            text = "Connected - data synchronized"
        if self.pending_count:
            text += f" - {self.pending_count} item(s) pending"
        return text


StatusCallback = Callable[[SyncStatus], None]


def _noop_message(message: str) -> None:
    return None


def _noop_status(status: SyncStatus) -> None:
    return None


class SyncEngine:
    """Cache read/write API with debounced background synchronization.

    Args:
        storage: Durable storage shared by the cache and the pending set
        gateway: Remote data gateway
        namespace: Durable storage key namespace
        debounce_seconds: Delay between the last write and its push
        sync_interval_seconds: Periodic sweep interval
        stale_after_seconds: Age after which a cache hit triggers a refresh
        retry: Retry policy for failed pushes
        online: Initial connectivity
        legacy_prefixes: Extra storage key prefixes wiped by clear_all()
        default_provider: Seed document factory
        clock: Wall clock in seconds
        on_message: Transient user message sink
        on_status: Connectivity indicator sink
    """

    def __init__(
        self,
        storage: DurableStorage,
        gateway: RemoteDataGateway,
        *,
        namespace: str = "frameworkModular",
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        sync_interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
        stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS,
        retry: RetryPolicy | None = None,
        online: bool = True,
        legacy_prefixes: Iterable[str] = ("tasksModule_",),
        default_provider: Callable[[str], Any] = default_document,
        clock: Callable[[], float] = time.time,
        on_message: MessageCallback | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        self._storage = storage
        self._keys = StorageKeys(namespace)
        self._gateway = gateway
        self._cache = LocalCacheStore(storage, self._keys, clock=clock)
        self._pending = PendingWriteSet(storage, self._keys.pending)
        self._debounce_seconds = debounce_seconds
        self._sync_interval_seconds = sync_interval_seconds
        self._stale_after_ms = int(stale_after_seconds * 1000)
        self._retry = retry or RetryPolicy()
        self._legacy_prefixes = tuple(legacy_prefixes)
        self._default_provider = default_provider
        self._clock = clock
        self._on_message = on_message or _noop_message
        self._on_status = on_status or _noop_status

        self._online = online
        self._sync_in_progress = False
        self._work_mode = WorkMode.LOCAL
        self._last_written: str | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._periodic_task: asyncio.Task[None] | None = None
        self._refreshing: dict[str, asyncio.Task[None]] = {}
        self._pushing: set[str] = set()
        self._background: set[asyncio.Task[Any]] = set()
        self._refresh_listeners: list[RefreshListener] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def cache(self) -> LocalCacheStore:
        return self._cache

    @property
    def pending(self) -> PendingWriteSet:
        return self._pending

    @property
    def online(self) -> bool:
        return self._online

    @property
    def sync_in_progress(self) -> bool:
        return self._sync_in_progress

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def work_mode(self) -> WorkMode:
        return self._work_mode

    @property
    def flush_scheduled(self) -> bool:
        return self._debounce_handle is not None

    def status(self) -> SyncStatus:
        return SyncStatus(
            online=self._online,
            syncing=self._sync_in_progress,
            pending_count=len(self._pending),
        )

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        """Be told when a background refresh replaced a cached document."""
        self._refresh_listeners.append(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, module_ids: Iterable[str]) -> None:
        """Prepare the cache for a new session.

        The persisted cache is discarded so the session starts from server
        truth; the pending set is reloaded because it may describe writes
        the server never received. Cached documents of pending modules are
        carried over as local writes.
        """
        self._pending.load()
        recovered = self._cache.recover_persisted(self._pending.snapshot())
        self._cache.clear()
        self._cache.discard_persisted()
        self._load_work_mode()

        for module_id, document in recovered.items():
            self._cache.put_local(module_id, document)
        if recovered:
            logger.info("Recovered %d unsynced module(s) from the local cache", len(recovered))

        module_ids = [m for m in module_ids if m not in recovered]
        if self._online:
            logger.info("Loading fresh data from the server for %d modules", len(module_ids))
            loaded = 0
            for module_id in module_ids:
                if await self._load_fresh(module_id):
                    loaded += 1
            logger.info("Fresh load complete: %d/%d modules from the server", loaded, len(module_ids))
        else:
            logger.info("Offline at startup, seeding %d modules with defaults", len(module_ids))
            for module_id in module_ids:
                self._cache.put(module_id, self._default_provider(module_id))

        self._cache.persist()
        self._pending.persist()
        self._publish_status()

    async def _load_fresh(self, module_id: str) -> bool:
        try:
            remote = await self._gateway.fetch(module_id)
        except GatewayError as e:
            logger.error("Fresh load failed for %s, using defaults: %s", module_id, e)
            self._cache.put(module_id, self._default_provider(module_id))
            return False
        document = remote if remote is not None else self._default_provider(module_id)
        self._cache.put(module_id, document, synced_at=self._cache.now_ms())
        return True

    def start(self) -> None:
        """Start the periodic safety-net sweep. Requires a running loop."""
        if self._periodic_task is None or self._periodic_task.done():
            self._periodic_task = asyncio.get_running_loop().create_task(
                self._periodic_sweep(), name="workspace-periodic-sync"
            )

    async def shutdown(self) -> None:
        """Cancel every timer and background task owned by the engine."""
        self.cancel_scheduled_flush()
        tasks: list[asyncio.Task[Any]] = list(self._background)
        if self._periodic_task is not None:
            tasks.append(self._periodic_task)
            self._periodic_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()
        self._refreshing.clear()

    async def wait_for_background(self) -> None:
        """Wait until every spawned refresh, flush and sweep has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(self._guarded(coro, name), name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    @staticmethod
    async def _guarded(coro: Coroutine[Any, Any, Any], name: str) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Background task %s failed", name)
            return None

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def read(self, module_id: str) -> Any:
        """Return a module's document, from cache when possible.

        A cache hit never waits on the network. A miss fetches from the
        gateway, falling back to the default document when offline or when
        the gateway fails.
        """
        if module_id in self._cache:
            if self._online:
                self._maybe_refresh(module_id)
            return self._cache.get(module_id)

        document = await self._fetch_or_default(module_id)

        # a write may have landed while the fetch was suspended
        if module_id in self._cache:
            return self._cache.get(module_id)

        self._cache.put(module_id, document, synced_at=self._cache.now_ms())
        self._cache.persist()
        return document

    async def _fetch_or_default(self, module_id: str) -> Any:
        if not self._online:
            logger.info("Offline, using default data for %s", module_id)
            return self._default_provider(module_id)
        try:
            remote = await self._gateway.fetch(module_id)
        except GatewayError as e:
            logger.warning("Gateway read failed for %s, using default data: %s", module_id, e)
            return self._default_provider(module_id)
        if remote is None:
            return self._default_provider(module_id)
        return remote

    def _maybe_refresh(self, module_id: str) -> None:
        last_sync = self._cache.last_sync(module_id) or 0
        if self._cache.now_ms() - last_sync <= self._stale_after_ms:
            return
        if module_id in self._refreshing:
            return
        task = self._spawn(self._background_refresh(module_id), f"refresh-{module_id}")
        self._refreshing[module_id] = task
        task.add_done_callback(lambda _t: self._refreshing.pop(module_id, None))

    async def _background_refresh(self, module_id: str) -> None:
        generation = self._cache.generation(module_id)
        try:
            remote = await self._gateway.fetch(module_id)
        except GatewayError as e:
            logger.warning("Background refresh failed for %s: %s", module_id, e)
            return
        if remote is None:
            return

        if self._cache.generation(module_id) != generation or module_id in self._pending:
            logger.debug("Skipping refresh of %s, a local write is newer", module_id)
            return
        if module_id not in self._cache:
            return
        if dumps(remote) == dumps(self._cache.get(module_id)):
            return

        self._cache.put(module_id, remote, synced_at=self._cache.now_ms())
        self._cache.persist()
        logger.info("Background refresh updated %s", module_id)
        for listener in list(self._refresh_listeners):
            try:
                listener(module_id, remote)
            except Exception:
                logger.exception("Refresh listener failed for %s", module_id)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def write(self, module_id: str, document: Any) -> None:
        """Replace a module's cached document and schedule its push.

        Raises:
            SerializationError: If the document is not JSON-serializable
        """
        normalized = normalize(document)
        self._cache.put_local(module_id, normalized)
        self._pending.add(module_id)
        self._cache.persist()
        self._pending.persist()
        self._schedule_flush(module_id)
        self._publish_status()

    def _schedule_flush(self, module_id: str) -> None:
        self.cancel_scheduled_flush()
        self._last_written = module_id
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self._debounce_seconds, self._on_debounce_elapsed)
        logger.debug(
            "Sync scheduled in %.1fs for %d pending module(s)",
            self._debounce_seconds,
            len(self._pending),
        )

    def cancel_scheduled_flush(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _on_debounce_elapsed(self) -> None:
        self._debounce_handle = None
        module_id = self._last_written
        if module_id is None:
            return
        self._spawn(self._debounced_flush(module_id), f"flush-{module_id}")

    async def _debounced_flush(self, module_id: str) -> None:
        if not self._online:
            logger.info("Offline, %d module(s) will sync on reconnect", len(self._pending))
            self._message("Offline - changes will sync automatically when the connection returns")
            return
        if not self._pending:
            return
        if self._sync_in_progress or module_id in self._pushing:
            # the running push may predate the last write; check again later
            logger.debug("Push of %s already in flight, rescheduling flush", module_id)
            if self._debounce_handle is None:
                self._schedule_flush(module_id)
            return

        failed: set[str] = set()
        if module_id in self._pending:
            try:
                await self._push(module_id)
            except (GatewayError, SerializationError) as e:
                failed.add(module_id)
                self._message(f"Error synchronizing data: {e}")
            else:
                self._pending.persist()
                self._publish_status()
                self._message("Data synchronized with the server")

        await self.sync_pending(exclude=failed)

    async def _push(self, module_id: str) -> bool:
        """Push one module's cached document.

        The module leaves the pending set only if no newer local write
        arrived while the request was in flight.

        Returns:
            True if the module was confirmed and left the pending set

        Raises:
            GatewayError: If the gateway rejected or never received the push
            SerializationError: If the cached document cannot be encoded
        """
        generation = self._cache.generation(module_id)
        self._pushing.add(module_id)
        try:
            await self._gateway.save(module_id, self._cache.get(module_id))
        except (GatewayError, SerializationError) as e:
            failures = self._pending.record_failure(module_id, self._clock())
            logger.warning("Push failed for %s (attempt %d): %s", module_id, failures, e)
            raise
        finally:
            self._pushing.discard(module_id)

        self._cache.mark_synced(module_id, self._cache.now_ms())
        if self._cache.generation(module_id) == generation:
            self._pending.confirm(module_id)
            logger.info("Synchronized %s with the server", module_id)
            return True
        logger.debug("%s changed during push, keeping it pending", module_id)
        return False

    # ------------------------------------------------------------------
    # Pending sweep
    # ------------------------------------------------------------------

    async def sync_pending(self, exclude: Iterable[str] = (), force: bool = False) -> int:
        """Push every pending module once.

        Args:
            exclude: Modules to leave alone in this pass
            force: Ignore retry backoff and attempt limits

        Returns:
            Number of modules confirmed by the gateway. Zero when offline,
            when nothing is pending, or when another sweep is in flight.
        """
        if self._sync_in_progress:
            logger.debug("Sweep already in progress, dropping request")
            return 0
        if not self._online or not self._pending:
            return 0

        self._sync_in_progress = True
        self._publish_status()
        skip = set(exclude)
        synced = 0
        try:
            candidates = self._pending.snapshot()
            logger.info("Synchronizing %d pending module(s)", len(candidates))
            for module_id in candidates:
                if module_id in skip or module_id in self._pushing:
                    continue
                if module_id not in self._pending:
                    continue
                if not force and not self._pending.is_due(module_id, self._retry, self._clock()):
                    logger.debug("Skipping %s, retry backoff not elapsed", module_id)
                    continue
                if self._cache.generation(module_id) == 0:
                    logger.warning("Pending module %s has no local write to push", module_id)
                    continue
                try:
                    confirmed = await self._push(module_id)
                except (GatewayError, SerializationError):
                    continue
                if confirmed:
                    synced += 1
        finally:
            self._pending.persist()
            self._cache.persist()
            self._sync_in_progress = False
            self._publish_status()

        if synced:
            self._message(f"{synced} item(s) synchronized with the server")
        return synced

    async def force_sync(self) -> int:
        """Manual sync: forget backoff and push everything pending now."""
        self._pending.reset_failures()
        return await self.sync_pending(force=True)

    async def _periodic_sweep(self) -> None:
        while True:
            await asyncio.sleep(self._sync_interval_seconds)
            if self._online and self._pending:
                try:
                    await self.sync_pending()
                except Exception:
                    logger.exception("Periodic sync failed")

    # ------------------------------------------------------------------
    # Host signals
    # ------------------------------------------------------------------

    def set_online(self, online: bool) -> None:
        """Apply a connectivity change reported by the host."""
        if online == self._online:
            return
        self._online = online
        self._publish_status()
        if online:
            logger.info("Connection restored, %d module(s) pending", len(self._pending))
            self._message("Connection restored - synchronizing data...")
            self._pending.reset_failures()
            self._spawn(self.sync_pending(), "sync-on-reconnect")
        else:
            logger.info("Connection lost, switching to local-only writes")
            self._message("Offline mode - changes will be saved locally")

    def on_visibility_change(self, visible: bool) -> None:
        if visible and self._online and self._pending:
            self._spawn(self.sync_pending(), "sync-on-visible")

    async def flush_before_unload(self, timeout: float = 1.0) -> None:
        """Best-effort push before the host discards the workspace.

        Completion is not guaranteed; failures and timeouts are only logged.
        """
        if not self._pending:
            return
        self.cancel_scheduled_flush()
        try:
            await asyncio.wait_for(self.sync_pending(force=True), timeout=timeout)
        except TimeoutError:
            logger.warning("Unload flush timed out with %d module(s) pending", len(self._pending))

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    async def import_documents(self, documents: dict[str, Any]) -> int:
        """Push imported documents and cache them.

        Modules whose push fails are cached anyway and left pending.

        Returns:
            Number of documents the gateway accepted
        """
        normalized = {module_id: normalize(doc) for module_id, doc in documents.items()}
        pushed = 0
        for module_id, document in normalized.items():
            self._cache.put_local(module_id, document)
            try:
                await self._gateway.save(module_id, document)
            except GatewayError as e:
                logger.error("Import push failed for %s, keeping it pending: %s", module_id, e)
                self._pending.add(module_id)
                continue
            self._cache.mark_synced(module_id, self._cache.now_ms())
            self._pending.confirm(module_id)
            pushed += 1
        self._cache.persist()
        self._pending.persist()
        self._publish_status()
        return pushed

    def reset_session(self) -> None:
        """Drop cached documents and pending writes without touching storage keys."""
        self.cancel_scheduled_flush()
        self._cache.clear()
        self._pending.clear()

    def clear_all(self) -> int:
        """Empty the cache, the pending set and every durable mirror.

        No suspension point separates the steps, so no other coroutine can
        observe a partially cleared state.

        Returns:
            Number of durable storage keys removed
        """
        self.cancel_scheduled_flush()
        self._last_written = None
        self._cache.clear()
        self._pending.clear()
        self._work_mode = WorkMode.LOCAL

        prefixes = (self._keys.prefix, *self._legacy_prefixes)
        removed = 0
        try:
            for key in self._storage.keys():
                if key.startswith(prefixes):
                    self._storage.remove_item(key)
                    removed += 1
        except StorageError as e:
            logger.error("Cannot clear durable storage: %s", e)
        logger.info("Cleared local cache and %d storage key(s)", removed)
        self._publish_status()
        return removed

    # ------------------------------------------------------------------
    # Work mode
    # ------------------------------------------------------------------

    def _load_work_mode(self) -> None:
        try:
            saved = self._storage.get_item(self._keys.work_mode)
        except StorageError as e:
            logger.error("Cannot read work mode: %s", e)
            return
        if saved in _WORK_MODES:
            self._work_mode = WorkMode(saved)

    def set_work_mode(self, mode: str) -> bool:
        """Store the legacy work-mode preference.

        Both modes schedule writes the same way; the value is kept only so
        the preference round-trips.

        Returns:
            False if the mode is unknown
        """
        if mode not in _WORK_MODES:
            logger.warning("Ignoring unknown work mode %r", mode)
            return False
        self._work_mode = WorkMode(mode)
        try:
            self._storage.set_item(self._keys.work_mode, self._work_mode.value)
        except StorageError as e:
            logger.error("Cannot persist work mode: %s", e)
        self._publish_status()
        self._message(f"Work mode changed to: {self._work_mode.value}")
        return True

    def work_mode_description(self) -> str:
        return WORK_MODE_DESCRIPTION

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _message(self, message: str) -> None:
        try:
            self._on_message(message)
        except Exception:
            logger.exception("Message sink failed")

    def _publish_status(self) -> None:
        try:
            self._on_status(self.status())
        except Exception:
            logger.exception("Status sink failed")
