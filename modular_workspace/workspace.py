"""
Workspace: the composition root.

One Workspace is constructed at startup. It owns the sync engine, the
module registry, the capability object handed to modules, and the UI
surface, and it exposes the host-facing operations: startup, shutdown,
connectivity/visibility/unload signals, full reset, export and import.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from modular_workspace.config.settings import WorkspaceSettings
from modular_workspace.core.module_context import ModuleContext
from modular_workspace.core.module_descriptor import ModuleDescriptor
from modular_workspace.core.module_registry import ModuleRegistry
from modular_workspace.core.ui import DEFAULT_TITLE, WELCOME_MARKUP, UISurface
from modular_workspace.lib.exceptions import GatewayError
from modular_workspace.lib.json_codec import dumps
from modular_workspace.modules import builtin_modules
from modular_workspace.services.data_transfer import (
    CompleteExport,
    build_complete_export,
    build_module_export,
    export_filename,
    parse_import,
)
from modular_workspace.services.gateway import RemoteDataGateway
from modular_workspace.services.local_storage import DurableStorage, open_storage
from modular_workspace.services.sync_engine import SyncEngine

logger = logging.getLogger(__name__)

COMPLETE_EXPORT_PREFIX = "framework-modular"


class Workspace:
    """A running modular workspace.

    Args:
        settings: Runtime configuration
        ui: Screen surface implemented by the host
        gateway: Remote gateway (built from settings when omitted)
        storage: Durable storage (opened from settings.storage_url when omitted)
        online: Connectivity at startup
        modules: Descriptors to register instead of the built-in ones
    """

    def __init__(
        self,
        settings: WorkspaceSettings,
        ui: UISurface,
        *,
        gateway: RemoteDataGateway | None = None,
        storage: DurableStorage | None = None,
        online: bool = True,
        modules: Iterable[ModuleDescriptor] | None = None,
    ) -> None:
        self.settings = settings
        self.ui = ui
        if gateway is None:
            gateway = RemoteDataGateway(
                settings.rest_url,
                nonce=settings.nonce,
                timeout=settings.request_timeout_seconds,
            )
        if storage is None:
            storage = open_storage(settings.storage_url, settings.storage_namespace)
        self.gateway = gateway
        self.storage = storage
        self.engine = SyncEngine(
            self.storage,
            self.gateway,
            namespace=settings.storage_namespace,
            debounce_seconds=settings.debounce_seconds,
            sync_interval_seconds=settings.sync_interval_seconds,
            stale_after_seconds=settings.stale_after_seconds,
            retry=settings.retry,
            online=online,
            on_message=ui.show_message,
            on_status=ui.update_status,
        )
        self.registry = ModuleRegistry(ui)
        self.api = ModuleContext(engine=self.engine, registry=self.registry, ui=ui)
        self.registry.bind(self.api)
        self.global_config: dict[str, Any] = {}
        self._started = False

        for descriptor in modules if modules is not None else builtin_modules():
            self.registry.register(descriptor)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load every registered module's document and start background sync."""
        if self._started:
            return
        await self.engine.initialize(self.registry.module_ids())
        self.engine.start()
        self.ui.render_module_list(self.registry.list_modules(), self.registry.current_module)
        self.ui.update_status(self.engine.status())
        self._started = True
        logger.info("Workspace started with %d modules", self.registry.module_count)

    async def shutdown(self) -> None:
        """Tear down the active module, stop background sync, close the gateway."""
        await self.registry.shutdown()
        await self.engine.shutdown()
        await self.gateway.aclose()
        self._started = False
        logger.info("Workspace shut down")

    async def __aenter__(self) -> Workspace:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    def register_module(self, descriptor: ModuleDescriptor) -> None:
        self.registry.register(descriptor)

    async def activate(self, module_id: str) -> bool:
        return await self.registry.activate(module_id)

    # ------------------------------------------------------------------
    # Host signals
    # ------------------------------------------------------------------

    def set_online(self, online: bool) -> None:
        self.engine.set_online(online)

    def on_visibility_change(self, visible: bool) -> None:
        self.engine.on_visibility_change(visible)

    async def on_before_unload(self, timeout: float = 1.0) -> None:
        await self.engine.flush_before_unload(timeout=timeout)

    async def force_sync(self) -> int:
        return await self.engine.force_sync()

    def set_work_mode(self, mode: str) -> bool:
        return self.engine.set_work_mode(mode)

    # ------------------------------------------------------------------
    # Data management
    # ------------------------------------------------------------------

    async def clear_all_data(self) -> int | None:
        """Delete every document on the server and reset local state.

        The local reset happens even when the server call fails.

        Returns:
            Records deleted on the server, or None if the delete failed
        """
        await self.registry.deactivate()
        self.engine.cancel_scheduled_flush()

        deleted: int | None
        try:
            deleted = await self.gateway.delete_all()
        except GatewayError as e:
            logger.error("Error deleting server data: %s", e)
            deleted = None

        self.engine.clear_all()
        self.global_config = {}

        self.ui.render_module_list(self.registry.list_modules(), None)
        self.ui.set_title(DEFAULT_TITLE)
        self.ui.set_navigation("")
        self.ui.set_actions("")
        self.ui.set_content(WELCOME_MARKUP)
        self.ui.update_status(self.engine.status())
        if deleted is None:
            self.ui.show_message("Local data cleared; the server could not be reached")
        else:
            self.ui.show_message("All data deleted (server and local)")
        return deleted

    async def export_all(self) -> dict[str, Any]:
        """Build a complete-system export of every registered module."""
        documents = {}
        for module_id in self.registry.module_ids():
            documents[module_id] = await self.engine.read(module_id)
        return build_complete_export(
            documents,
            current_module=self.registry.current_module,
            global_config=self.global_config or None,
        )

    async def export_current_module(self) -> dict[str, Any] | None:
        """Export the active module's document, or None when none is active."""
        module_id = self.registry.current_module
        if module_id is None:
            self.ui.show_message("No active workspace to export")
            return None
        descriptor = self.registry.get(module_id)
        name = descriptor.name if descriptor is not None else module_id
        data = await self.engine.read(module_id)
        self.ui.show_message(f"{name} data exported")
        return build_module_export(module_id, name, data)

    async def save_export(
        self, directory: str | Path, *, current_module_only: bool = False
    ) -> Path | None:
        """Write an export into ``directory`` under a dated backup name.

        Complete exports are named ``framework-modular-backup-<date>.json``,
        single-module ones ``<module>-backup-<date>.json``.

        Returns:
            The written file, or None when no module is active for a
            single-module export
        """
        if current_module_only:
            export = await self.export_current_module()
            if export is None:
                return None
            prefix = export["module"]
        else:
            export = await self.export_all()
            prefix = COMPLETE_EXPORT_PREFIX
        path = Path(directory) / export_filename(prefix)
        path.write_text(dumps(export), encoding="utf-8")
        logger.info("Export written to %s", path)
        return path

    async def import_data(self, payload: str | bytes | Mapping[str, Any]) -> int:
        """Import an export file.

        The payload is validated before anything changes.

        Returns:
            Number of module documents imported

        Raises:
            ImportFormatError: If the payload is malformed
        """
        request = parse_import(payload)

        if isinstance(request, CompleteExport):
            await self.registry.deactivate()
            self.engine.reset_session()
            self.global_config = dict(request.framework.global_config)
            pushed = await self.engine.import_documents(request.modules)
            count = len(request.modules)
            self.ui.render_module_list(self.registry.list_modules(), None)
            self.ui.set_title(DEFAULT_TITLE)
            self.ui.show_message(f"Complete system imported: {count} modules restored")
            logger.info("Imported %d modules (%d pushed to the server)", count, pushed)
            return count

        await self.engine.import_documents({request.module: request.data})
        self.ui.show_message(f"{request.module_name or request.module} data imported")
        return 1
