"""
Module Registry for the Modular Workspace.

Keeps the registered module descriptors and the single active module.
Adding a module = register a descriptor + done; activating it loads the
instance into the shared regions after tearing down the previous one.

Activations are serialized through a single-slot queue: one activation
runs at a time, and a request arriving meanwhile replaces any request
still waiting, so the last click wins and two modules never own the
regions at once.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

from modular_workspace.lib.exceptions import ModuleLoadError, UnknownModuleError
from modular_workspace.lib.logging import bind_module, unbind_module

from .module_descriptor import ModuleDescriptor
from .module_protocol import Destroyable
from .ui import DEFAULT_TITLE, UISurface

if TYPE_CHECKING:
    from .capability import WorkspaceAPI

logger = logging.getLogger(__name__)


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class ModuleRegistry:
    """Registered modules and the one active instance.

    Example:
        registry = ModuleRegistry(ui)
        registry.bind(api)
        registry.register(ModuleDescriptor(id="tasks", name="Tasks", load=load_tasks))

        ok = await registry.activate("tasks")
    """

    def __init__(self, ui: UISurface) -> None:
        self._ui = ui
        self._api: WorkspaceAPI | None = None
        self._modules: dict[str, ModuleDescriptor] = {}
        self._current: str | None = None
        self._queued: tuple[str, asyncio.Future[bool]] | None = None
        self._worker: asyncio.Task[None] | None = None

    def bind(self, api: WorkspaceAPI) -> None:
        """Set the capability object handed to every load operation."""
        self._api = api

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, descriptor: ModuleDescriptor) -> None:
        """Register a module.

        Registering an identifier again replaces the previous descriptor,
        including any live instance reference; unload it first.

        Raises:
            InvalidModuleError: If identifier, name or load is missing
        """
        descriptor.validate()
        descriptor.instance = None
        if descriptor.id in self._modules:
            logger.warning("Module '%s' re-registered, replacing previous descriptor", descriptor.id)
            if self._current == descriptor.id:
                self._current = None
        self._modules[descriptor.id] = descriptor
        self._refresh_list()
        logger.info("Registered module '%s' (%s)", descriptor.id, descriptor.name)

    def get(self, module_id: str) -> ModuleDescriptor | None:
        return self._modules.get(module_id)

    def list_modules(self) -> list[ModuleDescriptor]:
        return list(self._modules.values())

    def module_ids(self) -> list[str]:
        return list(self._modules)

    def is_registered(self, module_id: str) -> bool:
        return module_id in self._modules

    @property
    def module_count(self) -> int:
        return len(self._modules)

    @property
    def current_module(self) -> str | None:
        return self._current

    @property
    def current_instance(self) -> Any | None:
        if self._current is None:
            return None
        return self._modules[self._current].instance

    def _refresh_list(self) -> None:
        self._ui.render_module_list(self.list_modules(), self._current)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    async def activate(self, module_id: str) -> bool:
        """Make a module the active one.

        Returns:
            True if the module is now active. False if its load failed
            (the error is shown in the content region) or if a newer
            activation request superseded this one before it started.

        Raises:
            UnknownModuleError: If the module was never registered
        """
        if module_id not in self._modules:
            raise UnknownModuleError(module_id)

        loop = asyncio.get_running_loop()
        if self._queued is not None:
            superseded_id, superseded = self._queued
            logger.info("Activation of '%s' superseded by '%s'", superseded_id, module_id)
            if not superseded.done():
                superseded.set_result(False)

        future: asyncio.Future[bool] = loop.create_future()
        self._queued = (module_id, future)
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain(), name="workspace-activation")
        return await future

    async def _drain(self) -> None:
        while self._queued is not None:
            module_id, future = self._queued
            self._queued = None
            try:
                result = await self._switch_to(module_id)
            except asyncio.CancelledError:
                if not future.done():
                    future.set_result(False)
                raise
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
                continue
            if not future.done():
                future.set_result(result)

    async def _switch_to(self, module_id: str) -> bool:
        if self._current is not None:
            await self.deactivate()

        descriptor = self._modules.get(module_id)
        if descriptor is None or descriptor.load is None:
            return False
        if self._api is None:
            raise ModuleLoadError("Registry has no capability object bound")

        self._ui.show_loading(f"Loading {descriptor.name}...")
        try:
            instance = await descriptor.load(self._api)
            if instance is None:
                raise ModuleLoadError(f"Module '{module_id}' load returned no instance")
        except Exception as e:
            logger.exception("Error loading module '%s'", module_id)
            self._ui.hide_loading()
            self._ui.show_error(f"Error loading {descriptor.name}: {e}", module_id)
            self._refresh_list()
            return False

        descriptor.instance = instance
        self._current = module_id
        bind_module(module_id)
        self._refresh_list()
        self._ui.set_title(descriptor.name)
        self._ui.hide_loading()
        logger.info("Switched to module '%s'", descriptor.name)
        return True

    async def deactivate(self) -> None:
        """Tear down the active module, if any.

        Runs the instance's ``destroy`` (if it has one), then the
        descriptor's ``unload``, then clears the instance reference.
        Teardown errors are logged; teardown always completes.
        """
        if self._current is None:
            return
        descriptor = self._modules.get(self._current)
        self._current = None
        unbind_module()
        if descriptor is None:
            return

        instance = descriptor.instance
        if isinstance(instance, Destroyable):
            try:
                await _maybe_await(instance.destroy())
            except Exception:
                logger.exception("Error destroying module '%s'", descriptor.id)
        try:
            await _maybe_await(descriptor.unload())
        except Exception:
            logger.exception("Error unloading module '%s'", descriptor.id)
        descriptor.instance = None
        self._ui.set_title(DEFAULT_TITLE)
        self._refresh_list()
        logger.debug("Unloaded module '%s'", descriptor.id)

    async def shutdown(self) -> None:
        """Cancel queued activations and tear down the active module."""
        if self._queued is not None:
            _, future = self._queued
            self._queued = None
            if not future.done():
                future.set_result(False)
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)
        self._worker = None
        await self.deactivate()
