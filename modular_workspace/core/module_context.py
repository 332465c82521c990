"""
Module Context for the Modular Workspace.

The context object handed to every module load operation. It implements
the WorkspaceAPI capability by bridging to the sync engine (cached reads,
debounced writes) and to the UI surface (region replacement, messages).

One context is built per workspace at startup and injected; modules
never reach for global state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from modular_workspace.services.sync_engine import SyncEngine

from .module_registry import ModuleRegistry
from .ui import UISurface

logger = logging.getLogger(__name__)


@dataclass
class ModuleContext:
    """WorkspaceAPI implementation shared by all loaded modules.

    Attributes:
        engine: Sync engine serving reads and writes
        registry: Module registry (for the current-module accessor)
        ui: Surface the region hooks write to
    """

    engine: SyncEngine
    registry: ModuleRegistry
    ui: UISurface

    # Data

    async def read(self, module_id: str) -> Any:
        return await self.engine.read(module_id)

    async def write(self, module_id: str, document: Any) -> None:
        await self.engine.write(module_id, document)

    # Regions

    def update_navigation(self, markup: str) -> None:
        self.ui.set_navigation(markup)

    def update_actions(self, markup: str) -> None:
        self.ui.set_actions(markup)

    def update_content(self, markup: str) -> None:
        self.ui.set_content(markup)

    def update_title(self, title: str) -> None:
        self.ui.set_title(title)

    # Feedback

    def show_message(self, message: str) -> None:
        self.ui.show_message(message)

    def show_loading(self, message: str = "Loading...") -> None:
        self.ui.show_loading(message)

    def hide_loading(self) -> None:
        self.ui.hide_loading()

    # State

    def current_module(self) -> str | None:
        return self.registry.current_module

    def is_online(self) -> bool:
        return self.engine.online

    def pending_count(self) -> int:
        return self.engine.pending_count

    async def force_sync(self) -> int:
        logger.info("Manual sync requested")
        return await self.engine.force_sync()
