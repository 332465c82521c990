"""
Capability surface exposed to module instances.

Modules depend on this protocol only, never on the workspace, the
registry or the sync engine directly.
"""

from __future__ import annotations

from typing import Any, Protocol


class WorkspaceAPI(Protocol):
    """What a loaded module may do."""

    async def read(self, module_id: str) -> Any:
        """Cached read-through of a document."""
        ...

    async def write(self, module_id: str, document: Any) -> None:
        """Cache a document and schedule its debounced push."""
        ...

    def update_navigation(self, markup: str) -> None:
        """Replace the navigation region (unescaped)."""
        ...

    def update_actions(self, markup: str) -> None:
        """Replace the action-bar region (unescaped)."""
        ...

    def update_content(self, markup: str) -> None:
        """Replace the main content region (unescaped)."""
        ...

    def update_title(self, title: str) -> None:
        ...

    def show_message(self, message: str) -> None:
        ...

    def show_loading(self, message: str = "Loading...") -> None:
        ...

    def hide_loading(self) -> None:
        ...

    def current_module(self) -> str | None:
        ...

    def is_online(self) -> bool:
        ...

    def pending_count(self) -> int:
        ...

    async def force_sync(self) -> int:
        """Push every pending document now; returns how many succeeded."""
        ...
