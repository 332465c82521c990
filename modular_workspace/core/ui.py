"""
UI surface contract.

The workspace never touches a DOM directly. The host implements
UISurface and the framework drives it: module list, title, the three
module regions (navigation, actions, content), transient messages, the
loading overlay, the error state and the connectivity indicator.

Region updates are direct, unescaped replacements. Whoever builds the
markup is responsible for escaping user-controlled text.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from modular_workspace.services.sync_engine import SyncStatus

if TYPE_CHECKING:
    from modular_workspace.core.module_descriptor import ModuleDescriptor

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Modular Workspace"

WELCOME_MARKUP = (
    '<div class="welcome-state">'
    '<div class="welcome-title">Welcome to the Modular Workspace!</div>'
    '<div class="welcome-description">Select a workspace to get started</div>'
    "</div>"
)


class UISurface(Protocol):
    """Everything the framework and its modules may change on screen."""

    def render_module_list(
        self, modules: Sequence[ModuleDescriptor], active: str | None
    ) -> None: ...

    def set_title(self, title: str) -> None: ...

    def set_navigation(self, markup: str) -> None: ...

    def set_actions(self, markup: str) -> None: ...

    def set_content(self, markup: str) -> None: ...

    def show_message(self, message: str) -> None: ...

    def show_loading(self, message: str) -> None: ...

    def hide_loading(self) -> None: ...

    def show_error(self, message: str, module_id: str | None = None) -> None: ...

    def update_status(self, status: SyncStatus) -> None: ...


def error_markup(message: str, module_id: str | None = None) -> str:
    """Error state for the content region, with a reload affordance."""
    reload_button = ""
    if module_id is not None:
        reload_button = (
            f'<button class="btn btn-primary" data-reload-module="{html.escape(module_id)}">'
            "Reload</button>"
        )
    return (
        '<div class="error-state">'
        '<div class="error-title">Error</div>'
        f'<div class="error-message">{html.escape(message)}</div>'
        f"{reload_button}"
        "</div>"
    )


@dataclass
class HeadlessSurface:
    """UISurface that keeps the rendered state in memory.

    Used for headless hosts and tests. Messages are also logged.
    """

    title: str = DEFAULT_TITLE
    navigation: str = ""
    actions: str = ""
    content: str = WELCOME_MARKUP
    module_list: list[str] = field(default_factory=list)
    active_module: str | None = None
    messages: list[str] = field(default_factory=list)
    loading: str | None = None
    error: str | None = None
    status: SyncStatus | None = None

    def render_module_list(
        self, modules: Sequence[ModuleDescriptor], active: str | None
    ) -> None:
        self.module_list = [m.id for m in modules]
        self.active_module = active

    def set_title(self, title: str) -> None:
        self.title = title

    def set_navigation(self, markup: str) -> None:
        self.navigation = markup

    def set_actions(self, markup: str) -> None:
        self.actions = markup

    def set_content(self, markup: str) -> None:
        self.content = markup
        self.error = None

    def show_message(self, message: str) -> None:
        logger.info("Message: %s", message)
        self.messages.append(message)

    def show_loading(self, message: str) -> None:
        self.loading = message

    def hide_loading(self) -> None:
        self.loading = None

    def show_error(self, message: str, module_id: str | None = None) -> None:
        self.content = error_markup(message, module_id)
        self.error = message

    def update_status(self, status: SyncStatus) -> None:
        self.status = status

