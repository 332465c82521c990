"""
Shared behavior for scenario-based modules (tasks, notes).

A scenario module owns one document, keyed by its module id. It reads the
document through the capability object, validates it against its schema,
renders the three regions, and writes the whole document back after
every change. Persistence and sync are entirely the framework's job.
"""

from __future__ import annotations

import html
import logging
from typing import Generic, TypeVar

from pydantic import ValidationError

from modular_workspace.core.capability import WorkspaceAPI
from modular_workspace.lib.exceptions import ModuleLoadError
from modular_workspace.services.defaults import default_document

from .schemas import Scenario, ScenarioDocument

logger = logging.getLogger(__name__)

DataT = TypeVar("DataT")


class ScenarioModule(Generic[DataT]):
    """Base class for modules whose document is a set of scenarios."""

    module_id: str = ""
    document_type: type[ScenarioDocument]  # type: ignore[type-arg]

    def __init__(self, api: WorkspaceAPI) -> None:
        self.api = api
        self.document: ScenarioDocument | None = None  # type: ignore[type-arg]
        self.destroyed = False

    async def start(self) -> None:
        """Load the document and render.

        Raises:
            ModuleLoadError: If the stored document does not match the schema
        """
        raw = await self.api.read(self.module_id)
        try:
            self.document = self.document_type.model_validate(raw)
        except ValidationError as e:
            logger.warning("Stored %s document is invalid: %s", self.module_id, e)
            raise ModuleLoadError(f"Stored {self.module_id} data is invalid") from e
        if not self.document.scenarios:
            self.document = self.document_type.model_validate(default_document(self.module_id))
        self.render()

    def _started_document(self) -> ScenarioDocument:  # type: ignore[type-arg]
        if self.document is None:
            raise RuntimeError(f"{self.module_id} module has not been started")
        return self.document

    @property
    def scenario(self) -> Scenario:  # type: ignore[type-arg]
        return self._started_document().current()

    async def save(self) -> None:
        if self.document is None:
            return
        await self.api.write(self.module_id, self.document.to_json())
        self.render()

    async def switch_scenario(self, scenario_id: int) -> bool:
        if self.document is None or str(scenario_id) not in self.document.scenarios:
            self.api.show_message(f"Scenario {scenario_id} not found")
            return False
        self.document.current_scenario = scenario_id
        await self.save()
        return True

    def render(self) -> None:
        if self.document is None or self.destroyed:
            return
        self.api.update_navigation(self.render_navigation())
        self.api.update_actions(self.render_actions())
        self.api.update_content(self.render_content())

    def render_navigation(self) -> str:
        document = self._started_document()
        current = document.current().id
        items = []
        for scenario in document.scenarios.values():
            active = " active" if scenario.id == current else ""
            items.append(
                f'<button class="scenario-item{active}" data-scenario="{scenario.id}">'
                f"{html.escape(scenario.icon)} {html.escape(scenario.name)}</button>"
            )
        return f'<nav class="scenario-list">{"".join(items)}</nav>'

    def render_actions(self) -> str:
        return ""

    def render_content(self) -> str:
        return ""

    def destroy(self) -> None:
        self.destroyed = True
        self.api.update_navigation("")
        self.api.update_actions("")
        self.api.update_content("")
