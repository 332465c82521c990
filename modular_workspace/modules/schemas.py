"""
Document schemas for the built-in modules.

The sync engine treats documents as opaque JSON. Each module validates
its own document against these models on the way in and dumps it back to
plain JSON (camelCase keys) on the way out. Unknown keys are preserved
so documents written by newer clients survive a round trip.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Tasks
# =============================================================================


class Project(_Document):
    id: int
    name: str
    color: str = "#808080"


class Task(_Document):
    id: int
    title: str = Field(..., min_length=1, max_length=500)
    completed: bool = False
    project_id: int | None = Field(None, alias="projectId")
    created_at: str = Field(default_factory=_now, alias="createdAt")


class TasksData(_Document):
    tasks: list[Task] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    task_id_counter: int = Field(1, alias="taskIdCounter")
    project_id_counter: int = Field(1, alias="projectIdCounter")
    subtask_id_counter: int = Field(1000, alias="subtaskIdCounter")


# =============================================================================
# Notes
# =============================================================================


class Folder(_Document):
    id: int
    name: str
    color: str = "#a8e6cf"


class Note(_Document):
    id: int
    title: str = Field(..., min_length=1, max_length=500)
    content: str = ""
    folder_id: int | None = Field(None, alias="folderId")
    created_at: str = Field(default_factory=_now, alias="createdAt")
    updated_at: str = Field(default_factory=_now, alias="updatedAt")


class NotesData(_Document):
    notes: list[Note] = Field(default_factory=list)
    folders: list[Folder] = Field(default_factory=list)
    note_id_counter: int = Field(1, alias="noteIdCounter")
    folder_id_counter: int = Field(1, alias="folderIdCounter")


# =============================================================================
# Scenario container shared by both modules
# =============================================================================

DataT = TypeVar("DataT", bound=_Document)


class Scenario(_Document, Generic[DataT]):
    id: int
    name: str
    icon: str = "🏠"
    description: str = ""
    created_at: str = Field(default_factory=_now, alias="createdAt")
    data: DataT


class ScenarioDocument(_Document, Generic[DataT]):
    scenarios: dict[str, Scenario[DataT]] = Field(default_factory=dict)
    current_scenario: int = Field(1, alias="currentScenario")
    scenario_id_counter: int = Field(2, alias="scenarioIdCounter")

    def current(self) -> Scenario[DataT]:
        """The selected scenario, falling back to the first one."""
        scenario = self.scenarios.get(str(self.current_scenario))
        if scenario is None:
            if not self.scenarios:
                raise LookupError("Document has no scenarios")
            scenario = next(iter(self.scenarios.values()))
            self.current_scenario = scenario.id
        return scenario


TasksDocument = ScenarioDocument[TasksData]
NotesDocument = ScenarioDocument[NotesData]
