"""
Tasks module.

Tasks grouped into projects, per scenario. Every mutation rewrites the
whole ``tasks`` document through the workspace capability.
"""

from __future__ import annotations

import html

from modular_workspace.core.capability import WorkspaceAPI

from .base import ScenarioModule
from .schemas import Task, TasksData, TasksDocument

MODULE_ID = "tasks"


class TasksModule(ScenarioModule[TasksData]):
    module_id = MODULE_ID
    document_type = TasksDocument

    @property
    def data(self) -> TasksData:
        return self.scenario.data

    async def add_task(self, title: str, project_id: int | None = None) -> Task | None:
        title = title.strip()
        if not title:
            self.api.show_message("Task title cannot be empty")
            return None
        data = self.data
        if project_id is not None and all(p.id != project_id for p in data.projects):
            project_id = None
        task = Task(id=data.task_id_counter, title=title, project_id=project_id)
        data.tasks.append(task)
        data.task_id_counter += 1
        await self.save()
        return task

    async def toggle_task(self, task_id: int) -> bool:
        for task in self.data.tasks:
            if task.id == task_id:
                task.completed = not task.completed
                await self.save()
                return True
        return False

    async def delete_task(self, task_id: int) -> bool:
        data = self.data
        remaining = [t for t in data.tasks if t.id != task_id]
        if len(remaining) == len(data.tasks):
            return False
        data.tasks = remaining
        await self.save()
        return True

    def render_actions(self) -> str:
        pending = sum(1 for t in self.data.tasks if not t.completed)
        return (
            '<div class="module-actions">'
            f'<span class="task-counter">{pending} open</span>'
            '<button class="btn btn-primary" data-action="add-task">New task</button>'
            "</div>"
        )

    def render_content(self) -> str:
        projects = {p.id: p for p in self.data.projects}
        if not self.data.tasks:
            return '<div class="empty-state">No tasks yet</div>'
        rows = []
        for task in self.data.tasks:
            project = projects.get(task.project_id) if task.project_id is not None else None
            badge = ""
            if project is not None:
                badge = (
                    f'<span class="project-badge" style="background:{html.escape(project.color)}">'
                    f"{html.escape(project.name)}</span>"
                )
            done = " completed" if task.completed else ""
            rows.append(
                f'<li class="task-item{done}" data-task="{task.id}">'
                f"{html.escape(task.title)}{badge}</li>"
            )
        return f'<ul class="task-list">{"".join(rows)}</ul>'


async def load_tasks_module(api: WorkspaceAPI) -> TasksModule:
    module = TasksModule(api)
    await module.start()
    return module
