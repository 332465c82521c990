"""
Built-in modules for the Modular Workspace.

builtin_modules() returns fresh ModuleDescriptors ready to register.
"""

from __future__ import annotations

from modular_workspace.core.module_descriptor import ModuleDescriptor

from .notes import NotesModule, load_notes_module
from .tasks import TasksModule, load_tasks_module


def builtin_modules() -> list[ModuleDescriptor]:
    """Fresh descriptors for the modules shipped with the workspace."""
    return [
        ModuleDescriptor(
            id="tasks",
            name="Tasks",
            icon="📋",
            description="Task and project management",
            version="4.0.0",
            load=load_tasks_module,
        ),
        ModuleDescriptor(
            id="notes",
            name="Notes",
            icon="📝",
            description="Notes and folders",
            version="1.0.0",
            load=load_notes_module,
        ),
    ]


__all__ = [
    "TasksModule",
    "NotesModule",
    "load_tasks_module",
    "load_notes_module",
    "builtin_modules",
]
