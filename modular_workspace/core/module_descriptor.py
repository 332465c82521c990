"""Module descriptors: display metadata plus load/unload operations."""

from __future__ import annotations

from dataclasses import dataclass, field

from modular_workspace.lib.exceptions import InvalidModuleError

from .module_protocol import ModuleInstance, ModuleLoader, ModuleUnloader


def _noop_unload() -> None:
    return None


@dataclass
class ModuleDescriptor:
    """A registered module.

    Attributes:
        id: Unique module identifier (also the document key)
        name: Display name
        load: Async operation producing the live instance
        icon: Display icon
        description: One-line description
        version: Module version string
        unload: Idempotent teardown hook run after the instance is destroyed
        instance: Live instance while the module is active, else None
    """

    id: str
    name: str
    load: ModuleLoader | None
    icon: str = "📋"
    description: str = ""
    version: str = "1.0.0"
    unload: ModuleUnloader = _noop_unload
    instance: ModuleInstance | None = field(default=None, compare=False, repr=False)

    def validate(self) -> None:
        """Raise InvalidModuleError if identifier, name or load is missing."""
        if not self.id or not self.name or self.load is None:
            raise InvalidModuleError(
                "Invalid module configuration: id, name and load are required"
            )

    @property
    def is_loaded(self) -> bool:
        return self.instance is not None
