"""
Core module system for the Modular Workspace.

Exports:
    - WorkspaceAPI: Capability protocol modules depend on
    - ModuleContext: The WorkspaceAPI implementation injected into modules
    - ModuleDescriptor: Registered module metadata + load/unload
    - ModuleRegistry: Registration and serialized activation
    - UISurface, HeadlessSurface: Screen contract and an in-memory surface
"""

from .capability import WorkspaceAPI
from .module_context import ModuleContext
from .module_descriptor import ModuleDescriptor
from .module_protocol import Destroyable, ModuleInstance, ModuleLoader, ModuleUnloader
from .module_registry import ModuleRegistry
from .ui import DEFAULT_TITLE, WELCOME_MARKUP, HeadlessSurface, UISurface, error_markup

__all__ = [
    "WorkspaceAPI",
    "ModuleContext",
    "ModuleDescriptor",
    "ModuleRegistry",
    "Destroyable",
    "ModuleInstance",
    "ModuleLoader",
    "ModuleUnloader",
    "UISurface",
    "HeadlessSurface",
    "DEFAULT_TITLE",
    "WELCOME_MARKUP",
    "error_markup",
]
