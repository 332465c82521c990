"""
Modular Workspace.

A host for pluggable workspace modules with offline-first document sync.
"""

from modular_workspace.workspace import Workspace

__version__ = "4.0.0"

__all__ = ["Workspace", "__version__"]
