"""
Lib package for the Modular Workspace.

Contains shared utilities:
- exceptions.py: Exception hierarchy
- logging.py: structlog + stdlib logging setup
- json_codec.py: Document serialization helpers
"""

from modular_workspace.lib.exceptions import (
    ConfigurationError,
    GatewayError,
    GatewayResponseError,
    GatewayUnavailableError,
    ImportFormatError,
    InvalidModuleError,
    ModuleError,
    ModuleLoadError,
    SerializationError,
    StorageError,
    UnknownModuleError,
    WorkspaceException,
)
from modular_workspace.lib.json_codec import WorkspaceJSONEncoder, dumps, loads

__all__ = [
    "WorkspaceException",
    "ConfigurationError",
    "ModuleError",
    "InvalidModuleError",
    "UnknownModuleError",
    "ModuleLoadError",
    "GatewayError",
    "GatewayUnavailableError",
    "GatewayResponseError",
    "StorageError",
    "SerializationError",
    "ImportFormatError",
    "WorkspaceJSONEncoder",
    "dumps",
    "loads",
]
