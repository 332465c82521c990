"""
Custom exception hierarchy for the Modular Workspace.

Provides structured exception types for every subsystem:
- Configuration, module lifecycle, remote gateway, durable storage
- Serialization and data import

All exceptions inherit from WorkspaceException, enabling a catch-all
for workspace errors while keeping the ability to catch specific types.
"""

from __future__ import annotations


class WorkspaceException(Exception):
    """Base exception for all Modular Workspace errors."""


class ConfigurationError(WorkspaceException):
    """Missing environment variables, invalid config values, or startup failures."""


class ModuleError(WorkspaceException):
    """Module lifecycle errors (registration, activation, loading)."""


class InvalidModuleError(ModuleError, ValueError):
    """A module descriptor is missing its identifier, name, or load operation."""


class UnknownModuleError(ModuleError, KeyError):
    """An operation referenced a module identifier that was never registered."""

    def __init__(self, module_id: str) -> None:
        self.module_id = module_id
        super().__init__(f"Module '{module_id}' is not registered")

    def __str__(self) -> str:
        return f"Module '{self.module_id}' is not registered"


class ModuleLoadError(ModuleError):
    """A module's load operation failed or produced no instance."""


class GatewayError(WorkspaceException):
    """Remote data gateway failures."""


class GatewayUnavailableError(GatewayError):
    """The gateway could not be reached (connection refused, timeout, DNS)."""


class GatewayResponseError(GatewayError):
    """The gateway answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(message or f"HTTP error: {status_code}")


class StorageError(WorkspaceException):
    """Durable local storage read/write failures."""


class SerializationError(WorkspaceException):
    """JSON encode/decode failures for cached documents."""


class ImportFormatError(WorkspaceException, ValueError):
    """An import payload is malformed or of an unrecognized shape."""
