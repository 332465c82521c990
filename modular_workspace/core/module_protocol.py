"""
Module Protocol for the Modular Workspace.

A module is anything a descriptor's load operation returns. The only
lifecycle hook the framework calls on it is an optional ``destroy``,
sync or async, invoked before another module takes over the shared
regions.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from .capability import WorkspaceAPI


@runtime_checkable
class Destroyable(Protocol):
    """A live module instance that releases its regions on teardown."""

    def destroy(self) -> Awaitable[None] | None:
        ...


ModuleInstance: TypeAlias = Any

# Receives the capability object, returns the live instance, may raise.
ModuleLoader: TypeAlias = Callable[["WorkspaceAPI"], Awaitable[ModuleInstance]]

# Best-effort, idempotent teardown hook; sync or async.
ModuleUnloader: TypeAlias = Callable[[], Awaitable[None] | None]
