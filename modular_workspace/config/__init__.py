"""Configuration for the Modular Workspace."""

from modular_workspace.config.settings import RetryPolicy, WorkspaceSettings

__all__ = ["RetryPolicy", "WorkspaceSettings"]
