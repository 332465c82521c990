"""
Workspace settings.

The hosting environment injects the gateway base URL and the per-session
nonce; everything else has defaults matching the production cadence
(5 s debounce, 2 min periodic sweep, 5 min staleness).

Environment variables:
    WORKSPACE_REST_URL                   Gateway base URL (required by from_env)
    WORKSPACE_NONCE                      Per-session nonce sent as X-WP-Nonce
    WORKSPACE_STORAGE_NAMESPACE          Durable storage key prefix
    WORKSPACE_STORAGE_URL                memory://, file:///path.json or redis://...
    WORKSPACE_DEBOUNCE_SECONDS           Write debounce delay
    WORKSPACE_SYNC_INTERVAL_SECONDS      Periodic sweep interval
    WORKSPACE_STALE_AFTER_SECONDS        Background refresh threshold
    WORKSPACE_REQUEST_TIMEOUT_SECONDS    Gateway request timeout
    WORKSPACE_RETRY_MAX_ATTEMPTS         Unset means retry forever
    WORKSPACE_RETRY_BACKOFF_SECONDS      Base backoff after a failed push
    WORKSPACE_RETRY_BACKOFF_MAX_SECONDS  Backoff ceiling
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from modular_workspace.lib.exceptions import ConfigurationError

DEFAULT_NAMESPACE = "frameworkModular"
DEFAULT_DEBOUNCE_SECONDS = 5.0
DEFAULT_SYNC_INTERVAL_SECONDS = 120.0
DEFAULT_STALE_AFTER_SECONDS = 300.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy for pushes that failed.

    The defaults reproduce a fixed-cadence retry with no limit: every
    trigger (debounce, periodic sweep, reconnect) retries every pending
    module. A positive backoff makes automatic sweeps skip a module until
    ``backoff_base_seconds * 2 ** (failures - 1)`` (capped) has elapsed
    since its last failure; ``max_attempts`` parks a module after that many
    consecutive failures until a manual sync or a reconnect.
    """

    max_attempts: int | None = None
    backoff_base_seconds: float = 0.0
    backoff_max_seconds: float = 600.0

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if self.backoff_base_seconds < 0 or self.backoff_max_seconds < 0:
            raise ConfigurationError("backoff values must not be negative")

    def backoff_for(self, failures: int) -> float:
        """Seconds to wait after ``failures`` consecutive failed pushes."""
        if failures <= 0 or self.backoff_base_seconds == 0:
            return 0.0
        delay = self.backoff_base_seconds * (2 ** (failures - 1))
        return min(delay, self.backoff_max_seconds)

    def exhausted(self, failures: int) -> bool:
        """True once a module has used up its automatic attempts."""
        return self.max_attempts is not None and failures >= self.max_attempts


@dataclass(frozen=True)
class WorkspaceSettings:
    """Runtime configuration for a workspace instance."""

    rest_url: str
    nonce: str = ""
    storage_namespace: str = DEFAULT_NAMESPACE
    storage_url: str = "memory://"
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    sync_interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS
    stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        if not self.rest_url:
            raise ConfigurationError("rest_url is required")
        for name in (
            "debounce_seconds",
            "sync_interval_seconds",
            "stale_after_seconds",
            "request_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> WorkspaceSettings:
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If WORKSPACE_REST_URL is missing or a value is invalid
        """
        env = os.environ if environ is None else environ

        rest_url = env.get("WORKSPACE_REST_URL", "")
        if not rest_url:
            raise ConfigurationError("WORKSPACE_REST_URL is not set")

        max_attempts_raw = env.get("WORKSPACE_RETRY_MAX_ATTEMPTS")
        retry = RetryPolicy(
            max_attempts=_int(env, "WORKSPACE_RETRY_MAX_ATTEMPTS") if max_attempts_raw else None,
            backoff_base_seconds=_float(env, "WORKSPACE_RETRY_BACKOFF_SECONDS", 0.0),
            backoff_max_seconds=_float(env, "WORKSPACE_RETRY_BACKOFF_MAX_SECONDS", 600.0),
        )

        return cls(
            rest_url=rest_url,
            nonce=env.get("WORKSPACE_NONCE", ""),
            storage_namespace=env.get("WORKSPACE_STORAGE_NAMESPACE", DEFAULT_NAMESPACE),
            storage_url=env.get("WORKSPACE_STORAGE_URL", "memory://"),
            debounce_seconds=_float(env, "WORKSPACE_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS),
            sync_interval_seconds=_float(
                env, "WORKSPACE_SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS
            ),
            stale_after_seconds=_float(
                env, "WORKSPACE_STALE_AFTER_SECONDS", DEFAULT_STALE_AFTER_SECONDS
            ),
            request_timeout_seconds=_float(
                env, "WORKSPACE_REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS
            ),
            retry=retry,
        )


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _int(env: Mapping[str, str], name: str) -> int:
    raw = env.get(name, "")
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
