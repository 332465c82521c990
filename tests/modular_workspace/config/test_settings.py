"""
Tests for WorkspaceSettings and RetryPolicy.

Covers:
- Defaults matching the production cadence
- Loading from environment variables
- Validation errors raised as ConfigurationError
- Retry backoff growth, ceiling and attempt limits
"""

import pytest

from modular_workspace.config import RetryPolicy, WorkspaceSettings
from modular_workspace.lib.exceptions import ConfigurationError

# =============================================================================
# WorkspaceSettings
# =============================================================================


def test_defaults():
    """Test the default cadence and namespace."""
    settings = WorkspaceSettings(rest_url="https://example.test/api/")
    assert settings.debounce_seconds == 5.0
    assert settings.sync_interval_seconds == 120.0
    assert settings.stale_after_seconds == 300.0
    assert settings.storage_namespace == "frameworkModular"
    assert settings.storage_url == "memory://"
    assert settings.retry == RetryPolicy()


def test_from_env_reads_all_values():
    """Test loading every supported variable."""
    env = {
        "WORKSPACE_REST_URL": "https://example.test/wp-json/fm/v1/",
        "WORKSPACE_NONCE": "abc123",
        "WORKSPACE_STORAGE_NAMESPACE": "ws",
        "WORKSPACE_STORAGE_URL": "file:///tmp/ws.json",
        "WORKSPACE_DEBOUNCE_SECONDS": "1.5",
        "WORKSPACE_SYNC_INTERVAL_SECONDS": "30",
        "WORKSPACE_STALE_AFTER_SECONDS": "60",
        "WORKSPACE_REQUEST_TIMEOUT_SECONDS": "3",
        "WORKSPACE_RETRY_MAX_ATTEMPTS": "4",
        "WORKSPACE_RETRY_BACKOFF_SECONDS": "2",
        "WORKSPACE_RETRY_BACKOFF_MAX_SECONDS": "20",
    }
    settings = WorkspaceSettings.from_env(env)

    assert settings.rest_url == "https://example.test/wp-json/fm/v1/"
    assert settings.nonce == "abc123"
    assert settings.storage_namespace == "ws"
    assert settings.storage_url == "file:///tmp/ws.json"
    assert settings.debounce_seconds == 1.5
    assert settings.sync_interval_seconds == 30.0
    assert settings.stale_after_seconds == 60.0
    assert settings.request_timeout_seconds == 3.0
    assert settings.retry == RetryPolicy(
        max_attempts=4, backoff_base_seconds=2.0, backoff_max_seconds=20.0
    )


def test_from_env_minimal():
    """Test that only the REST URL is required."""
    settings = WorkspaceSettings.from_env({"WORKSPACE_REST_URL": "https://x.test/"})
    assert settings.nonce == ""
    assert settings.retry.max_attempts is None


def test_from_env_missing_url():
    """Test that a missing REST URL is a configuration error."""
    with pytest.raises(ConfigurationError, match="WORKSPACE_REST_URL"):
        WorkspaceSettings.from_env({})


def test_from_env_rejects_non_numeric():
    """Test that malformed numbers name the offending variable."""
    env = {"WORKSPACE_REST_URL": "https://x.test/", "WORKSPACE_DEBOUNCE_SECONDS": "soon"}
    with pytest.raises(ConfigurationError, match="WORKSPACE_DEBOUNCE_SECONDS"):
        WorkspaceSettings.from_env(env)


def test_from_env_rejects_non_integer_attempts():
    env = {"WORKSPACE_REST_URL": "https://x.test/", "WORKSPACE_RETRY_MAX_ATTEMPTS": "2.5"}
    with pytest.raises(ConfigurationError, match="WORKSPACE_RETRY_MAX_ATTEMPTS"):
        WorkspaceSettings.from_env(env)


def test_rejects_non_positive_intervals():
    """Test that zero or negative timings are rejected."""
    with pytest.raises(ConfigurationError, match="debounce_seconds"):
        WorkspaceSettings(rest_url="https://x.test/", debounce_seconds=0)
    with pytest.raises(ConfigurationError, match="sync_interval_seconds"):
        WorkspaceSettings(rest_url="https://x.test/", sync_interval_seconds=-1)


def test_settings_are_frozen():
    settings = WorkspaceSettings(rest_url="https://x.test/")
    with pytest.raises(AttributeError):
        settings.nonce = "other"  # type: ignore[misc]


# =============================================================================
# RetryPolicy
# =============================================================================


def test_default_policy_never_backs_off():
    """Test that the default policy retries on every trigger, forever."""
    policy = RetryPolicy()
    assert policy.backoff_for(1) == 0.0
    assert policy.backoff_for(50) == 0.0
    assert policy.exhausted(1000) is False


def test_backoff_doubles_and_caps():
    """Test exponential growth up to the ceiling."""
    policy = RetryPolicy(backoff_base_seconds=2, backoff_max_seconds=10)
    assert policy.backoff_for(0) == 0.0
    assert policy.backoff_for(1) == 2
    assert policy.backoff_for(2) == 4
    assert policy.backoff_for(3) == 8
    assert policy.backoff_for(4) == 10
    assert policy.backoff_for(10) == 10


def test_exhausted_after_max_attempts():
    policy = RetryPolicy(max_attempts=3)
    assert policy.exhausted(2) is False
    assert policy.exhausted(3) is True


def test_policy_validation():
    with pytest.raises(ConfigurationError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ConfigurationError):
        RetryPolicy(backoff_base_seconds=-1)
