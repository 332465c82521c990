"""
Tests for PendingWriteSet.

Covers:
- Add / confirm / membership
- Durable persistence and reload (including corrupted blobs)
- Failure bookkeeping and retry eligibility
"""

import json

import pytest

from modular_workspace.config import RetryPolicy
from modular_workspace.services.local_storage import MemoryStorage
from modular_workspace.services.pending import PendingWriteSet

KEY = "frameworkModular_pending"


@pytest.fixture
def pending(storage):
    return PendingWriteSet(storage, KEY)


# =============================================================================
# Membership
# =============================================================================


def test_add_and_confirm(pending):
    assert not pending
    pending.add("tasks")
    pending.add("notes")
    pending.add("tasks")

    assert len(pending) == 2
    assert "tasks" in pending
    assert pending.snapshot() == ["notes", "tasks"]

    pending.confirm("tasks")
    assert "tasks" not in pending
    assert list(pending) == ["notes"]


def test_confirm_unknown_is_noop(pending):
    pending.confirm("ghost")
    assert len(pending) == 0


# =============================================================================
# Persistence
# =============================================================================


def test_persist_and_load(storage, pending):
    pending.add("tasks")
    pending.persist()
    assert json.loads(storage.get_item(KEY)) == ["tasks"]

    reloaded = PendingWriteSet(storage, KEY)
    reloaded.load()
    assert reloaded.snapshot() == ["tasks"]


def test_persist_empty_removes_key(storage, pending):
    pending.add("tasks")
    pending.persist()
    pending.confirm("tasks")
    pending.persist()
    assert storage.get_item(KEY) is None


@pytest.mark.parametrize("blob", ["{oops", '{"tasks": true}', "42"])
def test_load_corrupted_is_empty(blob):
    storage = MemoryStorage({KEY: blob})
    pending = PendingWriteSet(storage, KEY)
    pending.load()
    assert len(pending) == 0


# =============================================================================
# Failure bookkeeping
# =============================================================================


def test_record_failure_counts(pending):
    pending.add("tasks")
    assert pending.record_failure("tasks", at=10.0) == 1
    assert pending.record_failure("tasks", at=11.0) == 2
    assert pending.failures("tasks") == 2

    pending.confirm("tasks")
    assert pending.failures("tasks") == 0


def test_is_due_with_default_policy(pending):
    """Test that the default policy retries immediately every time."""
    pending.add("tasks")
    pending.record_failure("tasks", at=100.0)
    assert pending.is_due("tasks", RetryPolicy(), now=100.0)


def test_is_due_respects_backoff(pending):
    policy = RetryPolicy(backoff_base_seconds=10)
    pending.add("tasks")
    pending.record_failure("tasks", at=100.0)

    assert not pending.is_due("tasks", policy, now=105.0)
    assert pending.is_due("tasks", policy, now=110.0)

    pending.record_failure("tasks", at=110.0)
    assert not pending.is_due("tasks", policy, now=125.0)
    assert pending.is_due("tasks", policy, now=130.0)


def test_is_due_parks_after_max_attempts(pending):
    policy = RetryPolicy(max_attempts=2)
    pending.add("tasks")
    pending.record_failure("tasks", at=1.0)
    assert pending.is_due("tasks", policy, now=2.0)
    pending.record_failure("tasks", at=2.0)
    assert not pending.is_due("tasks", policy, now=1000.0)

    pending.reset_failures()
    assert pending.is_due("tasks", policy, now=1000.0)
    assert "tasks" in pending
