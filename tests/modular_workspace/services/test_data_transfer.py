"""
Tests for export/import payloads.

Covers:
- Complete-system and single-module export layouts
- Import validation of both shapes
- Rejection of malformed payloads before anything is applied
"""

import json
from datetime import datetime, timezone

import pytest

from modular_workspace.lib.exceptions import ImportFormatError
from modular_workspace.services.data_transfer import (
    DEFAULT_GLOBAL_CONFIG,
    FRAMEWORK_VERSION,
    CompleteExport,
    ModuleExport,
    build_complete_export,
    build_module_export,
    export_filename,
    parse_import,
)

# =============================================================================
# Export
# =============================================================================


def test_complete_export_layout():
    export = build_complete_export({"tasks": {"a": 1}}, current_module="tasks")

    assert export["exportType"] == "complete-system"
    assert export["frameworkVersion"] == FRAMEWORK_VERSION
    assert export["source"] == "wordpress"
    assert export["framework"] == {
        "currentModule": "tasks",
        "globalConfig": DEFAULT_GLOBAL_CONFIG,
    }
    assert export["modules"] == {"tasks": {"a": 1}}
    datetime.fromisoformat(export["exportDate"])


def test_module_export_layout():
    export = build_module_export("notes", "Notes", {"b": 2})
    assert export["module"] == "notes"
    assert export["moduleName"] == "Notes"
    assert export["data"] == {"b": 2}


def test_export_filename():
    now = datetime(2026, 10, 17, tzinfo=timezone.utc)
    assert export_filename("modular-workspace", now) == "modular-workspace-backup-2026-10-17.json"


# =============================================================================
# Import
# =============================================================================


def test_parse_complete_export_round_trip():
    """Test that our own export is accepted as an import."""
    export = build_complete_export(
        {"tasks": {"a": 1}, "notes": []}, current_module=None, global_config={"theme": "dark"}
    )
    request = parse_import(json.dumps(export))

    assert isinstance(request, CompleteExport)
    assert request.modules == {"tasks": {"a": 1}, "notes": []}
    assert request.framework.global_config == {"theme": "dark"}
    assert request.framework.current_module is None


def test_parse_module_export_from_bytes():
    payload = json.dumps(build_module_export("notes", "Notes", {"b": 2})).encode()
    request = parse_import(payload)
    assert isinstance(request, ModuleExport)
    assert request.module == "notes"
    assert request.module_name == "Notes"


def test_parse_accepts_mapping():
    request = parse_import({"module": "tasks", "data": {}})
    assert isinstance(request, ModuleExport)
    assert request.module_name is None


@pytest.mark.parametrize(
    "payload, message",
    [
        ("{not json", "not valid JSON"),
        ("[1, 2]", "expected a JSON object"),
        ('{"hello": "world"}', "Unrecognized file format"),
        ('{"module": "tasks", "data": null}', "Unrecognized file format"),
        ('{"exportType": "complete-system"}', "frameworkVersion"),
        (
            '{"exportType": "complete-system", "frameworkVersion": "4.0.0", "modules": []}',
            "modules",
        ),
    ],
)
def test_parse_rejects_malformed(payload, message):
    with pytest.raises(ImportFormatError, match=message):
        parse_import(payload)
