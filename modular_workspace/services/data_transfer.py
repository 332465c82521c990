"""
Export and import payloads.

Two export shapes exist:

- complete-system: every registered module's document plus framework
  metadata, identified by ``exportType == "complete-system"`` and a
  ``frameworkVersion``.
- single module: ``{"module", "moduleName", "data", ...}``.

Import payloads are fully validated before anything is mutated, so a
malformed file never leaves the workspace half-imported.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from modular_workspace.lib.exceptions import ImportFormatError

FRAMEWORK_VERSION = "4.0.0"
EXPORT_SOURCE = "wordpress"
COMPLETE_EXPORT_TYPE = "complete-system"

DEFAULT_GLOBAL_CONFIG: dict[str, Any] = {"theme": "light", "language": "en"}


class FrameworkSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    current_module: str | None = Field(None, alias="currentModule")
    global_config: dict[str, Any] = Field(
        default_factory=lambda: dict(DEFAULT_GLOBAL_CONFIG), alias="globalConfig"
    )


class CompleteExport(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    export_type: Literal["complete-system"] = Field(alias="exportType")
    framework_version: str = Field(..., min_length=1, alias="frameworkVersion")
    framework: FrameworkSection = Field(default_factory=FrameworkSection)
    modules: dict[str, Any] = Field(default_factory=dict)


class ModuleExport(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    module: str = Field(..., min_length=1)
    module_name: str | None = Field(None, alias="moduleName")
    data: Any


def _export_date() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_complete_export(
    modules: Mapping[str, Any],
    current_module: str | None,
    global_config: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "framework": {
            "currentModule": current_module,
            "globalConfig": dict(global_config or DEFAULT_GLOBAL_CONFIG),
        },
        "modules": dict(modules),
        "exportDate": _export_date(),
        "frameworkVersion": FRAMEWORK_VERSION,
        "exportType": COMPLETE_EXPORT_TYPE,
        "source": EXPORT_SOURCE,
    }


def build_module_export(module_id: str, module_name: str, data: Any) -> dict[str, Any]:
    return {
        "module": module_id,
        "moduleName": module_name,
        "data": data,
        "exportDate": _export_date(),
        "source": EXPORT_SOURCE,
    }


def export_filename(prefix: str, now: datetime | None = None) -> str:
    """Suggested download name, e.g. ``tasks-backup-2026-10-17.json``."""
    day = (now or datetime.now(timezone.utc)).date().isoformat()
    return f"{prefix}-backup-{day}.json"


def parse_import(payload: str | bytes | Mapping[str, Any]) -> CompleteExport | ModuleExport:
    """Validate an import payload.

    Raises:
        ImportFormatError: If the payload is not JSON, not an object, or
            matches neither export shape
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ImportFormatError(f"Import file is not valid JSON: {e.msg}") from e

    if not isinstance(payload, Mapping):
        raise ImportFormatError("Invalid data structure: expected a JSON object")

    if payload.get("exportType") == COMPLETE_EXPORT_TYPE:
        try:
            return CompleteExport.model_validate(payload)
        except ValidationError as e:
            raise ImportFormatError(f"Invalid complete-system export: {_summarize(e)}") from e

    if payload.get("module") and "data" in payload and payload.get("data") is not None:
        try:
            return ModuleExport.model_validate(payload)
        except ValidationError as e:
            raise ImportFormatError(f"Invalid module export: {_summarize(e)}") from e

    raise ImportFormatError(
        "Unrecognized file format. Expected a complete-system export "
        "or a single-module export."
    )


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)
