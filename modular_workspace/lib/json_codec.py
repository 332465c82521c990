"""JSON serialization for cached module documents."""

import dataclasses
import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

from modular_workspace.lib.exceptions import SerializationError


class WorkspaceJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for module documents that handles:
    - pydantic models -> dict via model_dump(mode="json", by_alias=True)
    - dataclasses -> dict via dataclasses.asdict()
    - datetime/date -> .isoformat()
    - Enum -> .value
    - set -> list

    Anything else is rejected so a document that cannot round-trip
    never reaches the cache or the gateway.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json", by_alias=True)

        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)

        if isinstance(obj, (datetime, date)):
            return obj.isoformat()

        if isinstance(obj, Enum):
            return obj.value

        if isinstance(obj, set):
            return list(obj)

        return super().default(obj)


def dumps(document: Any) -> str:
    """Serialize a document to its compact canonical string.

    Two documents are considered identical by the sync engine exactly
    when this function returns the same string for both.

    Raises:
        SerializationError: If the document is not JSON-serializable
    """
    try:
        return json.dumps(
            document,
            cls=WorkspaceJSONEncoder,
            ensure_ascii=False,
            separators=(",", ":"),
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Document is not JSON-serializable: {e}") from e


def loads(raw: str) -> Any:
    """Parse a serialized document.

    Raises:
        SerializationError: If the string is not valid JSON
    """
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise SerializationError(f"Invalid JSON document: {e}") from e


def normalize(document: Any) -> Any:
    """Return the plain JSON form of a document (models and dataclasses unwrapped)."""
    return loads(dumps(document))
