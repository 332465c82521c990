"""
Default Data Provider.

Seed documents handed out when a module has neither a cached nor a
remote value. Every call builds a fresh document so callers may mutate
the result freely.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

AI_MODEL = "gpt-4.1-nano"
AI_MODEL_LABEL = "GPT-4.1 nano"


def _scenario(created_at: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "1": {
            "id": 1,
            "name": "Personal",
            "icon": "🏠",
            "description": "Default personal scenario",
            "createdAt": created_at,
            "data": data,
        }
    }


def _ai_config() -> dict[str, Any]:
    return {
        "apiKey": "",
        "model": AI_MODEL,
        "maxTokens": 1000,
        "temperature": 0.7,
        "historyLimit": 10,
    }


def _ai_stats(today: str) -> dict[str, Any]:
    return {
        "todayQueries": 0,
        "totalTokens": 0,
        "estimatedCost": 0,
        "usageHistory": [],
        "currentModel": AI_MODEL_LABEL,
        "lastResetDate": today,
    }


def _tasks(created_at: str) -> dict[str, Any]:
    return {
        "scenarios": _scenario(
            created_at,
            {
                "tasks": [],
                "projects": [
                    {"id": 1, "name": "Work", "color": "#db4035"},
                    {"id": 2, "name": "Personal", "color": "#ff9933"},
                    {"id": 3, "name": "Study", "color": "#299438"},
                ],
                "taskIdCounter": 1,
                "projectIdCounter": 4,
                "subtaskIdCounter": 1000,
            },
        ),
        "currentScenario": 1,
        "scenarioIdCounter": 2,
    }


def _notes(created_at: str) -> dict[str, Any]:
    return {
        "scenarios": _scenario(
            created_at,
            {
                "notes": [],
                "folders": [
                    {"id": 1, "name": "General", "color": "#a8e6cf"},
                    {"id": 2, "name": "Ideas", "color": "#ffd3a5"},
                    {"id": 3, "name": "Work", "color": "#fd9b9b"},
                ],
                "noteIdCounter": 1,
                "folderIdCounter": 4,
            },
        ),
        "currentScenario": 1,
        "scenarioIdCounter": 2,
    }


def _assistant() -> dict[str, Any]:
    return {
        "contexts": {
            "general": {
                "id": "general",
                "name": "General",
                "icon": "🤖",
                "description": "General assistant for any question",
                "systemPrompt": (
                    "You are a helpful and friendly assistant. Help the user "
                    "with any question clearly and concisely."
                ),
            },
            "tasks": {
                "id": "tasks",
                "name": "Tasks",
                "icon": "📋",
                "description": "Specialized in task management and productivity",
                "systemPrompt": (
                    "You are an assistant specialized in task management and "
                    "productivity. Help the user organize, plan and complete "
                    "their tasks efficiently."
                ),
            },
            "notes": {
                "id": "notes",
                "name": "Notes",
                "icon": "📝",
                "description": "Specialized in note organization and knowledge",
                "systemPrompt": (
                    "You are an assistant specialized in note organization and "
                    "knowledge management. Help the user structure, categorize "
                    "and find information."
                ),
            },
        },
        "currentContext": "general",
    }


def default_document(module_id: str, now: datetime | None = None) -> Any:
    """Return the seed document for a module identifier.

    Unknown identifiers get an empty dict. Message-history identifiers
    get an empty list.

    Args:
        module_id: The module (or module sub-document) identifier
        now: Clock override for deterministic timestamps

    Returns:
        A freshly built JSON-serializable document
    """
    now = now or datetime.now(timezone.utc)
    created_at = now.isoformat()
    today = now.date().isoformat()

    if module_id == "tasks":
        return _tasks(created_at)
    if module_id == "notes":
        return _notes(created_at)
    if module_id == "assistant":
        return _assistant()
    if module_id in ("assistant_aiConfig", "tasksModule_aiConfig"):
        return _ai_config()
    if module_id in ("assistant_aiStats", "tasksModule_aiStats"):
        return _ai_stats(today)
    if module_id in ("assistant_messages", "tasksModule_assistantMessages"):
        return []
    return {}
