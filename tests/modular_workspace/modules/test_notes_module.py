"""
Tests for the Notes module.

Covers:
- Loading the default folders
- Add / update / delete notes through the capability
- Rendering with folder names
"""

import pytest

from modular_workspace.core import ModuleContext, ModuleRegistry
from modular_workspace.modules import NotesModule, load_notes_module


@pytest.fixture
def api(engine, ui):
    registry = ModuleRegistry(ui)
    context = ModuleContext(engine=engine, registry=registry, ui=ui)
    registry.bind(context)
    return context


@pytest.mark.asyncio
async def test_load_notes(api, ui):
    module = await load_notes_module(api)
    assert isinstance(module, NotesModule)
    assert [f.name for f in module.data.folders] == ["General", "Ideas", "Work"]
    assert "No notes yet" in ui.content
    assert 'data-action="add-note"' in ui.actions


@pytest.mark.asyncio
async def test_add_update_delete(api, engine, ui):
    module = await load_notes_module(api)

    note = await module.add_note("Idea", "Build a thing", folder_id=2)
    assert note.id == 1
    assert "Ideas" in ui.content

    assert await module.update_note(note.id, content="Build two things") is True
    stored = engine.cache.get("notes")["scenarios"]["1"]["data"]
    assert stored["notes"][0]["content"] == "Build two things"
    assert stored["notes"][0]["folderId"] == 2
    assert stored["noteIdCounter"] == 2

    assert await module.delete_note(note.id) is True
    assert await module.delete_note(note.id) is False
    assert await module.update_note(note.id, title="gone") is False
    assert engine.cache.get("notes")["scenarios"]["1"]["data"]["notes"] == []
    engine.cancel_scheduled_flush()


@pytest.mark.asyncio
async def test_update_ignores_blank_title(api, engine):
    module = await load_notes_module(api)
    note = await module.add_note("Keep me")
    await module.update_note(note.id, title="   ")
    assert module.data.notes[0].title == "Keep me"
    engine.cancel_scheduled_flush()


@pytest.mark.asyncio
async def test_add_note_rejects_empty_title(api, ui):
    module = await load_notes_module(api)
    assert await module.add_note("") is None
    assert ui.messages[-1] == "Note title cannot be empty"
