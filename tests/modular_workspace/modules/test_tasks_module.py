"""
Tests for the Tasks module.

Covers:
- Loading from the default document and from a stored document
- Add / toggle / delete, each written back through the capability
- Rendering of the three regions, with user text escaped
- Invalid stored data reported as a load failure
- Teardown clearing the regions
- Rendering refused before the module is started
"""

import pytest

from modular_workspace.core import ModuleContext, ModuleRegistry
from modular_workspace.lib.exceptions import ModuleLoadError
from modular_workspace.modules import TasksModule, load_tasks_module
from modular_workspace.services.defaults import default_document


@pytest.fixture
def api(engine, ui):
    registry = ModuleRegistry(ui)
    context = ModuleContext(engine=engine, registry=registry, ui=ui)
    registry.bind(context)
    return context


# =============================================================================
# Loading
# =============================================================================


@pytest.mark.asyncio
async def test_load_renders_default_document(api, ui):
    module = await load_tasks_module(api)

    assert isinstance(module, TasksModule)
    assert module.scenario.name == "Personal"
    assert [p.name for p in module.data.projects] == ["Work", "Personal", "Study"]
    assert "No tasks yet" in ui.content
    assert "0 open" in ui.actions
    assert 'data-scenario="1"' in ui.navigation


@pytest.mark.asyncio
async def test_render_before_start_raises(api):
    """Test that an unstarted module refuses to render its navigation."""
    module = TasksModule(api)
    with pytest.raises(RuntimeError, match="tasks module has not been started"):
        module.render_navigation()
    with pytest.raises(RuntimeError):
        module.scenario


@pytest.mark.asyncio
async def test_load_stored_document(api, gateway, ui):
    document = default_document("tasks")
    document["scenarios"]["1"]["data"]["tasks"] = [
        {"id": 7, "title": "Ship it", "completed": False, "projectId": 1}
    ]
    gateway.documents["tasks"] = document

    module = await load_tasks_module(api)

    assert module.data.tasks[0].title == "Ship it"
    assert "Ship it" in ui.content
    assert "Work" in ui.content


@pytest.mark.asyncio
async def test_load_empty_document_falls_back_to_default(api, gateway):
    gateway.documents["tasks"] = {}
    module = await load_tasks_module(api)
    assert module.scenario.id == 1


@pytest.mark.asyncio
async def test_load_invalid_document(api, gateway):
    gateway.documents["tasks"] = {"scenarios": "nope"}
    with pytest.raises(ModuleLoadError):
        await load_tasks_module(api)


# =============================================================================
# Mutations
# =============================================================================


@pytest.mark.asyncio
async def test_add_task_writes_document(api, engine, ui):
    module = await load_tasks_module(api)

    task = await module.add_task("  Write tests  ", project_id=2)

    assert task.id == 1
    assert task.title == "Write tests"
    stored = engine.cache.get("tasks")["scenarios"]["1"]["data"]
    assert stored["tasks"][0]["title"] == "Write tests"
    assert stored["tasks"][0]["projectId"] == 2
    assert stored["taskIdCounter"] == 2
    assert "tasks" in engine.pending
    assert "1 open" in ui.actions
    engine.cancel_scheduled_flush()


@pytest.mark.asyncio
async def test_add_task_rejects_empty_title(api, engine, ui):
    module = await load_tasks_module(api)
    assert await module.add_task("   ") is None
    assert ui.messages[-1] == "Task title cannot be empty"
    assert engine.pending_count == 0


@pytest.mark.asyncio
async def test_add_task_unknown_project_is_dropped(api, engine):
    module = await load_tasks_module(api)
    task = await module.add_task("Orphan", project_id=99)
    assert task.project_id is None
    engine.cancel_scheduled_flush()


@pytest.mark.asyncio
async def test_toggle_and_delete(api, engine, ui):
    module = await load_tasks_module(api)
    task = await module.add_task("Toggle me")

    assert await module.toggle_task(task.id) is True
    assert module.data.tasks[0].completed is True
    assert "completed" in ui.content

    assert await module.delete_task(task.id) is True
    assert await module.delete_task(task.id) is False
    assert await module.toggle_task(task.id) is False
    assert engine.cache.get("tasks")["scenarios"]["1"]["data"]["tasks"] == []
    engine.cancel_scheduled_flush()


@pytest.mark.asyncio
async def test_user_text_is_escaped(api, engine, ui):
    module = await load_tasks_module(api)
    await module.add_task("<img src=x onerror=alert(1)>")
    assert "<img" not in ui.content
    assert "&lt;img" in ui.content
    engine.cancel_scheduled_flush()


@pytest.mark.asyncio
async def test_switch_scenario(api, engine, ui):
    module = await load_tasks_module(api)
    assert await module.switch_scenario(5) is False
    assert ui.messages[-1] == "Scenario 5 not found"
    assert await module.switch_scenario(1) is True
    engine.cancel_scheduled_flush()


# =============================================================================
# Teardown
# =============================================================================


@pytest.mark.asyncio
async def test_destroy_clears_regions(api, ui):
    module = await load_tasks_module(api)
    module.destroy()

    assert ui.navigation == ""
    assert ui.actions == ""
    assert ui.content == ""

    module.render()
    assert ui.content == ""
