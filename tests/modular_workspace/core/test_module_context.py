"""
Tests for ModuleContext, the capability object handed to modules.

Covers:
- Reads and writes routed through the sync engine
- Region hooks routed to the UI surface
- State accessors (current module, connectivity, pending count)
- Manual sync
"""

from unittest.mock import Mock

import pytest

from modular_workspace.core import ModuleContext, ModuleDescriptor, ModuleRegistry, WorkspaceAPI


@pytest.fixture
def context(engine, ui):
    registry = ModuleRegistry(ui)
    api = ModuleContext(engine=engine, registry=registry, ui=ui)
    registry.bind(api)
    return api


@pytest.mark.asyncio
async def test_context_satisfies_capability(context):
    api: WorkspaceAPI = context
    assert callable(api.read)
    assert callable(api.force_sync)


@pytest.mark.asyncio
async def test_read_and_write(context, engine):
    await context.write("tasks", {"v": 1})
    assert await context.read("tasks") == {"v": 1}
    assert context.pending_count() == 1
    engine.cancel_scheduled_flush()


@pytest.mark.asyncio
async def test_region_hooks_update_ui(context, ui):
    context.update_navigation("<nav/>")
    context.update_actions("<button/>")
    context.update_content("<p>hi</p>")
    context.update_title("Tasks")

    assert ui.navigation == "<nav/>"
    assert ui.actions == "<button/>"
    assert ui.content == "<p>hi</p>"
    assert ui.title == "Tasks"


@pytest.mark.asyncio
async def test_markup_is_not_escaped(context, ui):
    context.update_content("<b>&amp;</b>")
    assert ui.content == "<b>&amp;</b>"


@pytest.mark.asyncio
async def test_feedback_hooks(context, ui):
    context.show_loading()
    assert ui.loading == "Loading..."
    context.hide_loading()
    assert ui.loading is None
    context.show_message("Saved")
    assert ui.messages[-1] == "Saved"


@pytest.mark.asyncio
async def test_state_accessors(context, engine):
    assert context.current_module() is None
    assert context.is_online() is True
    engine.set_online(False)
    assert context.is_online() is False


@pytest.mark.asyncio
async def test_current_module_follows_registry(context):
    instance = Mock(spec=[])

    async def load(api):
        assert api is context
        return instance

    context.registry.register(ModuleDescriptor(id="tasks", name="Tasks", load=load))
    await context.registry.activate("tasks")
    assert context.current_module() == "tasks"


@pytest.mark.asyncio
async def test_force_sync_pushes_pending(context, engine, gateway):
    await context.write("tasks", {"v": 1})
    engine.cancel_scheduled_flush()

    assert await context.force_sync() == 1
    assert gateway.saved_ids() == ["tasks"]
    assert context.pending_count() == 0
