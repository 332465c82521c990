"""
Modular Workspace -- Headless Entry Point.

Builds a Workspace from environment variables, runs it with an in-memory
UI surface until SIGINT/SIGTERM, then flushes pending writes and exits.

Usage:
    WORKSPACE_REST_URL=https://example.org/wp-json/fm/v1/ python main.py
    WORKSPACE_ACTIVATE=tasks python main.py     # activate a module at startup
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal

from modular_workspace import Workspace
from modular_workspace.config import WorkspaceSettings
from modular_workspace.core import HeadlessSurface
from modular_workspace.lib.logging import setup_logging

logger = logging.getLogger(__name__)


async def run() -> None:
    settings = WorkspaceSettings.from_env()
    workspace = Workspace(settings, HeadlessSurface())

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await workspace.start()
    try:
        module_id = os.getenv("WORKSPACE_ACTIVATE")
        if module_id:
            await workspace.activate(module_id)
        await stop.wait()
        logger.info("Shutdown requested, flushing pending writes")
        await workspace.on_before_unload()
    finally:
        await workspace.shutdown()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(run())
