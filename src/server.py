"""
Task Roles MCP Server entry point.

Startup sequence:
1. Read VAULT_ROOT and the other settings from environment
2. Load role/assignee settings (defaults when no settings file)
3. Initialize TaskIndex (snapshot load, or full vault scan)
4. Start VaultWatcher polling task
5. Register all MCP tools
6. Start REST API server on the same event loop (if API_ENABLED)
7. Run MCP server (stdio transport) until stdin closes
8. Stop the API and watcher, flush the pending index snapshot
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Set

from mcp.server.fastmcp import FastMCP

from cache.task_index import DEFAULT_SAVE_DELAY, TaskIndex
from models.settings import PluginSettings
from store.assignees import AssigneeDirectory
from store.vault_store import VaultStore
from tools import register_role_tools, register_task_tools
from watcher.vault_watcher import VaultWatcher

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)


def _parse_exclude_dirs(raw: str) -> Set[str]:
    """Parse a comma-separated list of directory names to exclude."""
    return {part.strip() for part in raw.split(",") if part.strip()}


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


def _build_api_server(index, assignees, port: int):
    import uvicorn

    from api.app import create_app

    app = create_app(index, assignees)
    config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="warning")
    return uvicorn.Server(config)


async def _serve(
    mcp: FastMCP,
    index: TaskIndex,
    watcher: VaultWatcher,
    api_server: Optional[object],
) -> None:
    log.info("Loading task index...")
    await index.initialize()
    log.info("Task index ready: %d tasks", index.status()["tasks_indexed"])

    await watcher.start()

    api_task = None
    if api_server is not None:
        log.info("Starting REST API on port %d", api_server.config.port)
        api_task = asyncio.create_task(api_server.serve(), name="rest-api")

    log.info("Starting task-roles-mcp server")
    try:
        await mcp.run_stdio_async()
    finally:
        if api_task is not None:
            api_server.should_exit = True
            await api_task
        await watcher.stop()
        await index.destroy()


def main() -> None:
    vault_root_env = os.environ.get("VAULT_ROOT", "")
    if not vault_root_env:
        log.error("VAULT_ROOT environment variable is not set")
        sys.exit(1)

    vault_root = Path(vault_root_env)
    if not vault_root.is_dir():
        log.error("VAULT_ROOT does not exist or is not a directory: %s", vault_root)
        sys.exit(1)

    exclude_raw = os.environ.get("EXCLUDE_DIRS", ".git,.obsidian,node_modules,.trash")
    exclude_dirs = _parse_exclude_dirs(exclude_raw)
    settings_file = Path(
        os.environ.get("SETTINGS_FILE", str(vault_root / ".obsidian" / "task-roles.json"))
    )
    try:
        poll_interval = float(os.environ.get("POLL_INTERVAL", "5.0"))
        save_delay = float(os.environ.get("SAVE_DEBOUNCE", str(DEFAULT_SAVE_DELAY)))
        api_port = int(os.environ.get("API_PORT", "9400"))
    except ValueError as e:
        log.error("Invalid numeric setting: %s", e)
        sys.exit(1)

    log.info("Vault root: %s", vault_root)
    log.info("Excluded dirs: %s", exclude_dirs)

    settings = PluginSettings.load(settings_file)
    log.info("Roles: %s", ", ".join(r.id for r in settings.visible_roles()))

    store = VaultStore(vault_root, exclude_dirs)
    index = TaskIndex(store, settings, save_delay=save_delay)
    assignees = AssigneeDirectory(store, settings)
    watcher = VaultWatcher(index, store, poll_interval=poll_interval)

    # Create MCP server and register tools
    mcp = FastMCP("task-roles-mcp")
    register_task_tools(mcp, index)
    register_role_tools(mcp, index.codec, assignees)

    api_server = None
    if _env_flag("API_ENABLED", "true"):
        api_server = _build_api_server(index, assignees, api_port)

    asyncio.run(_serve(mcp, index, watcher, api_server))


if __name__ == "__main__":
    main()
