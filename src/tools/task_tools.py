"""
Task tool handlers.

Core logic lives in handle_* functions (return dicts).
MCP wrappers in register_task_tools() serialize to JSON strings.
"""

import json
import logging
from typing import Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from models.role import RoleAssignment
from models.task import TaskStatus

log = logging.getLogger(__name__)

_STATUS_VALUES = [s.value for s in TaskStatus]


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_task_list(
    index,
    *,
    status: Optional[str] = None,
    role: Optional[str] = None,
    assignee: Optional[str] = None,
    tag: Optional[str] = None,
    priority: Optional[str] = None,
    text: Optional[str] = None,
    file_path: Optional[str] = None,
    limit: int = 200,
) -> List[dict]:
    tasks = index.query(
        status=status,
        role=role,
        assignee=assignee,
        tag=tag,
        priority=priority,
        text=text,
        file_path=file_path,
        limit=limit,
    )
    return [t.to_dict() for t in tasks]


def handle_task_get(index, *, task_id: str) -> dict:
    record = index.get_task(task_id)
    if record is None:
        return {"error": f"Task '{task_id}' not found"}
    return record.to_dict()


async def handle_task_set_status(index, *, task_id: str, status: str) -> dict:
    if status not in _STATUS_VALUES:
        return {"error": f"Invalid status '{status}'; expected one of {', '.join(_STATUS_VALUES)}"}
    if index.get_task(task_id) is None:
        return {"error": f"Task '{task_id}' not found"}

    record = await index.update_status(task_id, status)
    if record is None:
        return {"error": f"Could not update status of task '{task_id}'"}
    return record.to_dict()


async def handle_task_assign_roles(
    index,
    *,
    task_id: str,
    roles: Dict[str, List[str]],
    merge: bool = False,
) -> dict:
    """
    Rewrite the role blocks of one task line.

    roles maps role id → assignee tokens. An empty list clears that role.
    With merge=False every role not named is cleared too; with merge=True
    the task's other existing assignments are kept.
    """
    record = index.get_task(task_id)
    if record is None:
        return {"error": f"Task '{task_id}' not found"}

    settings = index.settings
    for role_id, tokens in roles.items():
        if settings.find_role(role_id) is None:
            return {"error": f"Unknown role '{role_id}'"}
        invalid = [t for t in tokens if not settings.is_assignee_token(t)]
        if invalid:
            return {"error": f"Invalid assignee token(s): {', '.join(invalid)}"}

    combined: Dict[str, RoleAssignment] = {}
    if merge:
        for parsed in record.role_assignments:
            combined[parsed.role.id] = parsed.to_assignment()
    for role_id, tokens in roles.items():
        combined[role_id] = RoleAssignment(role_id, tokens)
    assignments = list(combined.values())

    path = record.file_path
    try:
        content = await index.store.read(path)
    except OSError as e:
        return {"error": f"Could not read '{path}': {e}"}

    lines = content.split("\n")
    if record.line_number >= len(lines) or lines[record.line_number] != record.raw_line:
        return {"error": f"Task '{task_id}' is out of date; refresh the index"}

    lines[record.line_number] = index.codec.apply(lines[record.line_number], assignments)
    try:
        await index.store.write(path, "\n".join(lines))
    except OSError as e:
        return {"error": f"Could not write '{path}': {e}"}

    await index.on_document_changed(path)
    updated = index.get_task(task_id)
    if updated is None:
        return {"error": f"Task '{task_id}' not found after update"}
    return updated.to_dict()


def handle_index_status(index) -> dict:
    return index.status()


async def handle_index_refresh(index) -> dict:
    started = await index.refresh()
    result = index.status()
    result["refreshed"] = started
    return result


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def register_task_tools(mcp: FastMCP, index) -> None:
    """Register all task-related MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def task_list(
        status: Optional[str] = None,
        role: Optional[str] = None,
        assignee: Optional[str] = None,
        tag: Optional[str] = None,
        priority: Optional[str] = None,
        text: Optional[str] = None,
        file_path: Optional[str] = None,
        limit: int = 200,
    ) -> str:
        """
        List indexed tasks with optional filtering.

        Every checklist line in the vault is a task. Its ID is
        "<file path>:<0-based line number>".

        Args:
            status: Comma-separated statuses to include, from "todo",
                    "in-progress", "done", "cancelled". Omit for all.
            role: Role id (e.g. "drivers"); only tasks with someone in that role
            assignee: Assignee token (e.g. "@John" or "+Acme"). Combined with
                      role, the assignee must hold that role.
            tag: Tag without the leading '#'
            priority: "low", "medium", "high" or "urgent"
            text: Case-insensitive search over description, path, tags and assignees
            file_path: Restrict to one document (vault-relative path)
            limit: Maximum number of results (default 200)

        Returns:
            JSON array of task objects
        """
        return json.dumps(
            handle_task_list(
                index,
                status=status,
                role=role,
                assignee=assignee,
                tag=tag,
                priority=priority,
                text=text,
                file_path=file_path,
                limit=limit,
            ),
            indent=2,
            ensure_ascii=False,
        )

    @mcp.tool()
    def task_get(task_id: str) -> str:
        """
        Get a single task by ID.

        Args:
            task_id: "<file path>:<line number>", e.g. "Projects/Plan.md:4"

        Returns:
            JSON task object, or error message
        """
        return json.dumps(handle_task_get(index, task_id=task_id), indent=2, ensure_ascii=False)

    @mcp.tool()
    async def task_set_status(task_id: str, status: str) -> str:
        """
        Set a task's status by rewriting its checkbox in the document.

        Args:
            task_id: The task ID
            status: "todo", "in-progress", "done" or "cancelled"

        Returns:
            Updated task JSON or error message
        """
        return json.dumps(
            await handle_task_set_status(index, task_id=task_id, status=status),
            indent=2,
            ensure_ascii=False,
        )

    @mcp.tool()
    async def task_assign_roles(
        task_id: str,
        roles: Dict[str, List[str]],
        merge: bool = False,
    ) -> str:
        """
        Assign people or companies to roles on a task.

        The line's role blocks are rewritten as
        [🚗:: [[People/John|@John]]] and placed before trailing metadata
        (dates, priority, tags).

        Args:
            task_id: The task ID
            roles: Role id → assignee tokens, e.g. {"drivers": ["@John"],
                   "informed": ["+Acme"]}. An empty list clears the role.
            merge: If True, keep existing assignments of roles not named in
                   `roles`. Otherwise they are removed.

        Returns:
            Updated task JSON or error message
        """
        try:
            return json.dumps(
                await handle_task_assign_roles(index, task_id=task_id, roles=roles, merge=merge),
                indent=2,
                ensure_ascii=False,
            )
        except Exception as e:
            log.exception("task_assign_roles failed for %s", task_id)
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def index_status() -> str:
        """
        Show task index statistics.

        Returns:
            JSON with state, task count, document count, last scan and save times
        """
        return json.dumps(handle_index_status(index), indent=2)

    @mcp.tool()
    async def index_refresh() -> str:
        """
        Rebuild the task index from every document in the vault.

        A refresh already in progress is not started twice; "refreshed" is
        false in that case.

        Returns:
            JSON index statistics after the rebuild
        """
        return json.dumps(await handle_index_refresh(index), indent=2)
