"""REST API routes for task and index operations."""

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from tools.task_tools import (
    handle_index_refresh,
    handle_index_status,
    handle_task_assign_roles,
    handle_task_get,
    handle_task_list,
    handle_task_set_status,
)


class TaskStatusBody(BaseModel):
    task_id: str
    status: str


class TaskRolesBody(BaseModel):
    task_id: str
    roles: Dict[str, List[str]]
    merge: bool = False


def _raise_for_error(result: dict, task_id: str, index) -> dict:
    if "error" in result:
        status_code = 404 if index.get_task(task_id) is None else 400
        raise HTTPException(status_code=status_code, detail=result["error"])
    return result


def register_task_routes(app_router: APIRouter, index) -> None:
    """Attach task REST routes that use the shared index."""

    @app_router.get("/tasks")
    def list_tasks(
        status: Optional[str] = Query(None),
        role: Optional[str] = Query(None),
        assignee: Optional[str] = Query(None),
        tag: Optional[str] = Query(None),
        priority: Optional[str] = Query(None),
        text: Optional[str] = Query(None),
        file_path: Optional[str] = Query(None),
        limit: int = Query(200),
    ):
        return handle_task_list(
            index,
            status=status,
            role=role,
            assignee=assignee,
            tag=tag,
            priority=priority,
            text=text,
            file_path=file_path,
            limit=limit,
        )

    @app_router.post("/tasks/status")
    async def set_task_status(body: TaskStatusBody):
        result = await handle_task_set_status(index, task_id=body.task_id, status=body.status)
        return _raise_for_error(result, body.task_id, index)

    @app_router.post("/tasks/roles")
    async def assign_task_roles(body: TaskRolesBody):
        result = await handle_task_assign_roles(
            index, task_id=body.task_id, roles=body.roles, merge=body.merge
        )
        return _raise_for_error(result, body.task_id, index)

    # Task ids contain the document path, slashes included
    @app_router.get("/tasks/{task_id:path}")
    def get_task(task_id: str):
        result = handle_task_get(index, task_id=task_id)
        if "error" in result:
            raise HTTPException(status_code=404, detail=result["error"])
        return result

    @app_router.get("/index/status")
    def get_index_status():
        return handle_index_status(index)

    @app_router.post("/index/refresh")
    async def refresh_index():
        return await handle_index_refresh(index)
