"""REST API routes for roles and assignees."""

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from tools.role_tools import (
    handle_assignee_create,
    handle_assignee_create_me,
    handle_assignee_list,
    handle_role_format,
    handle_role_list,
    handle_role_parse,
)


class RoleParseBody(BaseModel):
    text: str


class RoleFormatBody(BaseModel):
    roles: Dict[str, List[str]]
    line: Optional[str] = None


class AssigneeCreateBody(BaseModel):
    token: str


def register_role_routes(app_router: APIRouter, codec, assignees) -> None:
    """Attach role and assignee REST routes."""
    settings = codec.settings

    @app_router.get("/roles")
    def list_roles():
        return handle_role_list(codec)

    @app_router.post("/roles/parse")
    def parse_roles(body: RoleParseBody):
        return handle_role_parse(codec, text=body.text)

    @app_router.post("/roles/format")
    def format_roles(body: RoleFormatBody):
        result = handle_role_format(codec, roles=body.roles, line=body.line)
        if "error" in result:
            raise HTTPException(status_code=400, detail=result["error"])
        return result

    @app_router.get("/assignees")
    async def list_assignees(kind: Optional[str] = Query(None)):
        result = await handle_assignee_list(assignees, settings, kind=kind)
        if "error" in result:
            raise HTTPException(status_code=400, detail=result["error"])
        return result

    @app_router.post("/assignees")
    async def create_assignee(body: AssigneeCreateBody):
        result = await handle_assignee_create(assignees, settings, token=body.token)
        if "error" in result:
            raise HTTPException(status_code=400, detail=result["error"])
        return result

    @app_router.post("/assignees/me")
    async def create_me_assignee():
        return await handle_assignee_create_me(assignees, settings)
