"""FastAPI application factory for the task-roles REST API."""

from fastapi import APIRouter, FastAPI

from api.role_routes import register_role_routes
from api.task_routes import register_task_routes


def create_app(index, assignees) -> FastAPI:
    """Build and return a FastAPI app wired to the given TaskIndex."""
    app = FastAPI(title="task-roles-mcp", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_task_routes(api, index)
    register_role_routes(api, index.codec, assignees)
    app.include_router(api)

    return app
