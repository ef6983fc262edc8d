"""
Tests for the REST API routes.

Uses FastAPI TestClient against a real TaskIndex with a temp vault.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import asyncio

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from cache.task_index import TaskIndex
from models.settings import PluginSettings
from store.assignees import AssigneeDirectory
from store.vault_store import VaultStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "Projects" / "Q1").mkdir(parents=True)
    (vault / "Projects" / "Q1" / "Plan.md").write_text(
        "- [ ] Hire designer [🚗:: [[People/Ann|@Ann]]] 🔴 #hiring\n"
        "- [ ] Update roadmap\n",
        encoding="utf-8",
    )
    (vault / "Inbox.md").write_text("- [x] Renew domain\n", encoding="utf-8")
    return vault


@pytest.fixture
def vault_path(tmp_path):
    return _make_vault(tmp_path)


@pytest.fixture
def client(vault_path):
    settings = PluginSettings()
    store = VaultStore(vault_path)
    index = TaskIndex(store, settings, save_delay=60)
    asyncio.run(index.initialize())
    app = create_app(index, AssigneeDirectory(store, settings))
    with TestClient(app) as c:
        yield c


PLAN = "Projects/Q1/Plan.md"


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class TestTaskRoutes:
    def test_list_tasks(self, client):
        resp = client.get("/api/tasks")
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()] == ["Inbox.md:0", f"{PLAN}:0", f"{PLAN}:1"]

    def test_list_tasks_filtered(self, client):
        resp = client.get("/api/tasks", params={"status": "todo", "role": "drivers"})
        assert [t["description"] for t in resp.json()] == ["Hire designer"]

    def test_get_task_with_slashes_in_id(self, client):
        resp = client.get(f"/api/tasks/{PLAN}:0")
        assert resp.status_code == 200
        body = resp.json()
        assert body["priority"] == "urgent"
        assert body["tags"] == ["hiring"]

    def test_get_task_not_found(self, client):
        resp = client.get("/api/tasks/Nope.md:0")
        assert resp.status_code == 404

    def test_set_status(self, client, vault_path):
        resp = client.post("/api/tasks/status", json={"task_id": f"{PLAN}:1", "status": "done"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "done"
        text = (vault_path / PLAN).read_text(encoding="utf-8")
        assert "- [x] Update roadmap" in text

    def test_set_status_invalid(self, client):
        resp = client.post("/api/tasks/status", json={"task_id": f"{PLAN}:1", "status": "later"})
        assert resp.status_code == 400

    def test_set_status_not_found(self, client):
        resp = client.post("/api/tasks/status", json={"task_id": "Nope.md:0", "status": "done"})
        assert resp.status_code == 404

    def test_assign_roles(self, client, vault_path):
        resp = client.post(
            "/api/tasks/roles",
            json={"task_id": f"{PLAN}:1", "roles": {"contributors": ["@Ann", "+Acme"]}},
        )
        assert resp.status_code == 200
        assert resp.json()["role_assignments"] == [
            {"role_id": "contributors", "assignees": ["@Ann", "+Acme"]},
        ]
        line = (vault_path / PLAN).read_text(encoding="utf-8").splitlines()[1]
        assert line == "- [ ] Update roadmap [👥:: [[People/Ann|@Ann]], [[Companies/Acme|+Acme]]]"

    def test_assign_roles_bad_role(self, client):
        resp = client.post(
            "/api/tasks/roles",
            json={"task_id": f"{PLAN}:1", "roles": {"owners": ["@Ann"]}},
        )
        assert resp.status_code == 400

    def test_index_status(self, client):
        resp = client.get("/api/index/status")
        assert resp.json()["tasks_indexed"] == 3

    def test_index_refresh(self, client, vault_path):
        (vault_path / "New.md").write_text("- [ ] Fresh\n", encoding="utf-8")
        resp = client.post("/api/index/refresh")
        assert resp.status_code == 200
        assert resp.json()["tasks_indexed"] == 4


# ---------------------------------------------------------------------------
# Roles and assignees
# ---------------------------------------------------------------------------

class TestRoleRoutes:
    def test_list_roles(self, client):
        resp = client.get("/api/roles")
        assert [r["id"] for r in resp.json()] == ["drivers", "approvers", "contributors", "informed"]

    def test_parse_roles(self, client):
        resp = client.post(
            "/api/roles/parse",
            json={"text": "<!--TA-->📢 [[People/Ann|@Ann]]<!--/TA--> Launch"},
        )
        body = resp.json()
        assert body["assignments"] == [{"role_id": "informed", "assignees": ["@Ann"]}]
        assert body["without_roles"] == "Launch"

    def test_format_roles(self, client):
        resp = client.post("/api/roles/format", json={"roles": {"approvers": ["@Bo"]}})
        assert resp.json() == {"text": "[👍:: [[People/Bo|@Bo]]]"}

    def test_format_roles_unknown(self, client):
        resp = client.post("/api/roles/format", json={"roles": {"x": ["@Bo"]}})
        assert resp.status_code == 400

    def test_assignees(self, client, vault_path):
        resp = client.post("/api/assignees", json={"token": "@Ann"})
        assert resp.status_code == 200
        assert resp.json()["path"] == "People/Ann.md"
        assert (vault_path / "People" / "Ann.md").is_file()

        resp = client.get("/api/assignees", params={"kind": "person"})
        assert resp.json() == {"people": ["@Ann"]}

    def test_create_assignee_invalid(self, client):
        resp = client.post("/api/assignees", json={"token": "Ann"})
        assert resp.status_code == 400

    def test_create_me(self, client, vault_path):
        resp = client.post("/api/assignees/me")
        assert resp.json()["created"] is True
        resp = client.post("/api/assignees/me")
        assert resp.json()["created"] is False
