"""
Tests for store/vault_store.py and store/assignees.py.

Covers:
- enumerate / scan: managed extension only, excluded dirs skipped, sorted
- read / write / exists / stat, path escape rejection
- AssigneeDirectory: listing, note creation, "Me" note variants
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from models.settings import PluginSettings
from store.assignees import AssigneeDirectory
from store.vault_store import VaultStore


def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "People").mkdir(parents=True)
    (vault / "Companies").mkdir()
    (vault / ".obsidian").mkdir()
    (vault / "node_modules" / "pkg").mkdir(parents=True)

    (vault / "Inbox.md").write_text("- [ ] Task\n", encoding="utf-8")
    (vault / "People" / "John.md").write_text("# John\n", encoding="utf-8")
    (vault / "People" / "Ann.md").write_text("# Ann\n", encoding="utf-8")
    (vault / "Companies" / "Acme.md").write_text("# Acme\n", encoding="utf-8")
    (vault / "image.png").write_bytes(b"\x89PNG")
    (vault / ".obsidian" / "workspace.md").write_text("x", encoding="utf-8")
    (vault / "node_modules" / "pkg" / "README.md").write_text("x", encoding="utf-8")
    return vault


class TestVaultStore:
    @pytest.mark.asyncio
    async def test_enumerate(self, tmp_path):
        store = VaultStore(_make_vault(tmp_path))
        assert await store.enumerate() == [
            "Companies/Acme.md",
            "Inbox.md",
            "People/Ann.md",
            "People/John.md",
        ]

    @pytest.mark.asyncio
    async def test_custom_exclusions(self, tmp_path):
        store = VaultStore(_make_vault(tmp_path), exclude_dirs={"People"})
        paths = await store.enumerate()
        assert "People/John.md" not in paths
        assert "node_modules/pkg/README.md" in paths

    @pytest.mark.asyncio
    async def test_scan(self, tmp_path):
        vault = _make_vault(tmp_path)
        store = VaultStore(vault)
        snapshot = await store.scan()
        assert set(snapshot) == set(await store.enumerate())
        assert snapshot["Inbox.md"].size == len("- [ ] Task\n")

    @pytest.mark.asyncio
    async def test_read_write(self, tmp_path):
        store = VaultStore(_make_vault(tmp_path))
        await store.write("Deep/Nested/New.md", "- [ ] Hello 👋\n")
        assert await store.exists("Deep/Nested/New.md")
        assert await store.read("Deep/Nested/New.md") == "- [ ] Hello 👋\n"
        st = await store.stat("Deep/Nested/New.md")
        assert st.size > 0

    @pytest.mark.asyncio
    async def test_read_missing(self, tmp_path):
        store = VaultStore(_make_vault(tmp_path))
        with pytest.raises(FileNotFoundError):
            await store.read("Missing.md")

    @pytest.mark.asyncio
    async def test_path_escape_rejected(self, tmp_path):
        store = VaultStore(_make_vault(tmp_path))
        with pytest.raises(ValueError):
            await store.read("../outside.md")

    def test_is_document(self, tmp_path):
        store = VaultStore(tmp_path)
        assert store.is_document("Notes/a.md")
        assert not store.is_document("a.txt")
        assert not store.is_document(".obsidian/a.md")


class TestAssigneeDirectory:
    @pytest.mark.asyncio
    async def test_list_tokens(self, tmp_path):
        store = VaultStore(_make_vault(tmp_path))
        directory = AssigneeDirectory(store, PluginSettings())
        assert await directory.list_tokens("@") == ["@Ann", "@John"]
        assert await directory.list_tokens("+") == ["+Acme"]

    @pytest.mark.asyncio
    async def test_create_person(self, tmp_path):
        vault = _make_vault(tmp_path)
        directory = AssigneeDirectory(VaultStore(vault), PluginSettings())
        path = await directory.create("@Zoe")
        assert path == "People/Zoe.md"
        assert (vault / "People" / "Zoe.md").read_text(encoding="utf-8") == (
            "# Zoe\n\nThis is a person file."
        )

    @pytest.mark.asyncio
    async def test_create_company_makes_directory(self, tmp_path):
        vault = _make_vault(tmp_path)
        settings = PluginSettings(company_directory="Orgs")
        directory = AssigneeDirectory(VaultStore(vault), settings)
        assert await directory.create("+Initech") == "Orgs/Initech.md"
        assert "This is a company file." in (vault / "Orgs" / "Initech.md").read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_create_existing_is_noop(self, tmp_path):
        vault = _make_vault(tmp_path)
        directory = AssigneeDirectory(VaultStore(vault), PluginSettings())
        assert await directory.create("@John") is None
        assert (vault / "People" / "John.md").read_text(encoding="utf-8") == "# John\n"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["John", "@", "#tag"])
    async def test_create_invalid_token(self, tmp_path, token):
        directory = AssigneeDirectory(VaultStore(_make_vault(tmp_path)), PluginSettings())
        assert await directory.create(token) is None

    @pytest.mark.asyncio
    async def test_create_me(self, tmp_path):
        vault = _make_vault(tmp_path)
        directory = AssigneeDirectory(VaultStore(vault), PluginSettings())
        assert await directory.create_me() == "People/Me.md"
        assert await directory.create_me() is None

    @pytest.mark.asyncio
    async def test_create_me_respects_case_variant(self, tmp_path):
        vault = _make_vault(tmp_path)
        (vault / "People" / "me.md").write_text("# me\n", encoding="utf-8")
        directory = AssigneeDirectory(VaultStore(vault), PluginSettings())
        assert await directory.me_exists()
        assert await directory.create_me() is None
