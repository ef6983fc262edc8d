"""
Tests for models/settings.py and models/role.py.

Covers:
- visible_roles: ordering, hidden default roles
- icon / shortcut uniqueness checks
- from_dict / load: malformed and duplicate roles, missing or bad files
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import json

import pytest

from models.role import DEFAULT_ROLES, Role, RoleAssignment
from models.settings import PluginSettings
from parsers.role_codec import RoleCodec


class TestRoleTable:
    def test_default_roles_in_order(self):
        settings = PluginSettings()
        assert [r.id for r in settings.visible_roles()] == [
            "drivers", "approvers", "contributors", "informed",
        ]

    def test_visible_roles_sorted_by_order(self):
        settings = PluginSettings(roles=[
            Role(id="b", name="B", icon="🅱", order=2),
            Role(id="a", name="A", icon="🅰", order=1),
        ])
        assert [r.id for r in settings.visible_roles()] == ["a", "b"]

    def test_hidden_default_role(self):
        settings = PluginSettings(hidden_default_roles=["approvers"])
        assert "approvers" not in [r.id for r in settings.visible_roles()]
        assert settings.find_role("approvers") is None
        assert settings.find_role("drivers").icon == "🚗"

    def test_hidden_list_ignores_custom_roles(self):
        custom = Role(id="owner", name="Owner", icon="🦉", order=5)
        settings = PluginSettings(roles=list(DEFAULT_ROLES) + [custom], hidden_default_roles=["owner"])
        assert settings.find_role("owner") == custom

    def test_find_role_by_icon(self):
        assert PluginSettings().find_role_by_icon("📢").id == "informed"

    def test_assignment_dedupes(self):
        assert RoleAssignment("drivers", ["@A", "@B", "@A"]).assignees == ["@A", "@B"]


class TestUniqueness:
    def test_icon_in_use(self):
        assert not PluginSettings().is_icon_unique("🚗")

    def test_icon_of_role_being_edited(self):
        assert PluginSettings().is_icon_unique("🚗", for_role_id="drivers")

    def test_new_icon(self):
        assert PluginSettings().is_icon_unique("🦉")

    def test_blank_icon(self):
        assert PluginSettings().is_icon_unique("  ")

    def test_hidden_role_icon_is_free(self):
        assert PluginSettings(hidden_default_roles=["approvers"]).is_icon_unique("👍")

    def test_shortcut_case_insensitive(self):
        settings = PluginSettings()
        assert not settings.is_shortcut_unique("D")
        assert settings.is_shortcut_unique("d", for_role_id="drivers")
        assert settings.is_shortcut_unique("x")


class TestAssigneeTokens:
    def test_directory_for(self):
        settings = PluginSettings()
        assert settings.directory_for("@John") == "People"
        assert settings.directory_for("+Acme") == "Companies"

    def test_custom_symbols(self):
        settings = PluginSettings(person_symbol="~", company_symbol="&")
        assert settings.is_assignee_token("~John")
        assert not settings.is_assignee_token("@John")

    @pytest.mark.parametrize("token", ["@A|B", "@A]B", "+[Acme"])
    def test_link_syntax_rejected(self, token):
        assert not PluginSettings().is_assignee_token(token)


class TestLoad:
    def test_from_dict(self):
        settings = PluginSettings.from_dict({
            "person_directory": "Team",
            "roles": [
                {"id": "owner", "name": "Owner", "icon": "🦉", "order": 1},
                {"id": "broken"},
                {"id": "owner", "name": "Again", "icon": "🐧"},
            ],
            "unknown_key": True,
        })
        assert settings.person_directory == "Team"
        assert settings.company_directory == "Companies"
        assert [r.id for r in settings.roles] == ["owner"]
        assert settings.roles[0].icon == "🦉"

    def test_from_dict_skips_reused_icon_and_shortcut(self):
        settings = PluginSettings.from_dict({
            "roles": [
                {"id": "drivers", "name": "Drivers", "icon": "🚗", "shortcut": "d", "order": 1},
                {"id": "owners", "name": "Owners", "icon": "🚗", "order": 2},
                {"id": "deciders", "name": "Deciders", "icon": "🦉", "shortcut": "D", "order": 3},
                {"id": "watchers", "name": "Watchers", "icon": "👀", "shortcut": "w", "order": 4},
            ],
        })
        assert [r.id for r in settings.roles] == ["drivers", "watchers"]

    def test_reused_icon_does_not_match_twice(self):
        settings = PluginSettings.from_dict({
            "roles": [
                {"id": "drivers", "name": "Drivers", "icon": "🚗", "order": 1},
                {"id": "owners", "name": "Owners", "icon": "🚗", "order": 2},
            ],
        })
        parsed = RoleCodec(settings).parse("Task [🚗:: @A]")
        assert [(p.role.id, p.assignees) for p in parsed] == [("drivers", ["@A"])]

    def test_round_trip(self):
        settings = PluginSettings(company_symbol="$", hidden_default_roles=["informed"])
        restored = PluginSettings.from_dict(settings.to_dict())
        assert restored == settings

    def test_missing_file(self, tmp_path):
        assert PluginSettings.load(tmp_path / "nope.json") == PluginSettings()

    def test_bad_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")
        assert PluginSettings.load(path) == PluginSettings()

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert PluginSettings.load(path) == PluginSettings()

    def test_load_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"hidden_default_roles": ["drivers"]}), encoding="utf-8")
        settings = PluginSettings.load(path)
        assert settings.find_role("drivers") is None
