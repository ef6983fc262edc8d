"""
Role table and assignee settings.

PluginSettings is the single source of the configurable pieces the codec and
the task index need: the marker symbols for people and companies, the
directories their notes live in, and the role table.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from models.role import DEFAULT_ROLES, Role

log = logging.getLogger(__name__)

_LINK_SYNTAX = "[]|"


@dataclass
class PluginSettings:
    person_symbol: str = "@"
    company_symbol: str = "+"
    person_directory: str = "People"
    company_directory: str = "Companies"
    roles: List[Role] = field(default_factory=lambda: list(DEFAULT_ROLES))
    hidden_default_roles: List[str] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Role table
    # ------------------------------------------------------------------

    def visible_roles(self) -> List[Role]:
        """Configured roles minus hidden defaults, sorted by order."""
        hidden = set(self.hidden_default_roles)
        roles = [r for r in self.roles if not (r.is_default and r.id in hidden)]
        return sorted(roles, key=lambda r: r.order)

    def find_role(self, role_id: str) -> Optional[Role]:
        for role in self.visible_roles():
            if role.id == role_id:
                return role
        return None

    def find_role_by_icon(self, icon: str) -> Optional[Role]:
        for role in self.visible_roles():
            if role.icon == icon:
                return role
        return None

    def is_icon_unique(self, icon: str, for_role_id: Optional[str] = None) -> bool:
        """
        Return True if no other visible role already uses this icon.

        The role being edited (for_role_id) is ignored, and so are hidden
        default roles. A blank icon is considered unique.
        """
        normalized = (icon or "").strip()
        if not normalized:
            return True
        for role in self.visible_roles():
            if for_role_id and role.id == for_role_id:
                continue
            if role.icon == normalized:
                return False
        return True

    def is_shortcut_unique(self, shortcut: str, for_role_id: Optional[str] = None) -> bool:
        """Case-insensitive counterpart of is_icon_unique for shortcut keys."""
        key = (shortcut or "").strip().lower()
        if not key:
            return True
        for role in self.visible_roles():
            if for_role_id and role.id == for_role_id:
                continue
            if role.shortcut and role.shortcut.lower() == key:
                return False
        return True

    # ------------------------------------------------------------------
    # Assignee tokens
    # ------------------------------------------------------------------

    def directory_for(self, token: str) -> str:
        """Directory holding the note an assignee token points at."""
        if token.startswith(self.person_symbol):
            return self.person_directory
        return self.company_directory

    def is_assignee_token(self, token: str) -> bool:
        """Symbol-prefixed name that can sit inside a [[target|alias]] link."""
        if any(ch in token for ch in _LINK_SYNTAX):
            return False
        return token.startswith(self.person_symbol) or token.startswith(self.company_symbol)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "person_symbol": self.person_symbol,
            "company_symbol": self.company_symbol,
            "person_directory": self.person_directory,
            "company_directory": self.company_directory,
            "roles": [r.to_dict() for r in self.roles],
            "hidden_default_roles": list(self.hidden_default_roles),
        }

    @classmethod
    def from_dict(cls, data: dict) -> PluginSettings:
        settings = cls()
        for key in ("person_symbol", "company_symbol", "person_directory", "company_directory"):
            value = data.get(key)
            if isinstance(value, str) and value:
                setattr(settings, key, value)
        if isinstance(data.get("hidden_default_roles"), list):
            settings.hidden_default_roles = [str(r) for r in data["hidden_default_roles"]]
        if isinstance(data.get("roles"), list):
            # Accepted roles are visible to the uniqueness checks as they are added
            settings.roles = []
            for raw in data["roles"]:
                try:
                    role = Role.from_dict(raw)
                except (KeyError, TypeError, ValueError):
                    log.warning("Ignoring malformed role entry: %r", raw)
                    continue
                if any(r.id == role.id for r in settings.roles):
                    log.warning("Ignoring duplicate role id: %s", role.id)
                    continue
                if not settings.is_icon_unique(role.icon):
                    log.warning("Ignoring role %s: icon %s is already in use", role.id, role.icon)
                    continue
                if not settings.is_shortcut_unique(role.shortcut):
                    log.warning("Ignoring role %s: shortcut %r is already in use", role.id, role.shortcut)
                    continue
                settings.roles.append(role)
        return settings

    @classmethod
    def load(cls, path: Path) -> PluginSettings:
        """Load settings from a JSON file, falling back to defaults."""
        if not path.is_file():
            log.info("No settings file at %s, using defaults", path)
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            log.exception("Failed to read settings from %s, using defaults", path)
            return cls()
        if not isinstance(data, dict):
            log.error("Settings file %s is not a JSON object, using defaults", path)
            return cls()
        return cls.from_dict(data)
