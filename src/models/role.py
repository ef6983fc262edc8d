"""
Role and role-assignment data models.

Roles are configuration data owned by the user. Task records only ever refer
to a role by its id; the Role object itself is resolved from the role table
(see models.settings) at parse or load time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Role:
    """A named responsibility category with a unique glyph marker."""

    id: str
    name: str
    icon: str
    shortcut: Optional[str] = None
    is_default: bool = False
    order: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "shortcut": self.shortcut,
            "is_default": self.is_default,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Role:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            icon=str(data["icon"]),
            shortcut=data.get("shortcut") or None,
            is_default=bool(data.get("is_default", False)),
            order=int(data.get("order", 0)),
        )


DEFAULT_ROLES: List[Role] = [
    Role(id="drivers", name="Drivers", icon="🚗", shortcut="d", is_default=True, order=1),
    Role(id="approvers", name="Approvers", icon="👍", shortcut="a", is_default=True, order=2),
    Role(id="contributors", name="Contributors", icon="👥", shortcut="c", is_default=True, order=3),
    Role(id="informed", name="Informed", icon="📢", shortcut="i", is_default=True, order=4),
]


def _dedupe(items: List[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


@dataclass
class RoleAssignment:
    """
    Raw assignment of assignee tokens to a role, as produced by a caller.

    Duplicate tokens are dropped on construction; first occurrence wins.
    """

    role_id: str
    assignees: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.assignees = _dedupe(list(self.assignees))


@dataclass
class ParsedRoleAssignment:
    """A role assignment read back from a line, with the role resolved."""

    role: Role
    assignees: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"role_id": self.role.id, "assignees": list(self.assignees)}

    def to_assignment(self) -> RoleAssignment:
        return RoleAssignment(role_id=self.role.id, assignees=list(self.assignees))
