"""
Task record data models.

A TaskRecord is derived from exactly one checklist line of one document. It
is never edited in place except for the two cheap paths the index owns
(rename and optimistic status update); any change to the source line
replaces the record wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from models.role import ParsedRoleAssignment, Role


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class DateKind(str, Enum):
    CREATED = "created"
    DUE = "due"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    START = "start"
    CANCELLED = "cancelled"
    HAPPENS = "happens"


def make_task_id(file_path: str, line_number: int) -> str:
    return f"{file_path}:{line_number}"


def build_search_text(
    description: str,
    file_path: str,
    tags: List[str],
    role_assignments: List[ParsedRoleAssignment],
) -> str:
    parts = [description, file_path]
    parts.extend(tags)
    for assignment in role_assignments:
        parts.extend(assignment.assignees)
    return " ".join(parts).lower()


@dataclass
class TaskRecord:
    """One indexed checklist line."""

    file_path: str
    line_number: int
    raw_line: str
    description: str
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: List[str] = field(default_factory=list)
    role_assignments: List[ParsedRoleAssignment] = field(default_factory=list)
    dates: Dict[DateKind, date] = field(default_factory=dict)
    search_text: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    modified_at: datetime = field(default_factory=datetime.now)

    @property
    def id(self) -> str:
        return make_task_id(self.file_path, self.line_number)

    @property
    def assignees(self) -> List[str]:
        """Every assignee token across all roles, first occurrence order."""
        seen: List[str] = []
        for assignment in self.role_assignments:
            for token in assignment.assignees:
                if token not in seen:
                    seen.append(token)
        return seen

    def refresh_search_text(self) -> None:
        self.search_text = build_search_text(
            self.description, self.file_path, self.tags, self.role_assignments
        )

    def to_dict(self) -> dict:
        """JSON-serializable form; also the snapshot record format."""
        return {
            "id": self.id,
            "file_path": self.file_path,
            "line_number": self.line_number,
            "raw_line": self.raw_line,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "tags": list(self.tags),
            "role_assignments": [a.to_dict() for a in self.role_assignments],
            "dates": {kind.value: d.isoformat() for kind, d in self.dates.items()},
            "search_text": self.search_text,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict, resolve_role: Callable[[str], Optional[Role]]) -> TaskRecord:
        """
        Rebuild a record from its dict form.

        Role assignments whose role id no longer resolves are dropped.
        Raises KeyError/ValueError/TypeError on malformed input.
        """
        assignments = []
        for raw in data.get("role_assignments", []):
            role = resolve_role(raw["role_id"])
            if role is None:
                continue
            assignments.append(
                ParsedRoleAssignment(role=role, assignees=[str(a) for a in raw["assignees"]])
            )

        record = cls(
            file_path=data["file_path"],
            line_number=int(data["line_number"]),
            raw_line=data["raw_line"],
            description=data["description"],
            status=TaskStatus(data["status"]),
            priority=TaskPriority(data["priority"]),
            tags=[str(t) for t in data.get("tags", [])],
            role_assignments=assignments,
            dates={
                DateKind(kind): date.fromisoformat(value)
                for kind, value in data.get("dates", {}).items()
                if value
            },
            search_text=data.get("search_text", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            modified_at=datetime.fromisoformat(data["modified_at"]),
        )
        if not record.search_text:
            record.refresh_search_text()
        return record
