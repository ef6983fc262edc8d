from .role import DEFAULT_ROLES, ParsedRoleAssignment, Role, RoleAssignment
from .settings import PluginSettings
from .task import DateKind, TaskPriority, TaskRecord, TaskStatus, make_task_id

__all__ = [
    "DEFAULT_ROLES",
    "ParsedRoleAssignment",
    "Role",
    "RoleAssignment",
    "PluginSettings",
    "DateKind",
    "TaskPriority",
    "TaskRecord",
    "TaskStatus",
    "make_task_id",
]
