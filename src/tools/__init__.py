from .role_tools import register_role_tools
from .task_tools import register_task_tools

__all__ = ["register_role_tools", "register_task_tools"]
