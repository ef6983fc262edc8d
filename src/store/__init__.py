from .assignees import AssigneeDirectory
from .vault_store import DEFAULT_EXCLUDE_DIRS, DocumentStat, VaultStore

__all__ = [
    "AssigneeDirectory",
    "DEFAULT_EXCLUDE_DIRS",
    "DocumentStat",
    "VaultStore",
]
