from .metadata import find_metadata, find_metadata_index, mask_wikilinks
from .role_codec import LEGACY_COMMENT_END, LEGACY_COMMENT_START, RoleCodec
from .task_line import build_record, is_checklist, parse_checklist, set_checkbox

__all__ = [
    "find_metadata",
    "find_metadata_index",
    "mask_wikilinks",
    "LEGACY_COMMENT_END",
    "LEGACY_COMMENT_START",
    "RoleCodec",
    "build_record",
    "is_checklist",
    "parse_checklist",
    "set_checkbox",
]
