"""
Checklist line extraction.

Turns one checklist line into a TaskRecord: status, priority, tags, dates,
description and (through RoleCodec) role assignments. Also rewrites the
checkbox character for status updates.

Recognised checklist syntax:

    - [ ] task        * [x] task        + [/] task        12. [-] task
"""

import re
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from models.task import DateKind, TaskPriority, TaskRecord, TaskStatus, build_search_text
from parsers.metadata import DATE_PATTERN, INLINE_FIELD, PRIORITY_GLYPHS, TAG, mask_wikilinks
from parsers.role_codec import RoleCodec

CHECKLIST = re.compile(r"^(\s*)((?:[-*+]|\d+\.)\s*\[)([ xX/-])\]\s*(.+)$")

STATUS_TO_CHECKBOX: Dict[TaskStatus, str] = {
    TaskStatus.TODO: " ",
    TaskStatus.DONE: "x",
    TaskStatus.IN_PROGRESS: "/",
    TaskStatus.CANCELLED: "-",
}

DATE_GLYPHS: Dict[DateKind, Tuple[str, ...]] = {
    DateKind.DUE: ("📅",),
    DateKind.SCHEDULED: ("⏳",),
    DateKind.COMPLETED: ("✅",),
    DateKind.CREATED: ("➕", "🗓️", "🗓"),
    DateKind.START: ("🛫",),
    DateKind.CANCELLED: ("❌",),
}

_DATE_GLYPH_LIST = sorted({g for glyphs in DATE_GLYPHS.values() for g in glyphs}, key=len, reverse=True)
_ALL_DATE_GLYPHS = "".join(_DATE_GLYPH_LIST)
_DATE_LABELS = "|".join(kind.value for kind in DateKind)


def _date_patterns(kind: DateKind) -> List[re.Pattern]:
    """Inline field first, then glyph, then "label: date"."""
    patterns = [
        re.compile(rf"\[{kind.value}::\s*({DATE_PATTERN})\s*\]", re.IGNORECASE),
    ]
    for glyph in DATE_GLYPHS.get(kind, ()):
        patterns.append(re.compile(rf"{re.escape(glyph)}\s*({DATE_PATTERN})"))
    patterns.append(re.compile(rf"\b{kind.value}:\s*({DATE_PATTERN})", re.IGNORECASE))
    return patterns


_DATE_PATTERNS = {kind: _date_patterns(kind) for kind in DateKind}

_STRIP_PATTERNS = [
    INLINE_FIELD,
    re.compile(rf"\b(?:{_DATE_LABELS}):\s*{DATE_PATTERN}", re.IGNORECASE),
    re.compile(rf"(?:{'|'.join(re.escape(g) for g in _DATE_GLYPH_LIST)})\s*{DATE_PATTERN}"),
    re.compile(rf"🔁[^#\[{_ALL_DATE_GLYPHS}{PRIORITY_GLYPHS}]*"),
    re.compile(f"[{PRIORITY_GLYPHS}]"),
    re.compile(r"🚧|❌"),
    re.compile(r"\[(?:urgent|high|low|in-progress|cancelled)\]", re.IGNORECASE),
    re.compile(r"(?<!\S)!{1,3}(?!\S)"),
]

_URGENT = re.compile(r"[🔴🔺]|\[urgent\]|(?<!\S)!!!(?!\S)", re.IGNORECASE)
_HIGH = re.compile(r"[🟡⏫]|\[high\]|(?<!\S)!!(?!\S)", re.IGNORECASE)
_LOW = re.compile(r"[🟢🔽⏬]|\[low\]", re.IGNORECASE)

_MULTI_WS = re.compile(r"\s{2,}")


def parse_checklist(line: str) -> Optional[dict]:
    """Return {"indent", "checkbox", "content"} or None if not a checklist line."""
    m = CHECKLIST.match(line)
    if not m:
        return None
    return {"indent": m.group(1), "checkbox": m.group(3), "content": m.group(4)}


def is_checklist(line: str) -> bool:
    return CHECKLIST.match(line) is not None


def parse_status(checkbox: str, content: str) -> TaskStatus:
    if checkbox in ("x", "X"):
        return TaskStatus.DONE
    if checkbox == "-":
        return TaskStatus.CANCELLED
    if checkbox == "/":
        return TaskStatus.IN_PROGRESS

    lowered = content.lower()
    if "🚧" in content or "[in-progress]" in lowered:
        return TaskStatus.IN_PROGRESS
    if "❌" in content or "[cancelled]" in lowered:
        return TaskStatus.CANCELLED
    return TaskStatus.TODO


def parse_priority(content: str) -> TaskPriority:
    masked = mask_wikilinks(content)
    if _URGENT.search(masked):
        return TaskPriority.URGENT
    if _HIGH.search(masked):
        return TaskPriority.HIGH
    if _LOW.search(masked):
        return TaskPriority.LOW
    return TaskPriority.MEDIUM


def parse_tags(content: str) -> List[str]:
    """Hashtags outside wiki-links, without '#', first occurrence order."""
    tags: List[str] = []
    for m in TAG.finditer(mask_wikilinks(content)):
        tag = m.group()[1:]
        if tag not in tags:
            tags.append(tag)
    return tags


def parse_dates(content: str) -> Dict[DateKind, date]:
    dates: Dict[DateKind, date] = {}
    for kind, patterns in _DATE_PATTERNS.items():
        for pattern in patterns:
            m = pattern.search(content)
            if not m:
                continue
            try:
                dates[kind] = date.fromisoformat(m.group(1))
            except ValueError:
                continue
            break
    return dates


def _remove_spans(text: str, spans: List[Tuple[int, int]]) -> str:
    for start, end in sorted(spans, reverse=True):
        text = f"{text[:start]} {text[end:]}"
    return text


def extract_description(content: str, codec: RoleCodec) -> str:
    """The task text with role blocks and all trailing metadata removed."""
    text = codec.remove_assignments(content)
    for pattern in _STRIP_PATTERNS:
        masked = mask_wikilinks(text)
        text = _remove_spans(text, [m.span() for m in pattern.finditer(masked)])
    masked = mask_wikilinks(text)
    text = _remove_spans(text, [m.span() for m in TAG.finditer(masked)])
    return _MULTI_WS.sub(" ", text).strip()


def build_record(
    file_path: str,
    line_number: int,
    line: str,
    codec: RoleCodec,
    created_at: Optional[datetime] = None,
    modified_at: Optional[datetime] = None,
) -> Optional[TaskRecord]:
    """Derive a TaskRecord from a line, or None if it is not a checklist line."""
    parsed = parse_checklist(line)
    if parsed is None:
        return None

    content = parsed["content"]
    now = datetime.now()
    record = TaskRecord(
        file_path=file_path,
        line_number=line_number,
        raw_line=line,
        description=extract_description(content, codec),
        status=parse_status(parsed["checkbox"], content),
        priority=parse_priority(content),
        tags=parse_tags(content),
        role_assignments=codec.parse(content),
        dates=parse_dates(content),
        created_at=created_at or now,
        modified_at=modified_at or now,
    )
    record.search_text = build_search_text(
        record.description, file_path, record.tags, record.role_assignments
    )
    return record


def set_checkbox(line: str, status: TaskStatus) -> Optional[str]:
    """Rewrite only the checkbox character; None if the line is not a checklist line."""
    m = CHECKLIST.match(line)
    if not m:
        return None
    pos = m.start(3)
    return f"{line[:pos]}{STATUS_TO_CHECKBOX[status]}{line[pos + 1:]}"
