"""
Trailing-metadata position resolver.

Task lines carry their metadata (priority glyphs, status markers, dates,
inline fields, tags) after the description. find_metadata_index() returns the
offset where the first such cluster starts so that new role blocks can be
spliced in front of it instead of at the end of the line.

Every probe runs independently over the whole line and the earliest start
wins. When two probes start at the same offset the one listed first in
_PROBES is reported.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

# Glyph ranges used by role icons and inline-field keys
EMOJI_CHARS = "\u200d\u2190-\u21ff\u2300-\u27bf\u2b00-\u2bff\ufe0f\U0001F000-\U0001FAFF"

DATE_PATTERN = r"\d{4}-\d{2}-\d{2}"

PRIORITY_GLYPHS = "🔴🟡🟢🔺⏫🔼🔽⏬"

INLINE_FIELD = re.compile(rf"\[[\w\s{EMOJI_CHARS}]+::[^\]]*\]")
TAG = re.compile(r"#[\w-]+")

_PROBES: List[Tuple[str, Pattern]] = [
    ("priority", re.compile(f"[{PRIORITY_GLYPHS}]")),
    ("priority", re.compile(r"\[(?:urgent|high|low)\]", re.IGNORECASE)),
    ("status", re.compile(r"🚧|❌|\[(?:in-progress|cancelled)\]", re.IGNORECASE)),
    ("priority", re.compile(r"(?<!\S)!{1,3}(?!\S)")),
    ("recurrence", re.compile(r"🔁")),
    (
        "date",
        re.compile(
            rf"\b(?:due|scheduled|completed|created|start|cancelled|happens):\s*{DATE_PATTERN}",
            re.IGNORECASE,
        ),
    ),
    ("date", re.compile(rf"(?:📅|⏳|✅|➕|🛫|\U0001F5D3\ufe0f?)\s*{DATE_PATTERN}")),
    ("inline_field", INLINE_FIELD),
    ("tag", TAG),
]

_WIKILINK = re.compile(r"\[\[.*?\]\]")


@dataclass(frozen=True)
class MetadataMatch:
    kind: str
    start: int


def mask_wikilinks(text: str) -> str:
    """Blank out [[...]] links with equal-length spaces so offsets stay aligned."""
    return _WIKILINK.sub(lambda m: " " * len(m.group()), text)


def find_metadata(line: str) -> Optional[MetadataMatch]:
    """Return the earliest metadata cluster on the line, or None."""
    masked = mask_wikilinks(line)
    best: Optional[MetadataMatch] = None
    for kind, pattern in _PROBES:
        m = pattern.search(masked)
        if m and (best is None or m.start() < best.start):
            best = MetadataMatch(kind=kind, start=m.start())
    return best


def find_metadata_index(line: str) -> Optional[int]:
    """Offset of the first trailing-metadata character, or None if there is none."""
    match = find_metadata(line)
    return match.start if match else None
