"""
Role-assignment codec.

Reads and writes role assignment blocks embedded in a task line.

Current (inline-field) format, one block per role:

    [🚗:: [[People/John|@John]], [[Companies/Acme|+Acme]]]

The body may also be a bare token list (``[🚗:: @John, +Acme]``), which is
read but never written.

Legacy format, optionally wrapped in comment sentinels:

    <!--TA-->🚗 [[People/John|@John]] 👍 [[People/Jane|@Jane]]<!--/TA-->

Main API:
    RoleCodec.parse(text)                → [ParsedRoleAssignment]
    RoleCodec.format(assignments)        → str
    RoleCodec.apply(line, assignments)   → str

Icons come from user configuration, so they are located with plain str.find
and the block extent is found by counting bracket depth. Links inside a block
carry their own brackets, which is why a regex cannot find the closing one.
"""

import re
from typing import Iterable, Iterator, List, Optional, Tuple

from models.role import ParsedRoleAssignment, Role, RoleAssignment
from models.settings import PluginSettings
from parsers.metadata import find_metadata_index

LEGACY_COMMENT_START = "<!--TA-->"
LEGACY_COMMENT_END = "<!--/TA-->"

_LINK = re.compile(r"\[\[([^\]]+)\|([^\]]+)\]\]")
_LEADING_WS = re.compile(r"^\s*")
_MULTI_WS = re.compile(r"\s{2,}")


def _block_start(role: Role) -> str:
    return f"[{role.icon}::"


def _find_closing(text: str, start: int) -> Optional[int]:
    """
    Index of the "]" that closes a block whose "[" was consumed before start.

    Returns None when the line ends before depth returns to zero.
    """
    depth = 1
    for i in range(start, len(text)):
        ch = text[i]
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
    return None


def iter_blocks(text: str, role: Role) -> Iterator[Tuple[int, int, str]]:
    """
    Yield (start, end, body) for every closed inline block of this role.

    start is the offset of the opening "[", end is one past the closing "]".
    Unterminated blocks are skipped and scanning resumes right after their
    opening anchor.
    """
    anchor = _block_start(role)
    pos = text.find(anchor)
    while pos != -1:
        body_start = pos + len(anchor)
        close = _find_closing(text, body_start)
        if close is None:
            pos = text.find(anchor, pos + 1)
            continue
        yield pos, close + 1, text[body_start:close].strip()
        pos = text.find(anchor, close + 1)


def _collapse(line: str) -> str:
    """Collapse whitespace runs and trim, keeping the line's indentation."""
    indent = _LEADING_WS.match(line).group()
    body = _MULTI_WS.sub(" ", line[len(indent):]).strip()
    return f"{indent}{body}" if body else ""


class RoleCodec:
    """Bidirectional translation between task lines and role assignments."""

    def __init__(self, settings: PluginSettings) -> None:
        self._settings = settings

    @property
    def settings(self) -> PluginSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Assignee helpers
    # ------------------------------------------------------------------

    def assignee_target(self, token: str) -> str:
        """Link target for an assignee token, e.g. "@John" → "People/John"."""
        directory = self._settings.directory_for(token).strip("/")
        name = token[1:]
        return f"{directory}/{name}" if directory else name

    def _link_aliases(self, text: str) -> List[str]:
        return [m.group(2).strip() for m in _LINK.finditer(text)]

    def _body_assignees(self, body: str) -> List[str]:
        aliases = self._link_aliases(body)
        if aliases:
            return aliases
        tokens = [part.strip() for part in body.split(",")]
        return [t for t in tokens if t and self._settings.is_assignee_token(t)]

    # ------------------------------------------------------------------
    # parse
    # ------------------------------------------------------------------

    def parse(self, text: str, roles: Optional[List[Role]] = None) -> List[ParsedRoleAssignment]:
        """
        Extract role assignments from a line.

        The inline format is tried first; the legacy format is only consulted
        when the inline format produced nothing, so the two are never mixed.
        """
        roles = self._settings.visible_roles() if roles is None else roles
        found = self._parse_inline(text, roles)
        if not found:
            found = self._parse_legacy(text, roles)
        return found

    def _parse_inline(self, text: str, roles: List[Role]) -> List[ParsedRoleAssignment]:
        found = []
        for role in roles:
            for _, _, body in iter_blocks(text, role):
                assignees = RoleAssignment(role.id, self._body_assignees(body)).assignees
                if assignees:
                    found.append(ParsedRoleAssignment(role=role, assignees=assignees))
                    break
        return found

    def _parse_legacy(self, text: str, roles: List[Role]) -> List[ParsedRoleAssignment]:
        sanitized = text.replace(LEGACY_COMMENT_START, "").replace(LEGACY_COMMENT_END, "")
        icons = [r.icon for r in roles if r.icon]
        found = []
        for role in roles:
            body = self._legacy_body(sanitized, role.icon, icons)
            if body is None:
                continue
            assignees = RoleAssignment(role.id, self._link_aliases(body)).assignees
            if assignees:
                found.append(ParsedRoleAssignment(role=role, assignees=assignees))
        return found

    @staticmethod
    def _legacy_body(text: str, icon: str, icons: Iterable[str]) -> Optional[str]:
        """Body following the first "icon<space>" up to the next role icon."""
        if not icon:
            return None
        pos = text.find(icon)
        while pos != -1:
            body_start = pos + len(icon)
            if body_start < len(text) and text[body_start].isspace():
                end = len(text)
                for other in icons:
                    nxt = text.find(other, body_start)
                    if nxt != -1 and nxt < end:
                        end = nxt
                return text[body_start:end].strip()
            pos = text.find(icon, pos + 1)
        return None

    # ------------------------------------------------------------------
    # format
    # ------------------------------------------------------------------

    def format(self, assignments: List[RoleAssignment], roles: Optional[List[Role]] = None) -> str:
        """Render assignments as inline blocks, in role order, one space apart."""
        roles = self._settings.visible_roles() if roles is None else roles
        by_id = {r.id: r for r in roles}

        entries = []
        for assignment in assignments:
            role = by_id.get(assignment.role_id)
            assignees = RoleAssignment(assignment.role_id, assignment.assignees).assignees
            if role is None or not assignees:
                continue
            entries.append((role, assignees))
        entries.sort(key=lambda entry: entry[0].order)

        blocks = []
        for role, assignees in entries:
            links = ", ".join(f"[[{self.assignee_target(a)}|{a}]]" for a in assignees)
            blocks.append(f"[{role.icon}:: {links}]")
        return " ".join(blocks)

    # ------------------------------------------------------------------
    # apply
    # ------------------------------------------------------------------

    def remove_assignments(self, line: str, roles: Optional[List[Role]] = None) -> str:
        """Strip every role block (both formats) for the given roles."""
        roles = self._settings.visible_roles() if roles is None else roles
        icons = [r.icon for r in roles if r.icon]

        indent = _LEADING_WS.match(line).group()
        clean = line[len(indent):]
        clean = clean.replace(LEGACY_COMMENT_START, " ").replace(LEGACY_COMMENT_END, " ")
        for icon in icons:
            clean = re.sub(
                rf"\s*{re.escape(icon)}\s+\[\[[^\]]*\]\](?:\s*,\s*\[\[[^\]]*\]\])*",
                " ",
                clean,
            )

        for role in roles:
            while True:
                block = next(iter_blocks(clean, role), None)
                if block is None:
                    break
                start, end, _ = block
                clean = f"{clean[:start]} {clean[end:]}"

        body = _MULTI_WS.sub(" ", clean).strip()
        return f"{indent}{body}" if body else ""

    def apply(
        self,
        line: str,
        assignments: List[RoleAssignment],
        roles: Optional[List[Role]] = None,
    ) -> str:
        """
        Replace the role blocks of a line with the given assignments.

        New blocks go in front of the first trailing metadata cluster, or at
        the end of the line when there is none.
        """
        roles = self._settings.visible_roles() if roles is None else roles
        rendered = self.format(assignments, roles)
        clean = self.remove_assignments(line, roles)
        if not rendered:
            return clean

        indent = _LEADING_WS.match(clean).group()
        content = clean[len(indent):]
        idx = find_metadata_index(content)
        if idx is None:
            parts = [content, rendered]
        else:
            parts = [content[:idx].rstrip(), rendered, content[idx:].lstrip()]
        return _collapse(indent + " ".join(p for p in parts if p))
