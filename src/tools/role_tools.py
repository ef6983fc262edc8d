"""
Role and assignee tool handlers.

Core logic lives in handle_* functions (return dicts).
MCP wrappers in register_role_tools() serialize to JSON strings.
"""

import json
import logging
from typing import Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from models.role import RoleAssignment

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_role_list(codec) -> List[dict]:
    return [r.to_dict() for r in codec.settings.visible_roles()]


def handle_role_parse(codec, *, text: str) -> dict:
    parsed = codec.parse(text)
    return {
        "assignments": [a.to_dict() for a in parsed],
        "without_roles": codec.remove_assignments(text),
    }


def handle_role_format(codec, *, roles: Dict[str, List[str]], line: Optional[str] = None) -> dict:
    """Render assignments, or apply them to `line` when one is given."""
    settings = codec.settings
    unknown = [role_id for role_id in roles if settings.find_role(role_id) is None]
    if unknown:
        return {"error": f"Unknown role(s): {', '.join(unknown)}"}
    invalid = [t for tokens in roles.values() for t in tokens if not settings.is_assignee_token(t)]
    if invalid:
        return {"error": f"Invalid assignee token(s): {', '.join(invalid)}"}

    assignments = [RoleAssignment(role_id, list(tokens)) for role_id, tokens in roles.items()]
    result = {"text": codec.format(assignments)}
    if line is not None:
        result["line"] = codec.apply(line, assignments)
    return result


async def handle_assignee_list(assignees, settings, *, kind: Optional[str] = None) -> dict:
    if kind not in (None, "person", "company"):
        return {"error": f"Invalid kind '{kind}'; expected 'person' or 'company'"}
    result = {}
    if kind in (None, "person"):
        result["people"] = await assignees.list_tokens(settings.person_symbol)
    if kind in (None, "company"):
        result["companies"] = await assignees.list_tokens(settings.company_symbol)
    return result


async def handle_assignee_create(assignees, settings, *, token: str) -> dict:
    token = token.strip()
    if not settings.is_assignee_token(token) or not token[1:].strip():
        return {
            "error": f"Invalid assignee '{token}'; prefix a name with "
            f"'{settings.person_symbol}' or '{settings.company_symbol}'"
        }
    path = await assignees.create(token)
    return {"token": token, "path": path, "created": path is not None}


async def handle_assignee_create_me(assignees, settings) -> dict:
    path = await assignees.create_me()
    return {"token": f"{settings.person_symbol}Me", "path": path, "created": path is not None}


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def register_role_tools(mcp: FastMCP, codec, assignees) -> None:
    """Register role and assignee MCP tools onto the FastMCP instance."""
    settings = codec.settings

    @mcp.tool()
    def role_list() -> str:
        """
        List the visible roles in display order.

        Returns:
            JSON array of roles (id, name, icon, shortcut, is_default, order)
        """
        return json.dumps(handle_role_list(codec), indent=2, ensure_ascii=False)

    @mcp.tool()
    def role_parse(text: str) -> str:
        """
        Extract role assignments from a line of text.

        Reads both [🚗:: [[People/John|@John]]] blocks and the older
        <!--TA-->🚗 [[People/John|@John]]<!--/TA--> format.

        Args:
            text: The line to parse

        Returns:
            JSON with "assignments" (role_id + assignees) and the line with
            its role blocks removed
        """
        return json.dumps(handle_role_parse(codec, text=text), indent=2, ensure_ascii=False)

    @mcp.tool()
    def role_format(roles: Dict[str, List[str]], line: Optional[str] = None) -> str:
        """
        Render role assignments as inline blocks.

        Args:
            roles: Role id → assignee tokens, e.g. {"drivers": ["@John"]}
            line: Optional line to apply the blocks to (existing blocks replaced)

        Returns:
            JSON with "text" and, when line is given, the rewritten "line"
        """
        return json.dumps(
            handle_role_format(codec, roles=roles, line=line), indent=2, ensure_ascii=False
        )

    @mcp.tool()
    async def assignee_list(kind: Optional[str] = None) -> str:
        """
        List known assignees (notes in the people and company folders).

        Args:
            kind: "person", "company", or omit for both

        Returns:
            JSON with "people" and/or "companies" token lists
        """
        return json.dumps(
            await handle_assignee_list(assignees, settings, kind=kind), indent=2, ensure_ascii=False
        )

    @mcp.tool()
    async def assignee_create(token: str) -> str:
        """
        Create the note for a person ("@Name") or company ("+Name").

        Existing notes are left alone ("created": false).

        Args:
            token: Assignee token including its marker

        Returns:
            JSON with the note path and whether it was created
        """
        try:
            return json.dumps(
                await handle_assignee_create(assignees, settings, token=token),
                indent=2,
                ensure_ascii=False,
            )
        except Exception as e:
            log.exception("assignee_create failed for %s", token)
            return json.dumps({"error": str(e)})

    @mcp.tool()
    async def assignee_create_me() -> str:
        """
        Create your personal "Me" note in the people folder.

        Nothing is created when Me.md exists in any capitalisation.

        Returns:
            JSON with the note path and whether it was created
        """
        return json.dumps(await handle_assignee_create_me(assignees, settings), indent=2)
