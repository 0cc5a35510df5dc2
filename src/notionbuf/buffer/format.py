"""Buffer header rendering.

The header sits above the first block and is owned by no block::

    # <icon> <title>

    📍 Sub-page of: 1a2b3c4d...

    ---

The session skips these lines when binding markers and detecting orphans.
"""

from __future__ import annotations

from typing import Any

UNTITLED = "Untitled"


def page_title(page: dict[str, Any]) -> str:
    """Return the plain-text title of a Notion page object."""
    for prop in page.get("properties", {}).values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            title = "".join(
                seg.get("plain_text", "") or seg.get("text", {}).get("content", "")
                for seg in prop.get("title", [])
            ).strip()
            return title or UNTITLED
    return UNTITLED


def page_icon(page: dict[str, Any]) -> str | None:
    """Return the page's emoji icon, if it has one."""
    icon = page.get("icon") or {}
    if icon.get("type") == "emoji":
        return icon.get("emoji")
    return None


def page_parent(page: dict[str, Any]) -> tuple[str | None, str | None]:
    """Return ``(parent_type, parent_id)`` for a page object."""
    parent = page.get("parent") or {}
    parent_type = parent.get("type")
    if parent_type == "workspace":
        return "workspace", None
    if parent_type == "page_id":
        return "page", parent.get("page_id")
    if parent_type == "database_id":
        return "database", parent.get("database_id")
    return parent_type, None


def format_header(page: dict[str, Any]) -> list[str]:
    """Render the header lines for *page*.

    Parameters
    ----------
    page:
        A Notion page object as returned by ``GET /pages/{id}``.

    Returns
    -------
    list[str]
        The title line, a parent line when the parent is known, and a
        divider, separated by blank lines.
    """
    icon = page_icon(page)
    title = page_title(page)
    lines = [f"# {icon} {title}" if icon else f"# {title}", ""]

    parent_type, parent_id = page_parent(page)
    if parent_type == "workspace":
        lines.append("📍 Workspace")
        lines.append("")
    elif parent_type == "page" and parent_id:
        lines.append(f"📍 Sub-page of: {parent_id[:8]}...")
        lines.append("")
    elif parent_type == "database" and parent_id:
        lines.append(f"📍 Database: {parent_id[:8]}...")
        lines.append("")

    lines.extend(["---", ""])
    return lines
