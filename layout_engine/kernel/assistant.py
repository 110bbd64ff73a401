"""
Helpers for the AI assistant side of the command surface.

Extracts command objects from an assistant reply and summarises the current
layout for the assistant's prompt. Malformed blocks are skipped with a
warning; validation proper happens in the command processor.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from layout_engine.kernel.commands import COMMAND_OPERATIONS, make_command
from layout_engine.kernel.tree import depth, get_child_ids, is_container, walk
from layout_engine.kernel.types import Snapshot

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)

_CONTENT_PREVIEW_CHARS = 30
_MAX_CONTENT_SLOTS = 10


def parse_ai_response(text: str) -> list[dict[str, Any]]:
    """
    Pull commands out of fenced ```json blocks in an assistant reply.

    A block may hold one command object, a list of them, or
    {"commands": [...]}. Only objects with a known "operation" are kept;
    duplicates are dropped.
    """
    commands: list[dict[str, Any]] = []
    seen: set[str] = set()

    for block in _FENCED_JSON.findall(text or ""):
        stripped = block.strip()
        if not stripped:
            continue
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError:
            logger.warning("parse_ai_response: skipping malformed JSON block: %r", stripped[:200])
            continue

        if isinstance(parsed, dict) and isinstance(parsed.get("commands"), list):
            candidates = parsed["commands"]
        elif isinstance(parsed, list):
            candidates = parsed
        else:
            candidates = [parsed]

        for candidate in candidates:
            if not isinstance(candidate, dict) or candidate.get("operation") not in COMMAND_OPERATIONS:
                logger.warning("parse_ai_response: skipping non-command object: %r", str(candidate)[:200])
                continue
            key = json.dumps(candidate, sort_keys=True)
            if key in seen:
                continue
            seen.add(key)
            commands.append(candidate)

    return commands


def describe_layout(tree: Snapshot, page_type: str) -> str:
    """
    Plain-text outline of the layout, for the assistant's context window.
    Containers are listed as an indented tree; content slots are previewed.
    """
    slots = list(walk(tree))
    containers = [s for s in slots if is_container(s)]
    content = [s for s in slots if not is_container(s)]

    lines = [
        f"Current {page_type} page layout:",
        f"- Total slots: {len(slots)}",
        f"- Containers: {len(containers)}",
        f"- Content slots: {len(content)}",
        "",
        "Structure:",
    ]
    for slot in slots:
        indent = "  " * depth(tree, slot.id)
        if is_container(slot):
            children = len(get_child_ids(tree, slot.id))
            lines.append(f"{indent}- {slot.id} (container): {children} children, colSpan: {slot.col_span}")
        else:
            lines.append(f"{indent}- {slot.id} ({slot.type}), colSpan: {slot.col_span}")

    lines.append("")
    lines.append("Content slots:")
    for slot in content[:_MAX_CONTENT_SLOTS]:
        preview = slot.content[:_CONTENT_PREVIEW_CHARS] if slot.content else "[no content]"
        lines.append(f'- {slot.id} ({slot.type}): "{preview}"')
    if len(content) > _MAX_CONTENT_SLOTS:
        lines.append(f"... and {len(content) - _MAX_CONTENT_SLOTS} more")

    return "\n".join(lines)


_EXAMPLES: dict[str, dict[str, Any]] = {
    "create": make_command(
        "create",
        "main_layout",
        type="text",
        content="New promotional banner",
        className="bg-blue-100 p-4 rounded text-center",
        colSpan=12,
    ),
    "update": make_command("update", "product_title", className="text-3xl font-bold", styles={"color": "#1a1a1a"}),
    "delete": make_command("delete", "unwanted_slot"),
    "move": make_command("move", "add_to_cart_button", anchorId="product_title", placement="after"),
    "resize": make_command("resize", "sidebar_area", colSpan=4),
    "reorder": make_command(
        "reorder",
        "product_info",
        order=["product_price", "product_title", "add_to_cart_button", "wishlist_button", "product_description"],
    ),
}


def example_command(operation: str) -> str:
    """Pretty-printed example for prompt guidance. Unknown operations get the create example."""
    return json.dumps(_EXAMPLES.get(operation, _EXAMPLES["create"]), indent=2)
