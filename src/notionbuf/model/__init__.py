"""Block model: entities, type handlers, position tracking and orphans."""

from __future__ import annotations

from .block import Block
from .factory import create_from_lines, create_raw_block, generate_temp_id, is_temp_id
from .mapping import PositionTracker, format_blocks
from .orphans import detect_orphans
from .registry import check_editability, deserialize, deserialize_tree, get_handler

__all__ = [
    "Block",
    "PositionTracker",
    "check_editability",
    "create_from_lines",
    "create_raw_block",
    "deserialize",
    "deserialize_tree",
    "detect_orphans",
    "format_blocks",
    "generate_temp_id",
    "get_handler",
    "is_temp_id",
]
