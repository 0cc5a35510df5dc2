"""Rich text codec: Notion segments <-> marked-up buffer text."""

from __future__ import annotations

from .parse import default_annotations, parse, text_segment
from .render import escape_text, plain_text, render

__all__ = [
    "default_annotations",
    "escape_text",
    "parse",
    "plain_text",
    "render",
    "text_segment",
]
