"""Editor buffer implementation and header formatting."""

from __future__ import annotations

from .format import format_header, page_title
from .memory import MemoryBuffer

__all__ = ["MemoryBuffer", "format_header", "page_title"]
