"""In-memory line buffer with movable, gravity-aware markers.

:class:`MemoryBuffer` follows the Neovim buffer/extmark model closely
enough for the position tracker to behave as it would inside an editor.

Positions are ``(row, col)`` pairs, 0-indexed.  The position just past the
last line, ``(line_count, 0)``, is addressable: markers collapse onto it
when trailing lines are deleted.

Every edit is a *splice*: the text between ``start`` and ``old_end`` is
replaced by text ending at ``new_end``.  A marker position ``p`` moves as
follows:

* ``p < start``: unchanged.
* Pure insertion (``start == old_end``) and ``p == start``: moves to
  ``new_end`` when its gravity is right, stays otherwise.
* Replacement and ``p == start``: unchanged.
* Replacement and ``start < p <= old_end``: moves to ``new_end``.
* ``p`` after the edited region: shifted by the size difference.

A marker whose end ends up before its start is clamped to zero width at
its start.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass

from notionbuf.ports import MarkerPosition

Pos = tuple[int, int]


@dataclass
class _Marker:
    start: Pos
    end: Pos
    right_gravity: bool
    end_right_gravity: bool


def _move(pos: Pos, start: Pos, old_end: Pos, new_end: Pos, right_gravity: bool) -> Pos:
    if pos < start:
        return pos
    if pos == start:
        if start == old_end and right_gravity:
            return new_end
        return pos
    if pos <= old_end:
        return new_end
    if pos[0] == old_end[0]:
        return (new_end[0], new_end[1] + pos[1] - old_end[1])
    return (pos[0] + new_end[0] - old_end[0], pos[1])


class MemoryBuffer:
    """A list of lines plus a marker table.

    Parameters
    ----------
    lines:
        Initial content.  An empty buffer still holds one empty line.
    name:
        Display name, used only in ``repr``.
    """

    def __init__(self, lines: list[str] | None = None, name: str = "notionbuf") -> None:
        self._lines: list[str] = list(lines) if lines else [""]
        self._markers: dict[int, _Marker] = {}
        self._ids = itertools.count(1)
        self._valid = True
        self.name = name

    def __repr__(self) -> str:
        return f"MemoryBuffer(name={self.name!r}, lines={len(self._lines)}, markers={len(self._markers)})"

    # ── Lifecycle ───────────────────────────────────────────────────────

    def is_valid(self) -> bool:
        return self._valid

    def invalidate(self) -> None:
        """Mark the buffer as closed.  Markers become unreadable."""
        self._valid = False
        self._markers.clear()

    # ── Lines ───────────────────────────────────────────────────────────

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    def line_count(self) -> int:
        return len(self._lines)

    def _resolve(self, index: int) -> int:
        count = len(self._lines)
        if index < 0:
            index = count + index + 1
        return max(0, min(index, count))

    def get_lines(self, start: int, end: int) -> list[str]:
        """Return rows ``start`` up to (excluding) ``end``; ``-1`` is the end."""
        return self._lines[self._resolve(start):self._resolve(end)]

    def set_lines(self, start: int, end: int, lines: list[str]) -> None:
        """Replace whole rows ``start`` up to (excluding) ``end`` with *lines*."""
        start = self._resolve(start)
        end = max(start, self._resolve(end))
        self._splice((start, 0), (end, 0), (start + len(lines), 0))
        self._lines[start:end] = list(lines)
        if not self._lines:
            self._lines = [""]

    def set_text(
        self,
        start_row: int,
        start_col: int,
        end_row: int,
        end_col: int,
        lines: list[str],
    ) -> None:
        """Replace the text between two positions with *lines*.

        *lines* follows the editor convention: ``[""]`` deletes, ``["a", ""]``
        inserts ``"a"`` followed by a newline.
        """
        if not lines:
            lines = [""]
        head = self._lines[start_row][:start_col]
        tail = self._lines[end_row][end_col:]

        if len(lines) == 1:
            new_end = (start_row, start_col + len(lines[0]))
        else:
            new_end = (start_row + len(lines) - 1, len(lines[-1]))

        self._splice((start_row, start_col), (end_row, end_col), new_end)

        replacement = list(lines)
        replacement[0] = head + replacement[0]
        replacement[-1] = replacement[-1] + tail
        self._lines[start_row:end_row + 1] = replacement

    def insert_text(self, row: int, col: int, text: str) -> None:
        """Insert *text* (may contain newlines) at ``(row, col)``."""
        self.set_text(row, col, row, col, text.split("\n"))

    def replace_line(self, row: int, text: str) -> None:
        """Replace the characters of one row, keeping the row itself."""
        self.set_text(row, 0, row, len(self._lines[row]), [text])

    # ── Markers ─────────────────────────────────────────────────────────

    def create_marker(
        self,
        start_row: int,
        start_col: int,
        end_row: int,
        end_col: int,
        *,
        right_gravity: bool = True,
        end_right_gravity: bool = False,
    ) -> int:
        marker_id = next(self._ids)
        self._markers[marker_id] = _Marker(
            start=(start_row, start_col),
            end=(end_row, end_col),
            right_gravity=right_gravity,
            end_right_gravity=end_right_gravity,
        )
        return marker_id

    def get_marker(self, marker_id: int) -> MarkerPosition | None:
        marker = self._markers.get(marker_id)
        if marker is None:
            return None
        return MarkerPosition(marker.start[0], marker.start[1], marker.end[0], marker.end[1])

    def del_marker(self, marker_id: int) -> None:
        self._markers.pop(marker_id, None)

    def clear_markers(self) -> None:
        self._markers.clear()

    def _splice(self, start: Pos, old_end: Pos, new_end: Pos) -> None:
        for marker in self._markers.values():
            marker.start = _move(marker.start, start, old_end, new_end, marker.right_gravity)
            marker.end = _move(marker.end, start, old_end, new_end, marker.end_right_gravity)
            if marker.end < marker.start:
                marker.end = marker.start
