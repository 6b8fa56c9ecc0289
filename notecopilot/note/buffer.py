"""Text buffer capability and an in-memory implementation.

Everything the edit protocol does to a note is expressed through this
interface: line-addressed reads, cursor/selection access and a single
range-replace primitive. Positions are clipped to the document the same way
an editor clips them, so callers may address one line past the end.
"""

from __future__ import annotations

from typing import Literal, NamedTuple, Protocol, runtime_checkable

CursorSide = Literal["from", "to", "head", "anchor"]


class Position(NamedTuple):
    """Zero-based (line, character) address inside a buffer."""

    line: int
    ch: int


@runtime_checkable
class TextBuffer(Protocol):
    """A mutable document with line/character addressing, cursor and selection."""

    def line_count(self) -> int: ...

    def get_line(self, line: int) -> str: ...

    def get_value(self) -> str: ...

    def get_cursor(self, which: CursorSide = "head") -> Position: ...

    def set_cursor(self, pos: Position) -> None: ...

    def get_selection(self) -> str: ...

    def set_selection(self, anchor: Position, head: Position | None = None) -> None: ...

    def replace_selection(self, text: str) -> None: ...

    def replace_range(self, text: str, start: Position, end: Position | None = None) -> None: ...


class InMemoryBuffer:
    """TextBuffer backed by a single string.

    The selection is kept as anchor/head offsets. Edits map the selection
    through the change: offsets before the edited range stay put, offsets
    after it shift, offsets inside it collapse to the end of the new text.
    """

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._anchor = 0
        self._head = 0

    def __repr__(self) -> str:
        return f"InMemoryBuffer({self._text!r})"

    # -- reads ---------------------------------------------------------------

    def _lines(self) -> list[str]:
        return self._text.split("\n")

    def line_count(self) -> int:
        return len(self._lines())

    def get_line(self, line: int) -> str:
        lines = self._lines()
        if 0 <= line < len(lines):
            return lines[line]
        return ""

    def get_value(self) -> str:
        return self._text

    def set_value(self, text: str) -> None:
        self._text = text
        self._anchor = self._head = 0

    # -- positions -----------------------------------------------------------

    def clip(self, pos: Position) -> Position:
        lines = self._lines()
        last = len(lines) - 1
        if pos.line < 0:
            return Position(0, 0)
        if pos.line > last:
            return Position(last, len(lines[last]))
        return Position(pos.line, max(0, min(pos.ch, len(lines[pos.line]))))

    def index_from_pos(self, pos: Position) -> int:
        pos = self.clip(pos)
        lines = self._lines()
        return sum(len(line) + 1 for line in lines[: pos.line]) + pos.ch

    def pos_from_index(self, index: int) -> Position:
        index = max(0, min(index, len(self._text)))
        before = self._text[:index]
        line = before.count("\n")
        return Position(line, index - (before.rfind("\n") + 1))

    # -- cursor & selection --------------------------------------------------

    def get_cursor(self, which: CursorSide = "head") -> Position:
        if which == "from":
            offset = min(self._anchor, self._head)
        elif which == "to":
            offset = max(self._anchor, self._head)
        elif which == "anchor":
            offset = self._anchor
        else:
            offset = self._head
        return self.pos_from_index(offset)

    def set_cursor(self, pos: Position) -> None:
        self._anchor = self._head = self.index_from_pos(pos)

    def get_selection(self) -> str:
        start, end = sorted((self._anchor, self._head))
        return self._text[start:end]

    def set_selection(self, anchor: Position, head: Position | None = None) -> None:
        self._anchor = self.index_from_pos(anchor)
        self._head = self.index_from_pos(head if head is not None else anchor)

    # -- mutation ------------------------------------------------------------

    def replace_selection(self, text: str) -> None:
        start, end = sorted((self._anchor, self._head))
        self._replace(text, start, end)
        self._anchor = self._head = start + len(text)

    def replace_range(self, text: str, start: Position, end: Position | None = None) -> None:
        a = self.index_from_pos(start)
        b = self.index_from_pos(end) if end is not None else a
        if b < a:
            a, b = b, a
        self._replace(text, a, b)

    def _replace(self, text: str, start: int, end: int) -> None:
        self._text = self._text[:start] + text + self._text[end:]
        delta = len(text) - (end - start)

        def _map(offset: int) -> int:
            if offset < start or (offset == start and start != end):
                return offset
            if offset >= end:
                return offset + delta
            return start + len(text)

        self._anchor = _map(self._anchor)
        self._head = _map(self._head)
