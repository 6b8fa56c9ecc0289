"""Pydantic models describing the active note."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class CursorPosition(BaseModel):
    line: int
    ch: int


class SelectionRange(BaseModel):
    start_line: int
    end_line: int
    start_ch: int
    end_ch: int


class NoteContext(BaseModel):
    """Snapshot of the active note handed to the context builder."""

    path: str
    basename: str
    content: str
    frontmatter: dict[str, Any] | None = None
    selection: str | None = None
    selection_range: SelectionRange | None = None
    cursor_position: CursorPosition | None = None
