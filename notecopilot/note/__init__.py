"""Note access: the TextBuffer capability and the controller built on it."""

from notecopilot.note.buffer import InMemoryBuffer, Position, TextBuffer
from notecopilot.note.controller import NoteController, heading_level, normalize_heading
from notecopilot.note.models import CursorPosition, NoteContext, SelectionRange

__all__ = [
    "CursorPosition",
    "InMemoryBuffer",
    "NoteContext",
    "NoteController",
    "Position",
    "SelectionRange",
    "TextBuffer",
    "heading_level",
    "normalize_heading",
]
