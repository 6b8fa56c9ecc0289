"""NoteController: reads and writes the active note through a TextBuffer."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from notecopilot.note.buffer import InMemoryBuffer, Position, TextBuffer
from notecopilot.note.models import CursorPosition, NoteContext, SelectionRange

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"^---\n(.*?)\n---", re.DOTALL)
_FRONTMATTER_BLOCK_RE = re.compile(r"^---\n.*?\n---\n?", re.DOTALL)
_HEADING_PREFIX_RE = re.compile(r"^#+\s*")
_HEADING_LEVEL_RE = re.compile(r"^(#+)")

# Lines shown around the cursor when estimating the visible range.
_VISIBLE_LINES = 30


def normalize_heading(text: str) -> str:
    """'## Next Steps ' -> 'next steps'"""
    return _HEADING_PREFIX_RE.sub("", text).strip().lower()


def heading_level(line: str) -> int:
    match = _HEADING_LEVEL_RE.match(line)
    return len(match.group(1)) if match else 0


class NoteController:
    """Operations on the active note.

    The active note is a (path, buffer) pair; with no buffer attached every
    write reports failure and every read returns an empty value.
    """

    def __init__(self, buffer: TextBuffer | None = None, path: str = "") -> None:
        self._buffer = buffer
        self._path = path

    # -- active note ---------------------------------------------------------

    def open(self, buffer: TextBuffer, path: str = "") -> None:
        self._buffer = buffer
        self._path = path

    def close(self) -> None:
        self._buffer = None
        self._path = ""

    def open_file(self, path: str | Path) -> TextBuffer:
        """Load a Markdown file from disk into an in-memory buffer and make it active."""
        p = Path(path)
        buffer = InMemoryBuffer(p.read_text(encoding="utf-8"))
        self.open(buffer, str(p))
        logger.debug("opened %s (%d lines)", p, buffer.line_count())
        return buffer

    def save(self) -> Path:
        """Write the active buffer back to its file."""
        if self._buffer is None or not self._path:
            raise ValueError("No file-backed note is open")
        dest = Path(self._path)
        dest.write_text(self._buffer.get_value(), encoding="utf-8")
        logger.info("wrote %s", dest)
        return dest

    @property
    def path(self) -> str:
        return self._path

    @property
    def basename(self) -> str:
        return Path(self._path).stem if self._path else ""

    def get_active_editor(self) -> TextBuffer | None:
        return self._buffer

    def has_active_note(self) -> bool:
        return self._buffer is not None

    # -- reads ---------------------------------------------------------------

    def get_active_note_content(self) -> str:
        if self._buffer is None:
            return ""
        return self._buffer.get_value()

    def get_active_note_metadata(self) -> dict[str, Any] | None:
        """Parse the YAML frontmatter of the active note, or None."""
        match = _FRONTMATTER_RE.match(self.get_active_note_content())
        if not match:
            return None
        try:
            data = yaml.safe_load(match.group(1))
        except yaml.YAMLError as e:
            logger.debug("ignoring invalid frontmatter in %s: %s", self._path, e)
            return None
        return data if isinstance(data, dict) else None

    def get_selection(self) -> str:
        if self._buffer is None:
            return ""
        return self._buffer.get_selection()

    def has_selection(self) -> bool:
        return len(self.get_selection()) > 0

    def get_cursor_position(self) -> Position | None:
        if self._buffer is None:
            return None
        return self._buffer.get_cursor()

    def get_selection_range(self) -> tuple[Position, Position] | None:
        if self._buffer is None:
            return None
        start = self._buffer.get_cursor("from")
        end = self._buffer.get_cursor("to")
        if start == end:
            return None
        return start, end

    def get_visible_range(self) -> tuple[int, int] | None:
        """Approximate the visible lines as a window centred on the cursor."""
        if self._buffer is None:
            return None
        cursor = self._buffer.get_cursor()
        half = _VISIBLE_LINES // 2
        start = max(0, cursor.line - half)
        end = min(self._buffer.line_count() - 1, cursor.line + half)
        return start, end

    def get_note_context(self) -> NoteContext | None:
        if self._buffer is None:
            return None
        selection = self.get_selection()
        selection_range = self.get_selection_range()
        cursor = self.get_cursor_position()
        return NoteContext(
            path=self._path,
            basename=self.basename,
            content=self.get_active_note_content(),
            frontmatter=self.get_active_note_metadata(),
            selection=selection or None,
            selection_range=(
                SelectionRange(
                    start_line=selection_range[0].line,
                    end_line=selection_range[1].line,
                    start_ch=selection_range[0].ch,
                    end_ch=selection_range[1].ch,
                )
                if selection_range
                else None
            ),
            cursor_position=CursorPosition(line=cursor.line, ch=cursor.ch) if cursor else None,
        )

    # -- writes --------------------------------------------------------------

    def insert_at_cursor(self, text: str) -> bool:
        if self._buffer is None:
            return False
        self._buffer.replace_range(text, self._buffer.get_cursor())
        return True

    def replace_selection(self, text: str) -> bool:
        if self._buffer is None:
            return False
        self._buffer.replace_selection(text)
        return True

    def replace_range(
        self, text: str, start_line: int, start_ch: int, end_line: int, end_ch: int
    ) -> bool:
        if self._buffer is None:
            return False
        self._buffer.replace_range(text, Position(start_line, start_ch), Position(end_line, end_ch))
        return True

    def append_to_note(self, text: str) -> bool:
        """Append at the end, separated by a blank line unless the note already ends blank."""
        if self._buffer is None:
            return False
        last = self._buffer.line_count() - 1
        last_len = len(self._buffer.get_line(last))
        prefix = "\n\n" if last_len > 0 else "\n"
        self._buffer.replace_range(prefix + text, Position(last, last_len))
        return True

    def prepend_to_note(self, text: str) -> bool:
        """Insert at the top of the note, below the frontmatter block if there is one."""
        if self._buffer is None:
            return False
        match = _FRONTMATTER_BLOCK_RE.match(self._buffer.get_value())
        insert_line = match.group(0).count("\n") if match else 0
        self._buffer.replace_range(text + "\n\n", Position(insert_line, 0))
        return True

    def replace_entire_content(self, text: str) -> bool:
        if self._buffer is None:
            return False
        last = self._buffer.line_count() - 1
        self._buffer.replace_range(
            text, Position(0, 0), Position(last, len(self._buffer.get_line(last)))
        )
        return True

    def insert_heading(self, text: str, level: int) -> bool:
        prefix = "#" * min(max(level, 1), 6)
        return self.insert_at_cursor(f"{prefix} {text}\n\n")

    def insert_code_block(self, code: str, language: str = "") -> bool:
        return self.insert_at_cursor(f"```{language}\n{code}\n```\n")

    def insert_mermaid(self, code: str) -> bool:
        return self.insert_code_block(code, "mermaid")

    # -- smart edits ---------------------------------------------------------

    def find_and_replace(self, find: str, replace: str, replace_all: bool = False) -> int:
        """Literal find/replace. Returns the number of occurrences replaced."""
        if self._buffer is None:
            return 0
        content = self._buffer.get_value()

        if replace_all:
            new_content, count = re.subn(re.escape(find), lambda _m: replace, content)
        else:
            index = content.find(find)
            if index == -1:
                return 0
            new_content = content[:index] + replace + content[index + len(find):]
            count = 1

        if count:
            self.replace_entire_content(new_content)
        return count

    def find_heading_line(self, heading: str) -> int:
        """Line number of the first heading matching `heading`, or -1."""
        if self._buffer is None:
            return -1
        wanted = normalize_heading(heading)
        for i, line in enumerate(self._buffer.get_value().split("\n")):
            if line.startswith("#") and normalize_heading(line) == wanted:
                return i
        return -1

    def find_section_end(self, start_line: int) -> int:
        """Last line of the section opened by the heading at `start_line`."""
        if self._buffer is None:
            return -1
        line_count = self._buffer.line_count()
        level = heading_level(self._buffer.get_line(start_line))
        for i in range(start_line + 1, line_count):
            line = self._buffer.get_line(i)
            if line.startswith("#") and heading_level(line) <= level:
                return i - 1
        return line_count - 1

    def insert_after_heading(self, heading: str, text: str) -> bool:
        if self._buffer is None:
            return False
        heading_line = self.find_heading_line(heading)
        if heading_line == -1:
            return False
        self._buffer.replace_range("\n" + text + "\n", Position(heading_line + 1, 0))
        return True

    def update_section(self, heading: str, new_content: str) -> bool:
        """Replace a heading's section, keeping the heading line itself."""
        if self._buffer is None:
            return False
        heading_line = self.find_heading_line(heading)
        if heading_line == -1:
            return False
        section_end = self.find_section_end(heading_line)
        heading_text = self._buffer.get_line(heading_line)
        return self.replace_range(
            heading_text + "\n\n" + new_content + "\n",
            heading_line,
            0,
            section_end,
            len(self._buffer.get_line(section_end)),
        )

    def append_to_section(self, heading: str, text: str) -> bool:
        if self._buffer is None:
            return False
        heading_line = self.find_heading_line(heading)
        if heading_line == -1:
            return False
        section_end = self.find_section_end(heading_line)
        end_len = len(self._buffer.get_line(section_end))
        self._buffer.replace_range("\n\n" + text, Position(section_end, end_len))
        return True

    # -- cursor helpers ------------------------------------------------------

    def set_cursor(self, line: int, ch: int) -> None:
        if self._buffer is not None:
            self._buffer.set_cursor(Position(line, ch))

    def set_selection(self, from_line: int, from_ch: int, to_line: int, to_ch: int) -> None:
        if self._buffer is not None:
            self._buffer.set_selection(Position(from_line, from_ch), Position(to_line, to_ch))
