"""ContextBuilder: system prompt, per-turn context message and history assembly."""

from __future__ import annotations

import fnmatch
import logging
import math
import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Literal

import yaml
from pydantic import BaseModel, Field

from notecopilot.context.prompts import default_system_prompt
from notecopilot.context.transforms import get_transform_prompt
from notecopilot.llm.models import Message
from notecopilot.note.controller import NoteController
from notecopilot.note.models import NoteContext

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


class ChatMessage(BaseModel):
    """One entry of the chat history."""

    role: Literal["user", "assistant"]
    content: str
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=datetime.now)


class ContextBuilder:
    def __init__(
        self,
        note_controller: NoteController,
        max_note_tokens: int = 8000,
        excluded_notes: Iterable[str] = (),
    ) -> None:
        self.notes = note_controller
        self.max_note_tokens = max_note_tokens
        self.excluded_notes = list(excluded_notes)

    @property
    def max_message_length(self) -> int:
        return self.max_note_tokens * CHARS_PER_TOKEN

    def build_system_prompt(self, custom: str | None = None, transforms: Iterable[str] = ()) -> str:
        """Custom or built-in prompt, followed by any selected transform instructions."""
        base = custom if custom and custom.strip() else default_system_prompt()
        return base + get_transform_prompt(transforms)

    def is_excluded(self, path: str) -> bool:
        """True when `path` matches an entry of `excluded_notes` (globs allowed)."""
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.excluded_notes)

    def _note_context(self) -> NoteContext | None:
        context = self.notes.get_note_context()
        if context is not None and self.is_excluded(context.path):
            logger.debug("note %s is excluded from context", context.path)
            return None
        return context

    def has_note_context(self) -> bool:
        return self._note_context() is not None

    def truncate_content(self, content: str) -> str:
        """Keep the head and tail of an oversized note."""
        limit = self.max_message_length
        if len(content) <= limit:
            return content
        half = limit // 2
        dropped = len(content) - limit
        return f"{content[:half]}\n\n[...truncated {dropped} characters...]\n\n{content[-half:]}"

    def build_context_message(self, user_message: str, include_note_context: bool) -> str:
        if not include_note_context:
            return user_message
        context = self._note_context()
        if context is None:
            return user_message

        parts = ["=== CURRENT NOTE CONTEXT ===", f"Path: {context.path}"]
        if context.frontmatter:
            parts += [
                "\nFrontmatter:",
                "```yaml",
                yaml.safe_dump(context.frontmatter, sort_keys=False, allow_unicode=True).rstrip(),
                "```",
            ]
        parts += ["\nNote Content:", "```markdown", self.truncate_content(context.content), "```"]

        if context.selection and context.selection_range:
            r = context.selection_range
            parts += [
                f"\nUser Selection (Lines {r.start_line + 1}-{r.end_line + 1}):",
                "```",
                context.selection,
                "```",
            ]
        if context.cursor_position:
            c = context.cursor_position
            parts.append(f"\nCursor Position: Line {c.line + 1}, Column {c.ch + 1}")

        parts += ["=== END CONTEXT ===\n", "User Request:", user_message]
        return "\n".join(parts)

    def build_messages(
        self,
        history: Iterable[ChatMessage | Message],
        user_message: str,
        include_note_context: bool,
    ) -> list[Message]:
        """History turns followed by the current request wrapped in note context."""
        messages = [Message(role=m.role, content=m.content) for m in history]
        messages.append(
            Message(role="user", content=self.build_context_message(user_message, include_note_context))
        )
        return messages

    def get_context_summary(self) -> str | None:
        """Short one-line description of what context will be sent."""
        context = self._note_context()
        if context is None:
            return None
        parts = [context.basename]
        if context.selection:
            line_info = ""
            if context.selection_range:
                r = context.selection_range
                line_info = f" (L{r.start_line + 1}-{r.end_line + 1})"
            parts.append(f"Selection{line_info}")
        parts.append(f"{len(context.content.split())} words")
        return " • ".join(parts)

    @staticmethod
    def estimate_tokens(text: str) -> int:
        return math.ceil(len(text) / CHARS_PER_TOKEN)
