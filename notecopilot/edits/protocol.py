"""EditProtocol: executes parsed edit commands against the active note."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from notecopilot.edits import parser
from notecopilot.edits.models import EditCommand, EditParams, ExecutionResult
from notecopilot.note.controller import NoteController

logger = logging.getLogger(__name__)

Outcome = tuple[bool, str]


class EditProtocol:
    """Parser front-end plus a fail-fast executor.

    Commands run strictly in order. The first failure halts the batch and
    earlier mutations stay applied; each command writes straight to the
    buffer, so there is nothing to roll back to.
    """

    def __init__(self, note_controller: NoteController) -> None:
        self.notes = note_controller
        self._executors: dict[str, Callable[[EditParams], Outcome]] = {
            "replace_selection": self._replace_selection,
            "insert_at_cursor": self._insert_at_cursor,
            "replace_range": self._replace_range,
            "find_replace": self._find_replace,
            "update_section": self._update_section,
            "append": self._append,
            "prepend": self._prepend,
            "replace_all": self._replace_all,
            "insert_after_heading": self._insert_after_heading,
        }

    # -- parsing -------------------------------------------------------------

    @staticmethod
    def get_markers() -> dict[str, str]:
        return parser.get_markers()

    def parse_edit_commands(self, response: str) -> list[EditCommand]:
        return parser.parse_edit_commands(response)

    def has_edit_commands(self, response: str) -> bool:
        return parser.has_edit_commands(response)

    def get_display_text(self, response: str) -> str:
        return parser.get_display_text(response)

    def generate_preview(self, command: EditCommand) -> str:
        return parser.generate_preview(command)

    # -- execution -----------------------------------------------------------

    def execute_command(self, command: EditCommand) -> ExecutionResult:
        executor = self._executors.get(command.action)
        if executor is None:
            return ExecutionResult(
                command=command, success=False, message=f"Unknown action: {command.action}"
            )
        try:
            success, message = executor(command.params)
        except Exception as e:
            logger.warning("edit %s raised: %s", command.action, e)
            success, message = False, str(e) or type(e).__name__
        return ExecutionResult(command=command, success=success, message=message)

    def execute_commands(
        self,
        commands: Iterable[EditCommand],
        cancel_event: asyncio.Event | None = None,
    ) -> list[ExecutionResult]:
        """Run a batch in order, stopping after the first failure.

        A set `cancel_event` stops the batch before the next command starts;
        a command that has started always runs to completion.
        """
        results: list[ExecutionResult] = []
        for command in commands:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("edit batch cancelled after %d command(s)", len(results))
                break
            result = self.execute_command(command)
            results.append(result)
            if not result.success:
                logger.info("edit batch halted at %s: %s", command.action, result.message)
                break
        return results

    # -- executors -----------------------------------------------------------

    def _replace_selection(self, params: EditParams) -> Outcome:
        if not self.notes.has_selection():
            return False, "No text selected to replace"
        ok = self.notes.replace_selection(params.body)
        return ok, "Selection replaced" if ok else "Failed to replace selection"

    def _insert_at_cursor(self, params: EditParams) -> Outcome:
        if not self.notes.has_active_note():
            return False, "No active note"
        ok = self.notes.insert_at_cursor(params.body)
        return ok, "Text inserted at cursor" if ok else "Failed to insert text"

    def _replace_range(self, params: EditParams) -> Outcome:
        start, end = params.start_line, params.end_line
        if start is None or end is None:
            return False, "Start and end lines are required for replace_range"
        editor = self.notes.get_active_editor()
        if editor is None:
            return False, "No active editor"
        end_len = len(editor.get_line(end))
        ok = self.notes.replace_range(params.body, start, 0, end, end_len)
        return ok, f"Replaced lines {start}-{end}" if ok else "Failed to replace range"

    def _find_replace(self, params: EditParams) -> Outcome:
        if not params.find:
            return False, "Find text is required for find_replace"
        count = self.notes.find_and_replace(params.find, params.replace or "", params.all)
        if count == 0:
            return False, f'Text "{params.find}" not found'
        return True, f"Replaced {count} occurrence(s)"

    def _update_section(self, params: EditParams) -> Outcome:
        if not params.heading:
            return False, "Heading is required for update_section"
        ok = self.notes.update_section(params.heading, params.body)
        if ok:
            return True, f'Updated section "{params.heading}"'
        return False, f'Section "{params.heading}" not found'

    def _append(self, params: EditParams) -> Outcome:
        ok = self.notes.append_to_note(params.body)
        return ok, "Content appended to note" if ok else "Failed to append content"

    def _prepend(self, params: EditParams) -> Outcome:
        ok = self.notes.prepend_to_note(params.body)
        return ok, "Content prepended to note" if ok else "Failed to prepend content"

    def _replace_all(self, params: EditParams) -> Outcome:
        if not self.notes.has_active_note():
            return False, "No active editor"
        ok = self.notes.replace_entire_content(params.body)
        return ok, "Note content replaced" if ok else "Failed to replace content"

    def _insert_after_heading(self, params: EditParams) -> Outcome:
        if not params.heading:
            return False, "Heading is required for insert_after_heading"
        ok = self.notes.insert_after_heading(params.heading, params.body)
        if ok:
            return True, f'Content inserted after "{params.heading}"'
        return False, f'Heading "{params.heading}" not found'
