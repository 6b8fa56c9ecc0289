"""One chat turn, end to end: context -> provider -> edit commands -> buffer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from pydantic import BaseModel, Field

from notecopilot.config.models import AssistantConfig
from notecopilot.context.builder import ChatMessage, ContextBuilder
from notecopilot.edits.models import EditCommand, ExecutionResult
from notecopilot.edits.protocol import EditProtocol
from notecopilot.llm.manager import ProviderManager
from notecopilot.llm.models import TokenUsage
from notecopilot.note.controller import NoteController
from notecopilot.telemetry import TelemetrySink

logger = logging.getLogger(__name__)


class ChatTurn(BaseModel):
    reply: str
    display_text: str
    commands: list[EditCommand] = Field(default_factory=list)
    results: list[ExecutionResult] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)

    @property
    def applied(self) -> bool:
        """True when every parsed command ran and succeeded."""
        return bool(self.commands) and len(self.results) == len(self.commands) and all(
            r.success for r in self.results
        )


class Assistant:
    def __init__(
        self,
        config: AssistantConfig,
        note_controller: NoteController,
        manager: ProviderManager | None = None,
        telemetry: TelemetrySink | None = None,
    ) -> None:
        self.config = config
        self.notes = note_controller
        self.manager = manager or ProviderManager(config, telemetry=telemetry)
        self.context = ContextBuilder(
            note_controller,
            max_note_tokens=config.max_note_tokens,
            excluded_notes=config.excluded_notes,
        )
        self.edits = EditProtocol(note_controller)

    async def chat(
        self,
        message: str,
        history: Iterable[ChatMessage] = (),
        *,
        include_context: bool | None = None,
        apply_edits: bool = True,
        cancel_event: asyncio.Event | None = None,
        on_chunk: Callable[[str], None] | None = None,
        transforms: Iterable[str] = (),
    ) -> ChatTurn:
        if include_context is None:
            include_context = self.config.auto_include_context
        messages = self.context.build_messages(history, message, include_context)
        system_prompt = self.context.build_system_prompt(self.config.system_prompt, transforms)

        if self.config.stream_responses:
            stream = self.manager.send_message_stream(messages, system_prompt, cancel_event)
            parts: list[str] = []
            async for text in stream:
                parts.append(text)
                if on_chunk is not None:
                    on_chunk(text)
            reply, usage = "".join(parts), stream.usage
        else:
            response = await self.manager.send_message(messages, system_prompt)
            reply, usage = response.content, response.usage
            if on_chunk is not None:
                on_chunk(reply)

        commands = self.edits.parse_edit_commands(reply)
        results: list[ExecutionResult] = []
        if commands and apply_edits:
            results = self.edits.execute_commands(commands, cancel_event)
            logger.info(
                "applied %d/%d edit command(s)",
                sum(r.success for r in results), len(commands),
            )
        return ChatTurn(
            reply=reply,
            display_text=self.edits.get_display_text(reply),
            commands=commands,
            results=results,
            usage=usage,
        )
