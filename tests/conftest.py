"""Shared test fixtures for notecopilot."""

import pytest

from notecopilot.config.models import AssistantConfig, BedrockSettings, GeminiSettings, GroqSettings
from notecopilot.llm.connection import reset_connection_cache
from notecopilot.note import InMemoryBuffer, NoteController


@pytest.fixture(autouse=True)
def _fresh_connection_cache():
    reset_connection_cache()
    yield
    reset_connection_cache()


@pytest.fixture
def sample_config():
    return AssistantConfig()


@pytest.fixture
def configured_config():
    """Every provider has credentials; bedrock is active."""
    return AssistantConfig(
        provider="bedrock",
        bedrock=BedrockSettings(access_key_id="AKIA_TEST", secret_access_key="secret"),
        gemini=GeminiSettings(api_key="gem-key"),
        groq=GroqSettings(api_key="gsk-test"),
        max_retries=0,
    )


@pytest.fixture
def sample_note_text():
    return (
        "---\n"
        "title: Weekly plan\n"
        "tags: [work, planning]\n"
        "---\n"
        "# Plan\n"
        "\n"
        "## Goals\n"
        "Ship the parser.\n"
        "Review the PR.\n"
        "\n"
        "## Notes\n"
        "Nothing yet."
    )


@pytest.fixture
def note(sample_note_text):
    return NoteController(InMemoryBuffer(sample_note_text), path="vault/Weekly plan.md")


class FakeStream:
    """Async-iterable stand-in for an SDK event stream."""

    def __init__(self, events, error=None, on_read=None):
        self._events = list(events)
        self._error = error
        self._on_read = on_read
        self.closed = False
        self.reads = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._on_read is not None:
            self._on_read(self.reads)
        self.reads += 1
        if self._events:
            return self._events.pop(0)
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_stream():
    return FakeStream
