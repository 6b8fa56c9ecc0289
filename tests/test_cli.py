"""Tests for the notecopilot CLI commands."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from typer.testing import CliRunner

from notecopilot.cli import app
from notecopilot.config.loader import DEFAULT_CONFIG_TEMPLATE
from notecopilot.llm import ConnectionState, ProviderManager, TokenStream, TokenUsage

runner = CliRunner()

APPEND_REPLY = 'Sure!\n<<<EDIT_START>>>\n{"action":"append","params":{"text":"Done."}}\n<<<EDIT_END>>>'


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """Keep config lookup inside tmp_path and restore the package logger."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
    logger = logging.getLogger("notecopilot")
    saved = (logger.handlers[:], logger.level, logger.propagate)
    yield
    logger.handlers, logger.propagate = saved[0], saved[2]
    logger.setLevel(saved[1])


@pytest.fixture()
def configured_file(tmp_path):
    path = tmp_path / "notecopilot.yaml"
    path.write_text(
        "provider: bedrock\n"
        "bedrock:\n"
        "  access_key_id: AKIA_TEST\n"
        "  secret_access_key: secret\n"
    )
    return path


@pytest.fixture()
def note_file(tmp_path):
    path = tmp_path / "Daily.md"
    path.write_text("Line1")
    return path


def _token_stream(*chunks):
    async def gen():
        for chunk in chunks:
            yield chunk

    return TokenStream(gen(), TokenUsage(), "fake-model")


@pytest.fixture()
def mock_manager():
    """Patch ProviderManager where the Assistant builds it and return the instance."""
    instance = Mock(spec=ProviderManager)
    instance.send_message_stream.return_value = _token_stream(APPEND_REPLY[:10], APPEND_REPLY[10:])
    with patch("notecopilot.assistant.ProviderManager", return_value=instance):
        yield instance


# ---------------------------------------------------------------------------
# ask
# ---------------------------------------------------------------------------


class TestAsk:
    def test_applies_and_saves(self, configured_file, note_file, mock_manager):
        result = runner.invoke(app, ["ask", str(note_file), "Finish it"])
        assert result.exit_code == 0, result.output
        assert "Sure!" in result.output
        assert "Saved:" in result.output
        assert note_file.read_text() == "Line1\n\nDone."

    def test_dry_run_leaves_file(self, configured_file, note_file, mock_manager):
        result = runner.invoke(app, ["ask", str(note_file), "Finish it", "--dry-run"])
        assert result.exit_code == 0
        assert "dry run" in result.output
        assert note_file.read_text() == "Line1"

    def test_no_apply_only_lists(self, configured_file, note_file, mock_manager):
        result = runner.invoke(app, ["ask", str(note_file), "Finish it", "--no-apply"])
        assert result.exit_code == 0
        assert "Edit commands (1)" in result.output
        assert note_file.read_text() == "Line1"

    def test_no_context_flag(self, configured_file, note_file, mock_manager):
        runner.invoke(app, ["ask", str(note_file), "Finish it", "--no-context"])
        messages = mock_manager.send_message_stream.call_args.args[0]
        assert messages[-1].content == "Finish it"

    def test_failed_edit_exits_nonzero(self, configured_file, note_file, mock_manager):
        reply = '<<<EDIT_START>>>\n{"action":"update_section","params":{"heading":"Nope","content":"x"}}\n<<<EDIT_END>>>'
        mock_manager.send_message_stream.return_value = _token_stream(reply)
        result = runner.invoke(app, ["ask", str(note_file), "Fix"])
        assert result.exit_code == 1
        assert "failed" in result.output
        assert note_file.read_text() == "Line1"

    def test_unconfigured_provider(self, note_file):
        result = runner.invoke(app, ["ask", str(note_file), "Finish it"])
        assert result.exit_code == 1
        assert "is not configured" in result.output

    def test_missing_note(self, tmp_path):
        result = runner.invoke(app, ["ask", str(tmp_path / "nope.md"), "hi"])
        assert result.exit_code == 1
        assert "is not a file" in result.output

    def test_undecodable_note(self, configured_file, tmp_path, mock_manager):
        note = tmp_path / "Binary.md"
        note.write_bytes(b"\xff\xfe\x00bad")
        result = runner.invoke(app, ["ask", str(note), "hi"])
        assert result.exit_code == 1
        assert "Cannot read" in result.output
        mock_manager.send_message_stream.assert_not_called()

    def test_write_failure_exits_nonzero(self, configured_file, note_file, mock_manager):
        with patch("notecopilot.cli.NoteController.save", side_effect=OSError("disk full")):
            result = runner.invoke(app, ["ask", str(note_file), "Finish it"])
        assert result.exit_code == 1
        assert "Cannot write" in result.output
        assert "Saved:" not in result.output
        assert note_file.read_text() == "Line1"

    def test_transform_added_to_system_prompt(self, configured_file, note_file, mock_manager):
        result = runner.invoke(app, ["ask", str(note_file), "Tidy up", "-t", "coin", "--transform", "pyramid"])
        assert result.exit_code == 0, result.output
        system_prompt = mock_manager.send_message_stream.call_args.args[1]
        assert "Document Transformation Requested" in system_prompt
        assert "ALL 2 of these frameworks" in system_prompt
        assert system_prompt.index("# PYRAMID") < system_prompt.index("# COIN")

    def test_unknown_transform(self, configured_file, note_file, mock_manager):
        result = runner.invoke(app, ["ask", str(note_file), "Tidy up", "-t", "haiku"])
        assert result.exit_code == 1
        assert "Unknown transform(s): haiku" in result.output
        mock_manager.send_message_stream.assert_not_called()


class TestTransformsCommand:
    def test_lists_all(self):
        result = runner.invoke(app, ["transforms"])
        assert result.exit_code == 0
        for key in ("pyramid", "coin", "developer", "business", "management", "cosmos", "cringe"):
            assert key in result.output


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


class TestParse:
    def test_lists_commands(self, tmp_path):
        reply = tmp_path / "reply.txt"
        reply.write_text(APPEND_REPLY)
        result = runner.invoke(app, ["parse", str(reply)])
        assert result.exit_code == 0
        assert "Edit commands (1)" in result.output
        assert "append" in result.output

    def test_no_commands(self, tmp_path):
        reply = tmp_path / "reply.txt"
        reply.write_text("Just prose.")
        result = runner.invoke(app, ["parse", str(reply)])
        assert result.exit_code == 0
        assert "No edit commands found." in result.output


# ---------------------------------------------------------------------------
# providers / test-connection
# ---------------------------------------------------------------------------


class TestProviders:
    def test_table(self, configured_file):
        result = runner.invoke(app, ["providers"])
        assert result.exit_code == 0
        assert "Providers" in result.output
        assert "Groq" in result.output


class TestConnectionCommand:
    def test_unknown_provider(self):
        result = runner.invoke(app, ["test-connection", "--provider", "openai"])
        assert result.exit_code == 1
        assert "Unknown provider" in result.output

    def test_unconfigured_active_provider(self):
        result = runner.invoke(app, ["test-connection"])
        assert result.exit_code == 1
        assert "not configured" in result.output

    def test_cached_success(self):
        instance = MagicMock()
        instance.provider_display_name = "AWS Bedrock (Claude)"
        instance.check_connection = AsyncMock(
            return_value=ConnectionState(is_connected=True, provider="bedrock")
        )
        with patch("notecopilot.cli.ProviderManager", return_value=instance):
            result = runner.invoke(app, ["test-connection", "--force"])
        assert result.exit_code == 0
        assert "Connection successful" in result.output
        instance.check_connection.assert_awaited_once_with(force_refresh=True)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_init_creates_file(self, tmp_path):
        target = tmp_path / "out.yaml"
        result = runner.invoke(app, ["config", "init", "--path", str(target)])
        assert result.exit_code == 0
        assert target.read_text() == DEFAULT_CONFIG_TEMPLATE

    def test_init_refuses_overwrite(self, tmp_path):
        target = tmp_path / "out.yaml"
        target.write_text("provider: groq\n")
        result = runner.invoke(app, ["config", "init", "--path", str(target)])
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert target.read_text() == "provider: groq\n"

    def test_init_force(self, tmp_path):
        target = tmp_path / "out.yaml"
        target.write_text("provider: groq\n")
        result = runner.invoke(app, ["config", "init", "--path", str(target), "--force"])
        assert result.exit_code == 0
        assert target.read_text() == DEFAULT_CONFIG_TEMPLATE

    def test_show(self, configured_file):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "provider: bedrock" in result.output

    def test_explicit_config_path(self, tmp_path):
        custom = tmp_path / "custom.yaml"
        custom.write_text("provider: groq\n")
        result = runner.invoke(app, ["--config", str(custom), "config", "show"])
        assert result.exit_code == 0
        assert "provider: groq" in result.output

    def test_invalid_config_exits(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("provider: [oops\n")
        result = runner.invoke(app, ["--config", str(bad), "providers"])
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output
