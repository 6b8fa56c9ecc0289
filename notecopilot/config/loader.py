"""YAML config loading with env var expansion."""

import os
import re
from collections.abc import Iterator
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import AssistantConfig

# Searched in order after an explicit --config path; the first non-empty file wins.
PROJECT_CONFIG_NAME = "notecopilot.yaml"
USER_CONFIG_PATH = Path(".notecopilot") / "config.yaml"

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def config_candidates(cli_path: str | None = None) -> Iterator[Path]:
    """Yield config locations by precedence: CLI path, project dir, user home."""
    if cli_path:
        yield Path(cli_path)
    yield Path.cwd() / PROJECT_CONFIG_NAME
    yield Path.home() / USER_CONFIG_PATH


def _read_config(path: Path) -> AssistantConfig | None:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if raw is None:
        return None
    try:
        return AssistantConfig.model_validate(_expand_env_vars(raw))
    except ValidationError as e:
        raise ValueError(f"Invalid config in {path}: {e}") from e


def load_config(cli_path: str | None = None) -> AssistantConfig:
    """Load the first usable config file, falling back to defaults."""
    for path in config_candidates(cli_path):
        if not path.is_file():
            continue
        config = _read_config(path)
        if config is not None:
            return config
    return AssistantConfig()


def _expand_env_vars(obj: object) -> object:
    """Replace ${VAR} references in strings, recursing into dicts and lists.

    Unset variables expand to "".
    """
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), obj)
    return obj


# Default YAML template for `notecopilot config init`
DEFAULT_CONFIG_TEMPLATE = """\
# notecopilot.yaml

# Active provider
provider: "bedrock"            # bedrock | gemini | groq

# AWS Bedrock (Claude)
bedrock:
  access_key_id: "${AWS_ACCESS_KEY_ID}"
  secret_access_key: "${AWS_SECRET_ACCESS_KEY}"
  session_token: "${AWS_SESSION_TOKEN}"
  region: "us-east-1"
  model_id: "anthropic.claude-sonnet-4-20250514-v1:0"
  custom_model_id: ""          # used when model_id is "other"

# Google Gemini
gemini:
  api_key: "${GEMINI_API_KEY}"
  model_id: "gemini-2.0-flash"
  custom_model_id: ""

# Groq
groq:
  api_key: "${GROQ_API_KEY}"
  model_id: "llama-3.3-70b-versatile"
  custom_model_id: ""

# Generation
max_tokens: 8192
temperature: 0.7
timeout: 60
max_retries: 2
system_prompt: ""              # empty = built-in prompt

# Note context
auto_include_context: true
stream_responses: true
max_note_tokens: 8000
excluded_notes: []

# Connection status cache
connection:
  cache_duration_seconds: 300

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
