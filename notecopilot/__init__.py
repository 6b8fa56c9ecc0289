"""notecopilot: LLM writing assistant for Markdown notes."""

__version__ = "0.1.0"
