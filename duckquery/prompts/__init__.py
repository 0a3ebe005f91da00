"""System prompt templates and their loader."""

from duckquery.prompts.loader import DEFAULT_PROMPTS_DIR, PromptEntry, PromptLoader

__all__ = ["DEFAULT_PROMPTS_DIR", "PromptEntry", "PromptLoader"]
