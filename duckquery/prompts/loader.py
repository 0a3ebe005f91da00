"""Prompt loading and rendering utilities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parent / "templates"


@dataclass(frozen=True)
class PromptEntry:
    """Loaded prompt content and metadata."""

    content: str
    metadata: dict[str, Any]


class FrontMatterLoader(FileSystemLoader):
    """Jinja2 loader that strips YAML front matter."""

    def get_source(self, environment: Environment, template: str):  # type: ignore[override]
        source, filename, uptodate = super().get_source(environment, template)
        if source.startswith("---"):
            parts = source.split("---", 2)
            if len(parts) == 3:
                source = parts[2].lstrip()
        return source, filename, uptodate


class PromptLoader:
    """Load and render the system prompt templates."""

    def __init__(self, prompts_dir: str | Path | None = None) -> None:
        self.prompts_dir = Path(prompts_dir) if prompts_dir else DEFAULT_PROMPTS_DIR
        self.cache: dict[str, PromptEntry] = {}
        self._env = Environment(
            loader=FrontMatterLoader(str(self.prompts_dir)),
            undefined=StrictUndefined,
            autoescape=False,
        )

    def load(self, prompt_path: str) -> str:
        """
        Load prompt from file, without rendering.

        Args:
            prompt_path: Relative path (e.g., "generate_sql.md")

        Returns:
            Prompt content as string
        """
        return self._entry(prompt_path).content

    def render(self, prompt_path: str, **variables: Any) -> str:
        """
        Load prompt and substitute variables using Jinja2.

        Example:
            prompt = loader.render("fix_sql.md", dialect="DuckDB")
        """
        try:
            template = self._env.get_template(prompt_path)
        except TemplateNotFound as exc:
            raise FileNotFoundError(f"Prompt not found: {self.prompts_dir / prompt_path}") from exc
        return template.render(**variables).strip()

    def get_metadata(self, prompt_path: str) -> dict[str, Any]:
        """Return front matter metadata for a prompt (loads if needed)."""
        return self._entry(prompt_path).metadata

    def _entry(self, prompt_path: str) -> PromptEntry:
        if prompt_path in self.cache:
            return self.cache[prompt_path]

        file_path = self.prompts_dir / prompt_path
        if not file_path.exists():
            raise FileNotFoundError(f"Prompt not found: {file_path}")

        content = file_path.read_text(encoding="utf-8")
        metadata: dict[str, Any] = {}
        prompt_content = content

        if content.startswith("---"):
            parts = content.split("---", 2)
            if len(parts) == 3:
                metadata = yaml.safe_load(parts[1]) or {}
                prompt_content = parts[2].lstrip()

        entry = PromptEntry(content=prompt_content.strip(), metadata=metadata)
        self.cache[prompt_path] = entry
        return entry
