"""
Settings store utilities.

Persists the AI configuration to ~/.duckquery/config.json (or any injected
store) and layers it over environment defaults. Storage problems are never
fatal: a config that cannot be read or written simply is not persisted.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from duckquery.config import AIConfig, CustomPrompts

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".duckquery"
CONFIG_PATH = CONFIG_DIR / "config.json"

AI_CONFIG_KEY = "ai_config"


class ConfigStore(Protocol):
    """Load/save collaborator for persisted configuration."""

    def load(self) -> dict[str, Any]: ...

    def save(self, config: dict[str, Any]) -> None: ...


class JsonConfigStore:
    """Config store backed by a JSON file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path) if path else CONFIG_PATH

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug(f"Ignoring unreadable config file {self.path}: {exc}")
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, config: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
            with open(self.path, "w", encoding="utf-8") as handle:
                json.dump(config, handle, indent=2)
        except OSError as exc:
            logger.debug(f"Could not persist config to {self.path}: {exc}")

    def clear(self) -> None:
        """Remove persisted config file."""
        try:
            if self.path.exists():
                self.path.unlink()
        except OSError:
            return


class MemoryConfigStore:
    """In-process config store (tests, ephemeral sessions)."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(initial or {})

    def load(self) -> dict[str, Any]:
        return dict(self.data)

    def save(self, config: dict[str, Any]) -> None:
        self.data = dict(config)


class AIConfigManager:
    """
    Get/set access to the current AIConfig.

    Precedence on load: built-in defaults < environment defaults < stored
    values. Every `set` replaces the config wholesale, persists it through the
    injected store, and notifies listeners.
    """

    def __init__(self, store: ConfigStore, defaults: AIConfig | None = None) -> None:
        self._store = store
        self._defaults = defaults or AIConfig()
        self._listeners: list[Callable[[AIConfig], None]] = []
        self._config = self._load()

    def get(self) -> AIConfig:
        return self._config

    def set(self, **updates: Any) -> AIConfig:
        """
        Apply updates and persist.

        Args:
            **updates: AIConfig fields (api_key, api_url, model, custom_prompts)

        Returns:
            The new AIConfig
        """
        if "custom_prompts" in updates and isinstance(updates["custom_prompts"], dict):
            updates["custom_prompts"] = CustomPrompts(**updates["custom_prompts"])
        merged = self._config.model_dump()
        merged.update(updates)
        config = AIConfig.model_validate(merged)
        self._config = config
        self._persist(config)
        for listener in list(self._listeners):
            listener(config)
        return config

    def subscribe(self, listener: Callable[[AIConfig], None]) -> None:
        self._listeners.append(listener)

    def _load(self) -> AIConfig:
        try:
            stored = self._store.load().get(AI_CONFIG_KEY) or {}
        except OSError as exc:
            logger.debug(f"Config store unavailable: {exc}")
            stored = {}
        merged = self._defaults.model_dump()
        merged.update({key: value for key, value in stored.items() if value not in (None, "")})
        try:
            return AIConfig.model_validate(merged)
        except ValidationError as exc:
            logger.warning(f"Ignoring invalid stored AI config: {exc}")
            return self._defaults

    def _persist(self, config: AIConfig) -> None:
        try:
            data = self._store.load()
            data[AI_CONFIG_KEY] = config.model_dump(exclude_none=True)
            self._store.save(data)
        except OSError as exc:
            logger.debug(f"Config store unavailable: {exc}")
