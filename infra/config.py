"""
Configuration Manager
---------------------
YAML configuration with environment variable overrides,
plus API key lookup per provider.

Rules:
- Secrets never in code
- Keys come from explicit values, the config file, or the environment
- Blank keys count as missing
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import logging
import os

import yaml

from memory.conversation import AIProvider

ENV_PREFIX = "FREEWRITE_"

DEFAULT_CACHE_DIR = Path.home() / ".freewrite" / "ChatCache"


class ConfigManager:
    """
    Centralized configuration management.
    Loads configuration from YAML with environment variable overrides.
    """

    def __init__(self, config_path: Union[str, Path] = "config.yaml"):
        self._config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._logger = logging.getLogger("freewrite.infra.config")

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file."""
        if self._config_path.exists():
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
            self._logger.info(f"Loaded config from {self._config_path}")
        else:
            self._config = {}
            self._logger.debug(f"Config file not found: {self._config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.
        Supports dot notation: 'section.key'
        Environment variables override file config.
        """
        env_key = f"{ENV_PREFIX}{key.upper().replace('.', '_')}"
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value

        value: Any = self._config
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value


@dataclass
class ChatConfig:
    """Settings for the conversation service and its clients."""
    cache_dir: Path = DEFAULT_CACHE_DIR
    memory_capacity: int = 5
    max_history: int = 10
    retention_days: int = 30

    # Outbound requests
    max_tokens_per_request: int = 2000
    temperature: float = 0.7
    timeout_seconds: float = 60.0
    openai_url: str = "https://api.openai.com/v1/chat/completions"
    openai_model: str = "gpt-4o-mini"
    anthropic_url: str = "https://api.anthropic.com/v1/messages"
    anthropic_model: str = "claude-3-haiku-20240307"
    anthropic_version: str = "2023-06-01"

    def __post_init__(self):
        self.cache_dir = Path(self.cache_dir).expanduser()

    @classmethod
    def from_manager(cls, manager: ConfigManager, section: str = "chat") -> "ChatConfig":
        """Build typed settings from a ConfigManager section, coercing env strings."""
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = manager.get(f"{section}.{f.name}")
            if raw is None:
                continue
            default = f.default
            if isinstance(default, int):
                values[f.name] = int(raw)
            elif isinstance(default, float):
                values[f.name] = float(raw)
            elif isinstance(default, Path):
                values[f.name] = Path(raw)
            else:
                values[f.name] = str(raw)
        return cls(**values)

    @classmethod
    def load(cls, config_path: Union[str, Path] = "config.yaml") -> "ChatConfig":
        return cls.from_manager(ConfigManager(config_path))


@dataclass
class CredentialConfig:
    """Where a provider's API key comes from."""
    provider: AIProvider
    config_key: str
    env_var: str
    description: str = ""


class CredentialStore:
    """
    API key lookup by provider.

    Lookup order: explicit keys, the config file's api_keys section,
    then environment variables.
    """

    CREDENTIALS: Dict[AIProvider, CredentialConfig] = {
        AIProvider.CHATGPT: CredentialConfig(
            AIProvider.CHATGPT, "openai_api_key", "OPENAI_API_KEY",
            description="OpenAI API key for ChatGPT"
        ),
        AIProvider.CLAUDE: CredentialConfig(
            AIProvider.CLAUDE, "anthropic_api_key", "ANTHROPIC_API_KEY",
            description="Anthropic API key for Claude"
        ),
    }

    def __init__(
        self,
        keys: Optional[Mapping[AIProvider, str]] = None,
        manager: Optional[ConfigManager] = None,
    ):
        self._keys: Dict[AIProvider, str] = dict(keys or {})
        self._manager = manager
        self._logger = logging.getLogger("freewrite.infra.credentials")

    def get(self, provider: AIProvider) -> Optional[str]:
        """Get the API key for a provider, or None if missing or blank."""
        source = self.CREDENTIALS[provider]

        candidates = [self._keys.get(provider)]
        if self._manager is not None:
            candidates.append(self._manager.get(f"api_keys.{source.config_key}"))
        candidates.append(os.getenv(source.env_var))

        for value in candidates:
            if value is not None and str(value).strip():
                return str(value).strip()

        self._logger.debug(f"No API key configured for {provider.display_name}")
        return None
