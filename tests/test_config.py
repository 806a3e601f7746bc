"""
Configuration Tests
-------------------
YAML loading, environment overrides and API key lookup.
"""

from pathlib import Path

import pytest
import yaml

from infra.config import ChatConfig, ConfigManager, CredentialStore
from memory.conversation import AIProvider


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "chat": {
            "cache_dir": str(tmp_path / "cache"),
            "memory_capacity": 3,
            "max_history": 6,
            "timeout_seconds": 15,
        },
        "api_keys": {
            "openai_api_key": "sk-from-file",
            "anthropic_api_key": "",
        },
    }), encoding="utf-8")
    return path


class TestConfigManager:

    def test_dot_notation(self, config_file):
        manager = ConfigManager(config_file)

        assert manager.get("chat.memory_capacity") == 3
        assert manager.get("chat.missing", "fallback") == "fallback"
        assert manager.get("api_keys.openai_api_key") == "sk-from-file"

    def test_env_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("FREEWRITE_CHAT_MAX_HISTORY", "12")

        assert ConfigManager(config_file).get("chat.max_history") == "12"

    def test_missing_file(self, tmp_path):
        manager = ConfigManager(tmp_path / "absent.yaml")

        assert manager.get("chat.max_history") is None


class TestChatConfig:

    def test_defaults(self):
        config = ChatConfig()

        assert config.memory_capacity == 5
        assert config.max_history == 10
        assert config.retention_days == 30
        assert config.max_tokens_per_request == 2000
        assert config.openai_model == "gpt-4o-mini"
        assert config.anthropic_model == "claude-3-haiku-20240307"

    def test_from_file(self, config_file, tmp_path):
        config = ChatConfig.load(config_file)

        assert config.cache_dir == tmp_path / "cache"
        assert config.memory_capacity == 3
        assert config.max_history == 6
        assert config.timeout_seconds == 15.0
        assert isinstance(config.timeout_seconds, float)
        assert config.retention_days == 30

    def test_env_values_coerced(self, config_file, monkeypatch):
        monkeypatch.setenv("FREEWRITE_CHAT_RETENTION_DAYS", "14")
        monkeypatch.setenv("FREEWRITE_CHAT_TEMPERATURE", "0.2")

        config = ChatConfig.load(config_file)

        assert config.retention_days == 14
        assert config.temperature == 0.2

    def test_cache_dir_expands_user(self):
        config = ChatConfig(cache_dir="~/chat")

        assert config.cache_dir == Path.home() / "chat"


class TestCredentialStore:

    def test_explicit_key_wins(self, config_file, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        store = CredentialStore(
            keys={AIProvider.CHATGPT: "sk-explicit"},
            manager=ConfigManager(config_file),
        )

        assert store.get(AIProvider.CHATGPT) == "sk-explicit"

    def test_config_before_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        store = CredentialStore(manager=ConfigManager(config_file))

        assert store.get(AIProvider.CHATGPT) == "sk-from-file"

    def test_blank_falls_through_to_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "  sk-ant-env  ")
        store = CredentialStore(manager=ConfigManager(config_file))

        assert store.get(AIProvider.CLAUDE) == "sk-ant-env"

    def test_missing_everywhere(self):
        store = CredentialStore(keys={AIProvider.CLAUDE: "   "})

        assert store.get(AIProvider.CLAUDE) is None
