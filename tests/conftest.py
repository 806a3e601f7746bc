"""
Test Configuration
------------------
Shared fixtures for all tests.

Tests never touch the network or the real cache directory:
provider calls go to StubClient, storage goes to tmp_path.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from infra.config import ChatConfig, CredentialStore
from memory.cache import ConversationCache
from memory.conversation import AIProvider, ConversationContext, Message
from memory.store import ConversationStore


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class StubClient:
    """Stands in for a provider client; records every prompt it receives."""

    def __init__(self, reply: str = "Great job!", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []
        self.api_keys: List[str] = []

    async def send(self, prompt: str, api_key: str) -> str:
        self.prompts.append(prompt)
        self.api_keys.append(api_key)
        if self.error is not None:
            raise self.error
        return self.reply


def make_context(
    created_at: datetime = BASE_TIME,
    messages: int = 0,
    journal_entry: str = "Today I ran 5km.",
    provider: AIProvider = AIProvider.CHATGPT,
) -> ConversationContext:
    """Build a context with alternating user/assistant messages."""
    history = [
        Message(
            content=f"message {i:02d}",
            is_user=i % 2 == 0,
            timestamp=created_at + timedelta(minutes=i),
            provider=provider,
        )
        for i in range(messages)
    ]
    return ConversationContext(
        messages=tuple(history),
        journal_entry=journal_entry,
        provider=provider,
        created_at=created_at,
    )


@pytest.fixture(autouse=True)
def no_ambient_api_keys(monkeypatch):
    """Keep real API keys from the environment out of tests."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "ChatCache"


@pytest.fixture
def store(cache_dir):
    return ConversationStore(cache_dir)


@pytest.fixture
def cache(store):
    cache = ConversationCache(store, capacity=5)
    yield cache
    cache.close()


@pytest.fixture
def config(cache_dir):
    return ChatConfig(cache_dir=cache_dir)


@pytest.fixture
def credentials():
    return CredentialStore(keys={
        AIProvider.CHATGPT: "sk-test-openai",
        AIProvider.CLAUDE: "sk-test-anthropic",
    })


@pytest.fixture
def stub_client():
    return StubClient()
