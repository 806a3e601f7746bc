"""
Conversation Model
------------------
Immutable records for a journal conversation.
One ConversationContext per conversation id.

Rules:
- Messages are never edited after creation
- Appending a turn produces a new context
- created_at is fixed at first creation
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, Iterable, List, Tuple

DEFAULT_HISTORY_LIMIT = 10


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class AIProvider(Enum):
    """Chat completion provider."""
    CHATGPT = auto()
    CLAUDE = auto()

    @property
    def display_name(self) -> str:
        return {"CHATGPT": "ChatGPT", "CLAUDE": "Claude"}[self.name]

    @classmethod
    def parse(cls, value: str) -> "AIProvider":
        """Parse a provider from its serialized (lowercase) name."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown provider: {value}") from None


@dataclass(frozen=True)
class Message:
    """A single chat message."""
    content: str
    is_user: bool
    timestamp: datetime = field(default_factory=utc_now)
    provider: AIProvider = AIProvider.CHATGPT

    @property
    def role(self) -> str:
        return "user" if self.is_user else "assistant"

    @property
    def speaker(self) -> str:
        """Label used when the message is embedded in a prompt."""
        return "User" if self.is_user else "Assistant"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "content": self.content,
            "is_user": self.is_user,
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider.name.lower(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            content=data["content"],
            is_user=bool(data["is_user"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            provider=AIProvider.parse(data["provider"]),
        )

    def __repr__(self) -> str:
        preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"Message({self.role}: {preview})"


@dataclass(frozen=True)
class ConversationContext:
    """
    Full state of one conversation.

    Value type: use with_turn() to get an updated copy.
    """
    messages: Tuple[Message, ...]
    journal_entry: str
    provider: AIProvider
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        # Accept any iterable of messages but always store a tuple
        if not isinstance(self.messages, tuple):
            object.__setattr__(self, "messages", tuple(self.messages))

    @classmethod
    def start(
        cls,
        journal_entry: str,
        provider: AIProvider,
        messages: Iterable[Message] = (),
    ) -> "ConversationContext":
        """Create a fresh context stamped with the current time."""
        return cls(
            messages=tuple(messages),
            journal_entry=journal_entry,
            provider=provider,
            created_at=utc_now(),
        )

    def recent_messages(self, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Message]:
        """Get the N most recent messages in chronological order."""
        if limit <= 0:
            return []
        return list(self.messages[-limit:])

    def with_turn(
        self,
        user_message: Message,
        reply: Message,
        journal_entry: str,
        provider: AIProvider,
    ) -> "ConversationContext":
        """Return a new context with one user/assistant exchange appended."""
        return replace(
            self,
            messages=self.messages + (user_message, reply),
            journal_entry=journal_entry,
            provider=provider,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "journal_entry": self.journal_entry,
            "provider": self.provider.name.lower(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationContext":
        return cls(
            messages=tuple(Message.from_dict(m) for m in data.get("messages", [])),
            journal_entry=data.get("journal_entry", ""),
            provider=AIProvider.parse(data["provider"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    def __len__(self) -> int:
        return len(self.messages)
