# Memory module - Conversation records, storage and prompt windowing
# Disk is the source of truth, memory is a bounded accelerator

from .conversation import AIProvider, Message, ConversationContext
from .store import ConversationStore
from .cache import ConversationCache
from .context import PromptBuilder, PromptWindow

__all__ = [
    "AIProvider",
    "Message",
    "ConversationContext",
    "ConversationStore",
    "ConversationCache",
    "PromptBuilder",
    "PromptWindow",
]
