"""
Prompt Builder
--------------
Turns a conversation history and journal entry into a bounded prompt.

Rules:
- Never embed more than the history window allows
- Recent messages win, chronological order kept
- Empty sections are omitted, never an error
"""

from dataclasses import dataclass
from typing import List, Sequence
import logging

from .conversation import DEFAULT_HISTORY_LIMIT, Message

INSTRUCTIONS = (
    "You are an AI assistant helping someone reflect on their journal entry.\n"
    "Be conversational, insightful, and helpful. Respond as a thoughtful friend "
    "who truly understands both their writing and their current question."
)

CLOSING_INSTRUCTION = (
    "Please respond to their specific question while drawing insights "
    "from their journal entry:"
)

# Slots of the history window kept free for instructions and journal text
RESERVED_SLOTS = 2


@dataclass
class PromptWindow:
    """The parts that make up one outbound prompt."""
    journal_entry: str
    history: List[Message]
    user_message: str

    def render(self) -> str:
        sections = [INSTRUCTIONS]

        if self.journal_entry:
            sections.append(f"Journal Entry:\n{self.journal_entry}")

        if self.history:
            lines = ["Previous conversation:"]
            lines.extend(f"{m.speaker}: {m.content.strip()}" for m in self.history)
            sections.append("\n".join(lines))

        if self.user_message:
            sections.append(f"User's current message: {self.user_message}")

        sections.append(CLOSING_INSTRUCTION)
        return "\n\n".join(sections)


class PromptBuilder:
    """
    Builds prompts for the chat completion clients.

    The history window is the cost control: at most max_history recent
    messages are considered and max_history - 2 of them are embedded.
    """

    def __init__(self, max_history: int = DEFAULT_HISTORY_LIMIT):
        if max_history < 0:
            raise ValueError("max_history must not be negative")
        self.max_history = max_history
        self._logger = logging.getLogger("freewrite.memory.prompt")

    @property
    def embedded_limit(self) -> int:
        """Maximum number of history messages embedded in a prompt."""
        return max(0, self.max_history - RESERVED_SLOTS)

    def window(self, history: Sequence[Message]) -> List[Message]:
        """Select the messages that will be embedded, oldest first."""
        recent = list(history[-self.max_history:]) if self.max_history else []
        limit = self.embedded_limit
        selected = recent[-limit:] if limit else []

        if len(selected) < len(history):
            self._logger.debug(f"History windowed: {len(selected)}/{len(history)} messages kept")
        return selected

    def build_window(
        self,
        user_message: str,
        journal_entry: str,
        history: Sequence[Message] = (),
    ) -> PromptWindow:
        return PromptWindow(
            journal_entry=journal_entry.strip(),
            history=self.window(history),
            user_message=user_message.strip(),
        )

    def build(
        self,
        user_message: str,
        journal_entry: str,
        history: Sequence[Message] = (),
    ) -> str:
        """Build the prompt string sent to the provider."""
        return self.build_window(user_message, journal_entry, history).render()


def estimate_tokens(text: str) -> int:
    """Rough token estimation (4 chars ≈ 1 token)."""
    return max(1, len(text) // 4)
