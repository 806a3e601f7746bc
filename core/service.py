"""
Conversation Service
--------------------
Runs one chat turn about a journal entry:

    credential -> cached context -> prompt -> provider -> append -> persist

Provider errors propagate to the caller unchanged.
The cache is only touched after a successful reply.
"""

from datetime import timedelta
from typing import Dict, Iterable, List, Optional
import logging

from api.client import ChatCompletionClient, create_client
from core.errors import APIError, AuthenticationError
from infra.config import ChatConfig, CredentialStore
from infra.logging import TurnContext, log_turn_end
from memory.cache import ConversationCache
from memory.context import PromptBuilder, estimate_tokens
from memory.conversation import AIProvider, ConversationContext, Message, utc_now
from memory.store import ConversationId, ConversationStore


class ConversationService:
    """
    Entry point for the chat surface.

    Responsibilities:
    - Fail fast on a missing API key
    - Keep prompts inside the history window
    - Persist each completed exchange exactly once
    """

    def __init__(
        self,
        config: Optional[ChatConfig] = None,
        credentials: Optional[CredentialStore] = None,
        cache: Optional[ConversationCache] = None,
        clients: Optional[Dict[AIProvider, ChatCompletionClient]] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.config = config or ChatConfig()
        self.credentials = credentials or CredentialStore()
        self.cache = cache or ConversationCache(
            ConversationStore(self.config.cache_dir),
            capacity=self.config.memory_capacity,
        )
        self.prompt_builder = prompt_builder or PromptBuilder(self.config.max_history)
        self._clients: Dict[AIProvider, ChatCompletionClient] = dict(clients or {})
        self._in_flight = 0
        self._logger = logging.getLogger("freewrite.core.service")

    @property
    def is_loading(self) -> bool:
        """True while a turn is waiting on a provider."""
        return self._in_flight > 0

    def client_for(self, provider: AIProvider) -> ChatCompletionClient:
        """Get (or lazily create) the client for a provider."""
        client = self._clients.get(provider)
        if client is None:
            client = create_client(provider, self.config)
            self._clients[provider] = client
        return client

    def _resolve_api_key(self, provider: AIProvider) -> str:
        api_key = self.credentials.get(provider)
        if not api_key or not api_key.strip():
            raise AuthenticationError(f"No API key configured for {provider.display_name}.")
        return api_key

    async def send_message(
        self,
        message: str,
        provider: AIProvider,
        journal_entry: str,
        conversation_id: ConversationId,
        existing_messages: Iterable[Message] = (),
    ) -> str:
        """
        Send a message about a journal entry and return the reply.

        existing_messages seed a conversation that is not cached yet;
        they are ignored once the conversation exists.
        """
        with TurnContext() as turn_id:
            self._in_flight += 1
            try:
                reply = await self._run_turn(
                    message, provider, journal_entry, conversation_id, existing_messages
                )
            except APIError as e:
                log_turn_end(turn_id, success=False, provider=provider.name.lower(), error=e.message)
                raise
            except Exception as e:
                log_turn_end(turn_id, success=False, provider=provider.name.lower(), error=str(e))
                raise
            finally:
                self._in_flight -= 1

            log_turn_end(turn_id, success=True, provider=provider.name.lower())
            return reply

    async def _run_turn(
        self,
        message: str,
        provider: AIProvider,
        journal_entry: str,
        conversation_id: ConversationId,
        existing_messages: Iterable[Message],
    ) -> str:
        api_key = self._resolve_api_key(provider)

        context = self.cache.get(conversation_id)
        if context is None:
            context = ConversationContext.start(journal_entry, provider, existing_messages)
            self._logger.info(
                f"Starting conversation {conversation_id} with {len(context)} prior messages"
            )

        prompt = self.prompt_builder.build(
            user_message=message,
            journal_entry=journal_entry,
            history=context.recent_messages(self.prompt_builder.max_history),
        )
        self._logger.debug(f"Prompt built (~{estimate_tokens(prompt)} tokens)")

        reply = await self.client_for(provider).send(prompt, api_key)

        user_message = Message(content=message, is_user=True, timestamp=utc_now(), provider=provider)
        ai_message = Message(content=reply, is_user=False, timestamp=utc_now(), provider=provider)

        updated = context.with_turn(user_message, ai_message, journal_entry, provider)
        self.cache.put(conversation_id, updated)

        return reply

    def clear_conversation(self, conversation_id: ConversationId) -> None:
        """Forget a conversation in memory and on disk, after any pending write."""
        self.cache.remove(conversation_id)

    def get_conversation_history(self, conversation_id: ConversationId) -> List[Message]:
        """Messages of a conversation for display, oldest first."""
        context = self.cache.get(conversation_id)
        return list(context.messages) if context else []

    def cleanup_old_conversations(self, older_than_days: Optional[int] = None):
        """
        Remove stored conversations older than the retention window.

        Runs in the background; returns the future of the sweep.
        """
        days = self.config.retention_days if older_than_days is None else older_than_days
        cutoff = utc_now() - timedelta(days=days)
        self._logger.info(f"Cleaning up conversations created before {cutoff.isoformat()}")
        return self.cache.cleanup(cutoff)

    def close(self) -> None:
        """Wait for pending writes and release background resources."""
        self.cache.close()
