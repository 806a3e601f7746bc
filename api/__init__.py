# API module - Chat completion providers
# One client per provider, keys passed per call and never logged

from .client import ChatCompletionClient, OpenAIClient, AnthropicClient, create_client

__all__ = ["ChatCompletionClient", "OpenAIClient", "AnthropicClient", "create_client"]
