"""
Chat Completion Clients
-----------------------
One client per provider, all with the same contract:

    reply = await client.send(prompt, api_key)

Failures raise the typed errors from core.errors.
API keys are passed per call and never logged.
"""

from datetime import datetime
from typing import Any, Dict, Optional
import logging

import httpx

from core.errors import (
    APIError,
    AuthenticationError,
    InvalidResponseError,
    InvalidURLError,
    QuotaExceededError,
    RequestFailedError,
    ServerError,
)
from infra.config import ChatConfig
from memory.conversation import AIProvider


class ChatCompletionClient:
    """
    Base chat completion client.

    Subclasses describe the request (URL, headers, payload) and how to
    pull the reply text out of a successful response.
    """

    provider: AIProvider

    def __init__(
        self,
        url: str,
        model: str,
        max_tokens: int = 2000,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._logger = logging.getLogger(f"freewrite.api.{self.provider.name.lower()}")

    def _headers(self, api_key: str) -> Dict[str, str]:
        raise NotImplementedError

    def _payload(self, prompt: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _extract_reply(self, data: Any) -> str:
        raise NotImplementedError

    def _validated_url(self) -> httpx.URL:
        try:
            url = httpx.URL(self.url)
        except (httpx.InvalidURL, TypeError) as e:
            raise InvalidURLError(str(self.url)) from e
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidURLError(str(self.url))
        return url

    async def send(self, prompt: str, api_key: str) -> str:
        """Send a single-message prompt and return the trimmed reply text."""
        url = self._validated_url()
        start_time = datetime.now()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    url, json=self._payload(prompt), headers=self._headers(api_key)
                )
        except httpx.UnsupportedProtocol as e:
            raise InvalidURLError(str(self.url)) from e
        except httpx.TimeoutException as e:
            raise RequestFailedError("Request timed out") from e
        except httpx.RequestError as e:
            raise RequestFailedError(f"Network error: {e}") from e

        response_time = (datetime.now() - start_time).total_seconds() * 1000
        self._logger.debug(
            f"{self.provider.display_name} responded {response.status_code} in {response_time:.0f}ms"
        )

        if response.status_code != 200:
            raise self._error_for_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError() from e

        reply = self._extract_reply(data)
        return reply.strip()

    def _error_for_status(self, response: httpx.Response) -> APIError:
        """Map a non-200 response to a typed error."""
        status = response.status_code

        if status == 401:
            return AuthenticationError()
        if status == 429:
            return QuotaExceededError()
        if 500 <= status <= 599:
            return ServerError(status)

        message = None
        try:
            body = response.json()
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                message = error["message"]
        except ValueError:
            pass

        return RequestFailedError(message or f"Request failed with status {status}")


class OpenAIClient(ChatCompletionClient):
    """Client for the OpenAI chat completions API."""

    provider = AIProvider.CHATGPT

    def __init__(self, *args, temperature: float = 0.7, **kwargs):
        super().__init__(*args, **kwargs)
        self.temperature = temperature

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    def _extract_reply(self, data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise InvalidResponseError() from e
        if not isinstance(content, str):
            raise InvalidResponseError()
        return content


class AnthropicClient(ChatCompletionClient):
    """Client for the Anthropic messages API."""

    provider = AIProvider.CLAUDE

    def __init__(self, *args, api_version: str = "2023-06-01", **kwargs):
        super().__init__(*args, **kwargs)
        self.api_version = api_version

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": self.api_version,
            "Content-Type": "application/json",
        }

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def _extract_reply(self, data: Any) -> str:
        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise InvalidResponseError() from e
        if not isinstance(text, str):
            raise InvalidResponseError()
        return text


def create_client(
    provider: AIProvider,
    config: Optional[ChatConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ChatCompletionClient:
    """Create the client for a provider from settings."""
    config = config or ChatConfig()

    if provider == AIProvider.CHATGPT:
        return OpenAIClient(
            config.openai_url,
            config.openai_model,
            max_tokens=config.max_tokens_per_request,
            timeout_seconds=config.timeout_seconds,
            transport=transport,
            temperature=config.temperature,
        )
    if provider == AIProvider.CLAUDE:
        return AnthropicClient(
            config.anthropic_url,
            config.anthropic_model,
            max_tokens=config.max_tokens_per_request,
            timeout_seconds=config.timeout_seconds,
            transport=transport,
            api_version=config.anthropic_version,
        )
    raise ValueError(f"Unsupported provider: {provider}")
