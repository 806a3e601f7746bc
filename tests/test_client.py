"""
Chat Completion Client Tests
----------------------------
Request shape and error mapping, using httpx.MockTransport.
"""

import asyncio
import json

import httpx
import pytest

from api.client import AnthropicClient, OpenAIClient, create_client
from core.errors import (
    AuthenticationError,
    InvalidResponseError,
    InvalidURLError,
    QuotaExceededError,
    RequestFailedError,
    ServerError,
)
from infra.config import ChatConfig
from memory.conversation import AIProvider

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


def openai_client(handler, url=OPENAI_URL):
    return OpenAIClient(url, "gpt-4o-mini", transport=httpx.MockTransport(handler))


def anthropic_client(handler, url=ANTHROPIC_URL):
    return AnthropicClient(url, "claude-3-haiku-20240307", transport=httpx.MockTransport(handler))


def respond(*args, **kwargs):
    return lambda request: httpx.Response(*args, **kwargs)


def send(client, prompt="hello", api_key="sk-test"):
    return asyncio.run(client.send(prompt, api_key))


class TestOpenAIClient:

    def test_request_shape(self):
        captured = []

        def handler(request):
            captured.append(request)
            return httpx.Response(200, json={"choices": [{"message": {"content": "  Hi there \n"}}]})

        reply = send(openai_client(handler), prompt="What now?")

        assert reply == "Hi there"
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == OPENAI_URL
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["messages"] == [{"role": "user", "content": "What now?"}]
        assert body["max_tokens"] == 2000
        assert body["temperature"] == 0.7

    def test_missing_choices(self):
        client = openai_client(respond(200, json={"choices": []}))

        with pytest.raises(InvalidResponseError):
            send(client)

    def test_non_json_body(self):
        client = openai_client(respond(200, content=b"<html>"))

        with pytest.raises(InvalidResponseError):
            send(client)


class TestAnthropicClient:

    def test_request_shape(self):
        captured = []

        def handler(request):
            captured.append(request)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Reflect more.\n"}]})

        reply = send(anthropic_client(handler), api_key="sk-ant")

        assert reply == "Reflect more."
        request = captured[0]
        assert request.headers["x-api-key"] == "sk-ant"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in request.headers
        body = json.loads(request.content)
        assert body["model"] == "claude-3-haiku-20240307"
        assert body["messages"] == [{"role": "user", "content": "hello"}]

    def test_missing_text(self):
        client = anthropic_client(respond(200, json={"content": [{"type": "text"}]}))

        with pytest.raises(InvalidResponseError):
            send(client)


class TestErrorMapping:

    @pytest.mark.parametrize("make_client", [openai_client, anthropic_client])
    def test_unauthorized(self, make_client):
        with pytest.raises(AuthenticationError):
            send(make_client(respond(401, json={"error": {"message": "bad key"}})))

    def test_rate_limited(self):
        with pytest.raises(QuotaExceededError):
            send(openai_client(respond(429)))

    def test_server_error_keeps_status(self):
        with pytest.raises(ServerError) as exc_info:
            send(anthropic_client(respond(503)))

        assert exc_info.value.status_code == 503

    def test_other_status_uses_error_message(self):
        client = openai_client(respond(400, json={"error": {"message": "context too long"}}))

        with pytest.raises(RequestFailedError) as exc_info:
            send(client)

        assert exc_info.value.detail == "context too long"

    def test_other_status_without_body(self):
        with pytest.raises(RequestFailedError) as exc_info:
            send(openai_client(respond(418)))

        assert exc_info.value.detail == "Request failed with status 418"

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RequestFailedError) as exc_info:
            send(openai_client(handler))

        assert "connection refused" in exc_info.value.detail

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(RequestFailedError) as exc_info:
            send(anthropic_client(handler))

        assert exc_info.value.detail == "Request timed out"

    @pytest.mark.parametrize("url", ["not a url", "ftp://api.openai.com/v1", ""])
    def test_invalid_url(self, url):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        with pytest.raises(InvalidURLError):
            send(openai_client(handler, url=url))

        assert calls == []


class TestFactory:

    def test_create_client_per_provider(self):
        config = ChatConfig(openai_model="gpt-test", max_tokens_per_request=50)

        openai = create_client(AIProvider.CHATGPT, config)
        claude = create_client(AIProvider.CLAUDE, config)

        assert isinstance(openai, OpenAIClient)
        assert openai.model == "gpt-test"
        assert openai.max_tokens == 50
        assert isinstance(claude, AnthropicClient)
        assert claude.url == config.anthropic_url
