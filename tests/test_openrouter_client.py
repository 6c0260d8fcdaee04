import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from Assistant.services.errors import ChatCompletionError, ErrorKind
from Assistant.services.openrouter_client import DEFAULT_MODEL, ChatCompletionClient

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _status_error(cls, status_code):
    return cls("upstream error", response=httpx.Response(status_code, request=_REQUEST), body=None)


class _FakeCompletions:
    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class _FakeAsyncOpenAI:
    def __init__(self, outcome):
        self.completions = _FakeCompletions(outcome)
        self.chat = SimpleNamespace(completions=self.completions)
        self.closed = False

    async def close(self):
        self.closed = True


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def make_client(monkeypatch):
    def _make(outcome, **kwargs):
        fake = _FakeAsyncOpenAI(outcome)
        client = ChatCompletionClient(api_key="sk-test", **kwargs)
        monkeypatch.setattr(client, "_client", lambda: fake)
        return client, fake

    return _make


def test_complete_returns_text_and_sends_fixed_parameters(make_client):
    client, fake = make_client(_completion("  Hi there \n"))
    messages = [{"role": "user", "content": "Hello"}]

    text = asyncio.run(client.complete(messages))

    assert text == "Hi there"
    assert fake.completions.kwargs == {"model": DEFAULT_MODEL, "messages": messages, "temperature": 0.7}
    assert fake.closed is True


def test_openai_client_is_configured_without_retries():
    client = ChatCompletionClient(api_key="sk-test", timeout_seconds=30.0)

    sdk = client._client()

    assert sdk.max_retries == 0
    assert sdk.timeout == 30.0
    assert str(sdk.base_url).startswith("https://openrouter.ai/api/v1")


def test_missing_api_key_is_auth_failure():
    client = ChatCompletionClient(api_key=None)

    with pytest.raises(ChatCompletionError) as exc_info:
        asyncio.run(client.complete([{"role": "user", "content": "Hello"}]))

    assert exc_info.value.kind is ErrorKind.AUTH
    assert exc_info.value.retryable is False


@pytest.mark.parametrize(
    "error, kind",
    [
        (_status_error(openai.AuthenticationError, 401), ErrorKind.AUTH),
        (_status_error(openai.PermissionDeniedError, 403), ErrorKind.AUTH),
        (_status_error(openai.APIStatusError, 402), ErrorKind.AUTH),
        (_status_error(openai.RateLimitError, 429), ErrorKind.RATE_LIMIT),
        (_status_error(openai.InternalServerError, 502), ErrorKind.SERVER),
        (_status_error(openai.BadRequestError, 400), ErrorKind.UNKNOWN),
        (openai.APITimeoutError(request=_REQUEST), ErrorKind.NETWORK),
        (openai.APIConnectionError(request=_REQUEST), ErrorKind.NETWORK),
    ],
)
def test_sdk_errors_map_to_error_kinds(make_client, error, kind):
    client, fake = make_client(error)

    with pytest.raises(ChatCompletionError) as exc_info:
        asyncio.run(client.complete([{"role": "user", "content": "Hello"}]))

    assert exc_info.value.kind is kind
    assert fake.closed is True


def test_timeout_message_mentions_timeout(make_client):
    client, _ = make_client(openai.APITimeoutError(request=_REQUEST))

    with pytest.raises(ChatCompletionError) as exc_info:
        asyncio.run(client.complete([{"role": "user", "content": "Hello"}]))

    assert "timed out" in exc_info.value.message


@pytest.mark.parametrize(
    "response",
    [
        SimpleNamespace(choices=[]),
        SimpleNamespace(choices=None),
        _completion(None),
        _completion("   "),
    ],
)
def test_malformed_response_is_unknown_failure(make_client, response):
    client, _ = make_client(response)

    with pytest.raises(ChatCompletionError) as exc_info:
        asyncio.run(client.complete([{"role": "user", "content": "Hello"}]))

    assert exc_info.value.kind is ErrorKind.UNKNOWN


def test_from_env(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-env")
    monkeypatch.setenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")

    client = ChatCompletionClient.from_env()

    assert client.api_key == "sk-env"
    assert client.model == "openai/gpt-4o-mini"
