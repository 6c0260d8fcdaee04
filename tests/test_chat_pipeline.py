import asyncio

import pytest

from Assistant.crud.chat import create_conversation, create_message, get_messages
from Assistant.models.chat_models import Sender
from Assistant.services.chat_pipeline import (
    APOLOGY_TEXT,
    FailureMode,
    MessagePipeline,
    PipelineSettings,
    build_search_context,
    role_for_sender,
)
from Assistant.services.errors import (
    ChatCompletionError,
    ChatValidationError,
    ConversationNotFoundError,
    ErrorKind,
    SearchServiceError,
    network_error,
)
from conftest import FakeChatClient, FakeSearchProvider, make_results


@pytest.fixture
def conversation(db_session):
    conv = create_conversation(db_session, "user-1", title="Test")
    db_session.commit()
    return conv


def _pipeline(db_session, ai, search=None, **settings):
    return MessagePipeline(db_session, ai_client=ai, search_provider=search, settings=PipelineSettings(**settings))


def _send(pipeline, conversation_id, text, search_enabled=False):
    return asyncio.run(pipeline.send_message(conversation_id, text, search_enabled))


def test_first_turn_persists_user_then_ai_message(db_session, conversation):
    ai = FakeChatClient("Hi there")

    reply = _send(_pipeline(db_session, ai), conversation.id, "Hello")

    messages = get_messages(db_session, conversation.id)
    assert [(m.sender, m.text) for m in messages] == [(Sender.USER, "Hello"), (Sender.AI, "Hi there")]
    assert reply.id == messages[1].id
    assert reply.search_results is None
    assert ai.calls == [[{"role": "user", "content": "Hello"}]]


def test_no_transaction_is_open_during_search_or_ai_call(db_session, conversation):
    seen = {}

    class RecordingChatClient(FakeChatClient):
        async def complete(self, messages):
            seen["ai"] = db_session.in_transaction()
            return await super().complete(messages)

    class RecordingSearchProvider(FakeSearchProvider):
        def search(self, query, count=5):
            seen["search"] = db_session.in_transaction()
            return super().search(query, count)

    pipeline = _pipeline(db_session, RecordingChatClient(), RecordingSearchProvider(make_results(1)))

    reply = _send(pipeline, conversation.id, "Hello", search_enabled=True)

    assert seen == {"ai": False, "search": False}
    assert reply.text == "Hi there"


def test_context_window_keeps_ten_most_recent_oldest_first(db_session, conversation):
    for i in range(15):
        sender = Sender.USER if i % 2 == 0 else Sender.AI
        create_message(db_session, conversation.id, sender, f"m{i}")
    db_session.commit()
    ai = FakeChatClient()

    _send(_pipeline(db_session, ai), conversation.id, "latest")

    context = ai.calls[0]
    assert len(context) == 10
    assert [m["content"] for m in context] == [f"m{i}" for i in range(6, 15)] + ["latest"]
    assert context[0] == {"role": "user", "content": "m6"}
    assert context[1] == {"role": "assistant", "content": "m7"}


def test_context_window_size_is_configurable(db_session, conversation):
    for i in range(5):
        create_message(db_session, conversation.id, Sender.USER, f"m{i}")
    db_session.commit()
    ai = FakeChatClient()

    _send(_pipeline(db_session, ai, context_window=3), conversation.id, "now")

    assert [m["content"] for m in ai.calls[0]] == ["m3", "m4", "now"]


def test_search_results_are_prepended_as_system_message(db_session, conversation):
    ai = FakeChatClient()
    search = FakeSearchProvider(make_results(3))

    reply = _send(_pipeline(db_session, ai, search), conversation.id, "What happened today?", search_enabled=True)

    context = ai.calls[0]
    assert context[0]["role"] == "system"
    for i in range(1, 4):
        assert f"Title {i}" in context[0]["content"]
        assert f"https://example.com/{i}" in context[0]["content"]
    assert context[1:] == [{"role": "user", "content": "What happened today?"}]
    assert search.calls == [("What happened today?", 3)]
    assert [r["title"] for r in reply.search_results] == ["Title 1", "Title 2", "Title 3"]


def test_search_query_is_truncated_to_100_chars(db_session, conversation):
    search = FakeSearchProvider(make_results(1))
    text = "x" * 250

    _send(_pipeline(db_session, FakeChatClient(), search), conversation.id, text, search_enabled=True)

    assert search.calls == [("x" * 100, 3)]


def test_search_not_called_when_disabled(db_session, conversation):
    search = FakeSearchProvider(make_results(3))
    ai = FakeChatClient()

    _send(_pipeline(db_session, ai, search), conversation.id, "Hello")

    assert search.calls == []
    assert ai.calls[0][0]["role"] == "user"


@pytest.mark.parametrize(
    "error",
    [
        SearchServiceError(ErrorKind.RATE_LIMIT, "busy"),
        network_error(SearchServiceError, timed_out=True),
        RuntimeError("provider bug"),
    ],
)
def test_search_failure_degrades_to_unaugmented_turn(db_session, conversation, error):
    ai = FakeChatClient("Answer")
    search = FakeSearchProvider()
    search.error = error

    reply = _send(_pipeline(db_session, ai, search), conversation.id, "Hello", search_enabled=True)

    assert reply.text == "Answer"
    assert reply.search_results is None
    assert ai.calls == [[{"role": "user", "content": "Hello"}]]


def test_empty_search_results_add_no_system_message(db_session, conversation):
    ai = FakeChatClient()

    _send(_pipeline(db_session, ai, FakeSearchProvider([])), conversation.id, "Hello", search_enabled=True)

    assert all(m["role"] != "system" for m in ai.calls[0])


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_text_is_rejected_before_any_side_effect(db_session, conversation, text):
    ai = FakeChatClient()
    search = FakeSearchProvider(make_results(3))

    with pytest.raises(ChatValidationError):
        _send(_pipeline(db_session, ai, search), conversation.id, text, search_enabled=True)

    assert get_messages(db_session, conversation.id) == []
    assert ai.calls == []
    assert search.calls == []


def test_missing_conversation_is_rejected(db_session):
    ai = FakeChatClient()

    with pytest.raises(ConversationNotFoundError):
        _send(_pipeline(db_session, ai), 999, "Hello")

    assert ai.calls == []


def test_ai_timeout_keeps_user_message_and_creates_no_reply(db_session, conversation):
    ai = FakeChatClient()
    ai.error = network_error(ChatCompletionError, timed_out=True)

    with pytest.raises(ChatCompletionError) as exc_info:
        _send(_pipeline(db_session, ai), conversation.id, "Hello")

    assert exc_info.value.kind is ErrorKind.NETWORK
    assert exc_info.value.retryable is True
    messages = get_messages(db_session, conversation.id)
    assert [(m.sender, m.text) for m in messages] == [(Sender.USER, "Hello")]


def test_ai_timeout_in_apology_mode_persists_fixed_apology(db_session, conversation):
    ai = FakeChatClient()
    ai.error = network_error(ChatCompletionError, timed_out=True)

    reply = _send(_pipeline(db_session, ai, failure_mode=FailureMode.APOLOGY), conversation.id, "Hello")

    assert reply.sender == Sender.AI
    assert reply.text == APOLOGY_TEXT
    messages = get_messages(db_session, conversation.id)
    assert [(m.sender, m.text) for m in messages] == [(Sender.USER, "Hello"), (Sender.AI, APOLOGY_TEXT)]


def test_default_failure_mode_is_raise():
    assert PipelineSettings().failure_mode is FailureMode.RAISE


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("CHAT_CONTEXT_WINDOW", "4")
    monkeypatch.setenv("CHAT_FAILURE_MODE", "Apology")

    settings = PipelineSettings.from_env()

    assert settings.context_window == 4
    assert settings.failure_mode is FailureMode.APOLOGY


def test_settings_from_env_rejects_unknown_failure_mode(monkeypatch):
    monkeypatch.setenv("CHAT_FAILURE_MODE", "retry")

    with pytest.raises(ValueError):
        PipelineSettings.from_env()


def test_every_sender_maps_to_a_role():
    assert {s: role_for_sender(s) for s in Sender} == {
        Sender.USER: "user",
        Sender.AI: "assistant",
        Sender.SYSTEM: "assistant",
    }
    with pytest.raises(ValueError):
        role_for_sender("robot")


def test_search_context_lists_each_result():
    msg = build_search_context(make_results(2))

    assert msg["role"] == "system"
    assert "Result 1:\nTitle: Title 1\nDescription: Description 1\nURL: https://example.com/1" in msg["content"]
    assert "Result 2:" in msg["content"]
