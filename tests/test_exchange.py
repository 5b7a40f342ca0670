"""Tests for ExchangeHandler: prompt assembly, tool selection and history persistence."""

import pytest

from chatgemini.agent.exchange import EmptyReplyError, ExchangeHandler
from chatgemini.session.manager import ChatHistory
from conftest import SYSTEM_PROMPT, ScriptedProvider


def _history(*turns):
    history = ChatHistory()
    for role, content in turns:
        history.add_turn(role, content)
    return history


def test_build_messages_order_and_roles(exchange):
    history = _history(("user", "Hello"), ("model", "Hi there"))
    messages = exchange.build_messages(history, "And then?")
    assert messages == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "Hello"},
        {"role": "assistant", "content": "Hi there"},
        {"role": "user", "content": "And then?"},
    ]


def test_build_messages_without_system_prompt(provider, sessions):
    handler = ExchangeHandler(provider=provider, sessions=sessions)
    assert handler.build_messages(ChatHistory(), "hi") == [{"role": "user", "content": "hi"}]


def test_builtin_tools_follow_flags(provider, sessions):
    assert ExchangeHandler(provider, sessions).tools == [{"googleSearch": {}}, {"urlContext": {}}]
    assert ExchangeHandler(provider, sessions, web_search=False).tools == [{"urlContext": {}}]
    assert ExchangeHandler(provider, sessions, web_search=False, url_context=False).tools == []


def test_model_defaults_to_provider(exchange, provider, sessions):
    assert exchange.model == "gemini/test-model"
    assert ExchangeHandler(provider, sessions, model="gemini/other").model == "gemini/other"


async def test_exchange_appends_and_saves(exchange, provider, sessions):
    provider.replies = ["Hi there"]
    history = ChatHistory()

    reply = await exchange.exchange(history, 100, "Hello")

    assert reply == "Hi there"
    assert provider.calls[0]["tools"] == [{"googleSearch": {}}, {"urlContext": {}}]
    assert provider.calls[0]["model"] == "gemini/test-model"
    saved = await sessions.get_chat_history(100)
    assert [(t.role, t.content) for t in saved.messages] == [("user", "Hello"), ("model", "Hi there")]


async def test_no_tools_passes_none(sessions):
    provider = ScriptedProvider(["ok"])
    handler = ExchangeHandler(provider, sessions, web_search=False, url_context=False)
    await handler.exchange(ChatHistory(), 1, "hi")
    assert provider.calls[0]["tools"] is None


async def test_failure_leaves_history_untouched(exchange, provider, sessions):
    provider.replies = [ConnectionError("network down")]
    history = _history(("user", "Hello"), ("model", "Hi there"))

    with pytest.raises(ConnectionError):
        await exchange.exchange(history, 100, "And then?")

    assert len(history.messages) == 2
    assert await sessions.get_chat_history(100) is None


@pytest.mark.parametrize("reply", ["", "  \n", None])
async def test_empty_reply_raises(exchange, provider, sessions, reply):
    provider.replies = [reply]
    with pytest.raises(EmptyReplyError):
        await exchange.exchange(ChatHistory(), 100, "Hello")
    assert await sessions.get_chat_history(100) is None
