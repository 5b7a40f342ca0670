"""
Shared fixtures: an in-memory store with a controllable clock, a scripted
LLM provider and a fake Telegram Bot behind the real TelegramMessenger.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from telegram.error import BadRequest

from chatgemini.agent.exchange import ExchangeHandler
from chatgemini.channels.telegram import TelegramMessenger
from chatgemini.config.schema import TelegramConfig
from chatgemini.gateway.dispatcher import WebhookDispatcher
from chatgemini.providers.base import LLMProvider, LLMResponse
from chatgemini.session.manager import SessionManager
from chatgemini.store.memory import MemoryKVStore

BOT_USERNAME = "MFGWBot"
ALLOWED_CHAT = 42
GROUP_CHAT = -1001
SYSTEM_PROMPT = "You are a test assistant."


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider(LLMProvider):
    """Returns queued replies (or raises queued exceptions) and records every call."""

    def __init__(self, replies: list[Any] | None = None, delay: float = 0.0):
        super().__init__()
        self.replies = list(replies or [])
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def chat(self, messages, tools=None, model=None, max_tokens=4096, temperature=0.7):
        self.calls.append({"messages": messages, "tools": tools, "model": model})
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, BaseException):
            raise reply
        return LLMResponse(content=reply)

    def get_default_model(self) -> str:
        return "gemini/test-model"


@dataclass
class SentMessage:
    message_id: int


@dataclass
class FakeBot:
    """Stands in for telegram.Bot: records outbound calls, hands out message ids."""

    username: str = BOT_USERNAME
    next_message_id: int = 101
    reject_html: bool = False
    sent: list[dict[str, Any]] = field(default_factory=list)
    actions: list[dict[str, Any]] = field(default_factory=list)
    initialized: bool = False

    async def initialize(self):
        self.initialized = True

    async def shutdown(self):
        self.initialized = False

    async def send_message(self, chat_id, text, parse_mode=None, reply_parameters=None):
        if self.reject_html and parse_mode is not None:
            raise BadRequest("Can't parse entities: unsupported start tag")
        message_id = self.next_message_id
        self.next_message_id += 1
        self.sent.append({
            "chat_id": chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "reply_to": reply_parameters.message_id if reply_parameters else None,
            "message_id": message_id,
        })
        return SentMessage(message_id=message_id)

    async def send_chat_action(self, chat_id, action):
        self.actions.append({"chat_id": chat_id, "action": action})

    async def set_webhook(self, url, allowed_updates=None):
        return True

    async def delete_webhook(self):
        return True


def make_message(
    message_id: int,
    text: str | None,
    chat_id: int = ALLOWED_CHAT,
    chat_type: str = "private",
    reply_to: dict | None = None,
    from_user: dict | None = None,
) -> dict:
    message = {
        "message_id": message_id,
        "date": 1_700_000_000,
        "chat": {"id": chat_id, "type": chat_type},
        "from": from_user or {"id": 7, "is_bot": False, "first_name": "Alice"},
    }
    if text is not None:
        message["text"] = text
    if reply_to is not None:
        message["reply_to_message"] = reply_to
    return message


def make_update(*args, **kwargs) -> dict:
    return {"update_id": 1, "message": make_message(*args, **kwargs)}


def bot_message(message_id: int, text: str, chat_id: int = ALLOWED_CHAT, chat_type: str = "private") -> dict:
    return make_message(
        message_id,
        text,
        chat_id=chat_id,
        chat_type=chat_type,
        from_user={"id": 999, "is_bot": True, "first_name": "Bot", "username": BOT_USERNAME},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryKVStore(clock=clock)


@pytest.fixture
def sessions(store):
    return SessionManager(store)


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def bot():
    return FakeBot()


@pytest.fixture
def messenger(bot):
    config = TelegramConfig(token="123:test", bot_username=BOT_USERNAME, typing_interval_s=0.01)
    return TelegramMessenger(config, bot=bot)


@pytest.fixture
def exchange(provider, sessions):
    return ExchangeHandler(provider=provider, sessions=sessions, system_prompt=SYSTEM_PROMPT)


@pytest.fixture
def dispatcher(messenger, sessions, exchange):
    return WebhookDispatcher(
        messenger=messenger,
        sessions=sessions,
        exchange=exchange,
        allowed_chat_ids=[ALLOWED_CHAT, GROUP_CHAT],
        unauthorized_reply="Sorry, you are not authorized to use this bot.",
    )
