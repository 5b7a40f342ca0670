"""Tests for the Telegram messenger and the Markdown → Telegram HTML converter."""

import asyncio

import pytest
from telegram.constants import ChatAction, ParseMode

from chatgemini.channels.telegram import TelegramMessenger, markdown_to_telegram_html
from chatgemini.config.schema import TelegramConfig
from conftest import FakeBot


class TestMarkdownToHtml:
    @pytest.mark.parametrize(
        "markdown, html",
        [
            ("**bold** text", "<b>bold</b> text"),
            ("__bold__", "<b>bold</b>"),
            ("*italic* and _also_", "<i>italic</i> and <i>also</i>"),
            ("~~gone~~", "<s>gone</s>"),
            ("a < b & c > d", "a &lt; b &amp; c &gt; d"),
            ("[docs](https://example.com)", '<a href="https://example.com">docs</a>'),
            ("# Title", "<b>Title</b>"),
            ("> quoted", "quoted"),
            ("- one\n* two", "• one\n• two"),
            ("some_var_name stays", "some_var_name stays"),
        ],
    )
    def test_conversions(self, markdown, html):
        assert markdown_to_telegram_html(markdown) == html

    def test_inline_code_is_escaped_not_formatted(self):
        assert markdown_to_telegram_html("use `a<b **x**`") == "use <code>a&lt;b **x**</code>"

    def test_code_block(self):
        text = "```python\nif a < b:\n    print('*hi*')\n```"
        assert markdown_to_telegram_html(text) == "<pre><code>if a &lt; b:\n    print('*hi*')\n</code></pre>"

    def test_empty(self):
        assert markdown_to_telegram_html("") == ""


class TestSendMessage:
    async def test_sends_html_reply(self, messenger, bot):
        message_id = await messenger.send_message(42, "**Hi**", reply_to_message_id=100)
        assert message_id == 101
        assert bot.sent == [{
            "chat_id": 42,
            "text": "<b>Hi</b>",
            "parse_mode": ParseMode.HTML,
            "reply_to": 100,
            "message_id": 101,
        }]

    async def test_without_reply(self, messenger, bot):
        await messenger.send_message(42, "plain")
        assert bot.sent[0]["reply_to"] is None

    async def test_falls_back_to_plain_text(self, messenger, bot):
        bot.reject_html = True
        message_id = await messenger.send_message(42, "**Hi** <there>", reply_to_message_id=100)
        assert message_id == 101
        assert bot.sent[0]["text"] == "**Hi** <there>"
        assert bot.sent[0]["parse_mode"] is None
        assert bot.sent[0]["reply_to"] == 100


class TestTyping:
    async def test_refreshes_until_done(self, messenger, bot):
        async def slow():
            await asyncio.sleep(0.05)
            return "done"

        assert await messenger.typing_until_done(42, slow()) == "done"
        assert len(bot.actions) >= 2
        assert bot.actions[0] == {"chat_id": 42, "action": ChatAction.TYPING}

        count = len(bot.actions)
        await asyncio.sleep(0.05)
        assert len(bot.actions) == count

    async def test_sends_first_indicator_immediately(self, messenger, bot):
        async def fast():
            return 1

        await messenger.typing_until_done(42, fast())
        assert len(bot.actions) == 1

    async def test_propagates_failure_and_stops(self, messenger, bot):
        async def failing():
            await asyncio.sleep(0.03)
            raise ValueError("llm failed")

        with pytest.raises(ValueError):
            await messenger.typing_until_done(42, failing())

        count = len(bot.actions)
        await asyncio.sleep(0.05)
        assert len(bot.actions) == count

    async def test_indicator_errors_are_ignored(self, messenger, bot, monkeypatch):
        async def broken(chat_id, action):
            raise RuntimeError("chat not found")

        monkeypatch.setattr(bot, "send_chat_action", broken)
        await messenger.send_typing(42)


class TestLifecycle:
    async def test_start_discovers_username(self):
        bot = FakeBot(username="DiscoveredBot")
        messenger = TelegramMessenger(TelegramConfig(token="123:test"), bot=bot)
        await messenger.start()
        assert bot.initialized
        assert messenger.username == "DiscoveredBot"
        await messenger.stop()
        assert not bot.initialized

    async def test_configured_username_wins(self, messenger):
        messenger._bot.username = "Other"
        await messenger.start()
        assert messenger.username == "MFGWBot"

    async def test_webhook_registration(self, messenger):
        assert await messenger.set_webhook("https://example.com/")
        assert await messenger.delete_webhook()
