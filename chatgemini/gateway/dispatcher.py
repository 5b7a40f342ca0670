"""
Webhook 分发器 - 单个 Telegram 更新的完整处理流程。

状态流转：
    收到更新 → 白名单校验（通过/拒绝）→ 群聊 @ 过滤（命中/忽略）
    → 会话解析 → 对话生成（成功/失败）→ 发送回复并索引回复消息

各种结果与 HTTP 状态码的对应关系：
- 非文本更新（贴纸、入群事件、结构不完整的更新等） → 200，静默忽略
- 白名单外的聊天                      → 200，回复一条说明
- 群聊中没有 @机器人 也没有回复机器人   → 200，静默忽略（不产生任何出站调用）
- 会话解析 / LLM / 发送 任一步失败     → 500，只记日志，不在聊天中提示

本类是唯一把异常翻译为 HTTP 状态的地方；会话管理器、对话处理器、
消息发送器都只抛异常，不关心 HTTP。
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable

from loguru import logger
from telegram import Message, Update
from telegram.constants import ChatType

from chatgemini.agent.exchange import ExchangeHandler
from chatgemini.channels.telegram import TelegramMessenger
from chatgemini.session.manager import SessionManager
from chatgemini.utils.helpers import truncate_string

_GROUP_CHAT_TYPES = {ChatType.GROUP, ChatType.SUPERGROUP}


@dataclass
class DispatchResult:
    """一次 Webhook 调用的处理结果（HTTP 状态码 + 纯文本说明）。"""

    status_code: int
    detail: str


class WebhookDispatcher:
    """
    Webhook 分发器。

    白名单在进程启动时加载一次并注入进来，运行期间只读。

    属性:
        messenger: Telegram 消息发送器
        sessions: 会话管理器
        exchange: 对话处理器
        allowed_chat_ids: 允许使用机器人的 chat ID 集合（空集合表示拒绝所有聊天）
        unauthorized_reply: 白名单外聊天收到的说明文字
    """

    def __init__(
        self,
        messenger: TelegramMessenger,
        sessions: SessionManager,
        exchange: ExchangeHandler,
        allowed_chat_ids: Iterable[int],
        unauthorized_reply: str,
    ):
        self.messenger = messenger
        self.sessions = sessions
        self.exchange = exchange
        self.allowed_chat_ids = frozenset(allowed_chat_ids)
        self.unauthorized_reply = unauthorized_reply

    @property
    def bot_username(self) -> str:
        return self.messenger.username or ""

    def is_allowed(self, chat_id: int) -> bool:
        return chat_id in self.allowed_chat_ids

    def _mention(self) -> str | None:
        return f"@{self.bot_username}" if self.bot_username else None

    def is_addressed_to_bot(self, message: Message) -> bool:
        """
        判断群聊消息是否是发给机器人的。

        满足其一即可：
        - 文本中包含 @机器人用户名（区分大小写的字面匹配）
        - 回复的是机器人自己发出的消息（is_bot 且用户名一致）
        """
        mention = self._mention()
        if mention and mention in (message.text or ""):
            return True
        replied = message.reply_to_message
        sender = replied.from_user if replied else None
        return bool(sender and sender.is_bot and sender.username == self.bot_username)

    def strip_mention(self, text: str) -> str:
        """
        去掉文本中所有的 @机器人用户名（连同其后的空白），再去掉首尾空白。

        这是全局、区分大小写的字面替换，不做单词边界判断：
        "@MFGWBot what time" → "what time"。不含 @ 时原样返回。
        """
        mention = self._mention()
        if not mention or mention not in text:
            return text
        return re.sub(re.escape(mention) + r"\s*", "", text).strip()

    async def handle_update(self, data: Any) -> DispatchResult:
        """
        处理一个 Telegram 更新（已解码的 JSON）。

        参数:
            data: Webhook 请求体解码后的对象

        返回:
            DispatchResult
        """
        try:
            update = Update.de_json(data, None)
        except (TypeError, KeyError, AttributeError, ValueError) as e:
            # 结构不完整的更新同样属于正常流量，按"无文本消息"忽略
            logger.warning(f"Ignoring update that cannot be parsed: {e}")
            return DispatchResult(200, "No message text found")

        message = update.message if update else None
        if message is None or not message.text:
            return DispatchResult(200, "No message text found")

        try:
            return await self._handle_message(message)
        except Exception:
            logger.exception(f"Error generating response for message {message.message_id}")
            return DispatchResult(500, "Error generating response")

    async def _handle_message(self, message: Message) -> DispatchResult:
        chat_id = message.chat.id

        if not self.is_allowed(chat_id):
            logger.warning(f"Access denied for chat {chat_id}")
            await self.messenger.send_message(chat_id, self.unauthorized_reply, message.message_id)
            return DispatchResult(200, "Unauthorized chat")

        if message.chat.type in _GROUP_CHAT_TYPES and not self.is_addressed_to_bot(message):
            return DispatchResult(200, "Message not directed to bot in group chat")

        user_text = self.strip_mention(message.text)
        logger.debug(f"Telegram message from chat {chat_id}: {truncate_string(user_text, 50)}")

        replied = message.reply_to_message
        session_id, history = await self.sessions.resolve(
            message.message_id,
            replied.message_id if replied else None,
        )

        reply = await self.messenger.typing_until_done(
            chat_id,
            self.exchange.exchange(history, session_id, user_text),
        )

        sent_id = await self.messenger.send_message(chat_id, reply, message.message_id)
        # 机器人的回复也归入同一会话，用户回复它即可继续对话
        await self.sessions.set_message_session(sent_id, session_id)
        return DispatchResult(200, "Message sent")
