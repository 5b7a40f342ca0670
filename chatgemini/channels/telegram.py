"""
Telegram 消息发送模块 - 基于 python-telegram-bot 的 Bot API 客户端。

Webhook 模式下，Telegram 主动把消息 POST 给我们，所以这里不需要
Application / Updater 轮询框架，只需要一个 Bot 实例主动调用 API：

【核心功能】
1. send_message：发送回复（Markdown 转为 Telegram HTML），返回新消息的 message_id
2. send_typing：发送"正在输入..."状态
3. typing_until_done：在等待 LLM 期间持续刷新"正在输入"状态
4. set_webhook / delete_webhook：向 Telegram 注册/注销 Webhook 地址（CLI 使用）

【Java 开发者类比】
类似于一个 Feign/RestTemplate 封装的第三方 API 客户端，
typing_until_done 相当于 try-finally 里启动/取消一个 ScheduledFuture。
"""

from __future__ import annotations

import asyncio
import contextlib
import re
from typing import Awaitable, TypeVar

from loguru import logger
from telegram import Bot, ReplyParameters
from telegram.constants import ChatAction, ParseMode
from telegram.error import BadRequest
from telegram.request import HTTPXRequest

from chatgemini.config.schema import TelegramConfig

T = TypeVar("T")


def markdown_to_telegram_html(text: str) -> str:
    """
    将 Markdown 格式文本转换为 Telegram 兼容的 HTML。

    Telegram 的 HTML 支持有限（仅支持 <b>、<i>、<s>、<code>、<pre>、<a> 等），
    因此采用"保护-转换-恢复"三步法：
    1. 先将代码块和行内代码提取并用占位符替换（保护代码内容不被误处理）
    2. 对剩余文本进行 Markdown → HTML 转换
    3. 最后将代码恢复并包裹在 HTML 标签中

    参数:
        text: Markdown 格式的原始文本（LLM 的回复）

    返回:
        Telegram 兼容的 HTML 格式文本
    """
    if not text:
        return ""

    code_blocks: list[str] = []

    def save_code_block(m: re.Match) -> str:
        code_blocks.append(m.group(1))
        return f"\x00CB{len(code_blocks) - 1}\x00"

    text = re.sub(r'```[\w+-]*\n?([\s\S]*?)```', save_code_block, text)

    inline_codes: list[str] = []

    def save_inline_code(m: re.Match) -> str:
        inline_codes.append(m.group(1))
        return f"\x00IC{len(inline_codes) - 1}\x00"

    text = re.sub(r'`([^`]+)`', save_inline_code, text)

    # 标题、引用：Telegram HTML 没有对应标签，标题转为粗体，引用保留正文
    text = re.sub(r'^#{1,6}\s+(.+)$', r'**\1**', text, flags=re.MULTILINE)
    text = re.sub(r'^>\s*(.*)$', r'\1', text, flags=re.MULTILINE)
    text = re.sub(r'^[-*]\s+', '• ', text, flags=re.MULTILINE)

    # 转义必须在生成任何 HTML 标签之前
    text = _escape_html(text)

    text = re.sub(r'\[([^\]]+)\]\(([^)]+)\)', r'<a href="\2">\1</a>', text)
    text = re.sub(r'\*\*(.+?)\*\*', r'<b>\1</b>', text)
    text = re.sub(r'__(.+?)__', r'<b>\1</b>', text)
    # 斜体：排除变量名中的下划线，如 some_var_name
    text = re.sub(r'(?<![a-zA-Z0-9])_([^_\n]+)_(?![a-zA-Z0-9])', r'<i>\1</i>', text)
    text = re.sub(r'(?<![*\w])\*([^*\n]+)\*(?![*\w])', r'<i>\1</i>', text)
    text = re.sub(r'~~(.+?)~~', r'<s>\1</s>', text)

    for i, code in enumerate(inline_codes):
        text = text.replace(f"\x00IC{i}\x00", f"<code>{_escape_html(code)}</code>")

    for i, code in enumerate(code_blocks):
        text = text.replace(f"\x00CB{i}\x00", f"<pre><code>{_escape_html(code)}</code></pre>")

    return text


def _escape_html(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class TelegramMessenger:
    """
    Telegram Bot API 客户端（Webhook 模式下的出站方向）。

    属性:
        config: Telegram 配置
        username: 机器人用户名（不含 @），用于群聊中的 @ 识别
        typing_interval_s: "正在输入"状态的刷新间隔
    """

    def __init__(self, config: TelegramConfig, bot: Bot | None = None):
        """
        参数:
            config: Telegram 配置（token、代理、用户名等）
            bot: 可选的 Bot 实例（测试时注入），为 None 时按配置创建
        """
        self.config = config
        self.username = config.bot_username
        self.typing_interval_s = config.typing_interval_s
        if bot is None:
            req = HTTPXRequest(
                connection_pool_size=16,
                pool_timeout=5.0,
                connect_timeout=30.0,
                read_timeout=30.0,
                proxy=config.proxy,
            )
            bot = Bot(token=config.token, request=req)
        self._bot = bot

    async def start(self) -> None:
        """
        初始化 Bot（内部会调用 getMe）。

        未配置 bot_username 时，使用 getMe 返回的用户名。
        """
        await self._bot.initialize()
        if not self.username:
            self.username = self._bot.username
        logger.info(f"Telegram bot @{self.username} ready (webhook mode)")

    async def stop(self) -> None:
        """释放 Bot 的 HTTP 连接池。"""
        await self._bot.shutdown()

    async def send_message(self, chat_id: int, text: str, reply_to_message_id: int | None = None) -> int:
        """
        发送一条消息，返回新消息的 message_id。

        先将 Markdown 转为 HTML 发送；如果 Telegram 拒绝解析 HTML（BadRequest），
        回退为纯文本重发一次。其余错误直接抛出。

        参数:
            chat_id: 目标聊天 ID
            text: Markdown 格式的消息文本
            reply_to_message_id: 要回复（引用）的消息 ID

        返回:
            发送成功的消息 ID
        """
        reply_parameters = ReplyParameters(message_id=reply_to_message_id) if reply_to_message_id else None
        try:
            sent = await self._bot.send_message(
                chat_id=chat_id,
                text=markdown_to_telegram_html(text),
                parse_mode=ParseMode.HTML,
                reply_parameters=reply_parameters,
            )
        except BadRequest as e:
            logger.warning(f"HTML parse failed, falling back to plain text: {e}")
            sent = await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                reply_parameters=reply_parameters,
            )
        return sent.message_id

    async def send_typing(self, chat_id: int) -> None:
        """发送"正在输入"状态。失败不影响主流程，只记录 debug 日志。"""
        try:
            await self._bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
        except Exception as e:
            logger.debug(f"Typing indicator failed for {chat_id}: {e}")

    async def _typing_loop(self, chat_id: int) -> None:
        """每隔 typing_interval_s 秒发送一次"正在输入"，直到被取消。"""
        while True:
            await asyncio.sleep(self.typing_interval_s)
            await self.send_typing(chat_id)

    async def typing_until_done(self, chat_id: int, awaitable: Awaitable[T]) -> T:
        """
        等待 awaitable 完成，期间持续显示"正在输入..."。

        立即发送第一次状态，然后在后台任务中按固定间隔重发；
        无论 awaitable 成功还是抛出异常，后台任务都会在 finally 中被取消并等待结束，
        不会有定时任务活得比本次请求更久。

        参数:
            chat_id: 聊天 ID
            awaitable: 需要等待的协程（通常是 LLM 调用）

        返回:
            awaitable 的结果（异常原样传播）
        """
        await self.send_typing(chat_id)
        task = asyncio.create_task(self._typing_loop(chat_id))
        try:
            return await awaitable
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def set_webhook(self, url: str) -> bool:
        """向 Telegram 注册 Webhook 地址，只订阅 message 类型的更新。"""
        return await self._bot.set_webhook(url=url, allowed_updates=["message"])

    async def delete_webhook(self) -> bool:
        """注销 Webhook。"""
        return await self._bot.delete_webhook()
