"""
消息渠道模块 - 与 Telegram 平台的出站交互（发消息、输入状态、Webhook 注册）。
"""

from chatgemini.channels.telegram import TelegramMessenger, markdown_to_telegram_html

__all__ = ["TelegramMessenger", "markdown_to_telegram_html"]
