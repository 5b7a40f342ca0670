"""
对话核心模块 —— chatgemini 的"大脑"。

- ExchangeHandler: 对话处理器，负责 历史回放 → 调用 LLM → 追加并保存历史
"""

from chatgemini.agent.exchange import EmptyReplyError, ExchangeHandler

__all__ = ["ExchangeHandler", "EmptyReplyError"]
