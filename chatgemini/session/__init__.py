"""
会话管理模块 - 管理消息到会话的映射和会话的对话历史。

【架构定位】
会话管理器位于 Webhook 分发器和键值存储之间：
- 分发器收到消息后，通过 resolve() 找到（或创建）所属会话
- 对话处理器从会话中取出历史构建上下文，回复后整体写回
- 分发器发出回复后，把回复消息也索引到同一会话
"""

from chatgemini.session.manager import ChatHistory, SessionManager, Turn

__all__ = ["SessionManager", "ChatHistory", "Turn"]
