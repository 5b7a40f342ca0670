"""
会话管理器实现模块 - 会话索引与对话历史的读写，以及会话解析。

本模块包含三部分：
- Turn / ChatHistory：对话历史的数据结构
- SessionManager：基于 KVStore 的会话索引与对话历史存取
- SessionManager.resolve()：把一条入站消息映射到它所属的会话

【会话续接机制】
Webhook 每次调用都是孤立的 HTTP 请求，进程不保存任何连接状态。
多轮对话靠"消息 ID → 会话 ID"的索引串起来：
- 一条不回复任何消息的新消息开启新会话，会话 ID 就是它自己的 message_id
- 回复某条已索引消息的新消息，继承那条消息的会话 ID
- 机器人发出的回复也会被索引到同一会话，用户"回复机器人"即可继续对话

【存储键】
- message-session:<messageId> → 会话 ID（字符串），TTL 1 天
- session:<sessionId>        → 对话历史 JSON，TTL 2 天

两个键独立过期，没有跨键事务：同一会话的并发回复会"后写覆盖先写"，
可能静默丢掉一轮对话。

【Java 开发者类比】
- SessionManager 类似于 Spring Session 的 SessionRepository
- ChatHistory 类似于一个可序列化的 DTO，toJson/fromJson 对应 Jackson 的序列化
"""

import json
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from chatgemini.store.base import KVStore
from chatgemini.utils.helpers import now_ms

MESSAGE_SESSION_PREFIX = "message-session:"
SESSION_PREFIX = "session:"

DEFAULT_MESSAGE_SESSION_TTL_S = 60 * 60 * 24
DEFAULT_SESSION_TTL_S = 60 * 60 * 24 * 2


@dataclass
class Turn:
    """一轮对话：角色（"user" 或 "model"）+ 文本内容。"""

    role: str
    content: str


@dataclass
class ChatHistory:
    """
    单个会话的对话历史。

    messages 按插入顺序保存，回放给模型时原样保持顺序；
    存储层不强制 user/model 严格交替。

    属性:
        messages: 对话轮次列表
        last_updated: 最后更新时间（毫秒级 Unix 时间戳）
    """

    messages: list[Turn] = field(default_factory=list)
    last_updated: int = field(default_factory=now_ms)

    def add_turn(self, role: str, content: str) -> None:
        """追加一轮对话。"""
        self.messages.append(Turn(role=role, content=content))

    def to_dict(self) -> dict[str, Any]:
        """序列化为存储格式：{"messages": [{role, content}], "lastUpdated": ms}。"""
        return {
            "messages": [{"role": t.role, "content": t.content} for t in self.messages],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatHistory":
        """从存储格式反序列化。缺失字段使用默认值。"""
        return cls(
            messages=[Turn(role=m["role"], content=m["content"]) for m in data.get("messages", [])],
            last_updated=data.get("lastUpdated") or now_ms(),
        )


class SessionManager:
    """
    会话管理器 - 会话索引和对话历史的 CRUD，以及会话解析。

    属性:
        store: 键值存储后端
        message_session_ttl_s: 消息→会话索引的过期时间（秒）
        session_ttl_s: 对话历史的过期时间（秒）
    """

    def __init__(
        self,
        store: KVStore,
        message_session_ttl_s: int = DEFAULT_MESSAGE_SESSION_TTL_S,
        session_ttl_s: int = DEFAULT_SESSION_TTL_S,
    ):
        self.store = store
        self.message_session_ttl_s = message_session_ttl_s
        self.session_ttl_s = session_ttl_s

    # ------------------------------------------------------------------
    # 消息 → 会话索引
    # ------------------------------------------------------------------

    async def get_message_session(self, message_id: int | None) -> int | None:
        """
        查询某条消息所属的会话 ID。

        参数:
            message_id: Telegram 消息 ID，None 时直接返回 None

        返回:
            会话 ID；没有索引（或已过期）时返回 None
        """
        if not message_id:
            return None
        session_id = await self.store.get(f"{MESSAGE_SESSION_PREFIX}{message_id}")
        return int(session_id) if session_id else None

    async def set_message_session(self, message_id: int, session_id: int) -> None:
        """把消息索引到会话（覆盖写，重复调用结果相同）。"""
        await self.store.put(
            f"{MESSAGE_SESSION_PREFIX}{message_id}",
            str(session_id),
            expiration_ttl=self.message_session_ttl_s,
        )

    async def create_message_session(self, message_id: int) -> int:
        """以该消息为起点创建新会话：会话 ID 即消息 ID。"""
        await self.set_message_session(message_id, message_id)
        return message_id

    # ------------------------------------------------------------------
    # 对话历史
    # ------------------------------------------------------------------

    async def get_chat_history(self, session_id: int | None) -> ChatHistory | None:
        """
        读取会话的对话历史。

        参数:
            session_id: 会话 ID

        返回:
            ChatHistory；不存在、已过期或内容损坏时返回 None
        """
        if not session_id:
            return None
        raw = await self.store.get(f"{SESSION_PREFIX}{session_id}")
        if not raw:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            return ChatHistory.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to decode chat history for session {session_id}: {e}")
            return None

    async def save_chat_history(self, session_id: int, history: ChatHistory) -> None:
        """
        整体覆盖保存对话历史，同时刷新 last_updated 和过期时间。
        """
        history.last_updated = now_ms()
        await self.store.put(
            f"{SESSION_PREFIX}{session_id}",
            json.dumps(history.to_dict(), ensure_ascii=False),
            expiration_ttl=self.session_ttl_s,
        )

    async def list_sessions(self) -> list[int]:
        """列出所有未过期的会话 ID（CLI 查看用）。"""
        keys = await self.store.keys(SESSION_PREFIX)
        return [int(k[len(SESSION_PREFIX):]) for k in keys]

    # ------------------------------------------------------------------
    # 会话解析
    # ------------------------------------------------------------------

    async def resolve(
        self,
        message_id: int,
        reply_to_message_id: int | None = None,
    ) -> tuple[int, ChatHistory]:
        """
        确定入站消息所属的会话，并加载（或初始化）其对话历史。

        - 被回复的消息有索引 S：把当前消息也索引到 S，加载 S 的历史（没有则为空）
        - 否则开启新会话：会话 ID = 当前消息 ID，历史为空

        数据缺失一律降级为"重新开始"，不向用户暴露存储层的瞬时问题。
        每次调用恰好写入一条索引。

        参数:
            message_id: 当前消息 ID
            reply_to_message_id: 被回复消息的 ID（可选）

        返回:
            (会话 ID, 对话历史)
        """
        session_id = await self.get_message_session(reply_to_message_id)
        if session_id is not None:
            await self.set_message_session(message_id, session_id)
            history = await self.get_chat_history(session_id)
            if history is None:
                history = ChatHistory()
            logger.debug(
                f"Message {message_id} continues session {session_id} "
                f"({len(history.messages)} turns)"
            )
        else:
            session_id = await self.create_message_session(message_id)
            history = ChatHistory()
            logger.debug(f"Message {message_id} starts new session")
        return session_id, history
