"""
对话处理器 - 把一轮用户输入交给 LLM，并把问答两轮写回对话历史。

处理流程：
1. 以系统提示词开头，按原顺序回放对话历史（model → assistant），最后追加本轮用户输入
2. 调用 LLM 一次（不流式），等待完整回复
3. 成功：历史追加 user、model 两轮，整体保存（刷新过期时间）
4. 失败：异常原样向上传播，历史不保存 —— 不会留下"只有提问没有回答"的半截记录

"正在输入"状态的维持由调用方负责（见 TelegramMessenger.typing_until_done）。
"""

from typing import Any

from loguru import logger

from chatgemini.providers.base import LLMProvider
from chatgemini.session.manager import ChatHistory, SessionManager

# 对话历史中的角色 → OpenAI 格式消息角色
_ROLE_MAP = {"user": "user", "model": "assistant"}


class EmptyReplyError(RuntimeError):
    """LLM 返回了空回复（没有可发送给用户的文本）。"""


class ExchangeHandler:
    """
    对话处理器。

    属性:
        provider: LLM 提供者
        sessions: 会话管理器（用于保存对话历史）
        model: 模型名称，None 时使用 provider 的默认模型
        system_prompt: 系统提示词
        tools: 传给 LLM 的工具列表（如 Gemini 的 googleSearch / urlContext）
    """

    def __init__(
        self,
        provider: LLMProvider,
        sessions: SessionManager,
        model: str | None = None,
        system_prompt: str = "",
        max_tokens: int = 8192,
        temperature: float = 0.7,
        web_search: bool = True,
        url_context: bool = True,
    ):
        self.provider = provider
        self.sessions = sessions
        self.model = model or provider.get_default_model()
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.tools: list[dict[str, Any]] = []
        if web_search:
            self.tools.append({"googleSearch": {}})
        if url_context:
            self.tools.append({"urlContext": {}})

    def build_messages(self, history: ChatHistory, user_text: str) -> list[dict[str, Any]]:
        """构建发送给 LLM 的消息列表：系统提示词 + 历史轮次 + 本轮用户输入。"""
        messages: list[dict[str, Any]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        for turn in history.messages:
            messages.append({"role": _ROLE_MAP.get(turn.role, turn.role), "content": turn.content})
        messages.append({"role": "user", "content": user_text})
        return messages

    async def exchange(self, history: ChatHistory, session_id: int, user_text: str) -> str:
        """
        执行一轮问答并持久化对话历史。

        参数:
            history: 当前会话的对话历史（成功时被原地追加两轮）
            session_id: 会话 ID
            user_text: 本轮用户输入（已去掉 @机器人）

        返回:
            LLM 的回复文本

        异常:
            EmptyReplyError: LLM 没有返回任何文本
            其他异常: 来自 LLM 提供者，原样传播
        """
        response = await self.provider.chat(
            messages=self.build_messages(history, user_text),
            tools=self.tools or None,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        reply = response.content or ""
        if not reply.strip():
            raise EmptyReplyError(f"Empty reply from {self.model} (finish_reason={response.finish_reason})")

        history.add_turn("user", user_text)
        history.add_turn("model", reply)
        await self.sessions.save_chat_history(session_id, history)
        logger.debug(f"Session {session_id} now has {len(history.messages)} turns")
        return reply
