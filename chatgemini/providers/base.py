"""
LLM 提供者基类定义模块。

- LLMResponse : LLM 的统一响应格式（文本内容、结束原因、token 用量）
- LLMProvider : 抽象基类，定义了所有 LLM 提供者必须实现的接口

架构角色：
  Webhook 分发器 → ExchangeHandler → LLMProvider.chat() → LLM API → LLMResponse

类比 Java：
  - LLMProvider 相当于一个 interface
  - LLMResponse 相当于一个不可变的 DTO
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LLMResponse:
    """
    LLM 的统一响应数据结构。

    属性：
        content: LLM 返回的文本内容（可能为 None）
        finish_reason: 结束原因（"stop"=正常结束, "length"=达到 max_tokens 等）
        usage: token 用量统计（prompt_tokens, completion_tokens, total_tokens）
    """
    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)


class LLMProvider(ABC):
    """
    LLM 提供者抽象基类。

    实现类必须实现：
    - chat()             : 发送对话请求并获取响应；调用失败时直接抛出异常
    - get_default_model(): 返回该提供者的默认模型名称

    属性：
        api_key: API 密钥
        api_base: API 基础 URL（用于自定义端点或代理）
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        发送对话补全请求（核心方法）。

        参数：
            messages: 消息列表，每条消息是 {"role": "system/user/assistant", "content": "..."} 格式
            tools: 可选的工具列表（函数定义或服务商内置工具，如 {"googleSearch": {}}）
            model: 模型标识符（如 'gemini/gemini-2.5-flash'）
            max_tokens: 响应的最大 token 数
            temperature: 采样温度

        返回：
            LLMResponse
        """
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """获取该提供者的默认模型名称。"""
        pass
