"""
LiteLLM 提供者实现模块 —— 多 LLM 服务商的统一调用层。

LiteLLM 将 100+ 家 LLM 服务商的 API 统一为 OpenAI 兼容格式。
类比 Java 世界：LiteLLM 类似于 JDBC —— 一套接口，多种数据库驱动。

核心设计：
  1. 模型名称解析：根据 registry.py 中的元数据，自动为模型名添加正确的前缀
     例如 "gemini-2.5-flash" → "gemini/gemini-2.5-flash"
  2. 网关检测：自动识别 OpenRouter 等 API 网关，应用特殊的路由规则
  3. 环境变量配置：根据检测到的服务商，自动设置 LiteLLM 所需的环境变量
  4. 内置工具：Gemini 的 googleSearch / urlContext 等服务商内置工具原样透传

与通用 Agent 不同，这里调用失败时直接抛出异常：
Webhook 分发器负责把异常翻译为 HTTP 500，并保证不写入半截的对话历史。
"""

import os
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from chatgemini.providers.base import LLMProvider, LLMResponse
from chatgemini.providers.registry import find_by_model, find_gateway


class LiteLLMProvider(LLMProvider):
    """
    基于 LiteLLM 的 LLM 提供者实现类。

    服务商特定的逻辑（前缀、环境变量等）由 registry.py 驱动，
    本类中无需编写 if-elif 分支链。

    构造参数：
        api_key: API 密钥
        api_base: 自定义 API 基础 URL（用于代理/AI 网关）
        default_model: 默认模型名称（如 "gemini/gemini-2.5-flash"）
        extra_headers: 额外的 HTTP 请求头
        provider_name: 配置文件中的提供者名称（如 "openrouter"），用于网关检测
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gemini/gemini-2.5-flash",
        extra_headers: dict[str, str] | None = None,
        provider_name: str | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.extra_headers = extra_headers or {}

        self._gateway = find_gateway(provider_name, api_key, api_base)

        if api_key:
            self._setup_env(api_key, api_base, default_model)

        litellm.suppress_debug_info = True
        litellm.drop_params = True

    def _setup_env(self, api_key: str, api_base: str | None, model: str) -> None:
        """
        根据检测到的服务商设置 LiteLLM 读取的环境变量（如 GEMINI_API_KEY）。

        网关会强制覆盖环境变量；标准服务商使用 setdefault，不覆盖已有值。
        """
        spec = self._gateway or find_by_model(model)
        if not spec:
            return

        if self._gateway:
            os.environ[spec.env_key] = api_key
        else:
            os.environ.setdefault(spec.env_key, api_key)

    def _resolve_model(self, model: str) -> str:
        """
        解析模型名称，添加 LiteLLM 所需的服务商前缀。

        参数：
            model: 原始模型名称（可能带或不带前缀）

        返回：
            处理后的模型名称
        """
        if self._gateway:
            prefix = self._gateway.litellm_prefix
            if prefix and not model.startswith(f"{prefix}/"):
                model = f"{prefix}/{model}"
            return model

        spec = find_by_model(model)
        if spec and spec.litellm_prefix:
            if not any(model.startswith(s) for s in spec.skip_prefixes):
                model = f"{spec.litellm_prefix}/{model}"

        return model

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        发送对话补全请求。

        只有函数类工具（{"type": "function", ...}）才会附带 tool_choice="auto"；
        googleSearch 这类内置工具由服务商自行决定何时使用。

        异常：
            LiteLLM 抛出的任何异常（认证失败、限流、网络错误等）原样向上传播
        """
        model = self._resolve_model(model or self.default_model)

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        if self.api_key:
            kwargs["api_key"] = self.api_key

        if self.api_base:
            kwargs["api_base"] = self.api_base

        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers

        if tools:
            kwargs["tools"] = tools
            if any(t.get("type") == "function" for t in tools):
                kwargs["tool_choice"] = "auto"

        response = await acompletion(**kwargs)
        parsed = self._parse_response(response)
        logger.debug(f"LLM {model} finished ({parsed.finish_reason}), usage={parsed.usage}")
        return parsed

    def _parse_response(self, response: Any) -> LLMResponse:
        """
        将 LiteLLM 的原始响应（OpenAI 格式）解析为统一的 LLMResponse。
        """
        choice = response.choices[0]
        message = choice.message

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        """获取默认模型名称。"""
        return self.default_model
