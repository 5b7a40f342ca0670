"""
LLM 提供者抽象层模块（providers 包）。

本模块是 chatgemini 与大语言模型（LLM）服务之间的桥梁层，
通过 LiteLLM 库实现"一套接口，多家 LLM"的统一调用。

模块组成：
- base.py             : 定义 LLMProvider 抽象基类和 LLMResponse 数据结构
- litellm_provider.py : 基于 LiteLLM 的实现类
- registry.py         : 提供者注册表，集中管理服务商元数据（环境变量名、模型前缀等）
"""

from chatgemini.providers.base import LLMProvider, LLMResponse
from chatgemini.providers.litellm_provider import LiteLLMProvider

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider"]
