"""
LLM 提供者注册表 —— 所有 LLM 服务商元数据的唯一真相来源。

所有服务商的差异（API Key 环境变量名、模型前缀等）都集中在 PROVIDERS 元组中定义，
而非散落在代码各处的 if-elif 分支中。

添加新的 LLM 服务商只需两步：
  1. 在下方 PROVIDERS 元组中新增一条 ProviderSpec
  2. 在 config/schema.py 的 ProvidersConfig 中新增一个字段

PROVIDERS 中的顺序决定了匹配优先级和回退顺序。网关类型排在最前面。
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderSpec:
    """
    单个 LLM 服务商的元数据规格定义（不可变）。

    【身份标识】
        name: 配置字段名（如 "gemini"），对应 config.json 中 providers 下的 key
        keywords: 模型名关键词元组，用于根据模型名匹配服务商（全小写）
        env_key: LiteLLM 需要的环境变量名（如 "GEMINI_API_KEY"）
        display_name: 在 `chatgemini status` 命令中显示的名称

    【模型前缀】
        litellm_prefix: LiteLLM 路由前缀（如 "gemini" → 模型变为 "gemini/{model}"）
        skip_prefixes: 如果模型名已有这些前缀则跳过添加

    【网关检测】
        is_gateway: 是否是 API 网关（可路由任意模型）
        detect_by_key_prefix: 通过 API Key 前缀自动检测（如 "sk-or-" → OpenRouter）
        detect_by_base_keyword: 通过 API Base URL 关键词检测
        default_api_base: 默认的 API 基础 URL
    """

    name: str
    keywords: tuple[str, ...]
    env_key: str
    display_name: str = ""

    litellm_prefix: str = ""
    skip_prefixes: tuple[str, ...] = ()

    is_gateway: bool = False
    detect_by_key_prefix: str = ""
    detect_by_base_keyword: str = ""
    default_api_base: str = ""

    @property
    def label(self) -> str:
        """获取显示标签，优先使用 display_name，否则将 name 首字母大写。"""
        return self.display_name or self.name.title()


# ---------------------------------------------------------------------------
# PROVIDERS —— 服务商注册表。顺序 = 优先级。
# ---------------------------------------------------------------------------

PROVIDERS: tuple[ProviderSpec, ...] = (

    # OpenRouter：全球 API 网关，Key 以 "sk-or-" 开头
    ProviderSpec(
        name="openrouter",
        keywords=("openrouter",),
        env_key="OPENROUTER_API_KEY",
        display_name="OpenRouter",
        litellm_prefix="openrouter",        # gemini-2.5-flash → openrouter/gemini-2.5-flash
        is_gateway=True,
        detect_by_key_prefix="sk-or-",
        detect_by_base_keyword="openrouter",
        default_api_base="https://openrouter.ai/api/v1",
    ),

    # Gemini（Google AI Studio）：默认服务商，需要 "gemini/" 前缀
    ProviderSpec(
        name="gemini",
        keywords=("gemini",),
        env_key="GEMINI_API_KEY",
        display_name="Gemini",
        litellm_prefix="gemini",            # gemini-2.5-flash → gemini/gemini-2.5-flash
        skip_prefixes=("gemini/",),
    ),

    # Anthropic：LiteLLM 原生识别 "claude-*"，无需前缀
    ProviderSpec(
        name="anthropic",
        keywords=("anthropic", "claude"),
        env_key="ANTHROPIC_API_KEY",
        display_name="Anthropic",
    ),

    # OpenAI：LiteLLM 原生识别 "gpt-*"，无需前缀
    ProviderSpec(
        name="openai",
        keywords=("openai", "gpt"),
        env_key="OPENAI_API_KEY",
        display_name="OpenAI",
    ),

    # DeepSeek：需要 "deepseek/" 前缀
    ProviderSpec(
        name="deepseek",
        keywords=("deepseek",),
        env_key="DEEPSEEK_API_KEY",
        display_name="DeepSeek",
        litellm_prefix="deepseek",
        skip_prefixes=("deepseek/",),
    ),
)


def find_by_model(model: str) -> ProviderSpec | None:
    """
    根据模型名关键词匹配标准服务商（大小写不敏感，跳过网关）。

    参数：
        model: 模型名称（如 "gemini-2.5-flash"）

    返回：
        匹配的 ProviderSpec，如果没有匹配则返回 None
    """
    model_lower = model.lower()
    for spec in PROVIDERS:
        if spec.is_gateway:
            continue
        if any(kw in model_lower for kw in spec.keywords):
            return spec
    return None


def find_gateway(
    provider_name: str | None = None,
    api_key: str | None = None,
    api_base: str | None = None,
) -> ProviderSpec | None:
    """
    检测当前是否通过网关访问 LLM。

    检测优先级：
      1. provider_name —— 配置 key 名直接映射到网关 spec
      2. api_key 前缀 —— 如 "sk-or-" 开头 → OpenRouter
      3. api_base 关键词

    指向 Cloudflare AI Gateway 等透明代理的 api_base 不算网关：
    模型仍按标准服务商路由，只是请求地址被替换。
    """
    if provider_name:
        spec = find_by_name(provider_name)
        if spec and spec.is_gateway:
            return spec

    for spec in PROVIDERS:
        if spec.detect_by_key_prefix and api_key and api_key.startswith(spec.detect_by_key_prefix):
            return spec
        if spec.detect_by_base_keyword and api_base and spec.detect_by_base_keyword in api_base:
            return spec

    return None


def find_by_name(name: str) -> ProviderSpec | None:
    """根据配置字段名查找 ProviderSpec。"""
    for spec in PROVIDERS:
        if spec.name == name:
            return spec
    return None
