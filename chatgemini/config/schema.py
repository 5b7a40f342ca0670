"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 chatgemini 的完整配置结构。
所有配置项都有默认值，用户只需在 config.json 或环境变量中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── telegram      - Telegram 机器人配置（token、用户名、白名单、输入状态间隔）
├── agents        - 对话生成配置（模型、温度、系统提示词、内置工具开关）
├── providers     - LLM 提供商配置（API Key、API Base URL 等）
├── store         - 键值存储配置（后端类型、路径、两类键的 TTL）
└── gateway       - HTTP Webhook 服务配置（主机和端口）

对于 Java 开发者：
- Pydantic 的 BaseModel 类似于 Java 的 POJO/Record，但自带字段验证和默认值
- BaseSettings 类似于 Spring 的 @ConfigurationProperties，额外支持从环境变量读取配置
"""

from pathlib import Path

from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic_settings import BaseSettings


DEFAULT_SYSTEM_PROMPT = """You are an AI assistant in a group chat. Your goal is to be a helpful and accurate conversational partner.

# Key responsibilities

- Answer with the same language as the user.
- Answer user questions and provide relevant information based on the ongoing conversation.
- Proactively use your search tool to fact-check information and ensure your responses are accurate and up-to-date.
- Maintain a natural, conversational, and friendly tone.
- Avoid generating content that is unhelpful, offensive, or biased."""

DEFAULT_UNAUTHORIZED_REPLY = (
    "Sorry, you are not authorized to use this bot. "
    "You may fork the repo at https://github.com/longfangsong/chat-gemini and deploy your own instance "
    "with your own Telegram bot token and a free Google Gemini API key."
)


# ==============================================================================
# Telegram 机器人配置
# ==============================================================================


class TelegramConfig(BaseModel):
    """
    Telegram 机器人配置。

    与长轮询模式不同，这里只需要 token 用于主动调用 Bot API（发消息、发输入状态），
    消息由 Telegram 通过 Webhook 推送进来。
    """
    token: str = ""  # 从 @BotFather 获取的 Bot Token
    bot_username: str = ""  # 机器人用户名（不含 @），为空时启动时通过 getMe 获取
    allowed_chat_ids: list[int] | str = Field(default_factory=list)  # 允许使用机器人的 chat ID 白名单
    proxy: str | None = None  # HTTP/SOCKS5 代理地址，如 "http://127.0.0.1:7890"
    typing_interval_s: float = 5.0  # "正在输入"状态的重发间隔（秒）
    unauthorized_reply: str = DEFAULT_UNAUTHORIZED_REPLY  # 白名单外的聊天收到的提示

    @field_validator("allowed_chat_ids", mode="before")
    @classmethod
    def _split_chat_ids(cls, value):
        """支持逗号分隔的字符串形式（如环境变量 "123,-100456"）。"""
        if isinstance(value, str):
            return [int(part.strip()) for part in value.split(",") if part.strip()]
        if isinstance(value, int):
            return [value]
        return value


# ==============================================================================
# 对话生成配置
# ==============================================================================


class AgentDefaults(BaseModel):
    """
    对话生成默认配置。

    - model: 使用哪个 LLM 模型（格式: provider/model）
    - web_search / url_context: Gemini 的两个内置工具（搜索与网页内容读取）
    """
    model: str = "gemini/gemini-2.5-flash"  # 默认模型
    max_tokens: int = 8192  # 单次 LLM 调用的最大输出 token 数
    temperature: float = 0.7  # 生成温度
    system_prompt: str = DEFAULT_SYSTEM_PROMPT  # 系统提示词（助手人设与行为约束）
    web_search: bool = True  # 是否启用 Google 搜索工具
    url_context: bool = True  # 是否启用 URL 内容读取工具


class AgentsConfig(BaseModel):
    """对话生成配置容器。"""
    defaults: AgentDefaults = Field(default_factory=AgentDefaults)


# ==============================================================================
# LLM 提供商配置
# ==============================================================================


class ProviderConfig(BaseModel):
    """单个 LLM 提供商的配置。"""
    api_key: str = ""  # API 密钥（留空表示未配置该提供商）
    api_base: str | None = None  # 自定义 API 基础 URL（如 AI Gateway 代理地址）
    extra_headers: dict[str, str] | None = None  # 额外请求头


class ProvidersConfig(BaseModel):
    """
    所有 LLM 提供商的聚合配置。

    默认模型是 Gemini，只需配置 providers.gemini.apiKey 即可运行；
    其余提供商用于切换模型。
    """
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    deepseek: ProviderConfig = Field(default_factory=ProviderConfig)
    gemini: ProviderConfig = Field(default_factory=ProviderConfig)


# ==============================================================================
# 键值存储与网关配置
# ==============================================================================


class StoreConfig(BaseModel):
    """
    键值存储配置。

    两类键的 TTL 默认不一致（索引 1 天、对话历史 2 天），这是有意保留的原始行为：
    第 1~2 天之间回复旧消息会找不到会话索引，从而开启新会话。
    """
    backend: str = "file"  # 存储后端："file"（磁盘 JSON 文件）| "memory"（进程内，仅开发/测试）
    path: str = "~/.chatgemini/kv"  # file 后端的数据目录
    message_session_ttl_s: int = 60 * 60 * 24  # message-session:<id> 的过期时间（1 天）
    session_ttl_s: int = 60 * 60 * 24 * 2  # session:<id> 的过期时间（2 天）


class GatewayConfig(BaseModel):
    """HTTP Webhook 服务配置。"""
    host: str = "0.0.0.0"  # 监听地址（0.0.0.0 表示监听所有网卡）
    port: int = 8787  # 监听端口


# ==============================================================================
# 根配置类
# ==============================================================================


class Config(BaseSettings):
    """
    chatgemini 根配置类。

    继承自 Pydantic 的 BaseSettings，除了支持从 JSON 文件加载外，
    还支持从环境变量读取配置：
    - 环境变量前缀: CHATGEMINI_
    - 嵌套分隔符: __ (双下划线)
    - 示例: CHATGEMINI_TELEGRAM__ALLOWED_CHAT_IDS=123,-100456
    """
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    @property
    def store_path(self) -> Path:
        """获取展开后的存储目录绝对路径。"""
        return Path(self.store.path).expanduser()

    def _match_provider(self, model: str | None = None) -> tuple["ProviderConfig | None", str | None]:
        """
        根据模型名称匹配对应的 LLM 提供商配置。

        匹配策略（两阶段）：
        1. 关键词匹配：根据模型名中的关键词（如 "gemini" → gemini）
           找到对应的提供商，且该提供商必须已配置 api_key
        2. 兜底匹配：返回第一个已配置 api_key 的提供商（网关类优先）
        """
        from chatgemini.providers.registry import PROVIDERS
        model_lower = (model or self.agents.defaults.model).lower()

        for spec in PROVIDERS:
            p = getattr(self.providers, spec.name, None)
            if p and any(kw in model_lower for kw in spec.keywords) and p.api_key:
                return p, spec.name

        for spec in PROVIDERS:
            p = getattr(self.providers, spec.name, None)
            if p and p.api_key:
                return p, spec.name
        return None, None

    def get_provider(self, model: str | None = None) -> ProviderConfig | None:
        """获取匹配的提供商配置（包含 api_key、api_base、extra_headers）。"""
        p, _ = self._match_provider(model)
        return p

    def get_provider_name(self, model: str | None = None) -> str | None:
        """获取匹配的提供商注册名称（如 "gemini"、"openrouter"）。"""
        _, name = self._match_provider(model)
        return name

    def get_api_base(self, model: str | None = None) -> str | None:
        """
        获取指定模型对应的 API Base URL。

        优先使用用户显式配置的 api_base；其次是网关类提供商的默认地址。
        """
        from chatgemini.providers.registry import find_by_name
        p, name = self._match_provider(model)
        if p and p.api_base:
            return p.api_base
        if name:
            spec = find_by_name(name)
            if spec and spec.is_gateway and spec.default_api_base:
                return spec.default_api_base
        return None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """环境变量优先于 config.json（部署平台通常只注入环境变量）。"""
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    model_config = ConfigDict(
        env_prefix="CHATGEMINI_",
        env_nested_delimiter="__"
    )
