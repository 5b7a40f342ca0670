"""
FastAPI Webhook 应用 - HTTP 入口。

路由：
- POST /      : Telegram Webhook。请求体不是合法 JSON 时返回 500，否则交给分发器
- 其他方法 /   : 返回使用说明（200）
- GET /health : 健康检查

组件装配（build_dispatcher）：
    Config → KVStore → SessionManager ─┐
           → LiteLLMProvider ──────────┼→ ExchangeHandler ─┐
           → TelegramMessenger ────────┴───────────────────┴→ WebhookDispatcher

每个 Webhook 请求在事件循环中作为一个独立的异步任务处理，
请求之间不共享内存状态，所有跨请求状态都在键值存储里。
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from loguru import logger

from chatgemini import __version__
from chatgemini.agent.exchange import ExchangeHandler
from chatgemini.channels.telegram import TelegramMessenger
from chatgemini.config.schema import Config
from chatgemini.gateway.dispatcher import WebhookDispatcher
from chatgemini.providers.litellm_provider import LiteLLMProvider
from chatgemini.session.manager import SessionManager
from chatgemini.store import create_store

USAGE_TEXT = "Send a POST request to this endpoint to use the Telegram bot."


def make_provider(config: Config) -> LiteLLMProvider:
    """根据配置创建 LiteLLM 提供者实例。"""
    p = config.get_provider()
    return LiteLLMProvider(
        api_key=p.api_key if p else None,
        api_base=config.get_api_base(),
        default_model=config.agents.defaults.model,
        extra_headers=p.extra_headers if p else None,
        provider_name=config.get_provider_name(),
    )


def build_dispatcher(config: Config) -> WebhookDispatcher:
    """
    按配置装配完整的分发器（存储、会话、LLM、Telegram）。

    参数:
        config: 全局配置对象

    返回:
        WebhookDispatcher 实例
    """
    store = create_store(config.store.backend, config.store_path)
    sessions = SessionManager(
        store,
        message_session_ttl_s=config.store.message_session_ttl_s,
        session_ttl_s=config.store.session_ttl_s,
    )
    defaults = config.agents.defaults
    exchange = ExchangeHandler(
        provider=make_provider(config),
        sessions=sessions,
        model=defaults.model,
        system_prompt=defaults.system_prompt,
        max_tokens=defaults.max_tokens,
        temperature=defaults.temperature,
        web_search=defaults.web_search,
        url_context=defaults.url_context,
    )
    return WebhookDispatcher(
        messenger=TelegramMessenger(config.telegram),
        sessions=sessions,
        exchange=exchange,
        allowed_chat_ids=config.telegram.allowed_chat_ids,
        unauthorized_reply=config.telegram.unauthorized_reply,
    )


def create_app(config: Config | None = None, dispatcher: WebhookDispatcher | None = None) -> FastAPI:
    """
    创建 FastAPI 应用。

    参数:
        config: 全局配置；dispatcher 为 None 时用于装配分发器
        dispatcher: 可选的现成分发器（测试时注入）

    返回:
        FastAPI 应用实例
    """
    if dispatcher is None:
        dispatcher = build_dispatcher(config or Config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await dispatcher.messenger.start()
        try:
            yield
        finally:
            await dispatcher.messenger.stop()

    app = FastAPI(title="chat-gemini", version=__version__, lifespan=lifespan)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/")
    async def webhook(request: Request) -> PlainTextResponse:
        try:
            data = await request.json()
        except ValueError:
            logger.exception("Error processing request")
            return PlainTextResponse("Error processing request", status_code=500)
        result = await dispatcher.handle_update(data)
        return PlainTextResponse(result.detail, status_code=result.status_code)

    @app.api_route("/", methods=["GET", "PUT", "PATCH", "DELETE"])
    async def usage() -> PlainTextResponse:
        return PlainTextResponse(USAGE_TEXT)

    return app
