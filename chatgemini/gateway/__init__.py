"""
Webhook 网关模块 - HTTP 入口与单次更新的分发处理。

- dispatcher.py : WebhookDispatcher，校验、过滤、会话解析、对话生成、回复发送
- app.py        : FastAPI 应用，把 HTTP 请求交给分发器，并负责组件装配
"""

from chatgemini.gateway.app import build_dispatcher, create_app
from chatgemini.gateway.dispatcher import DispatchResult, WebhookDispatcher

__all__ = ["WebhookDispatcher", "DispatchResult", "create_app", "build_dispatcher"]
