"""
chatgemini - Telegram ↔ Gemini 的无状态 Webhook 中继机器人

模块概述：
    本文件是 chatgemini 包的入口文件（__init__.py），定义了包的元信息。
    chatgemini 以一个 HTTP Webhook 端点的形式运行：Telegram 把每条消息
    推送过来，机器人调用大模型生成回复，再发回 Telegram。

    整个项目的核心功能包括：
    - Webhook 请求校验（白名单、群聊 @ 过滤）
    - 基于消息 ID 的会话续接（回复机器人的消息即可继续上下文）
    - 基于 LiteLLM 的对话生成（默认 Gemini，开启搜索与网页读取工具）
    - 短期对话历史保存在带 TTL 的键值存储中
"""

# 版本号，遵循语义化版本规范（主版本.次版本.修订号）
__version__ = "0.1.0"

# 项目 logo 表情符号，用于 CLI 输出等场景的品牌标识
__logo__ = "💎"
