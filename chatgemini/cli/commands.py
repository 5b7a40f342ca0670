"""
CLI 命令模块 - chatgemini 的所有命令行命令定义。

本模块使用 Typer 框架定义 chatgemini 的 CLI 命令体系：
- onboard：生成默认配置文件
- serve：启动 Webhook HTTP 服务（uvicorn + FastAPI）
- webhook：向 Telegram 注册/注销 Webhook 地址
- sessions：查看键值存储中的会话与对话历史
- status：查看配置状态

技术栈：
- Typer：CLI 框架（基于 Click，支持类型注解自动生成帮助文档）
- Rich：终端美化输出（表格、颜色等）
"""

import asyncio
import sys

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from chatgemini import __version__, __logo__

app = typer.Typer(
    name="chatgemini",
    help=f"{__logo__} chatgemini - Telegram ↔ Gemini webhook bot",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    """版本号回调：当用户传入 --version/-v 参数时，打印版本号并退出。"""
    if value:
        console.print(f"{__logo__} chatgemini v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """chatgemini CLI 根命令回调。处理全局选项（如 --version）。"""
    pass


def _setup_logging(verbose: bool) -> None:
    """重新配置 loguru 的输出级别。"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _load_checked_config():
    """
    加载配置并检查运行 Webhook 所必需的项（Bot Token、LLM API Key）。
    缺失时打印错误并退出。
    """
    from chatgemini.config.loader import load_config

    config = load_config()
    if not config.telegram.token:
        console.print("[red]Error: Telegram bot token not configured.[/red]")
        console.print("Set telegram.token in ~/.chatgemini/config.json or CHATGEMINI_TELEGRAM__TOKEN")
        raise typer.Exit(1)
    p = config.get_provider()
    if not (p and p.api_key):
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Set one in ~/.chatgemini/config.json under providers section")
        raise typer.Exit(1)
    return config


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """在 ~/.chatgemini/ 下生成默认配置文件 config.json。"""
    from chatgemini.config.loader import get_config_path, save_config
    from chatgemini.config.schema import Config

    config_path = get_config_path()
    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print("\nNext steps:")
    console.print("  1. Set [cyan]telegram.token[/cyan], [cyan]telegram.allowedChatIds[/cyan]"
                  " and [cyan]providers.gemini.apiKey[/cyan]")
    console.print("  2. Run: [cyan]chatgemini serve[/cyan]")
    console.print("  3. Run: [cyan]chatgemini webhook set https://<your-host>/[/cyan]")


# ============================================================================
# Serve
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default: gateway.host)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default: gateway.port)"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """
    启动 Webhook HTTP 服务。

    执行流程：
    1. 加载并校验配置
    2. 装配分发器（存储、会话、LLM、Telegram）
    3. 用 uvicorn 运行 FastAPI 应用，启动时初始化 Bot（getMe）
    """
    import uvicorn

    from chatgemini.gateway.app import create_app

    _setup_logging(verbose)
    config = _load_checked_config()

    bind_host = host or config.gateway.host
    bind_port = port or config.gateway.port
    if not config.telegram.allowed_chat_ids:
        console.print("[yellow]Warning: allow-list is empty, every chat will be rejected[/yellow]")
    console.print(f"{__logo__} Starting chatgemini webhook on {bind_host}:{bind_port}...")

    uvicorn.run(create_app(config), host=bind_host, port=bind_port, log_level="debug" if verbose else "info")


# ============================================================================
# Webhook registration
# ============================================================================


webhook_app = typer.Typer(help="Manage the Telegram webhook registration")
app.add_typer(webhook_app, name="webhook")


def _run_with_messenger(action):
    """创建 TelegramMessenger，执行 action(messenger)，最后释放连接。"""
    from chatgemini.channels.telegram import TelegramMessenger

    config = _load_checked_config()
    messenger = TelegramMessenger(config.telegram)

    async def run():
        await messenger.start()
        try:
            return await action(messenger)
        finally:
            await messenger.stop()

    return asyncio.run(run())


@webhook_app.command("set")
def webhook_set(
    url: str = typer.Argument(..., help="Public HTTPS URL of the webhook endpoint"),
):
    """向 Telegram 注册 Webhook 地址。"""
    ok = _run_with_messenger(lambda m: m.set_webhook(url))
    if ok:
        console.print(f"[green]✓[/green] Webhook set to {url}")
    else:
        console.print("[red]Failed to set webhook[/red]")
        raise typer.Exit(1)


@webhook_app.command("delete")
def webhook_delete():
    """注销 Webhook。"""
    ok = _run_with_messenger(lambda m: m.delete_webhook())
    if ok:
        console.print("[green]✓[/green] Webhook deleted")
    else:
        console.print("[red]Failed to delete webhook[/red]")
        raise typer.Exit(1)


# ============================================================================
# Sessions
# ============================================================================


sessions_app = typer.Typer(help="Inspect stored conversations")
app.add_typer(sessions_app, name="sessions")


def _make_session_manager():
    from chatgemini.config.loader import load_config
    from chatgemini.session.manager import SessionManager
    from chatgemini.store import create_store

    config = load_config()
    if config.store.backend == "memory":
        console.print("[yellow]Store backend is 'memory': nothing persists across processes[/yellow]")
    store = create_store(config.store.backend, config.store_path)
    return SessionManager(
        store,
        message_session_ttl_s=config.store.message_session_ttl_s,
        session_ttl_s=config.store.session_ttl_s,
    )


@sessions_app.command("list")
def sessions_list():
    """列出所有未过期的会话。"""
    from datetime import datetime

    sessions = _make_session_manager()

    async def collect():
        rows = []
        for session_id in await sessions.list_sessions():
            history = await sessions.get_chat_history(session_id)
            if history is not None:
                rows.append((session_id, history))
        return rows

    rows = asyncio.run(collect())
    if not rows:
        console.print("No sessions.")
        return

    table = Table(title="Sessions")
    table.add_column("Session ID", style="cyan")
    table.add_column("Turns")
    table.add_column("Last Updated")
    for session_id, history in sorted(rows, key=lambda r: r[1].last_updated, reverse=True):
        updated = datetime.fromtimestamp(history.last_updated / 1000).strftime("%Y-%m-%d %H:%M")
        table.add_row(str(session_id), str(len(history.messages)), updated)
    console.print(table)


@sessions_app.command("show")
def sessions_show(
    session_id: int = typer.Argument(..., help="Session ID (message_id of the first message)"),
):
    """显示某个会话的完整对话历史。"""
    sessions = _make_session_manager()
    history = asyncio.run(sessions.get_chat_history(session_id))
    if history is None:
        console.print(f"[red]Session {session_id} not found (or expired)[/red]")
        raise typer.Exit(1)

    for turn in history.messages:
        style = "green" if turn.role == "user" else "cyan"
        console.print(f"[{style}]{turn.role}[/{style}]: {turn.content}")


# ============================================================================
# Status
# ============================================================================


@app.command()
def status():
    """
    显示 chatgemini 配置状态。

    展示内容：配置文件路径、模型、各 LLM 提供者的 API Key、白名单、存储后端。
    """
    from chatgemini.config.loader import load_config, get_config_path
    from chatgemini.providers.registry import PROVIDERS

    config_path = get_config_path()
    config = load_config()

    console.print(f"{__logo__} chatgemini Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Telegram token: {'[green]✓[/green]' if config.telegram.token else '[dim]not set[/dim]'}")
    console.print(f"Bot username: {config.telegram.bot_username or '[dim]auto (getMe)[/dim]'}")
    allowed = config.telegram.allowed_chat_ids
    console.print(f"Allowed chats: {', '.join(str(c) for c in allowed) if allowed else '[yellow]none[/yellow]'}")
    console.print(f"Model: {config.agents.defaults.model}")

    for spec in PROVIDERS:
        p = getattr(config.providers, spec.name, None)
        if p is None:
            continue
        has_key = bool(p.api_key)
        console.print(f"{spec.label}: {'[green]✓[/green]' if has_key else '[dim]not set[/dim]'}")

    store_desc = config.store.backend
    if config.store.backend == "file":
        store_desc += f" ({config.store_path})"
    console.print(f"Store: {store_desc}")
    console.print(
        f"TTL: message-session {config.store.message_session_ttl_s}s, "
        f"session {config.store.session_ttl_s}s"
    )


if __name__ == "__main__":
    app()
