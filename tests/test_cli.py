"""CLI smoke tests using Typer's CliRunner."""

import asyncio

from typer.testing import CliRunner

from chatgemini import __version__
from chatgemini.cli.commands import app
from chatgemini.session.manager import ChatHistory, SessionManager
from chatgemini.store.file import FileKVStore

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_sessions_list_and_show(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("CHATGEMINI_STORE__BACKEND", "file")
    monkeypatch.setenv("CHATGEMINI_STORE__PATH", str(tmp_path / "kv"))

    history = ChatHistory()
    history.add_turn("user", "Hello")
    history.add_turn("model", "Hi there")
    asyncio.run(SessionManager(FileKVStore(tmp_path / "kv")).save_chat_history(100, history))

    listed = runner.invoke(app, ["sessions", "list"])
    assert listed.exit_code == 0
    assert "100" in listed.stdout

    shown = runner.invoke(app, ["sessions", "show", "100"])
    assert shown.exit_code == 0
    assert "Hi there" in shown.stdout


def test_sessions_show_missing(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("CHATGEMINI_STORE__PATH", str(tmp_path / "kv"))
    result = runner.invoke(app, ["sessions", "show", "999"])
    assert result.exit_code == 1


def test_serve_requires_token(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("CHATGEMINI_TELEGRAM__TOKEN", raising=False)
    result = runner.invoke(app, ["serve"])
    assert result.exit_code == 1
    assert "token" in result.stdout
