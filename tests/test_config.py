"""Tests for configuration parsing, env overrides and provider matching."""

import json
import os

import pytest

from chatgemini.config.loader import camel_to_snake, load_config, save_config, snake_to_camel
from chatgemini.config.schema import Config, TelegramConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("CHATGEMINI_"):
            monkeypatch.delenv(key)


class TestTelegramConfig:
    def test_allow_list_from_comma_string(self):
        assert TelegramConfig(allowed_chat_ids="123, -100456,").allowed_chat_ids == [123, -100456]

    def test_allow_list_from_single_int(self):
        assert TelegramConfig(allowed_chat_ids=7).allowed_chat_ids == [7]

    def test_allow_list_defaults_empty(self):
        assert TelegramConfig().allowed_chat_ids == []

    def test_unauthorized_reply_points_to_self_hosting(self):
        reply = TelegramConfig().unauthorized_reply
        assert reply.startswith("Sorry, you are not authorized to use this bot.")
        assert "https://github.com/longfangsong/chat-gemini" in reply


class TestEnvOverrides:
    def test_env_sets_nested_fields(self, monkeypatch):
        monkeypatch.setenv("CHATGEMINI_TELEGRAM__TOKEN", "123:env")
        monkeypatch.setenv("CHATGEMINI_TELEGRAM__ALLOWED_CHAT_IDS", "1,-100")
        config = Config()
        assert config.telegram.token == "123:env"
        assert config.telegram.allowed_chat_ids == [1, -100]

    def test_env_overrides_config_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"telegram": {"token": "from-file", "botUsername": "FileBot"}}))
        monkeypatch.setenv("CHATGEMINI_TELEGRAM__TOKEN", "from-env")

        config = load_config(path)

        assert config.telegram.token == "from-env"
        assert config.telegram.bot_username == "FileBot"


class TestLoader:
    def test_load_camel_case_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "telegram": {"allowedChatIds": [42], "typingIntervalS": 2.5},
            "store": {"backend": "memory", "sessionTtlS": 60},
            "gateway": {"port": 9000},
        }))

        config = load_config(path)

        assert config.telegram.allowed_chat_ids == [42]
        assert config.telegram.typing_interval_s == 2.5
        assert config.store.backend == "memory"
        assert config.store.session_ttl_s == 60
        assert config.gateway.port == 9000

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.json")
        assert config.gateway.port == 8787
        assert config.store.message_session_ttl_s == 86400

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{oops")
        assert load_config(path).agents.defaults.model == "gemini/gemini-2.5-flash"

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "config.json"
        config = Config(telegram={"token": "123:abc", "allowed_chat_ids": [5]})
        save_config(config, path)

        raw = json.loads(path.read_text())
        assert raw["telegram"]["allowedChatIds"] == [5]
        assert load_config(path).telegram.token == "123:abc"

    def test_key_case_conversion(self):
        assert camel_to_snake("messageSessionTtlS") == "message_session_ttl_s"
        assert snake_to_camel("message_session_ttl_s") == "messageSessionTtlS"


class TestProviderMatching:
    def test_matches_by_model_keyword(self):
        config = Config(providers={"gemini": {"api_key": "g"}, "openai": {"api_key": "o"}})
        assert config.get_provider_name() == "gemini"
        assert config.get_provider_name("gpt-4o") == "openai"

    def test_falls_back_to_first_configured(self):
        config = Config(providers={"openrouter": {"api_key": "sk-or-x"}})
        assert config.get_provider_name() == "openrouter"
        assert config.get_api_base() == "https://openrouter.ai/api/v1"

    def test_nothing_configured(self):
        assert Config().get_provider() is None

    def test_explicit_api_base_wins(self):
        config = Config(providers={"gemini": {"api_key": "g", "api_base": "https://gw.example/v1"}})
        assert config.get_api_base() == "https://gw.example/v1"

    def test_store_path_expands_home(self):
        assert "~" not in str(Config().store_path)
