# -*- coding: utf-8 -*-
"""
@Desc    : Tests for configuration loading and fail-fast startup
"""
from unittest.mock import patch

import pytest
from pydantic import SecretStr

import main
from errors import ConfigError
from settings import DEFAULT_MODEL, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ("GROQ_API_KEY", "TELEGRAM_BOT_API_TOKEN", "MODEL"):
        monkeypatch.delenv(key, raising=False)


class TestSettings:
    def test_missing_translation_key_is_a_config_error(self):
        with pytest.raises(ConfigError) as exc_info:
            load_settings(TELEGRAM_BOT_API_TOKEN="123:abc")

        assert exc_info.value.key == "GROQ_API_KEY"

    def test_missing_bot_token_is_a_config_error(self):
        with pytest.raises(ConfigError) as exc_info:
            load_settings(GROQ_API_KEY="gsk-test")

        assert exc_info.value.key == "TELEGRAM_BOT_API_TOKEN"

    @pytest.mark.parametrize("model", ["", "   "])
    def test_blank_model_falls_back_to_default(self, model):
        assert Settings(MODEL=model).MODEL == DEFAULT_MODEL

    def test_blank_model_from_environment_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("MODEL", "")

        assert Settings().MODEL == DEFAULT_MODEL

    def test_configured_model(self, monkeypatch):
        monkeypatch.setenv("MODEL", "llama-3.1-8b-instant")

        assert Settings().MODEL == "llama-3.1-8b-instant"

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
        monkeypatch.setenv("TELEGRAM_BOT_API_TOKEN", "123:abc")

        settings = load_settings()

        assert isinstance(settings.GROQ_API_KEY, SecretStr)
        assert settings.GROQ_API_KEY.get_secret_value() == "gsk-test"
        assert "gsk-test" not in settings.model_dump_json()
        assert settings.TRANSLATION_TIMEOUT == 30

    def test_max_delay_is_aligned_with_base_delay(self):
        settings = Settings(RECONNECT_BASE_DELAY=5, RECONNECT_MAX_DELAY=1)

        assert settings.RECONNECT_MAX_DELAY == 5


class TestStartup:
    def test_missing_translation_key_stops_before_connecting(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "")
        monkeypatch.setenv("TELEGRAM_BOT_API_TOKEN", "123:abc")

        with (
            patch.object(main, "init_log"),
            patch.object(main, "SessionManager") as session_manager,
            patch.object(main.asyncio, "run") as run,
        ):
            with pytest.raises(SystemExit) as exc_info:
                main.main()

        assert exc_info.value.code != 0
        run.assert_not_called()
        session_manager.assert_not_called()
        session_manager.from_settings.assert_not_called()

    def test_valid_configuration_starts_the_bot(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
        monkeypatch.setenv("TELEGRAM_BOT_API_TOKEN", "123:abc")

        with (
            patch.object(main, "init_log"),
            patch.object(main, "run", return_value=None) as run_bot,
            patch.object(main.asyncio, "run") as run,
        ):
            main.main()

        run.assert_called_once()
        run_bot.assert_called_once()
        assert run_bot.call_args.args[0].GROQ_API_KEY.get_secret_value() == "gsk-test"
