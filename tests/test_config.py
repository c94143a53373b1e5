"""Tests for environment-driven settings, config and logging setup."""

import logging

from flowbench import config, logging_config, settings


class TestSettingsHelpers:

    def test_defaults_when_unset(self, monkeypatch):
        monkeypatch.delenv("FLOWBENCH_TEST_VALUE", raising=False)
        assert settings._int("FLOWBENCH_TEST_VALUE", 3) == 3
        assert settings._float("FLOWBENCH_TEST_VALUE", 0.5) == 0.5
        assert settings._bool("FLOWBENCH_TEST_VALUE", False) is False

    def test_values_from_environment(self, monkeypatch):
        monkeypatch.setenv("FLOWBENCH_TEST_VALUE", "42")
        assert settings._int("FLOWBENCH_TEST_VALUE", 0) == 42
        assert settings._float("FLOWBENCH_TEST_VALUE", 0.0) == 42.0
        monkeypatch.setenv("FLOWBENCH_TEST_VALUE", "Yes")
        assert settings._bool("FLOWBENCH_TEST_VALUE", False) is True

    def test_documented_defaults(self):
        assert settings.SANDBOX_MAX_OUTPUT_BYTES == 1024 * 1024
        assert settings.WORKFLOW_MAX_CONCURRENCY >= 1


class TestProviderCredentials:

    def test_only_configured_keys(self, monkeypatch):
        monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-1")
        monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "")
        monkeypatch.setattr(config, "DEEPSEEK_API_KEY", "")
        monkeypatch.setattr(config, "OLLAMA_ENABLED", False)
        assert config.provider_credentials_from_env() == {"openai": "sk-1"}

    def test_ollama_needs_no_key(self, monkeypatch):
        for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "DEEPSEEK_API_KEY"):
            monkeypatch.setattr(config, name, "")
        monkeypatch.setattr(config, "OLLAMA_ENABLED", True)
        assert config.provider_credentials_from_env() == {"ollama": "local"}


class TestLogging:

    def test_setup_logger_is_idempotent(self, tmp_path, monkeypatch):
        monkeypatch.setattr(logging_config, "LOG_DIR", tmp_path)
        name = "flowbench.test.idempotent"

        first = logging_config.setup_logger(name, "test.log")
        second = logging_config.setup_logger(name, "test.log")

        assert first is second
        assert len(first.handlers) == 2
        assert first.propagate is False
        first.info("hello")
        for handler in first.handlers:
            handler.flush()
        assert "hello" in (tmp_path / "test.log").read_text(encoding="utf-8")

    def test_preconfigured_loggers(self):
        assert logging_config.get_engine_logger().name == "flowbench.events"
        assert logging_config.get_sandbox_logger() is logging.getLogger("flowbench.sandbox.activity")
