from pathlib import Path

import pytest

from config.settings import CONFIG_DIR, Settings

ENV_VARS = [
    "RULE_DATA_PATH",
    "SCENARIOS_PATH",
    "DEFAULT_PROVIDER_CATEGORY",
    "DEFAULT_CHAT_MODE",
    "DEFAULT_CWD",
    "BENCHMARK_HISTORY_LIMIT",
    "TREND_WINDOW",
    "LOG_LEVEL",
    "BENCHMARK_PROVIDERS",
    "LOG_FILE_PATH",
    "DOTENV_PATH",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class TestSettings:
    """Test the configuration settings system."""

    def test_load_settings_from_env(self, test_env_file, monkeypatch):
        """Test loading settings from environment file."""
        monkeypatch.setenv("DOTENV_PATH", test_env_file)

        settings = Settings()

        assert settings.default_provider_category == "speed-optimized"
        assert settings.default_chat_mode == "discuss"
        assert settings.default_cwd == "/workspace/app"
        assert settings.benchmark_history_limit == 50
        assert settings.trend_window == 4
        assert settings.log_level == "DEBUG"
        assert settings.log_file_path == "test/logs/engine.log"

    def test_default_settings(self):
        """Test default settings when no env vars are set."""
        settings = Settings()

        assert settings.rule_data_path == CONFIG_DIR / "rule_data.yaml"
        assert settings.scenarios_path == CONFIG_DIR / "benchmark_scenarios.yaml"
        assert settings.default_provider_category == "standard"
        assert settings.default_chat_mode == "build"
        assert settings.default_cwd == "/home/project"
        assert settings.benchmark_history_limit == 500
        assert settings.trend_window == 10
        assert settings.benchmark_providers == ["OpenAI", "Anthropic", "Groq", "Ollama", "Deepseek"]
        assert settings.log_level == "INFO"
        assert settings.log_file_path == "logs/prompt_engine.log"

    def test_shipped_data_files_exist(self):
        settings = Settings()
        assert Path(settings.rule_data_path).is_file()
        assert Path(settings.scenarios_path).is_file()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("DEFAULT_CHAT_MODE", "DISCUSS")
        settings = Settings()
        assert settings.log_level == "WARNING"
        assert settings.default_chat_mode == "discuss"

    def test_settings_immutable(self, test_env_file, monkeypatch):
        """Test that settings are immutable after creation."""
        monkeypatch.setenv("DOTENV_PATH", test_env_file)
        settings = Settings()

        with pytest.raises(ValueError):  # Settings are frozen
            settings.trend_window = 20

    @pytest.mark.parametrize(
        "var,value",
        [
            ("BENCHMARK_HISTORY_LIMIT", "not_a_number"),
            ("BENCHMARK_HISTORY_LIMIT", "0"),
            ("TREND_WINDOW", "-1"),
            ("LOG_LEVEL", "LOUD"),
            ("DEFAULT_CHAT_MODE", "chat"),
            ("DEFAULT_PROVIDER_CATEGORY", "quantum"),
        ],
    )
    def test_invalid_values(self, monkeypatch, var, value):
        """Test that invalid values raise appropriate errors."""
        monkeypatch.setenv(var, value)

        with pytest.raises(ValueError):
            Settings()
