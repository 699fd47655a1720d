import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_DIR = Path(__file__).parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Knowledge Base
    rule_data_path: Path = Field(
        default=CONFIG_DIR / "rule_data.yaml",
        description="Path to the rule knowledge base YAML file",
    )
    scenarios_path: Path = Field(
        default=CONFIG_DIR / "benchmark_scenarios.yaml",
        description="Path to the regression scenario definitions",
    )

    # Prompt Assembly Defaults
    default_provider_category: str = Field(
        default="standard",
        description="Provider category used when a provider name is unknown",
    )
    default_chat_mode: str = Field(
        default="build", description="Chat mode used when a request omits it"
    )
    default_cwd: str = Field(
        default="/home/project", description="Working directory placeholder value"
    )

    # Benchmark Configuration
    benchmark_history_limit: int = Field(
        default=500, description="Maximum number of benchmark results kept in memory"
    )
    trend_window: int = Field(
        default=10, description="Number of recent results compared in trend analysis"
    )
    benchmark_providers: list[str] = Field(
        default=["OpenAI", "Anthropic", "Groq", "Ollama", "Deepseek"],
        description="Provider names benchmarked when none are given",
    )

    # System Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file_path: str = Field(
        default="logs/prompt_engine.log", description="Log file path"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,  # Make settings immutable
        extra="ignore",
    )

    def __init__(self, **values):
        # Check if DOTENV_PATH is set for testing
        dotenv_path = os.environ.get("DOTENV_PATH")
        if dotenv_path:
            values["_env_file"] = dotenv_path
        super().__init__(**values)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed_levels:
            raise ValueError(f"Log level must be one of {allowed_levels}")
        return v_upper

    @field_validator("default_chat_mode")
    @classmethod
    def validate_chat_mode(cls, v: str) -> str:
        """Validate chat mode is discuss or build."""
        v_lower = v.lower()
        if v_lower not in ("discuss", "build"):
            raise ValueError("Chat mode must be 'discuss' or 'build'")
        return v_lower

    @field_validator("default_provider_category")
    @classmethod
    def validate_provider_category(cls, v: str) -> str:
        """Validate the fallback provider category name."""
        allowed = [
            "high-context",
            "reasoning",
            "speed-optimized",
            "local-models",
            "coding-specialized",
            "standard",
        ]
        if v not in allowed:
            raise ValueError(f"Provider category must be one of {allowed}")
        return v

    @field_validator("benchmark_history_limit", "trend_window")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate value is positive."""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v


# Create global settings instance
settings = Settings()
