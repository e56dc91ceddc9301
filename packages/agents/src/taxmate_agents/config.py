"""Configuration system for Taxmate Agents.

This module provides Pydantic Settings-based configuration with environment
variable support and sensible defaults for the tax assistant.

Usage:
    from taxmate_agents.config import TaxmateConfig

    # Load from environment variables and .env file
    config = TaxmateConfig()

    # Access LLM settings
    print(config.llm.model)
    print(config.llm.temperature)

    # Access assistant settings
    if config.assistant.debug_mode:
        print("Debug mode enabled")
"""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"  # Also any OpenAI-compatible gateway via base_url


class LLMConfig(BaseSettings):
    """LLM configuration settings.

    Environment Variables:
        TAXMATE_LLM_PROVIDER: LLM provider (openai, anthropic)
        TAXMATE_LLM_MODEL: Model name
        TAXMATE_LLM_BASE_URL: Base URL of an OpenAI-compatible endpoint
        TAXMATE_LLM_TEMPERATURE: Sampling temperature (0.0-2.0)
        TAXMATE_LLM_MAX_TOKENS: Maximum output tokens
        TAXMATE_LLM_API_KEY: API key for the provider
        TAXMATE_LLM_TIMEOUT: Request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="TAXMATE_LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: LLMProvider = Field(
        default=LLMProvider.OPENAI,
        description="LLM provider to use",
    )
    model: str = Field(
        default="gpt-4o",
        description="Model identifier for the LLM",
    )
    base_url: Optional[str] = Field(
        default=None,
        description="Override the provider's API base URL",
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for generation",
    )
    max_tokens: int = Field(
        default=2048,
        gt=0,
        le=200000,
        description="Maximum tokens in response",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key for the LLM provider",
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Request timeout in seconds",
    )

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Ensure model name is not empty."""
        if not v or not v.strip():
            raise ValueError("Model name cannot be empty")
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def normalize_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Strip trailing slashes; blank means provider default."""
        if v is None or not v.strip():
            return None
        return v.strip().rstrip("/")


class AssistantConfig(BaseSettings):
    """Tax assistant behavior.

    Environment Variables:
        TAXMATE_ASSISTANT_DEBUG_MODE: Enable verbose debug logging
        TAXMATE_ASSISTANT_REPLY_LANGUAGE: Language for the assistant's replies
        TAXMATE_ASSISTANT_MAX_HISTORY: Chat messages kept in a session
    """

    model_config = SettingsConfigDict(
        env_prefix="TAXMATE_ASSISTANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug_mode: bool = Field(
        default=False,
        description="Enable verbose debug logging for development",
    )
    reply_language: str = Field(
        default="Cantonese",
        description="Language the assistant replies in",
    )
    max_history: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum chat messages kept in a session",
    )


class TaxmateConfig(BaseSettings):
    """Root configuration for Taxmate Agents.

    Environment Variables:
        TAXMATE_ENV: Environment name (development, staging, production, test)
        TAXMATE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        # Override specific settings
        config = TaxmateConfig(
            llm=LLMConfig(provider=LLMProvider.ANTHROPIC, model="claude-sonnet-4-20250514"),
            assistant=AssistantConfig(reply_language="English"),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="TAXMATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    llm: LLMConfig = Field(default_factory=LLMConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"

    @property
    def is_debug(self) -> bool:
        """Check if debug mode is enabled (via assistant or log level)."""
        return self.assistant.debug_mode or self.log_level == "DEBUG"
