# config.py
"""Voice agent builder configuration module.

Configuration is loaded from:
1. .env file (if present)
2. Environment variables

API keys for the chat-completion providers and the speech vendor are never
hardcoded; a missing key simply disables that provider.

Usage:
    >>> from agent_builder.config import config
    >>> print(config.OPENAI_MODEL)
    gpt-4o
"""

import logging
import os
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


class AgentBuilderConfig:
    """Application configuration class that loads settings from environment variables.

    Attributes:
        DEEPSEEK_API_KEY: DeepSeek API key (preferred flow generation provider).
        OPENAI_API_KEY: OpenAI API key (fallback flow generation provider).
        ELEVEN_LABS_API_KEY: ElevenLabs API key for voice agent provisioning.
        DATABASE_URL: PostgreSQL connection string for agent records.
    """

    def __init__(self) -> None:
        """Initialize configuration by loading from environment variables."""
        # Application environment
        self.APP_ENV = self._get_optional("APP_ENV", "dev")
        self.DEBUG = self._get_bool("DEBUG")
        self.LOG_LEVEL = self._get_optional("LOG_LEVEL", "INFO")

        # DeepSeek Configuration
        self.DEEPSEEK_API_KEY = self._get_optional("DEEPSEEK_API_KEY")
        self.DEEPSEEK_BASE_URL = self._get_optional(
            "DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1"
        )
        self.DEEPSEEK_MODEL = self._get_optional("DEEPSEEK_MODEL", "deepseek-chat")

        # OpenAI Configuration
        self.OPENAI_API_KEY = self._get_optional("OPENAI_API_KEY")
        self.OPENAI_BASE_URL = self._get_optional(
            "OPENAI_BASE_URL", "https://api.openai.com/v1"
        )
        self.OPENAI_MODEL = self._get_optional("OPENAI_MODEL", "gpt-4o")

        # Chat completion request settings
        self.LLM_TIMEOUT_SECONDS = int(self._get_optional("LLM_TIMEOUT_SECONDS", "60"))
        self.LLM_MAX_RETRIES = int(self._get_optional("LLM_MAX_RETRIES", "0"))
        self.LLM_TEMPERATURE = float(self._get_optional("LLM_TEMPERATURE", "0.7"))
        self.LLM_MAX_TOKENS = int(self._get_optional("LLM_MAX_TOKENS", "4000"))

        # ElevenLabs Configuration
        self.ELEVEN_LABS_API_KEY = self._get_optional("ELEVEN_LABS_API_KEY")
        self.ELEVEN_LABS_BASE_URL = self._get_optional(
            "ELEVEN_LABS_BASE_URL", "https://api.elevenlabs.io/v1"
        )
        self.VOICE_TIMEOUT_SECONDS = int(
            self._get_optional("VOICE_TIMEOUT_SECONDS", "60")
        )

        # Database Configuration
        self.DATABASE_URL = self._get_optional("DATABASE_URL")
        self.DATABASE_ECHO = self._get_bool("DATABASE_ECHO")

        # API Server Configuration
        self.API_HOST = self._get_optional("API_HOST", "0.0.0.0")
        self.API_PORT = int(self._get_optional("API_PORT", "8080"))
        self.CORS_ORIGINS = self._get_list("CORS_ORIGINS", "*")

    def _get_optional(self, name: str, default: str = "") -> str:
        """Get an optional configuration value from environment variables.

        Args:
            name: The name of the environment variable.
            default: Default value if not found (default: "").

        Returns:
            The value of the environment variable or the default value.
        """
        if name in os.environ:
            return os.environ[name]
        return default

    def _get_bool(self, name: str) -> bool:
        """Get a boolean configuration value from environment variables.

        Args:
            name: The name of the environment variable.

        Returns:
            True if the environment variable exists and is set to 'true' or '1'.
        """
        return name in os.environ and os.environ[name].lower() in ["true", "1"]

    def _get_list(self, name: str, default: str = "") -> List[str]:
        """Get a comma-separated configuration value as a list of strings."""
        raw = self._get_optional(name, default)
        return [item.strip() for item in raw.split(",") if item.strip()]

    def validate_for_generation(self) -> None:
        """Validate configuration required for model-backed flow generation.

        Raises:
            ConfigError: If no chat-completion provider is configured.
        """
        if not self.DEEPSEEK_API_KEY and not self.OPENAI_API_KEY:
            raise ConfigError(
                "DEEPSEEK_API_KEY or OPENAI_API_KEY is required for flow generation"
            )

    def validate_for_voice(self) -> None:
        """Validate configuration required for voice agent provisioning.

        Raises:
            ConfigError: If the ElevenLabs key is missing.
        """
        if not self.ELEVEN_LABS_API_KEY:
            raise ConfigError("ELEVEN_LABS_API_KEY is required for voice agents")

    def validate_for_database(self) -> None:
        """Validate configuration required for database operations.

        Raises:
            ConfigError: If required database configuration is missing.
        """
        if not self.DATABASE_URL:
            raise ConfigError("DATABASE_URL is required for database operations")

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.APP_ENV.lower() in ["dev", "development"]

    def get_log_level(self) -> int:
        """Get logging level as integer.

        Returns:
            Logging level constant (e.g., logging.INFO).
        """
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return level_map.get(self.LOG_LEVEL.upper(), logging.INFO)


# Create global singleton instance
config = AgentBuilderConfig()
