"""
Configuration module for loading and validating environment variables.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        # Load .env file from project root
        env_path = Path(__file__).parent.parent / ".env"
        load_dotenv(dotenv_path=env_path)

        # Assistant proxy settings
        self.openai_api_key = os.getenv("OPENAI_API_KEY")
        self.model_id = os.getenv("MODEL_ID", "gpt-4o-mini")

        # Sandbox settings
        self.docker_binary = os.getenv("CODEBOX_DOCKER_BINARY", "docker")
        self.workspace_root = os.getenv("CODEBOX_WORKSPACE_ROOT") or None

        # Server settings
        self.host = os.getenv("CODEBOX_HOST", "127.0.0.1")
        self.port = self._get_int("CODEBOX_PORT", 8000)
        self.log_level = os.getenv("CODEBOX_LOG_LEVEL", "INFO").upper()

        # UI settings
        self.api_url = os.getenv("CODEBOX_API_URL", f"http://{self.host}:{self.port}").rstrip("/")

        # Validate settings needed at startup
        self._validate()

    def _get_int(self, key: str, default: int) -> int:
        raw = os.getenv(key)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {raw!r}")

    def _validate(self):
        """Validate that startup settings are usable."""
        if self.workspace_root and not Path(self.workspace_root).is_dir():
            raise ConfigError(
                f"CODEBOX_WORKSPACE_ROOT does not exist or is not a directory: {self.workspace_root}"
            )
        if not 0 < self.port < 65536:
            raise ConfigError(f"CODEBOX_PORT out of range: {self.port}")

    def require_openai(self):
        """Validate the settings the assistant proxy needs."""
        if not self.openai_api_key:
            raise ConfigError(
                "Missing required environment variable: OPENAI_API_KEY\n"
                "Please create a .env file with this variable. See .env.example for reference."
            )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call reloads it."""
    global _config
    _config = None
