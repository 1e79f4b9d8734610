"""
Configuration loading.

Reads settings from environment variables (optionally from a .env file)
and exposes them through dot-notation keys such as ``api.default_limit``.
"""
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv


@dataclass
class ConfigLoader:
    """Configuration loader from environment variables."""

    _config: Dict[str, Any] = field(default_factory=dict)

    def load(self, env_path: Optional[str] = None) -> "ConfigLoader":
        """
        Load configuration from .env file.

        Args:
            env_path: Optional path to .env file

        Returns:
            Self for method chaining
        """
        if env_path:
            load_dotenv(env_path)
        else:
            # Try to find .env in project root
            project_root = Path(__file__).parent.parent
            env_file = project_root / ".env"
            if env_file.exists():
                load_dotenv(env_file)

        self._config = {
            "server": {
                "host": os.getenv("SERVER_HOST", "127.0.0.1"),
                "port": int(os.getenv("SERVER_PORT", "8000")),
                "base_url": os.getenv("BASE_URL", "")
            },
            "app": {
                "debug": os.getenv("APP_DEBUG", "true").lower() == "true",
                "log_level": os.getenv("APP_LOG_LEVEL", "INFO")
            },
            "api": {
                "url_prefix": os.getenv("API_URL_PREFIX", "/api").rstrip("/"),
                "default_limit": int(os.getenv("API_DEFAULT_LIMIT", "100"))
            },
            "rate_limit": {
                "requests_per_minute": int(os.getenv("RATE_LIMIT_PER_MINUTE", "60")),
                "requests_per_hour": int(os.getenv("RATE_LIMIT_PER_HOUR", "1000"))
            }
        }
        return self

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot notation key."""
        keys = key.split('.')
        value = self._config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value
