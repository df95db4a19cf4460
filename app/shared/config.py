"""
Centralized configuration management.

Values are layered, later sources overriding earlier ones:
1) `env.example` (committed, safe placeholders)
2) `env.local` (optional, MUST NOT be committed)
3) System environment variables (highest priority)
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from loguru import logger


class EnvironConfig:
    """
    Singleton configuration class that loads environment variables from env files
    and the system environment, providing dictionary-like access with default values.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(EnvironConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._config = {}
            self._load_config()
            EnvironConfig._initialized = True

    def _load_config(self):
        """
        Load configuration from env files and system environment.

        Priority order (later overrides earlier):
        1. env.example (committed placeholders)
        2. env.local (developer-local, not committed)
        3. System environment variables (highest priority)
        """
        root = Path(__file__).parent.parent.parent

        example_path = root / "env.example"
        if example_path.exists():
            self._config.update(dotenv_values(example_path))
            logger.info("Loaded environment variables from {}", example_path)

        local_path = root / "env.local"
        if local_path.exists():
            self._config.update(dotenv_values(local_path))
            logger.info("Loaded and overrode environment variables from {}", local_path)

        self._config.update(os.environ)

    def __getitem__(self, key):
        if key not in self._config:
            raise KeyError(f"Configuration key '{key}' not found")
        return self._config[key]

    def get(self, key, default=None):
        return self._config.get(key, default)

    def __contains__(self, key):
        return key in self._config

    def __iter__(self):
        return iter(self._config)

    def items(self):
        return self._config.items()

    def reload(self):
        """
        Reload configuration from files and environment.
        Useful for testing or when configuration files change.
        """
        self._config.clear()
        self._load_config()
        logger.info("Configuration reloaded")

    def get_redis_url(self, label: str = "default") -> str:
        """
        Get Redis connection URL for a specific label.

        The default label tries REDIS_URL_DEFAULT, then REDIS_URL. Other labels
        read REDIS_URL_<LABEL> and return an empty string when unset.
        """
        if label == "default":
            return self.get("REDIS_URL_DEFAULT") or self.get("REDIS_URL") or ""
        return self.get(f"REDIS_URL_{label.upper()}") or ""

    def get_mongo_url(self, label: str = "default") -> str:
        """
        Get MongoDB connection URL for a specific label.

        Falls back to mongodb://localhost:27017 for the default label.
        """
        if label == "default":
            return (
                self.get("MONGO_URL_DEFAULT")
                or self.get("MONGO_URL")
                or "mongodb://localhost:27017"
            )
        return self.get(f"MONGO_URL_{label.upper()}") or ""


# Global configuration instance
config = EnvironConfig()
