"""
Simple Redis client manager that creates and tracks clients.
"""

import threading

from loguru import logger
from redis.asyncio import Redis

from ..config import config
from .mongo import hide_password


class RedisManager:
    """
    Simple Redis client manager.

    Features:
    - Creates and tracks Redis clients per label (REDIS_URL_<LABEL>)
    - A label without a configured URL is reported as unavailable
    - Thread-safe singleton pattern
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Singleton pattern: only one instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, "_initialized"):
            return

        self._clients: dict[str, Redis] = {}
        self._lock = threading.Lock()
        self._initialized = True

    def is_configured(self, label: str = "default") -> bool:
        return bool(config.get_redis_url(label))

    def get_client(self, label: str = "default") -> Redis:
        """
        Get Redis client by label.

        Raises:
            ValueError: If no connection string is configured for the label
        """
        with self._lock:
            if label not in self._clients:
                url = config.get_redis_url(label)
                if not url:
                    raise ValueError(f"No Redis connection string found for label '{label}'")

                logger.info("Open Redis client for label '{}': {}", label, hide_password(url))
                self._clients[label] = Redis.from_url(url)

            return self._clients[label]

    async def close_all(self):
        """Close all clients."""
        with self._lock:
            clients = list(self._clients.items())
            self._clients.clear()

        for label, client in clients:
            try:
                await client.aclose()
                logger.info("Closed Redis client for label '{}'", label)
            except Exception as e:
                logger.error("Error closing Redis client for label '{}': {}", label, e)


_redis_manager = None


def get_redis_manager() -> RedisManager:
    """Get the global Redis manager instance."""
    global _redis_manager
    if _redis_manager is None:
        _redis_manager = RedisManager()
    return _redis_manager


def get_redis_client(label: str = "default") -> Redis:
    """Get Redis client by label."""
    return get_redis_manager().get_client(label)
