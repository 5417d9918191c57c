"""Client Redis partagé (verrous de modification de la hiérarchie)."""

import logging
from typing import Optional

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Singleton paresseux : aucune connexion n'est ouverte avant le premier verrou."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    def get_client(cls) -> redis.Redis:
        if cls._instance is None:
            cls._instance = redis.Redis.from_url(
                settings.redis_url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
        return cls._instance

    @classmethod
    def close(cls) -> None:
        """Ferme le pool (appelé à l'arrêt de l'application)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None


def get_redis() -> redis.Redis:
    return RedisClient.get_client()


def redis_available() -> bool:
    """Ping Redis pour /api/v1/health, sans lever d'exception."""
    try:
        return bool(get_redis().ping())
    except redis.RedisError as exc:
        logger.warning(f"Redis injoignable : {exc}")
        return False
