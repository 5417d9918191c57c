"""
Verrous de modification par entité, stockés dans Redis.

Toute mutation qui touche aux responsables d'une entité (réseau, GR,
session, unité, église) passe par un verrou exclusif sur
(type d'entité, id). Deux requêtes concurrentes sur le même GR sont
ainsi sérialisées : pas de qualification écrasée par une écriture
concurrente.

Clé Redis : hierarchy_lock:<kind>:<id>, valeur = jeton du détenteur,
expiration automatique (HIERARCHY_LOCK_TTL_SECONDS) si le processus meurt.

Usage:
    locks = get_lock_manager()
    with locks.hold(EntityKind.GROUP, group_id):
        ...
"""
import logging
import time
import uuid
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

import redis

from app.core.config import settings
from app.core.exceptions import ConflictError
from app.models.enums import EntityKind

logger = logging.getLogger(__name__)

RETRY_INTERVAL_SECONDS = 0.05


class EntityLockedError(ConflictError):
    """Une autre modification est en cours sur la même entité."""

    def __init__(self, kind: EntityKind, entity_id: int):
        super().__init__(
            f"Modification concurrente en cours sur {kind.value.lower()} {entity_id}, réessayez"
        )


class HierarchyLockManager:
    """
    Gestionnaire de verrous exclusifs (SET NX PX + jeton propriétaire).

    Désactivé (no-op) quand settings.locks_active est faux, notamment
    en environnement de test.
    """

    def __init__(
            self,
            redis_client: Optional[redis.Redis] = None,
            ttl_seconds: Optional[int] = None,
            wait_seconds: Optional[float] = None,
            enabled: Optional[bool] = None,
    ):
        self._redis = redis_client
        self.ttl_ms = int((ttl_seconds or settings.HIERARCHY_LOCK_TTL_SECONDS) * 1000)
        self.wait_seconds = (
            settings.HIERARCHY_LOCK_WAIT_SECONDS if wait_seconds is None else wait_seconds
        )
        self.enabled = settings.locks_active if enabled is None else enabled

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            from app.core.redis_client import get_redis
            self._redis = get_redis()
        return self._redis

    @staticmethod
    def _lock_key(kind: EntityKind, entity_id: int) -> str:
        return f"hierarchy_lock:{kind.value.lower()}:{entity_id}"

    def acquire(self, kind: EntityKind, entity_id: int) -> Optional[str]:
        """
        Tente d'acquérir le verrou, en attendant au plus wait_seconds.

        Returns:
            Le jeton du détenteur, ou None si le verrou est resté pris.
        """
        key = self._lock_key(kind, entity_id)
        token = uuid.uuid4().hex
        deadline = time.monotonic() + self.wait_seconds

        while True:
            if self.redis.set(key, token, nx=True, px=self.ttl_ms):
                return token
            if time.monotonic() >= deadline:
                logger.warning(f"Verrou {key} toujours détenu après {self.wait_seconds}s")
                return None
            time.sleep(RETRY_INTERVAL_SECONDS)

    def release(self, kind: EntityKind, entity_id: int, token: str) -> bool:
        """Libère le verrou uniquement s'il appartient encore au jeton donné."""
        key = self._lock_key(kind, entity_id)
        if self.redis.get(key) != token:
            return False
        self.redis.delete(key)
        return True

    @contextmanager
    def hold(self, kind: EntityKind, *entity_ids: Optional[int]) -> Iterator[None]:
        """
        Verrouille une ou plusieurs entités du même type.

        Les ids sont verrouillés dans l'ordre croissant (pas d'interblocage
        entre deux requêtes qui prennent les mêmes verrous). Les None sont ignorés.
        """
        if not self.enabled:
            yield
            return

        acquired: list[tuple[int, str]] = []
        try:
            for entity_id in sorted({i for i in entity_ids if i is not None}):
                token = self.acquire(kind, entity_id)
                if token is None:
                    raise EntityLockedError(kind, entity_id)
                acquired.append((entity_id, token))
            yield
        finally:
            for entity_id, token in reversed(acquired):
                self.release(kind, entity_id, token)


@lru_cache()
def get_lock_manager() -> HierarchyLockManager:
    """Instance partagée par tous les services."""
    return HierarchyLockManager()
