"""
Tests des verrous de modification (Redis simulé en mémoire).
"""

from types import SimpleNamespace

import pytest
import redis
from fastapi.testclient import TestClient

from app.core import redis_client
from app.core.locks import EntityLockedError, HierarchyLockManager
from app.main import app
from app.models.enums import EntityKind


class FakeRedis:
    """Sous-ensemble de redis.Redis utilisé par le gestionnaire de verrous."""

    def __init__(self):
        self.store = {}
        self.set_calls = []

    def set(self, key, value, nx=False, px=None):
        self.set_calls.append(key)
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def locks(fake_redis):
    return HierarchyLockManager(redis_client=fake_redis, ttl_seconds=5, wait_seconds=0, enabled=True)


class TestHold:

    def test_lock_is_released_after_block(self, locks, fake_redis):
        with locks.hold(EntityKind.GROUP, 12):
            assert "hierarchy_lock:group:12" in fake_redis.store
        assert fake_redis.store == {}

    def test_lock_is_released_on_error(self, locks, fake_redis):
        with pytest.raises(ValueError):
            with locks.hold(EntityKind.NETWORK, 3):
                raise ValueError("échec métier")
        assert fake_redis.store == {}

    def test_busy_entity_raises_conflict(self, locks, fake_redis):
        fake_redis.store["hierarchy_lock:unit:7"] = "autre-processus"

        with pytest.raises(EntityLockedError) as exc_info:
            with locks.hold(EntityKind.UNIT, 7):
                pass

        assert exc_info.value.status_code == 409
        # Le verrou d'autrui n'est pas touché
        assert fake_redis.store == {"hierarchy_lock:unit:7": "autre-processus"}

    def test_partial_acquisition_is_rolled_back(self, locks, fake_redis):
        fake_redis.store["hierarchy_lock:group:9"] = "autre-processus"

        with pytest.raises(EntityLockedError):
            with locks.hold(EntityKind.GROUP, 9, 2):
                pass

        assert "hierarchy_lock:group:2" not in fake_redis.store

    def test_ids_are_sorted_and_none_ignored(self, locks, fake_redis):
        with locks.hold(EntityKind.SESSION, 30, None, 4, 30):
            pass
        assert fake_redis.set_calls == ["hierarchy_lock:session:4", "hierarchy_lock:session:30"]

    def test_disabled_manager_is_a_noop(self, fake_redis):
        locks = HierarchyLockManager(redis_client=fake_redis, enabled=False)
        with locks.hold(EntityKind.CHURCH, 1):
            pass
        assert fake_redis.set_calls == []


class TestRelease:

    def test_foreign_token_is_kept(self, locks, fake_redis):
        token = locks.acquire(EntityKind.GROUP, 1)
        fake_redis.store["hierarchy_lock:group:1"] = "repris-apres-expiration"

        assert locks.release(EntityKind.GROUP, 1, token) is False
        assert fake_redis.store["hierarchy_lock:group:1"] == "repris-apres-expiration"

    def test_own_token_is_released(self, locks, fake_redis):
        token = locks.acquire(EntityKind.GROUP, 1)
        assert locks.release(EntityKind.GROUP, 1, token) is True
        assert fake_redis.store == {}

    def test_acquire_gives_up_after_wait(self, locks, fake_redis):
        fake_redis.store["hierarchy_lock:church:1"] = "autre-processus"
        assert locks.acquire(EntityKind.CHURCH, 1) is None


class TestRedisClient:

    def test_available(self, monkeypatch):
        monkeypatch.setattr(redis_client, "get_redis", lambda: SimpleNamespace(ping=lambda: True))
        assert redis_client.redis_available() is True

    def test_unreachable(self, monkeypatch, caplog):
        def refuse():
            raise redis.ConnectionError("connexion refusée")

        monkeypatch.setattr(redis_client, "get_redis", lambda: SimpleNamespace(ping=refuse))
        assert redis_client.redis_available() is False
        assert "injoignable" in caplog.text

    def test_close_resets_pool(self, monkeypatch):
        closed = []
        monkeypatch.setattr(redis_client.RedisClient, "_instance", SimpleNamespace(close=lambda: closed.append(True)))

        redis_client.RedisClient.close()

        assert closed == [True]
        assert redis_client.RedisClient._instance is None

    def test_pool_closed_at_shutdown(self, monkeypatch):
        closed = []
        monkeypatch.setattr(redis_client.RedisClient, "_instance", SimpleNamespace(close=lambda: closed.append(True)))

        with TestClient(app):
            assert closed == []

        assert closed == [True]
