"""
Key-value store backends.

Each logical collection (customers, quotations, invoices, orders, draft) is
serialized to one string and written whole under its own key. No backend
offers transactions across keys.
"""

import logging
from typing import Dict, Optional

import redis
from redis.exceptions import RedisError
from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

from fabquote.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class MemoryStore:
    """Process-local store, used by tests and the `memory` backend."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return sorted(self._data)


class SqlStore:
    """
    Store backed by the `kv_store` table.

    Sessions come from fabquote.database; every write commits on its own.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @property
    def session(self):
        return self._session_factory()

    def get(self, key: str) -> Optional[str]:
        from fabquote.models.store_entry import StoreEntry
        try:
            entry = self.session.query(StoreEntry).filter(StoreEntry.key == key).first()
            return entry.value if entry else None
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Read of '{key}' failed: {e}", key=key)

    def set(self, key: str, value: str) -> None:
        from fabquote.models.store_entry import StoreEntry
        session = self.session
        try:
            entry = session.query(StoreEntry).filter(StoreEntry.key == key).first()
            if entry is None:
                session.add(StoreEntry(key=key, value=value))
            else:
                entry.value = value
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Write of '{key}' failed: {e}", key=key)

    def remove(self, key: str) -> None:
        from fabquote.models.store_entry import StoreEntry
        session = self.session
        try:
            session.query(StoreEntry).filter(StoreEntry.key == key).delete()
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Remove of '{key}' failed: {e}", key=key)


class RedisStore:
    """
    Redis-backed store.

    Keys pattern: {prefix}:{key}. Unlike the cache this is the system of
    record, so errors are raised instead of swallowed.
    """

    def __init__(self, redis_url: str, prefix: str = 'fabquote', client: Optional[redis.Redis] = None):
        self._prefix = prefix
        self.client = client or redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
            socket_keepalive=True,
            retry_on_timeout=True,
            health_check_interval=30
        )

    def _build_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def is_available(self) -> bool:
        try:
            self.client.ping()
            return True
        except RedisError:
            return False

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(self._build_key(key))
        except RedisError as e:
            raise PersistenceError(f"Read of '{key}' failed: {e}", key=key)

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(self._build_key(key), value)
        except RedisError as e:
            raise PersistenceError(f"Write of '{key}' failed: {e}", key=key)

    def remove(self, key: str) -> None:
        try:
            self.client.delete(self._build_key(key))
        except RedisError as e:
            raise PersistenceError(f"Remove of '{key}' failed: {e}", key=key)


_store = None


def build_store(app: Flask):
    """Create the store selected by STORE_BACKEND (sql, redis or memory)."""
    backend = app.config.get('STORE_BACKEND', 'sql')

    if backend == 'memory':
        logger.info("[STORE] Using in-memory store (data is not persisted)")
        return MemoryStore()

    if backend == 'redis':
        redis_url = app.config.get('REDIS_URL', 'redis://localhost:6379/0')
        store = RedisStore(redis_url, prefix=app.config.get('STORE_KEY_PREFIX', 'fabquote'))
        if store.is_available():
            logger.info(f"[STORE] ✓ Redis connected: {redis_url}")
        else:
            # Reads fall back to empty collections until Redis comes back
            logger.warning(f"[STORE] ⚠ Redis not reachable at {redis_url}")
        return store

    if backend == 'sql':
        from fabquote.database import init_db
        session_factory = init_db(app)
        logger.info(f"[STORE] Using SQL store: {app.config['SQLALCHEMY_DATABASE_URI'].split('@')[-1]}")
        return SqlStore(session_factory)

    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


def init_store(app: Flask, store=None):
    """Initialize store singleton."""
    global _store
    _store = store if store is not None else build_store(app)
    if not hasattr(app, 'extensions'):
        app.extensions = {}
    app.extensions['store'] = _store
    return _store


def get_store():
    """Get store instance."""
    if _store is None:
        raise RuntimeError("Store not initialized.")
    return _store
