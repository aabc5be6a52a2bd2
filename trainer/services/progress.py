"""
Per-session quiz progress: the set of correctly answered question ids for
each (session, catalog) pair, plus the lock that serializes updates to it.
"""
import logging
import threading
import weakref
from abc import ABC, abstractmethod
from typing import ContextManager, Set, Tuple

from cachetools import TTLCache
from redis import Redis

from trainer.core.cache import create_redis_client
from trainer.core.config import Settings
from trainer.models.catalog import CatalogType

logger = logging.getLogger(__name__)


class ProgressStore(ABC):
    """Backend holding answered-id sets keyed by session id and catalog."""

    @abstractmethod
    def answered_ids(self, session_id: str, catalog: CatalogType) -> Set[str]:
        """Return a copy of the answered set; empty if nothing was recorded."""

    @abstractmethod
    def mark_answered(self, session_id: str, catalog: CatalogType, question_id: str) -> int:
        """Add ``question_id`` and return the new size of the set."""

    @abstractmethod
    def reset(self, session_id: str, catalog: CatalogType) -> None:
        """Forget every answered id for the pair."""

    @abstractmethod
    def lock(self, session_id: str, catalog: CatalogType) -> ContextManager:
        """Mutual exclusion scope for one (session, catalog) pair."""

    def close(self) -> None:
        pass


class _KeyLock:
    """A ``threading.Lock`` that can sit in a ``WeakValueDictionary``."""

    def __init__(self):
        self._lock = threading.Lock()

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info):
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()


class MemoryProgressStore(ProgressStore):
    """
    In-process store; idle sets expire after ``ttl`` seconds.

    Only writes occupy a cache slot, so sessions that merely look at their
    progress never push out sessions that are answering. Locks live outside
    the cache and stay registered for as long as anyone holds or waits on one.
    """

    def __init__(self, maxsize: int = 10000, ttl: float = 86400):
        self._answered: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._locks = weakref.WeakValueDictionary()
        # TTLCache itself is not thread-safe
        self._guard = threading.Lock()

    @staticmethod
    def _key(session_id: str, catalog: CatalogType) -> Tuple[str, str]:
        return (session_id, catalog.value)

    def answered_ids(self, session_id: str, catalog: CatalogType) -> Set[str]:
        with self._guard:
            return set(self._answered.get(self._key(session_id, catalog), ()))

    def mark_answered(self, session_id: str, catalog: CatalogType, question_id: str) -> int:
        key = self._key(session_id, catalog)
        with self._guard:
            answered = self._answered.get(key) or set()
            answered.add(question_id)
            # re-insert to refresh the expiry
            self._answered[key] = answered
            return len(answered)

    def reset(self, session_id: str, catalog: CatalogType) -> None:
        with self._guard:
            self._answered.pop(self._key(session_id, catalog), None)

    def lock(self, session_id: str, catalog: CatalogType) -> ContextManager:
        key = self._key(session_id, catalog)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = _KeyLock()
                self._locks[key] = lock
            return lock


class RedisProgressStore(ProgressStore):
    """Redis-backed store shared by every worker process."""

    def __init__(self, client: Redis, ttl: int = 86400, lock_timeout: float = 5.0):
        self.redis = client
        self.ttl = ttl
        self.lock_timeout = lock_timeout

    def _rk(self, session_id: str, catalog: CatalogType, suf: str) -> str:
        return f"trainer:{suf}:{session_id}:{catalog.value}"

    def answered_ids(self, session_id: str, catalog: CatalogType) -> Set[str]:
        return {str(m) for m in self.redis.smembers(self._rk(session_id, catalog, "progress"))}

    def mark_answered(self, session_id: str, catalog: CatalogType, question_id: str) -> int:
        key = self._rk(session_id, catalog, "progress")
        pipe = self.redis.pipeline()
        pipe.sadd(key, question_id)
        pipe.expire(key, self.ttl)
        pipe.scard(key)
        return int(pipe.execute()[-1])

    def reset(self, session_id: str, catalog: CatalogType) -> None:
        self.redis.delete(self._rk(session_id, catalog, "progress"))

    def lock(self, session_id: str, catalog: CatalogType) -> ContextManager:
        return self.redis.lock(
            self._rk(session_id, catalog, "lock"),
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_timeout,
        )

    def close(self) -> None:
        self.redis.close()


class SessionProgress:
    """Progress of one session across all catalogs.

    This is the object handed to the quiz engine; it hides how the session
    is identified and where its state is kept.
    """

    def __init__(self, store: ProgressStore, session_id: str):
        self.store = store
        self.session_id = session_id

    def answered_ids(self, catalog: CatalogType) -> Set[str]:
        return self.store.answered_ids(self.session_id, catalog)

    def answered_count(self, catalog: CatalogType) -> int:
        return len(self.answered_ids(catalog))

    def mark_answered(self, catalog: CatalogType, question_id: str) -> int:
        return self.store.mark_answered(self.session_id, catalog, question_id)

    def reset(self, catalog: CatalogType) -> None:
        logger.debug("Resetting progress of session %s for catalog %s", self.session_id, catalog.value)
        self.store.reset(self.session_id, catalog)

    def locked(self, catalog: CatalogType) -> ContextManager:
        return self.store.lock(self.session_id, catalog)


def create_progress_store(settings: Settings) -> ProgressStore:
    if settings.PROGRESS_BACKEND == "redis":
        logger.info("Using Redis progress store at %s", settings.get_redis_url())
        return RedisProgressStore(
            create_redis_client(settings),
            ttl=settings.SESSION_TTL,
            lock_timeout=settings.PROGRESS_LOCK_TIMEOUT,
        )
    logger.info("Using in-memory progress store")
    return MemoryProgressStore(maxsize=settings.MEMORY_MAX_SESSIONS, ttl=settings.SESSION_TTL)
