"""
Report Marker Store

Persists the last-sent week key per (report stream, user) and provides the
per-stream mutual exclusion scope that wraps the dispatcher's
read-marker / decide / send / write-marker sequence.

Redis is the durable backend (keys survive worker restarts). When Redis is
unreachable a process-local store is used so a single worker still never
sends twice in one week; markers are then lost on restart.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, Optional
from uuid import UUID

from core.cache import cache_key, get_redis_client
from core.config import settings
from services.week_key import is_valid_week_key

logger = logging.getLogger(__name__)


def _marker_key(stream_key: str, user_id) -> str:
    return cache_key("report_marker", stream_key, str(user_id))


def _lock_key(stream_key: str, user_id) -> str:
    return cache_key("report_lock", stream_key, str(user_id))


class MarkerStore(ABC):
    """Explicit store for last-sent markers and dispatch locks."""

    def get(self, stream_key: str, user_id: UUID) -> Optional[str]:
        """
        Return the stored week key, or None.

        Anything that is not a well-formed week key is discarded and
        treated as absent.
        """
        try:
            raw = self._read(stream_key, user_id)
        except Exception as e:
            logger.warning(f"Marker read failed for {stream_key}/{user_id}: {e}")
            return None
        if raw is None:
            return None
        if not is_valid_week_key(raw):
            logger.warning(f"Discarding malformed marker for {stream_key}/{user_id}: {raw!r}")
            return None
        return raw

    def set(self, stream_key: str, user_id: UUID, value: str) -> bool:
        try:
            self._write(stream_key, user_id, value)
            return True
        except Exception as e:
            logger.error(f"Marker write failed for {stream_key}/{user_id}: {e}")
            return False

    @abstractmethod
    def _read(self, stream_key: str, user_id: UUID) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, stream_key: str, user_id: UUID, value: str) -> None:
        ...

    @abstractmethod
    @contextmanager
    def lock(self, stream_key: str, user_id: UUID) -> Iterator[bool]:
        """Yield True if this caller holds the stream lock for the user."""
        ...


class RedisMarkerStore(MarkerStore):

    def __init__(self, client, lock_ttl_s: Optional[int] = None):
        self.client = client
        self.lock_ttl_s = lock_ttl_s or settings.REPORT_LOCK_TTL_S

    def _read(self, stream_key, user_id):
        return self.client.get(_marker_key(stream_key, user_id))

    def _write(self, stream_key, user_id, value):
        self.client.set(_marker_key(stream_key, user_id), value)

    @contextmanager
    def lock(self, stream_key, user_id):
        key = _lock_key(stream_key, user_id)
        try:
            acquired = bool(self.client.set(key, "1", nx=True, ex=self.lock_ttl_s))
        except Exception as e:
            # Fail closed: without the lock we cannot rule out a concurrent send.
            logger.warning(f"Report lock unavailable for {stream_key}/{user_id}: {e}")
            acquired = False
        try:
            yield acquired
        finally:
            if acquired:
                try:
                    self.client.delete(key)
                except Exception as e:
                    logger.warning(f"Report lock release failed for {stream_key}/{user_id}: {e}")


class InMemoryMarkerStore(MarkerStore):
    """Process-local store. Locks are non-blocking, like the Redis ones."""

    def __init__(self):
        self._markers: Dict[str, str] = {}
        self._held: set = set()
        self._guard = threading.Lock()

    def _read(self, stream_key, user_id):
        return self._markers.get(_marker_key(stream_key, user_id))

    def _write(self, stream_key, user_id, value):
        self._markers[_marker_key(stream_key, user_id)] = value

    @contextmanager
    def lock(self, stream_key, user_id):
        key = _lock_key(stream_key, user_id)
        with self._guard:
            acquired = key not in self._held
            if acquired:
                self._held.add(key)
        try:
            yield acquired
        finally:
            if acquired:
                with self._guard:
                    self._held.discard(key)


_local_store: Optional[InMemoryMarkerStore] = None


def get_marker_store() -> MarkerStore:
    """Redis-backed store when Redis is reachable, process-local otherwise."""
    global _local_store

    client = get_redis_client()
    if client is not None:
        return RedisMarkerStore(client)

    if _local_store is None:
        _local_store = InMemoryMarkerStore()
    return _local_store
