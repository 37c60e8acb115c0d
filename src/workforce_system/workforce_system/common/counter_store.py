from __future__ import annotations

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Protocol

from ..core.exceptions import JobAlreadyRunningError

logger = logging.getLogger(__name__)


class CounterStore(Protocol):
    """Key -> counter with expiry.

    Injected wherever the system needs shared counters (job locks, rate limits)
    so no component keeps a process-wide cache of its own.
    """

    def incr(self, key: str, *, ttl_seconds: float) -> int:
        """Increment `key` and return the new value.

        A missing or expired key starts a fresh window of `ttl_seconds` at 1.
        """

        raise NotImplementedError

    def get(self, key: str) -> int:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def claim(self, key: str, *, token: str, ttl_seconds: float) -> bool:
        """Take `key` for `token` if it is free or expired."""

        raise NotImplementedError

    def renew(self, key: str, *, token: str, ttl_seconds: float) -> bool:
        """Push the expiry of a live `key` still owned by `token`."""

        raise NotImplementedError

    def delete_if_owner(self, key: str, *, token: str) -> bool:
        raise NotImplementedError

    def evict_expired(self) -> int:
        """Drop expired keys, returning how many were removed."""

        raise NotImplementedError


@dataclass
class _Entry:
    value: int
    expires_at: float
    token: Optional[str] = None


class InMemoryCounterStore(CounterStore):
    """Single-process counter store with explicit TTL eviction."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    def incr(self, key: str, *, ttl_seconds: float) -> int:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                entry = _Entry(value=0, expires_at=now + float(ttl_seconds))
                self._entries[key] = entry
            entry.value += 1
            return entry.value

    def get(self, key: str) -> int:
        with self._lock:
            entry = self._live(key, self._clock())
            return entry.value if entry else 0

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def claim(self, key: str, *, token: str, ttl_seconds: float) -> bool:
        with self._lock:
            now = self._clock()
            if self._live(key, now) is not None:
                return False
            self._entries[key] = _Entry(value=1, expires_at=now + float(ttl_seconds), token=token)
            return True

    def renew(self, key: str, *, token: str, ttl_seconds: float) -> bool:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None or entry.token != token:
                return False
            entry.expires_at = now + float(ttl_seconds)
            return True

    def delete_if_owner(self, key: str, *, token: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.token != token:
                return False
            del self._entries[key]
            return True

    def evict_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for k in expired:
                del self._entries[k]
            return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class JobLease:
    """One acquisition of a `JobLock`; only its token can renew or release it."""

    def __init__(self, lock: "JobLock", name: str, token: str, clock: Callable[[], float]):
        self._lock = lock
        self.name = name
        self.token = token
        self._clock = clock
        self._renewed_at = clock()

    def keep_alive(self) -> bool:
        """Renew once a third of the TTL has passed; False if the lease was lost."""
        now = self._clock()
        if now - self._renewed_at < self._lock.ttl_seconds / 3:
            return True
        self._renewed_at = now
        if self._lock.renew(self.name, self.token):
            return True
        logger.warning("Lost job lock %s (token=%s)", self.name, self.token)
        return False

    def release(self) -> bool:
        return self._lock.release(self.name, self.token)


class JobLock:
    """Mutex on top of a counter store.

    Each acquisition gets its own token; release and renewal only act while
    the stored token still matches, so a run whose lock expired cannot free
    the lock of the run that took it over. The TTL frees the key if the
    holder dies without releasing it.
    """

    def __init__(self, store: CounterStore, *, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self._store = store
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock

    @staticmethod
    def _key(name: str) -> str:
        return f"lock:{name}"

    def acquire(self, name: str) -> Optional[str]:
        """Return the acquisition token, or None when the lock is taken."""
        token = uuid.uuid4().hex
        if self._store.claim(self._key(name), token=token, ttl_seconds=self.ttl_seconds):
            return token
        return None

    def renew(self, name: str, token: str) -> bool:
        return self._store.renew(self._key(name), token=token, ttl_seconds=self.ttl_seconds)

    def release(self, name: str, token: str) -> bool:
        released = self._store.delete_if_owner(self._key(name), token=token)
        if not released:
            logger.warning("Job lock %s was no longer held by token=%s", name, token)
        return released

    def is_held(self, name: str) -> bool:
        return self._store.get(self._key(name)) > 0

    @contextmanager
    def hold(self, name: str) -> Iterator[JobLease]:
        token = self.acquire(name)
        if token is None:
            raise JobAlreadyRunningError(f"Job {name} is already running")
        lease = JobLease(self, name, token, self._clock)
        try:
            yield lease
        finally:
            lease.release()
