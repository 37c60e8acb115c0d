from __future__ import annotations

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .counter_store import CounterStore


class MySQLCounterStore(CounterStore):
    """Counters shared across processes (scheduler, web workers, CLI)."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def incr(self, key: str, *, ttl_seconds: float) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            # Assignments run left to right: expires_at still holds the old value
            # when `value` is evaluated.
            cur.execute(
                """
                INSERT INTO counters(counter_key, value, expires_at)
                VALUES(%s, 1, NOW(6) + INTERVAL %s MICROSECOND)
                ON DUPLICATE KEY UPDATE
                    value = IF(expires_at <= NOW(6), 1, value + 1),
                    expires_at = IF(expires_at <= NOW(6), NOW(6) + INTERVAL %s MICROSECOND, expires_at)
                """,
                (key, int(ttl_seconds * 1_000_000), int(ttl_seconds * 1_000_000)),
            )
            cur.execute("SELECT value FROM counters WHERE counter_key=%s", (key,))
            row = fetchone(cur)
            return int(row["value"]) if row else 0

    def get(self, key: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT value FROM counters WHERE counter_key=%s AND expires_at > NOW(6)",
                (key,),
            )
            row = fetchone(cur)
            return int(row["value"]) if row else 0

    def delete(self, key: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM counters WHERE counter_key=%s", (key,))

    def claim(self, key: str, *, token: str, ttl_seconds: float) -> bool:
        micros = int(ttl_seconds * 1_000_000)
        with db_cursor(self._conn_factory) as (_, cur):
            # token and value are assigned before expires_at, so they still see
            # the old expiry.
            cur.execute(
                """
                INSERT INTO counters(counter_key, value, expires_at, token)
                VALUES(%s, 1, NOW(6) + INTERVAL %s MICROSECOND, %s)
                ON DUPLICATE KEY UPDATE
                    token = IF(expires_at <= NOW(6), %s, token),
                    value = IF(expires_at <= NOW(6), 1, value),
                    expires_at = IF(expires_at <= NOW(6), NOW(6) + INTERVAL %s MICROSECOND, expires_at)
                """,
                (key, micros, token, token, micros),
            )
            cur.execute("SELECT token FROM counters WHERE counter_key=%s", (key,))
            row = fetchone(cur)
            return bool(row) and row["token"] == token

    def renew(self, key: str, *, token: str, ttl_seconds: float) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE counters SET expires_at = NOW(6) + INTERVAL %s MICROSECOND
                WHERE counter_key=%s AND token=%s AND expires_at > NOW(6)
                """,
                (int(ttl_seconds * 1_000_000), key, token),
            )
            return cur.rowcount == 1

    def delete_if_owner(self, key: str, *, token: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM counters WHERE counter_key=%s AND token=%s", (key, token))
            return cur.rowcount == 1

    def evict_expired(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM counters WHERE expires_at <= NOW(6)")
            return int(cur.rowcount)
