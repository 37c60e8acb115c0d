from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import mysql.connector

from ..core.exceptions import PersistenceError


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str


class DatabaseConnection:
    """DB connection factory.

    Note: We create short-lived connections per operation. Inside
    `transaction()` every repository call made on the same thread shares one
    connection, so a read-aggregate-write sequence commits or rolls back as a
    unit.
    """

    def __init__(self, config: DBConfig):
        self._config = config
        self._local = threading.local()

    def connect(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
        )

    def current(self) -> Optional[Any]:
        """Connection of the transaction open on this thread, if any."""
        return getattr(self._local, "conn", None)

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        if self.current() is not None:
            # Nested unit of work: the outermost one owns commit/rollback.
            yield self.current()
            return

        conn = self.connect()
        conn.start_transaction()
        self._local.conn = conn
        try:
            yield conn
            conn.commit()
        except mysql.connector.Error as e:
            conn.rollback()
            raise PersistenceError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            conn.close()
