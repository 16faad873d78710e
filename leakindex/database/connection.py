from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from leakindex.config.settings import Settings


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


class Database:
    """Long-lived handle around a psycopg connection pool.

    Built once at startup and passed to every repository and index adapter,
    which acquire a connection per call via ``connection()``.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        pool = ConnectionPool(
            build_conninfo(settings),
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            open=True,
        )
        return cls(pool)

    def wait(self, timeout: float = 30.0) -> None:
        """Block until the pool holds its minimum connections.

        Raises:
            psycopg_pool.PoolTimeout: if the database is unreachable.
        """
        self._pool.wait(timeout=timeout)

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a pooled connection. Caller manages commit/rollback."""
        with self._pool.connection() as conn:
            yield conn

    def close(self) -> None:
        self._pool.close()
