"""
Name: PostgreSQL Connection Pool

Responsibilities:
  - Own the process-wide psycopg pool used by the pgvector index
  - Prepare every new connection: vector extension, vector type, timeout

Collaborators:
  - psycopg_pool.ConnectionPool
  - pgvector.psycopg.register_vector
  - container.py: init_pool() in startup(), close_pool() in shutdown()

Constraints:
  - One pool per process; a second init_pool() is an error
  - Connections leave configure() outside any transaction
"""

import threading
from typing import Callable, Optional

from pgvector.psycopg import register_vector
from psycopg_pool import ConnectionPool

from ...logger import logger


_pool: Optional[ConnectionPool] = None
_pool_lock = threading.Lock()


def _connection_setup(statement_timeout_ms: int) -> Callable:
    """R: Build the pool's configure callback."""

    def configure(conn) -> None:
        # register_vector needs the type to exist
        conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
        conn.commit()
        register_vector(conn)
        if statement_timeout_ms > 0:
            conn.execute(f"SET statement_timeout = {int(statement_timeout_ms)}")
        conn.commit()

    return configure


def init_pool(
    database_url: str,
    min_size: int,
    max_size: int,
    statement_timeout_ms: int = 0,
) -> ConnectionPool:
    """
    R: Open the pool and register it as the process singleton.

    Raises:
        RuntimeError: If a pool is already open
    """
    global _pool

    with _pool_lock:
        if _pool is not None:
            raise RuntimeError("Connection pool already initialized")

        _pool = ConnectionPool(
            conninfo=database_url,
            min_size=min_size,
            max_size=max_size,
            configure=_connection_setup(statement_timeout_ms),
            open=True,
        )
        logger.info(
            "Connection pool opened",
            extra={
                "min_size": min_size,
                "max_size": max_size,
                "statement_timeout_ms": statement_timeout_ms,
            },
        )
        return _pool


def close_pool() -> None:
    """R: Close the pool if open; a no-op otherwise."""
    global _pool

    with _pool_lock:
        pool, _pool = _pool, None
    if pool is not None:
        pool.close()
        logger.info("Connection pool closed")
