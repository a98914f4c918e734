"""Shared psycopg2 pool for the plan store."""

from contextlib import contextmanager

from psycopg2.pool import SimpleConnectionPool

from exam_planner.config import settings

_pool: SimpleConnectionPool | None = None


def get_pool() -> SimpleConnectionPool:
    """Create the pool on first use.

    Returns
    -------
    SimpleConnectionPool
        Sized by ``PG_POOL_MIN`` / ``PG_POOL_MAX``; each connection gives up
        after ``PG_CONNECT_TIMEOUT`` seconds.
    """
    global _pool
    if _pool is None:
        _pool = SimpleConnectionPool(
            minconn=settings.pg_pool_min,
            maxconn=settings.pg_pool_max,
            host=settings.pg_host,
            port=settings.pg_port,
            dbname=settings.pg_database,
            user=settings.pg_user,
            password=settings.pg_password,
            connect_timeout=settings.pg_connect_timeout,
            application_name="exam-planner",
        )
    return _pool


@contextmanager
def pooled_connection():
    """Borrow a connection for one unit of work and hand it back afterwards.

    Commits when the block exits cleanly and rolls back when it raises.
    """
    pool = get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def close_pool() -> None:
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
