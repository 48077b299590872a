from contextlib import AbstractAsyncContextManager

from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .config import settings
from .errors import StoreTransportError

# Shared async pool used by the Postgres goal store.
pool: AsyncConnectionPool | None = None


async def init_db_pool() -> None:
    global pool

    # Only the postgres backend needs a database.
    if settings.store_backend != "postgres":
        return

    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is required when STORE_BACKEND=postgres")

    pool = AsyncConnectionPool(
        conninfo=settings.database_url,
        open=False,
        min_size=1,
        max_size=10,
        kwargs={"autocommit": True, "row_factory": dict_row},
    )
    await pool.open()


async def close_db_pool() -> None:
    global pool

    if pool is None:
        return

    await pool.close()
    pool = None


def db_connection() -> AbstractAsyncContextManager[AsyncConnection]:
    # Centralized guard to avoid obscure None-type errors inside the store.
    if pool is None:
        raise StoreTransportError("Database pool is not initialized")

    return pool.connection()
