"""
PostgreSQL pool and schema migrations.

One pool per process. Repositories borrow connections through
``get_connection()``; the pool is opened lazily if startup did not open it.
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg

from ..logging import get_logger

db_logger = get_logger("database")
migration_logger = get_logger("migrations")

POOL_MIN_SIZE = 1
POOL_MAX_SIZE = 10

# Serialises migration runs across processes sharing one database
MIGRATION_LOCK_ID = 0x484F444F

_pool: Optional[asyncpg.Pool] = None


def _mask(database_url: str) -> str:
    """Drop the userinfo part so passwords never reach the log."""
    return database_url.rsplit("@", 1)[-1]


async def init_db(database_url: Optional[str] = None) -> asyncpg.Pool:
    """Open the pool and bring the schema up to date. Idempotent."""
    global _pool

    if _pool is not None:
        db_logger.debug("Connection pool already initialized")
        return _pool

    database_url = database_url or os.getenv("DATABASE_URL", "postgresql://localhost/hodo")
    db_logger.info(f"Connecting to database at {_mask(database_url)}")
    pool = await asyncpg.create_pool(database_url, min_size=POOL_MIN_SIZE, max_size=POOL_MAX_SIZE)
    db_logger.info(f"Database connection pool created (min={POOL_MIN_SIZE}, max={POOL_MAX_SIZE})")

    try:
        await run_migrations(pool)
    except asyncpg.PostgresError:
        await pool.close()
        raise

    _pool = pool
    return _pool


async def get_db_pool() -> asyncpg.Pool:
    if _pool is None:
        return await init_db()
    return _pool


async def close_db():
    global _pool
    if _pool is None:
        return
    db_logger.info("Closing database connection pool")
    pool, _pool = _pool, None
    await pool.close()


@asynccontextmanager
async def get_connection():
    """Borrow a pooled connection for the duration of the block."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        yield conn


async def run_migrations(pool: asyncpg.Pool):
    """Apply pending entries of MIGRATIONS in order, each in its own transaction."""
    async with pool.acquire() as conn:
        await conn.execute("SELECT pg_advisory_lock($1)", MIGRATION_LOCK_ID)
        try:
            await conn.execute(MIGRATIONS_TABLE)
            applied = {row["name"] for row in await conn.fetch("SELECT name FROM _migrations")}
            pending = [(name, sql) for name, sql in MIGRATIONS if name not in applied]
            if not pending:
                migration_logger.info("All migrations up to date")
                return

            migration_logger.info(f"Applying {len(pending)} pending migration(s)")
            for name, sql in pending:
                try:
                    async with conn.transaction():
                        await conn.execute(sql)
                        await conn.execute("INSERT INTO _migrations (name) VALUES ($1)", name)
                except asyncpg.PostgresError as e:
                    migration_logger.error(f"Migration {name} failed: {e}")
                    raise
                migration_logger.info(f"Migration {name} applied")
        finally:
            await conn.execute("SELECT pg_advisory_unlock($1)", MIGRATION_LOCK_ID)


MIGRATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS _migrations (
    name TEXT PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

# Migration SQL
MIGRATION_001_CREATE_USERS = """
-- Users: local accounts; the session credential carries id and username
CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,              -- Argon2id hash
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Trigger to auto-update updated_at
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_users_updated_at ON users;
CREATE TRIGGER update_users_updated_at
    BEFORE UPDATE ON users
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();
"""

MIGRATION_002_CREATE_SYSTEM_CONFIG = """
-- System config: installation-wide key/value settings (e.g. trial_base_time)
-- Rows are written once with INSERT ... ON CONFLICT DO NOTHING
CREATE TABLE IF NOT EXISTS system_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

MIGRATION_003_CREATE_UNLOCK_RECORDS = """
-- Unlock records: latest redeemed unlock code per username
CREATE TABLE IF NOT EXISTS unlock_records (
    id SERIAL PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    date TEXT NOT NULL,                       -- yyyyMMdd embedded in the code
    unlock_code TEXT NOT NULL,                -- '<wrappedKeyAndIv>,<payload>' as submitted
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

DROP TRIGGER IF EXISTS update_unlock_records_updated_at ON unlock_records;
CREATE TRIGGER update_unlock_records_updated_at
    BEFORE UPDATE ON unlock_records
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();
"""

MIGRATION_004_CREATE_TASKS = """
-- Tasks: per-user todo items
CREATE TABLE IF NOT EXISTS tasks (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT,
    completed BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id);

DROP TRIGGER IF EXISTS update_tasks_updated_at ON tasks;
CREATE TRIGGER update_tasks_updated_at
    BEFORE UPDATE ON tasks
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();
"""

MIGRATIONS = [
    ("001_create_users", MIGRATION_001_CREATE_USERS),
    ("002_create_system_config", MIGRATION_002_CREATE_SYSTEM_CONFIG),
    ("003_create_unlock_records", MIGRATION_003_CREATE_UNLOCK_RECORDS),
    ("004_create_tasks", MIGRATION_004_CREATE_TASKS),
]
