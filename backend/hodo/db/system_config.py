"""Installation-wide key/value settings."""

from typing import Optional

from .connection import get_connection


class SystemConfigRepository:
    """Write-once key/value rows in ``system_config``."""

    async def get(self, key: str) -> Optional[str]:
        async with get_connection() as conn:
            return await conn.fetchval(
                "SELECT value FROM system_config WHERE key = $1",
                key,
            )

    async def insert_if_absent(self, key: str, value: str) -> str:
        """
        Store ``value`` unless the key already exists, then return the stored value.

        The insert and the read are separate statements so the read sees a
        row committed by a concurrent winner.
        """
        async with get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO system_config (key, value)
                VALUES ($1, $2)
                ON CONFLICT (key) DO NOTHING
                """,
                key, value,
            )
            return await conn.fetchval(
                "SELECT value FROM system_config WHERE key = $1",
                key,
            )
