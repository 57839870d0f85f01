"""Unlock ledger: one record per username, latest redemption wins."""

from __future__ import annotations

from typing import Optional

import asyncpg

from .connection import get_connection
from .models import UnlockRecord


class UnlockRecordRepository:
    """Repository for the ``unlock_records`` table. Records are never deleted."""

    @staticmethod
    def _row_to_record(row: asyncpg.Record) -> UnlockRecord:
        """Convert a database row to an UnlockRecord object."""
        return UnlockRecord(
            username=row["username"],
            date=row["date"],
            unlock_code=row["unlock_code"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def upsert(self, username: str, date: str, unlock_code: str) -> UnlockRecord:
        """Insert the record, or overwrite date and code if the username exists."""
        async with get_connection() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO unlock_records (username, date, unlock_code)
                VALUES ($1, $2, $3)
                ON CONFLICT (username) DO UPDATE SET
                    date = EXCLUDED.date,
                    unlock_code = EXCLUDED.unlock_code
                RETURNING *
                """,
                username, date, unlock_code,
            )
            return self._row_to_record(row)

    async def get(self, username: str) -> Optional[UnlockRecord]:
        async with get_connection() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM unlock_records WHERE username = $1",
                username,
            )
            return self._row_to_record(row) if row else None
