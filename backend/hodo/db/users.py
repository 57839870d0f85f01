"""User repository for database operations."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import asyncpg

from .connection import get_connection
from .models import User


class UsernameTaken(Exception):
    """Raised when creating a user whose username already exists."""


class UserRepository:
    """Repository for local accounts."""

    @staticmethod
    def _row_to_user(row: asyncpg.Record) -> User:
        """Convert a database row to a User object."""
        return User(
            id=row["id"],
            username=row["username"],
            password_hash=row["password_hash"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def create(self, username: str, password_hash: str) -> User:
        async with get_connection() as conn:
            try:
                row = await conn.fetchrow(
                    """
                    INSERT INTO users (username, password_hash)
                    VALUES ($1, $2)
                    RETURNING *
                    """,
                    username, password_hash,
                )
            except asyncpg.UniqueViolationError:
                raise UsernameTaken(username) from None
            return self._row_to_user(row)

    async def get_by_username(self, username: str) -> Optional[User]:
        async with get_connection() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users WHERE username = $1",
                username,
            )
            return self._row_to_user(row) if row else None

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        async with get_connection() as conn:
            await conn.execute(
                "UPDATE users SET password_hash = $1 WHERE id = $2",
                password_hash, user_id,
            )
