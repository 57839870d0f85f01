"""Task repository for database operations."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import asyncpg

from .models import Task
from .connection import get_connection


class TaskRepository:
    """Repository for per-user task CRUD operations."""

    @staticmethod
    def _row_to_task(row: asyncpg.Record) -> Task:
        """Convert a database row to a Task object."""
        return Task(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            completed=row["completed"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def create(
        self,
        user_id: UUID,
        title: str,
        description: Optional[str] = None,
    ) -> Task:
        """Create a new task."""
        async with get_connection() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO tasks (user_id, title, description)
                VALUES ($1, $2, $3)
                RETURNING *
                """,
                user_id,
                title,
                description,
            )
            return self._row_to_task(row)

    async def get(self, user_id: UUID, task_id: UUID) -> Optional[Task]:
        """Get one of the user's tasks by ID."""
        async with get_connection() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM tasks WHERE id = $1 AND user_id = $2",
                task_id,
                user_id,
            )
            return self._row_to_task(row) if row else None

    async def list(
        self,
        user_id: UUID,
        completed: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        """List the user's tasks, optionally filtered by completion."""
        conditions = ["user_id = $1"]
        params: list = [user_id]
        param_idx = 2

        if completed is not None:
            conditions.append(f"completed = ${param_idx}")
            params.append(completed)
            param_idx += 1

        where_clause = " AND ".join(conditions)
        params.extend([limit, offset])

        async with get_connection() as conn:
            rows = await conn.fetch(
                f"""
                SELECT * FROM tasks
                WHERE {where_clause}
                ORDER BY created_at ASC
                LIMIT ${param_idx} OFFSET ${param_idx + 1}
                """,
                *params,
            )
            return [self._row_to_task(row) for row in rows]

    async def update(
        self,
        user_id: UUID,
        task_id: UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Optional[Task]:
        """Update one of the user's tasks."""
        updates = []
        params: list = []
        param_idx = 1

        if title is not None:
            updates.append(f"title = ${param_idx}")
            params.append(title)
            param_idx += 1

        if description is not None:
            updates.append(f"description = ${param_idx}")
            params.append(description)
            param_idx += 1

        if completed is not None:
            updates.append(f"completed = ${param_idx}")
            params.append(completed)
            param_idx += 1

        if not updates:
            return await self.get(user_id, task_id)

        params.extend([task_id, user_id])
        async with get_connection() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE tasks
                SET {', '.join(updates)}
                WHERE id = ${param_idx} AND user_id = ${param_idx + 1}
                RETURNING *
                """,
                *params,
            )
            return self._row_to_task(row) if row else None

    async def delete(self, user_id: UUID, task_id: UUID) -> bool:
        """Delete one of the user's tasks. Returns False if it did not exist."""
        async with get_connection() as conn:
            result = await conn.execute(
                "DELETE FROM tasks WHERE id = $1 AND user_id = $2",
                task_id,
                user_id,
            )
            return result == "DELETE 1"
