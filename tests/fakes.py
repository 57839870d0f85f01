# tests/fakes.py

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from hodo.db import Task, UnlockRecord, User, UsernameTaken


class FakeClock:
    """
    Settable clock shared by the trial window and the unlock date check.

    Calling the instance returns the current fake time.
    """

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)

    def set(self, value: datetime) -> None:
        self.current = value


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


class FakeConfigStore:
    """
    In-memory stand-in for SystemConfigRepository.

    ``insert_if_absent`` yields to the event loop before writing, so two
    concurrent first reads genuinely interleave.
    """

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.insert_calls = 0

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def insert_if_absent(self, key: str, value: str) -> str:
        self.insert_calls += 1
        await asyncio.sleep(0)
        return self.values.setdefault(key, value)


class BrokenConfigStore:
    """Config store whose backend is down."""

    async def get(self, key: str) -> Optional[str]:
        raise ConnectionRefusedError("database unreachable")

    async def insert_if_absent(self, key: str, value: str) -> str:
        raise ConnectionRefusedError("database unreachable")


class FakeLedger:
    """In-memory unlock ledger with the same upsert semantics as the table."""

    def __init__(self) -> None:
        self.records: dict[str, UnlockRecord] = {}
        self.upsert_calls = 0

    async def upsert(self, username: str, date: str, unlock_code: str) -> UnlockRecord:
        self.upsert_calls += 1
        existing = self.records.get(username)
        if existing:
            record = replace(
                existing,
                date=date,
                unlock_code=unlock_code,
                updated_at=datetime.now(timezone.utc),
            )
        else:
            record = UnlockRecord(username=username, date=date, unlock_code=unlock_code)
        self.records[username] = record
        return record

    async def get(self, username: str) -> Optional[UnlockRecord]:
        return self.records.get(username)


class FakeUserRepository:
    def __init__(self) -> None:
        self.users: dict[str, User] = {}

    async def create(self, username: str, password_hash: str) -> User:
        if username in self.users:
            raise UsernameTaken(username)
        user = User(id=uuid.uuid4(), username=username, password_hash=password_hash)
        self.users[username] = user
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        return self.users.get(username)

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        for name, user in self.users.items():
            if user.id == user_id:
                self.users[name] = replace(user, password_hash=password_hash)


class FakeTaskRepository:
    """In-memory task store scoped by owner, like TaskRepository."""

    def __init__(self) -> None:
        self.tasks: dict[UUID, Task] = {}

    async def create(self, user_id: UUID, title: str, description: Optional[str] = None) -> Task:
        task = Task(id=uuid.uuid4(), user_id=user_id, title=title, description=description)
        self.tasks[task.id] = task
        return task

    async def get(self, user_id: UUID, task_id: UUID) -> Optional[Task]:
        task = self.tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return None
        return task

    async def list(
        self,
        user_id: UUID,
        completed: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        owned = [
            t for t in self.tasks.values()
            if t.user_id == user_id and (completed is None or t.completed == completed)
        ]
        owned.sort(key=lambda t: t.created_at)
        return owned[offset:offset + limit]

    async def update(
        self,
        user_id: UUID,
        task_id: UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> Optional[Task]:
        task = await self.get(user_id, task_id)
        if task is None:
            return None
        changes = {
            k: v for k, v in
            (("title", title), ("description", description), ("completed", completed))
            if v is not None
        }
        if changes:
            task = replace(task, updated_at=datetime.now(timezone.utc), **changes)
            self.tasks[task_id] = task
        return task

    async def delete(self, user_id: UUID, task_id: UUID) -> bool:
        if await self.get(user_id, task_id) is None:
            return False
        del self.tasks[task_id]
        return True
