"""Database models for Hodo."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    """A local account. The password hash never leaves the backend."""
    id: UUID
    username: str
    password_hash: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization (without the hash)."""
        return {
            "id": str(self.id),
            "username": self.username,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class UnlockRecord:
    """The latest successfully redeemed unlock code for a username."""
    username: str
    date: str  # yyyyMMdd
    unlock_code: str  # '<wrappedKeyAndIv>,<payload>'
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class Task:
    """A todo item owned by one user."""
    id: UUID
    user_id: UUID
    title: str
    description: Optional[str] = None
    completed: bool = False
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
