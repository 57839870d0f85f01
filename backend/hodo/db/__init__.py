"""Database module for Hodo."""

from .connection import get_db_pool, init_db, close_db
from .system_config import SystemConfigRepository
from .tasks import TaskRepository
from .unlock_records import UnlockRecordRepository
from .users import UserRepository, UsernameTaken
from .models import Task, UnlockRecord, User

__all__ = [
    "get_db_pool",
    "init_db",
    "close_db",
    "SystemConfigRepository",
    "TaskRepository",
    "UnlockRecordRepository",
    "UserRepository",
    "UsernameTaken",
    "Task",
    "UnlockRecord",
    "User",
]
