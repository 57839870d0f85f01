"""Wiring of configuration, repositories and licensing components."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config import Settings
from .db import SystemConfigRepository, TaskRepository, UnlockRecordRepository, UserRepository
from .licensing import CredentialCodec, Gate, HybridDecryptor, TrialClock, UnlockService


@dataclass
class Services:
    """Everything a request handler needs, built once per process."""
    settings: Settings
    codec: CredentialCodec
    decryptor: HybridDecryptor
    trial_clock: TrialClock
    ledger: UnlockRecordRepository
    users: UserRepository
    tasks: TaskRepository
    gate: Gate
    unlocker: UnlockService

    @classmethod
    def build(
        cls,
        settings: Settings,
        decryptor: Optional[HybridDecryptor] = None,
        config_store=None,
        ledger=None,
        users=None,
        tasks=None,
        now: Optional[Callable[[], datetime]] = None,
        today: Optional[Callable[[], datetime]] = None,
    ) -> "Services":
        """
        Build the service graph. Keys are read here, once.

        Any collaborator may be passed in; the rest default to the
        PostgreSQL repositories and the key file named in settings.
        """
        codec = CredentialCodec(settings.jwt_secret)
        decryptor = decryptor or HybridDecryptor.from_file(settings.private_key_path)
        trial_clock = TrialClock(
            config_store or SystemConfigRepository(),
            trial_days=settings.trial_days,
            now=now,
        )
        ledger = ledger or UnlockRecordRepository()
        return cls(
            settings=settings,
            codec=codec,
            decryptor=decryptor,
            trial_clock=trial_clock,
            ledger=ledger,
            users=users or UserRepository(),
            tasks=tasks or TaskRepository(),
            gate=Gate(codec, decryptor, trial_clock, ledger),
            unlocker=UnlockService(decryptor, trial_clock, ledger, today=today),
        )
