# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from hodo.config import Settings
from hodo.licensing import CredentialCodec, Gate, HybridDecryptor, TrialClock, UnlockService
from hodo.licensing.crypto import generate_keypair
from hodo.licensing.unlock_code import mint_unlock_code
from hodo.main import create_app
from hodo.services import Services

from .helpers import START, TEST_SECRET
from .fakes import (
    FakeClock,
    FakeConfigStore,
    FakeLedger,
    FakeTaskRepository,
    FakeUserRepository,
)


@pytest.fixture(scope="session")
def keypair() -> tuple[bytes, bytes]:
    """One RSA keypair for the whole run; generation is slow."""
    return generate_keypair()


@pytest.fixture(scope="session")
def private_pem(keypair) -> bytes:
    return keypair[0]


@pytest.fixture(scope="session")
def public_pem(keypair) -> bytes:
    return keypair[1]


@pytest.fixture()
def decryptor(private_pem: bytes) -> HybridDecryptor:
    return HybridDecryptor(private_pem)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture()
def config_store() -> FakeConfigStore:
    return FakeConfigStore()


@pytest.fixture()
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture()
def codec() -> CredentialCodec:
    return CredentialCodec(TEST_SECRET)


@pytest.fixture()
def trial_clock(config_store: FakeConfigStore, clock: FakeClock) -> TrialClock:
    return TrialClock(config_store, trial_days=30, now=clock)


@pytest.fixture()
def gate(codec, decryptor, trial_clock, ledger) -> Gate:
    return Gate(codec, decryptor, trial_clock, ledger)


@pytest.fixture()
def unlocker(decryptor, trial_clock, ledger, clock) -> UnlockService:
    return UnlockService(decryptor, trial_clock, ledger, today=clock)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url="postgresql://unused/hodo",
        jwt_secret=TEST_SECRET,
        data_dir=tmp_path,
        trial_days=30,
    )


@pytest.fixture()
def services(settings, decryptor, config_store, ledger, clock) -> Services:
    return Services.build(
        settings,
        decryptor=decryptor,
        config_store=config_store,
        ledger=ledger,
        users=FakeUserRepository(),
        tasks=FakeTaskRepository(),
        now=clock,
        today=clock,
    )


@pytest.fixture()
def client(services: Services):
    with TestClient(create_app(services=services)) as c:
        yield c


@pytest.fixture()
def mint(public_pem: bytes):
    """Mint an unlock code string for ``username`` on ``day``."""
    def _mint(username: str, day: date) -> str:
        return str(mint_unlock_code(public_pem, username, day))
    return _mint

