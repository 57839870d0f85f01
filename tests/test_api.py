# tests/test_api.py

from __future__ import annotations

from datetime import date

import asyncpg
import pytest
from fastapi.testclient import TestClient

from hodo.main import create_app
from hodo.services import Services

from .fakes import (
    BrokenConfigStore,
    FakeConfigStore,
    FakeLedger,
    FakeTaskRepository,
    FakeUserRepository,
)
from .helpers import bearer, register, split_code


def _expire_trial(client: TestClient, credential: str, clock) -> None:
    # Any status read anchors the window at the current fake time
    assert client.get("/unlock-status", headers=bearer(credential)).status_code == 200
    clock.advance(days=31)


# --- Accounts and credentials ---

def test_register_login_and_verify(client: TestClient) -> None:
    register(client, "alice", "s3cret")

    response = client.post("/auth/login", json={"username": "alice", "password": "s3cret"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["username"] == "alice"
    assert "password_hash" not in body["user"]
    assert body["token"] == body["credential"]

    verify = client.get("/auth/verify", headers=bearer(body["credential"]))
    assert verify.status_code == 200
    assert verify.json()["user"] == {"userId": body["user"]["id"], "username": "alice"}


def test_login_rejects_bad_password_and_unknown_user(client: TestClient) -> None:
    register(client, "alice", "s3cret")
    wrong = client.post("/auth/login", json={"username": "alice", "password": "nope"})
    unknown = client.post("/auth/login", json={"username": "nobody", "password": "s3cret"})

    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_duplicate_and_unusable_usernames(client: TestClient) -> None:
    register(client, "alice")
    assert client.post("/users", json={"username": "alice", "password": "x"}).status_code == 409
    assert client.post("/users", json={"username": "a,b", "password": "x"}).status_code == 400
    assert client.post("/users", json={"username": "   ", "password": "x"}).status_code == 400


def test_session_cookie_is_accepted_and_header_wins(client: TestClient) -> None:
    alice = register(client, "alice", "s3cret")
    register(client, "bob", "hunter2")

    client.post("/auth/login", json={"username": "bob", "password": "hunter2"})
    assert client.get("/auth/verify").json()["user"]["username"] == "bob"
    assert client.get("/auth/verify", headers=bearer(alice)).json()["user"]["username"] == "alice"

    client.post("/auth/logout")
    client.cookies.clear()
    assert client.get("/auth/verify").status_code == 401


def test_missing_and_invalid_credentials(client: TestClient) -> None:
    missing = client.get("/tasks")
    assert missing.status_code == 401
    assert missing.json()["error"] == "authentication_required"

    invalid = client.get("/tasks", headers=bearer("not.a.token"))
    assert invalid.status_code == 401
    assert invalid.json()["error"] == "invalid_authentication"


# --- Tasks ---

def test_task_crud_during_trial(client: TestClient) -> None:
    alice = register(client, "alice")
    headers = bearer(alice)

    created = client.post("/tasks", json={"title": "Buy milk"}, headers=headers)
    assert created.status_code == 201
    task_id = created.json()["id"]

    updated = client.patch(f"/tasks/{task_id}", json={"completed": True}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["completed"] is True

    assert [t["id"] for t in client.get("/tasks?completed=true", headers=headers).json()] == [task_id]
    assert client.get("/tasks?completed=false", headers=headers).json() == []

    assert client.delete(f"/tasks/{task_id}", headers=headers).status_code == 200
    assert client.get(f"/tasks/{task_id}", headers=headers).status_code == 404


def test_tasks_are_private_to_their_owner(client: TestClient) -> None:
    alice = register(client, "alice")
    bob = register(client, "bob")
    task_id = client.post("/tasks", json={"title": "Alice's"}, headers=bearer(alice)).json()["id"]

    assert client.get(f"/tasks/{task_id}", headers=bearer(bob)).status_code == 404
    assert client.delete(f"/tasks/{task_id}", headers=bearer(bob)).status_code == 404
    assert client.get("/tasks", headers=bearer(bob)).json() == []


# --- Unlock flow ---

def test_alice_unlocks_and_keeps_writing_after_trial(client: TestClient, services: Services, clock, mint) -> None:
    alice = register(client, "alice")
    assert client.get("/unlock-status", headers=bearer(alice)).json()["trialPeriod"] is True
    code = mint("alice", date(2025, 6, 15))

    response = client.post("/decrypt", json=split_code(code), headers=bearer(alice))
    assert response.status_code == 200
    assert response.json() == {"decryptedData": "alice,20250615", "unlocked": True, "success": True}

    record = services.ledger.records["alice"]
    assert (record.username, record.date, record.unlock_code) == ("alice", "20250615", code)

    clock.advance(days=60)
    created = client.post("/tasks", json={"title": "Still here"}, headers=bearer(alice))
    assert created.status_code == 201

    status = client.get("/unlock-status", headers=bearer(alice)).json()
    assert status["unlocked"] is True
    assert status["trialPeriod"] is False
    assert status["hasUnlockRecord"] is True


def test_bob_cannot_use_alices_code(client: TestClient, services: Services, mint) -> None:
    alice = register(client, "alice")
    bob = register(client, "bob")
    code = mint("alice", date(2025, 6, 15))
    assert client.post("/decrypt", json=split_code(code), headers=bearer(alice)).status_code == 200
    writes_before = services.ledger.upsert_calls

    response = client.post("/decrypt", json=split_code(code), headers=bearer(bob))

    assert response.status_code == 403
    assert response.json()["error"] == "unlock_error"
    assert services.ledger.upsert_calls == writes_before
    assert "bob" not in services.ledger.records


def test_carol_is_read_only_after_trial(client: TestClient, clock) -> None:
    carol = register(client, "carol")
    task_id = client.post("/tasks", json={"title": "Before expiry"}, headers=bearer(carol)).json()["id"]
    _expire_trial(client, carol, clock)

    for response in (
        client.post("/tasks", json={"title": "After expiry"}, headers=bearer(carol)),
        client.patch(f"/tasks/{task_id}", json={"completed": True}, headers=bearer(carol)),
        client.delete(f"/tasks/{task_id}", headers=bearer(carol)),
    ):
        assert response.status_code == 403
        assert response.json() == {
            "detail": "Trial period has ended, an unlock code is required",
            "error": "unlock_error",
        }

    assert client.get("/tasks", headers=bearer(carol)).status_code == 200
    assert client.get(f"/tasks/{task_id}", headers=bearer(carol)).status_code == 200
    status = client.get("/unlock-status", headers=bearer(carol)).json()
    assert status == {
        "unlocked": False,
        "trialPeriod": False,
        "hasUnlockRecord": False,
        "remainingDays": 0,
        "message": "Trial period has ended, an unlock code is required",
    }


def test_locked_account_can_still_redeem(client: TestClient, clock, mint) -> None:
    carol = register(client, "carol")
    _expire_trial(client, carol, clock)

    # 2025-06-15 10:00 UTC + 31 days
    code = mint("carol", date(2025, 7, 16))
    assert client.post("/decrypt", json=split_code(code), headers=bearer(carol)).status_code == 200
    assert client.post("/tasks", json={"title": "Unlocked"}, headers=bearer(carol)).status_code == 201


def test_decrypt_error_responses(client: TestClient) -> None:
    alice = register(client, "alice")

    assert client.post("/decrypt", json={}, headers=bearer(alice)).json()["error"] == "malformed_unlock_code"

    garbage = client.post(
        "/decrypt",
        json={"encryptedAesKeyAndIv": "bm90IGEga2V5", "encryptedData": "bm90IGRhdGE="},
        headers=bearer(alice),
    )
    assert garbage.status_code == 400
    assert garbage.json() == {"detail": "Decryption failed", "error": "decryption_failed"}

    anonymous = client.post(
        "/decrypt",
        json={"encryptedAesKeyAndIv": "bm90IGEga2V5", "encryptedData": "bm90IGRhdGE="},
    )
    assert anonymous.status_code == 401


def test_storage_outage_is_retryable(settings, decryptor, clock) -> None:
    services = Services.build(
        settings,
        decryptor=decryptor,
        config_store=BrokenConfigStore(),
        ledger=FakeLedger(),
        users=FakeUserRepository(),
        tasks=FakeTaskRepository(),
        now=clock,
        today=clock,
    )
    with TestClient(create_app(services=services)) as client:
        alice = register(client, "alice")
        response = client.post("/tasks", json={"title": "x"}, headers=bearer(alice))

    assert response.status_code == 503
    assert response.json()["error"] == "storage_unavailable"


def test_health_reports_key_state(client: TestClient) -> None:
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["private_key_valid"] is True


class FailingTaskRepository(FakeTaskRepository):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    async def list(self, user_id, completed=None, limit=100, offset=0):
        raise self.error


def _client_with_tasks(settings, decryptor, clock, tasks) -> TestClient:
    services = Services.build(
        settings,
        decryptor=decryptor,
        config_store=FakeConfigStore(),
        ledger=FakeLedger(),
        users=FakeUserRepository(),
        tasks=tasks,
        now=clock,
        today=clock,
    )
    return TestClient(create_app(services=services), raise_server_exceptions=False)


def test_query_errors_are_not_reported_as_outages(settings, decryptor, clock) -> None:
    tasks = FailingTaskRepository(asyncpg.exceptions.InvalidRowCountInLimitClauseError("LIMIT must not be negative"))
    with _client_with_tasks(settings, decryptor, clock, tasks) as client:
        response = client.get("/tasks", headers=bearer(register(client, "alice")))

    assert response.status_code == 500


@pytest.mark.parametrize(
    "error",
    [
        asyncpg.exceptions.CannotConnectNowError("the database system is starting up"),
        asyncpg.exceptions.ConnectionDoesNotExistError("connection was closed"),
        ConnectionResetError("reset by peer"),
    ],
)
def test_connection_errors_are_reported_as_outages(settings, decryptor, clock, error) -> None:
    with _client_with_tasks(settings, decryptor, clock, FailingTaskRepository(error)) as client:
        response = client.get("/tasks", headers=bearer(register(client, "alice")))

    assert response.status_code == 503
    assert response.json()["error"] == "storage_unavailable"


@pytest.mark.parametrize("query", ["limit=-1", "limit=0", "limit=501", "offset=-1"])
def test_task_paging_is_bounded(client: TestClient, query: str) -> None:
    alice = register(client, "alice")
    assert client.get(f"/tasks?{query}", headers=bearer(alice)).status_code == 422
