# tests/helpers.py

from __future__ import annotations

from fastapi.testclient import TestClient

from .fakes import utc

TEST_SECRET = "test-signing-secret"

# 2025-06-15 10:00 UTC; the trial window is anchored here on first read
START = utc(2025, 6, 15, 10)


def register(client: TestClient, username: str, password: str = "correct horse") -> str:
    """Create an account and return its credential."""
    response = client.post("/users", json={"username": username, "password": password})
    assert response.status_code == 201, response.text
    # Keep the cookie jar clean so each call chooses its own credential
    client.cookies.clear()
    return response.json()["credential"]


def bearer(credential: str) -> dict:
    return {"Authorization": f"Bearer {credential}"}


def split_code(code: str) -> dict:
    wrapped, payload = code.split(",")
    return {"encryptedAesKeyAndIv": wrapped, "encryptedData": payload}
