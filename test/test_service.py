"""
End to end tests of the demo service wiring.
"""

import os

import pytest
import pytest_asyncio

from httpguard.cache import MemoryCache, MemoryQueue
from httpguard.csrf import CSRF_RESPONSE_HEADER
from httpguard.limiter import LIMIT_REMAIN_HEADER
from httpguard.service import create_app

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 64


@pytest.fixture
def upload_root(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def app(monkeypatch, upload_root):
    monkeypatch.setenv("SECURE_COOKIES", "false")
    monkeypatch.setenv("SESSION_HEADER_MODE", "false")
    monkeypatch.setenv("RATE_LIMIT_ATTEMPTS", "1000")
    monkeypatch.setenv("UPLOAD_ROOT", str(upload_root))
    return create_app(cache=MemoryCache(), queue=MemoryQueue())


@pytest_asyncio.fixture
async def client(app, client_factory):
    return client_factory(app)


async def csrf_token(client) -> str:
    response = await client.get("/csrf-token")
    assert response.status_code == 200
    return response.json()["csrf_token"]


@pytest.mark.asyncio
async def test_status(client):
    response = await client.get("/status")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers[LIMIT_REMAIN_HEADER] == "999"
    assert "session" in response.cookies


@pytest.mark.asyncio
async def test_login_rotates_token(client):
    token = await csrf_token(client)

    response = await client.post("/login", json={"username": "alice"}, headers={"X-CSRF-Token": token})

    assert response.status_code == 200
    body = response.json()
    assert body["user"] == "alice"
    assert body["csrf_token"] != token
    assert response.headers[CSRF_RESPONSE_HEADER] == body["csrf_token"]
    assert body["created_at"]

    me = await client.get("/me")
    assert me.json()["user"] == "alice"
    assert me.json()["session_id"] == body["session_id"]


@pytest.mark.asyncio
async def test_post_without_token_is_rejected(client):
    response = await client.post("/login", json={"username": "alice"})
    assert response.status_code == 419
    assert response.text == "invalid csrf token"


@pytest.mark.asyncio
async def test_logout_destroys_session(client):
    token = await csrf_token(client)
    login = await client.post("/login", json={"username": "alice"}, headers={"X-CSRF-Token": token})
    new_token = login.json()["csrf_token"]

    response = await client.post("/logout", headers={"X-CSRF-Token": new_token})
    assert response.status_code == 200
    assert response.text == "session deleted"

    me = await client.get("/me")
    assert me.json()["user"] is None
    assert me.json()["session_id"] != login.json()["session_id"]


@pytest.mark.asyncio
async def test_ttl_change(client):
    token = await csrf_token(client)

    response = await client.post("/ttl", json={"seconds": 60, "mode": "set"}, headers={"X-CSRF-Token": token})
    assert response.status_code == 200

    invalid = await client.post("/ttl", json={"seconds": 0}, headers={"X-CSRF-Token": token})
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_upload(client, upload_root):
    token = await csrf_token(client)

    response = await client.post(
        "/uploads",
        files={"file": ("photo.png", PNG, "image/png")},
        headers={"X-CSRF-Token": token},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["filename"].startswith("photo-")
    assert body["url"].endswith("/" + body["filename"])
    with open(os.path.join(upload_root, body["filename"]), "rb") as f:
        assert f.read() == PNG


@pytest.mark.asyncio
async def test_upload_rejects_unknown_type(client, upload_root):
    token = await csrf_token(client)

    response = await client.post(
        "/uploads",
        files={"file": ("blob.png", b"\x00\x01\x02\x03" * 10, "image/png")},
        headers={"X-CSRF-Token": token},
    )

    assert response.status_code == 415
    assert response.text == "file type is not allowed"
    assert not upload_root.exists() or os.listdir(upload_root) == []


@pytest.mark.asyncio
async def test_upload_requires_file(client):
    token = await csrf_token(client)

    response = await client.post(
        "/uploads",
        files={"other": ("a.txt", b"hello", "text/plain")},
        headers={"X-CSRF-Token": token},
    )

    assert response.status_code == 422
    assert response.text == "file is required"


@pytest.mark.asyncio
async def test_upload_requires_multipart(client):
    token = await csrf_token(client)

    response = await client.post("/uploads", json={}, headers={"X-CSRF-Token": token})
    assert response.status_code == 406
