from __future__ import annotations

from fastapi.testclient import TestClient


def test_token_success(client: TestClient) -> None:
    resp = client.post(
        "/api/auth/token",
        data={"username": "admin", "password": "password"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert isinstance(body["access_token"], str) and body["access_token"]


def test_token_wrong_password(client: TestClient) -> None:
    resp = client.post(
        "/api/auth/token",
        data={"username": "admin", "password": "wrong"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 401


def test_me_lists_scopes(client: TestClient, auth_headers: dict[str, str]) -> None:
    resp = client.get("/api/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    assert set(resp.json()["scopes"]) == {"telemetry:read", "telemetry:write"}


def test_dashboard_requires_token(client: TestClient) -> None:
    assert client.get("/api/dashboard").status_code == 401
    assert client.post("/api/dashboard/refresh").status_code == 401


def _token(client: TestClient, scope: str | None = None):
    data = {"username": "admin", "password": "password"}
    if scope is not None:
        data["scope"] = scope
    return client.post(
        "/api/auth/token",
        data=data,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )


def test_token_without_scope_grants_all(client: TestClient) -> None:
    body = _token(client).json()
    assert set(body["scope"].split()) == {"telemetry:read", "telemetry:write"}
    assert body["expires_in"] == 30 * 60


def test_read_only_token_cannot_refresh(client: TestClient) -> None:
    resp = _token(client, "telemetry:read")
    assert resp.status_code == 200
    assert resp.json()["scope"] == "telemetry:read"
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

    assert client.get("/api/dashboard", headers=headers).status_code == 200
    assert client.post("/api/dashboard/refresh", headers=headers).status_code == 403


def test_unknown_scope_is_rejected(client: TestClient) -> None:
    resp = _token(client, "telemetry:read weather:write")
    assert resp.status_code == 400
    assert "weather:write" in resp.json()["detail"]
