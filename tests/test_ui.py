from __future__ import annotations

import re

from fastapi.testclient import TestClient


def _extract_csrf_token(html: str) -> str:
    match = re.search(r'name="csrf_token" value="([^"]+)"', html)
    assert match, "CSRF token input not found"
    return match.group(1)


def _login(client: TestClient) -> None:
    login = client.get("/ui/login")
    assert login.status_code == 200
    csrf = _extract_csrf_token(login.text)
    resp = client.post(
        "/ui/login",
        data={"username": "admin", "password": "password", "csrf_token": csrf},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/ui/dashboard"


def test_dashboard_requires_login(client: TestClient) -> None:
    resp = client.get("/ui/dashboard", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/ui/login"


def test_login_rejects_bad_password(client: TestClient) -> None:
    csrf = _extract_csrf_token(client.get("/ui/login").text)
    resp = client.post(
        "/ui/login",
        data={"username": "admin", "password": "nope", "csrf_token": csrf},
        follow_redirects=False,
    )
    assert resp.status_code == 401
    assert "Invalid username or password" in resp.text


def test_dashboard_shows_alert_cards(client: TestClient, auth_headers: dict[str, str]) -> None:
    client.post("/api/dashboard/refresh", headers=auth_headers)
    _login(client)

    page = client.get("/ui/dashboard")
    assert page.status_code == 200
    assert 'class="card alert" data-channel="temperature"' in page.text
    assert 'class="card ok" data-channel="humidity"' in page.text
    assert "26.5°C" in page.text
    assert "Threshold: &lt;1010 hPa" in page.text
    assert "<polyline" in page.text
    assert 'data-channel="wind_direction"' in page.text


def test_logout_clears_session(client: TestClient) -> None:
    _login(client)
    client.get("/ui/logout", follow_redirects=False)
    resp = client.get("/ui/dashboard", follow_redirects=False)
    assert resp.status_code == 303
