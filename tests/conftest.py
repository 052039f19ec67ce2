from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from iotdash.core.config import Settings
from iotdash.core.security import get_password_hash
from iotdash.factory import create_app
from tests.fakes import FakeRealtimeFeed, FakeTelemetrySource, series


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        debug=True,
        docs_enabled=False,
        secret_key="test_secret_key_must_be_32_chars_minimum",
        admin_username="admin",
        admin_password_hash=get_password_hash("password"),
        cors_origins=["http://localhost"],
        trusted_hosts=["testserver", "localhost"],
        telemetry_source="mock",
        poll_enabled=False,
        push_enabled=True,
        push_path="telemetry",
    )


@pytest.fixture()
def source() -> FakeTelemetrySource:
    return FakeTelemetrySource(
        {
            "temperature": series((1000, 24.0), (2000, 26.5)),
            "humidity": series((1000, 50.0), (2000, 55.0)),
            "windSpeed": series((1000, 3.0), (2000, 4.0)),
            "pressure": series((1000, 1012.0), (2000, 1008.0)),
        }
    )


@pytest.fixture()
def feed() -> FakeRealtimeFeed:
    return FakeRealtimeFeed()


@pytest.fixture()
def client(settings: Settings, source: FakeTelemetrySource, feed: FakeRealtimeFeed) -> TestClient:
    app = create_app(settings, source=source, feed=feed)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def token(client: TestClient) -> str:
    resp = client.post(
        "/api/auth/token",
        data={"username": "admin", "password": "password"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


@pytest.fixture()
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
