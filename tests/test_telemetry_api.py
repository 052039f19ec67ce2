from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

from iotdash.api import deps
from iotdash.clients.thingsboard import ThingsBoardClient
from iotdash.core.errors import RealtimeFeedError
from tests.fakes import FakeRealtimeFeed, FakeTelemetrySource


def _tb_client(handler) -> ThingsBoardClient:
    return ThingsBoardClient(
        base_url="https://tb.example",
        token="tok",
        device_id="dev-1",
        timeout_seconds=1.0,
        transport=httpx.MockTransport(handler),
    )


def test_mock_telemetry_endpoint(client: TestClient) -> None:
    resp = client.get("/api/mock-telemetry")
    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"temperature", "humidity", "windSpeed", "pressure"}
    for points in body.values():
        assert len(points) == 60
        assert [p["ts"] for p in points] == sorted(p["ts"] for p in points)


def test_live_telemetry_without_credentials(client: TestClient) -> None:
    assert client.app.state.thingsboard_client is None
    resp = client.get("/api/telemetry")
    assert resp.status_code == 500
    assert resp.json() == {"error": "ThingsBoard credentials not configured"}


def test_live_telemetry_proxies_upstream(client: TestClient) -> None:
    upstream = {"temperature": [{"ts": 1000, "value": "21.0"}]}
    tb = _tb_client(lambda request: httpx.Response(200, json=upstream))
    client.app.dependency_overrides[deps.get_thingsboard_client] = lambda: tb
    resp = client.get("/api/telemetry")
    assert resp.status_code == 200
    assert resp.json() == upstream


def test_live_telemetry_forwards_upstream_status(client: TestClient) -> None:
    tb = _tb_client(lambda request: httpx.Response(401, json={"message": "nope"}))
    client.app.dependency_overrides[deps.get_thingsboard_client] = lambda: tb
    resp = client.get("/api/telemetry")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Failed to fetch data from ThingsBoard"}


def test_live_telemetry_transport_error(client: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client.app.dependency_overrides[deps.get_thingsboard_client] = lambda: _tb_client(handler)
    resp = client.get("/api/telemetry")
    assert resp.status_code == 500
    assert "error" in resp.json()


def test_dashboard_refresh_and_snapshot(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    empty = client.get("/api/dashboard", headers=auth_headers).json()
    assert empty["last_pull_at"] is None
    assert empty["current"]["temperature"] == 0.0

    refresh = client.post("/api/dashboard/refresh", headers=auth_headers)
    assert refresh.status_code == 200, refresh.text
    assert refresh.json() == {"updated": True, "source": "fake"}

    body = client.get("/api/dashboard", headers=auth_headers).json()
    assert body["current"]["temperature"] == 26.5
    assert body["alerts"] == {
        "temperature": True,
        "humidity": False,
        "wind_speed": False,
        "pressure": True,
    }
    assert body["thresholds"]["pressure"] == {"bound": 1010.0, "direction": "below"}
    assert body["series"]["humidity"] == [
        {"ts": 1000, "value": 50.0},
        {"ts": 2000, "value": 55.0},
    ]
    assert body["last_pull_at"] is not None


def test_failed_refresh_keeps_snapshot(
    client: TestClient, auth_headers: dict[str, str], source: FakeTelemetrySource
) -> None:
    client.post("/api/dashboard/refresh", headers=auth_headers)
    before = client.get("/api/dashboard", headers=auth_headers).json()

    source.error = httpx.ReadTimeout("slow")
    refresh = client.post("/api/dashboard/refresh", headers=auth_headers)
    assert refresh.json()["updated"] is False
    assert client.get("/api/dashboard", headers=auth_headers).json() == before


def test_push_dummy_updates_station_fields(
    client: TestClient, auth_headers: dict[str, str], feed: FakeRealtimeFeed
) -> None:
    resp = client.post("/api/push/dummy", headers=auth_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["path"] == "telemetry"
    assert feed.published

    push = client.get("/api/dashboard", headers=auth_headers).json()["push"]
    assert push["temperature_out"] == 30.1
    assert push["wind_direction"] == "NE"


def test_push_dummy_broker_down(
    client: TestClient, auth_headers: dict[str, str], feed: FakeRealtimeFeed
) -> None:
    feed.error = RealtimeFeedError("down")
    resp = client.post("/api/push/dummy", headers=auth_headers)
    assert resp.status_code == 503


def test_lifespan_releases_resources(
    settings, source: FakeTelemetrySource, feed: FakeRealtimeFeed
) -> None:
    from iotdash.factory import create_app

    app = create_app(settings, source=source, feed=feed)
    with TestClient(app):
        assert "telemetry" in feed.callbacks
    assert feed.callbacks == {}
    assert feed.closed
    assert source.closed


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_refresh_with_infinite_timestamp_is_not_an_error(
    client: TestClient, auth_headers: dict[str, str], source: FakeTelemetrySource
) -> None:
    source.payload = {"temperature": [{"ts": float("inf"), "value": 30.0}]}
    resp = client.post("/api/dashboard/refresh", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["updated"] is False


def test_thingsboard_client_comes_from_app_state(client: TestClient) -> None:
    tb = _tb_client(lambda request: httpx.Response(200, json={}))
    client.app.state.thingsboard_client = tb
    try:
        resp = client.get("/api/telemetry")
        assert resp.status_code == 200
        assert resp.json() == {}
    finally:
        client.app.state.thingsboard_client = None
        tb.close()
