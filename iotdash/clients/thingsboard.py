from __future__ import annotations

import time
from typing import Any, Sequence

import httpx

DEFAULT_WINDOW_MS = 60 * 60 * 1000


class ThingsBoardClient:
    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        device_id: str,
        timeout_seconds: float,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._device_id = device_id
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "X-Authorization": f"Bearer {token}",
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    @property
    def timeseries_url(self) -> str:
        return (
            f"{self._base_url}/api/plugins/telemetry/DEVICE/"
            f"{self._device_id}/values/timeseries"
        )

    def fetch_timeseries_response(
        self,
        keys: Sequence[str],
        *,
        end_ts: int | None = None,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> httpx.Response:
        """Issue the trailing-window request and hand back the raw response."""
        end = int(time.time() * 1000) if end_ts is None else int(end_ts)
        return self._client.get(
            self.timeseries_url,
            params={
                "keys": ",".join(keys),
                "startTs": end - window_ms,
                "endTs": end,
            },
        )

    def fetch_timeseries(
        self,
        keys: Sequence[str],
        *,
        end_ts: int | None = None,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> dict[str, Any]:
        resp = self.fetch_timeseries_response(keys, end_ts=end_ts, window_ms=window_ms)
        resp.raise_for_status()
        payload = resp.json()
        if not isinstance(payload, dict):
            raise ValueError("Unexpected ThingsBoard response shape")
        return payload
