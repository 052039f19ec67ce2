from __future__ import annotations

import logging
import math
import random
import threading
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

import httpx

from iotdash.clients.thingsboard import ThingsBoardClient
from iotdash.core.errors import (
    TelemetryFormatError,
    TelemetrySourceError,
    ThingsBoardNotConfigured,
)
from iotdash.models.telemetry import Sample, SeriesReplaced
from iotdash.services.channels import PULL_CHANNELS, PULL_KEYS, pull_channel_for_key
from iotdash.services.mock import generate_mock_telemetry
from iotdash.services.state import DashboardStore

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 10.0
DEFAULT_WINDOW = 60


class TelemetrySource(Protocol):
    name: str

    def fetch(self) -> Mapping[str, Any]: ...

    def close(self) -> None: ...


class MockTelemetrySource:
    name = "mock"

    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._rng = rng

    def fetch(self) -> Mapping[str, Any]:
        return generate_mock_telemetry(rng=self._rng)

    def close(self) -> None:
        return None


class ThingsBoardTelemetrySource:
    name = "thingsboard"

    def __init__(self, client: ThingsBoardClient | None) -> None:
        self._client = client

    def fetch(self) -> Mapping[str, Any]:
        if self._client is None:
            raise ThingsBoardNotConfigured()
        return self._client.fetch_timeseries(PULL_KEYS)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


class HttpTelemetrySource:
    """Any endpoint answering ``GET`` with the ``channel -> [{ts, value}]`` map."""

    name = "http"

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def fetch(self) -> Mapping[str, Any]:
        resp = self._client.get(self._url)
        resp.raise_for_status()
        return resp.json()

    def close(self) -> None:
        self._client.close()


def _to_sample(channel: str, raw: Any) -> Sample:
    if not isinstance(raw, Mapping):
        raise TelemetryFormatError(f"{channel}: sample is not an object")
    ts = raw.get("ts")
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        raise TelemetryFormatError(f"{channel}: sample lacks numeric ts")
    try:
        value = float(raw["value"])
        if not (math.isfinite(ts) and math.isfinite(value)):
            raise ValueError("non-finite ts/value")
        return Sample(ts=int(ts), value=value)
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        raise TelemetryFormatError(f"{channel}: sample lacks numeric ts/value") from e


def normalize_series(
    payload: Any, *, window: int = DEFAULT_WINDOW
) -> dict[str, tuple[Sample, ...]]:
    """Map a native-keyed payload onto pull channel names.

    Samples come back sorted by timestamp and trimmed to the trailing
    ``window``. A channel absent from the payload gets an empty series.
    """
    if not isinstance(payload, Mapping):
        raise TelemetryFormatError("telemetry payload is not an object")

    series: dict[str, tuple[Sample, ...]] = {c.name: () for c in PULL_CHANNELS}
    for key, raw_samples in payload.items():
        channel = pull_channel_for_key(key)
        if channel is None:
            continue
        if raw_samples is None:
            continue
        if not isinstance(raw_samples, list):
            raise TelemetryFormatError(f"{key}: expected a list of samples")
        samples = sorted((_to_sample(key, s) for s in raw_samples), key=lambda s: s.ts)
        series[channel.name] = tuple(samples[-window:]) if window > 0 else ()
    return series


class PullIngestionService:
    def __init__(
        self,
        *,
        source: TelemetrySource,
        store: DashboardStore,
        window: int = DEFAULT_WINDOW,
    ) -> None:
        self._source = source
        self._store = store
        self._window = window
        self._in_flight = threading.Lock()

    @property
    def source_name(self) -> str:
        return self._source.name

    def tick(self) -> bool:
        """Run one fetch cycle. Returns False when skipped or failed."""
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Previous %s cycle still running; tick skipped", self._source.name)
            return False
        try:
            return self._cycle()
        finally:
            self._in_flight.release()

    def _cycle(self) -> bool:
        try:
            payload = self._source.fetch()
            series = normalize_series(payload, window=self._window)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Telemetry source %s answered %d; keeping last values",
                self._source.name,
                e.response.status_code,
            )
            return False
        except (httpx.HTTPError, TelemetrySourceError, ValueError) as e:
            logger.warning(
                "Telemetry cycle from %s failed: %s; keeping last values",
                self._source.name,
                e,
            )
            return False

        self._store.dispatch(
            SeriesReplaced(series=series, received_at=datetime.now(tz=timezone.utc))
        )
        return True


class TelemetryPoller:
    def __init__(
        self,
        service: PullIngestionService,
        *,
        interval_seconds: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._service = service
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="telemetry-poller", daemon=True
        )
        self._thread.start()
        logger.info(
            "Polling %s every %.0fs", self._service.source_name, self._interval
        )

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._service.tick()
            except Exception:
                logger.exception("Unexpected error in telemetry cycle")
            self._stop_event.wait(self._interval)
