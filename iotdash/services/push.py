from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from iotdash.clients.realtime import RealtimeFeed, Subscription
from iotdash.models.telemetry import PushReceived
from iotdash.services.state import DashboardStore

logger = logging.getLogger(__name__)

DUMMY_PUSH_RECORD: dict[str, Any] = {
    "tempIn": 23.5,
    "tempOut": 30.1,
    "humIn": 55,
    "humOut": 48,
    "pressure": 1013,
    "rainfall": 2.5,
    "windDirection": "NE",
    "windSpeed": 3.2,
    "windAvg": 2.8,
}


class PushIngestionService:
    def __init__(self, *, store: DashboardStore, feed: RealtimeFeed, path: str) -> None:
        self._store = store
        self._feed = feed
        self._path = path
        self._subscription: Subscription | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    def handle(self, payload: Any) -> bool:
        if not isinstance(payload, Mapping):
            logger.warning("Dropping push record on %s: not an object", self._path)
            return False
        self._store.dispatch(
            PushReceived(fields=dict(payload), received_at=datetime.now(tz=timezone.utc))
        )
        return True

    def start(self) -> None:
        if self._subscription is None:
            self._subscription = self._feed.subscribe(self._path, self.handle)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def publish_dummy(self) -> dict[str, Any]:
        record = dict(DUMMY_PUSH_RECORD)
        self._feed.publish(self._path, record)
        logger.info("Dummy record written to %s", self._path)
        return record
