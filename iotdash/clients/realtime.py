"""Realtime key-value feed on top of an MQTT broker.

A path such as ``telemetry`` is an MQTT topic holding one retained JSON
record. Subscribing delivers the current record right away (the retained
message) and again every time a publisher replaces it.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Protocol

import paho.mqtt.client as mqtt

from iotdash.core.errors import RealtimeFeedError

logger = logging.getLogger(__name__)

RecordCallback = Callable[[Any], None]


class Subscription(Protocol):
    def close(self) -> None: ...


class RealtimeFeed(Protocol):
    def subscribe(self, path: str, callback: RecordCallback) -> Subscription: ...

    def publish(self, path: str, record: dict[str, Any]) -> None: ...

    def close(self) -> None: ...


class MqttSubscription:
    def __init__(self, feed: MqttRealtimeFeed, path: str) -> None:
        self._feed = feed
        self._path = path
        self._closed = False

    @property
    def path(self) -> str:
        return self._path

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._feed._unsubscribe(self._path)


class MqttRealtimeFeed:
    def __init__(
        self,
        *,
        host: str,
        port: int = 1883,
        username: str | None = None,
        password: str | None = None,
        client_id: str = "iotdash",
        connect_timeout_seconds: float = 5.0,
    ) -> None:
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout_seconds
        self._lock = threading.Lock()
        self._callbacks: dict[str, RecordCallback] = {}
        self._connected = threading.Event()
        self._started = False

        self._client = mqtt.Client(
            client_id=f"{client_id}-{int(time.time())}",
            protocol=mqtt.MQTTv311,
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        )
        if username and password:
            self._client.username_pw_set(username, password)
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    def start(self) -> None:
        if self._started:
            return
        logger.info("Connecting to MQTT broker %s:%d", self._host, self._port)
        self._client.connect_async(self._host, self._port, keepalive=60)
        self._client.loop_start()
        self._started = True

    def close(self) -> None:
        if not self._started:
            return
        self._started = False
        try:
            self._client.disconnect()
        finally:
            self._client.loop_stop()
        self._connected.clear()
        logger.info("MQTT feed closed")

    def subscribe(self, path: str, callback: RecordCallback) -> MqttSubscription:
        with self._lock:
            self._callbacks[path] = callback
        self.start()
        if self.connected:
            self._client.subscribe(path, qos=1)
        logger.info("Subscribed to realtime path %s", path)
        return MqttSubscription(self, path)

    def publish(self, path: str, record: dict[str, Any]) -> None:
        self.start()
        if not self._connected.wait(self._connect_timeout):
            raise RealtimeFeedError(f"MQTT broker {self._host}:{self._port} not reachable")
        info = self._client.publish(path, json.dumps(record), qos=1, retain=True)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise RealtimeFeedError(f"Publish to {path} failed (rc={info.rc})")
        info.wait_for_publish(timeout=self._connect_timeout)

    def _unsubscribe(self, path: str) -> None:
        with self._lock:
            self._callbacks.pop(path, None)
        if self.connected:
            self._client.unsubscribe(path)
        logger.info("Unsubscribed from realtime path %s", path)

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error("MQTT connection refused: %s", reason_code)
            return
        self._connected.set()
        with self._lock:
            paths = list(self._callbacks)
        for path in paths:
            client.subscribe(path, qos=1)
        logger.info("Connected to MQTT broker, %d path(s) subscribed", len(paths))

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._connected.clear()
        logger.warning("Disconnected from MQTT broker (%s)", reason_code)

    def _on_message(self, client, userdata, msg):
        with self._lock:
            callback = self._callbacks.get(msg.topic)
        if callback is None:
            return
        try:
            record = json.loads(msg.payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Invalid JSON on %s: %s", msg.topic, e)
            return
        try:
            callback(record)
        except Exception:
            logger.exception("Realtime callback for %s failed", msg.topic)
