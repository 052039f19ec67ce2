from __future__ import annotations


class TelemetrySourceError(Exception):
    """A telemetry source could not produce a usable payload."""


class TelemetryFormatError(TelemetrySourceError, ValueError):
    """The payload did not have the ``channel -> [{ts, value}]`` shape."""


class ThingsBoardNotConfigured(TelemetrySourceError):
    def __init__(self) -> None:
        super().__init__("ThingsBoard credentials not configured")


class RealtimeFeedError(Exception):
    """The realtime broker rejected or dropped a subscribe/publish request."""
