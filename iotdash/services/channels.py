from __future__ import annotations

from iotdash.models.telemetry import Channel, Direction, Source, ThresholdRule

PULL_CHANNELS: tuple[Channel, ...] = (
    Channel(
        "temperature",
        Source.PULL,
        key="temperature",
        label="Temperature",
        unit="°C",
        rule=ThresholdRule(25.0, Direction.ABOVE),
    ),
    Channel(
        "humidity",
        Source.PULL,
        key="humidity",
        label="Humidity",
        unit="%",
        rule=ThresholdRule(60.0, Direction.ABOVE),
    ),
    Channel(
        "wind_speed",
        Source.PULL,
        key="windSpeed",
        label="Wind Speed",
        unit="km/h",
        rule=ThresholdRule(10.0, Direction.ABOVE),
    ),
    Channel(
        "pressure",
        Source.PULL,
        key="pressure",
        label="Pressure",
        unit="hPa",
        rule=ThresholdRule(1010.0, Direction.BELOW),
    ),
)

# Station record published on the realtime path. No alert rules yet.
PUSH_CHANNELS: tuple[Channel, ...] = (
    Channel("temperature_in", Source.PUSH, key="tempIn", label="Indoor Temperature", unit="°C"),
    Channel("temperature_out", Source.PUSH, key="tempOut", label="Outdoor Temperature", unit="°C"),
    Channel("humidity_in", Source.PUSH, key="humIn", label="Indoor Humidity", unit="%"),
    Channel("humidity_out", Source.PUSH, key="humOut", label="Outdoor Humidity", unit="%"),
    Channel("station_pressure", Source.PUSH, key="pressure", label="Pressure", unit="hPa"),
    Channel("rainfall", Source.PUSH, key="rainfall", label="Rainfall", unit="mm"),
    Channel(
        "wind_direction",
        Source.PUSH,
        key="windDirection",
        label="Wind Direction",
        default="NA",
    ),
    Channel("station_wind_speed", Source.PUSH, key="windSpeed", label="Wind Speed", unit="km/h"),
    Channel("wind_average", Source.PUSH, key="windAvg", label="Average Wind", unit="km/h"),
)

CHANNELS: tuple[Channel, ...] = PULL_CHANNELS + PUSH_CHANNELS

# Keys requested from upstream timeseries APIs, in wire naming.
PULL_KEYS: tuple[str, ...] = tuple(c.key for c in PULL_CHANNELS)

_BY_NAME: dict[str, Channel] = {c.name: c for c in CHANNELS}
_PULL_BY_KEY: dict[str, Channel] = {c.key: c for c in PULL_CHANNELS}
_PUSH_BY_KEY: dict[str, Channel] = {c.key: c for c in PUSH_CHANNELS}


def get_channel(name: str) -> Channel:
    return _BY_NAME[name]


def pull_channel_for_key(key: str) -> Channel | None:
    return _PULL_BY_KEY.get(key)


def push_channel_for_key(key: str) -> Channel | None:
    return _PUSH_BY_KEY.get(key)


def thresholds() -> dict[str, ThresholdRule]:
    return {c.name: c.rule for c in CHANNELS if c.rule is not None}
