"""Synthetic telemetry for running the dashboard without a live backend.

Each call produces an independent hour of plausible history: the random walk
always starts from the same base values, so consecutive calls do not continue
one another. Trailing samples are sometimes overwritten with a spike so the
alert path gets exercised.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass

DATA_POINTS = 60
INTERVAL_MS = 60_000


@dataclass(frozen=True)
class WalkSpec:
    base: float
    step: float
    precision: int
    low: float
    high: float


@dataclass(frozen=True)
class SpikeSpec:
    probability: float
    count: int
    floor: float
    spread: float


WALKS: dict[str, WalkSpec] = {
    "temperature": WalkSpec(base=23.5, step=0.5, precision=2, low=18.0, high=35.0),
    "humidity": WalkSpec(base=55.0, step=2.0, precision=1, low=30.0, high=95.0),
    "windSpeed": WalkSpec(base=8.0, step=1.0, precision=1, low=0.0, high=25.0),
    "pressure": WalkSpec(base=1013.0, step=0.5, precision=1, low=970.0, high=1040.0),
}

SPIKES: dict[str, SpikeSpec] = {
    "temperature": SpikeSpec(probability=0.5, count=5, floor=27.0, spread=5.0),
    "humidity": SpikeSpec(probability=0.4, count=7, floor=62.0, spread=15.0),
    "windSpeed": SpikeSpec(probability=0.3, count=3, floor=11.0, spread=8.0),
}


def _uniform(rng: random.Random, low: float, high: float, precision: int) -> float:
    return round(rng.uniform(low, high), precision)


def timestamps(end_ms: int, count: int = DATA_POINTS, interval_ms: int = INTERVAL_MS) -> list[int]:
    start = end_ms - (count - 1) * interval_ms
    return [start + i * interval_ms for i in range(count)]


def generate_mock_telemetry(
    *,
    now_ms: int | None = None,
    rng: random.Random | None = None,
    data_points: int = DATA_POINTS,
) -> dict[str, list[dict[str, float]]]:
    if data_points < 1:
        raise ValueError("data_points must be >= 1")
    rng = rng or random.Random()
    end_ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    ts = timestamps(end_ms, data_points)

    result: dict[str, list[dict[str, float]]] = {}
    for key, walk in WALKS.items():
        value = walk.base
        points: list[dict[str, float]] = []
        for t in ts:
            value += _uniform(rng, -walk.step, walk.step, walk.precision)
            value = max(walk.low, min(walk.high, value))
            points.append({"ts": t, "value": value})
        result[key] = points

    for key, spike in SPIKES.items():
        if rng.random() >= spike.probability:
            continue
        walk = WALKS[key]
        for point in result[key][-spike.count :]:
            value = spike.floor + _uniform(rng, 0.0, spike.spread, 1)
            point["value"] = max(walk.low, min(walk.high, value))
    return result
