from __future__ import annotations

import random

import pytest

from iotdash.services.mock import INTERVAL_MS, WALKS, generate_mock_telemetry

NOW_MS = 1_700_000_000_000


@pytest.mark.parametrize("seed", range(25))
def test_mock_shape_and_ranges(seed: int) -> None:
    data = generate_mock_telemetry(now_ms=NOW_MS, rng=random.Random(seed))
    assert set(data) == {"temperature", "humidity", "windSpeed", "pressure"}
    for key, points in data.items():
        assert len(points) == 60
        ts = [p["ts"] for p in points]
        assert ts[-1] == NOW_MS
        assert all(b - a == INTERVAL_MS for a, b in zip(ts, ts[1:]))
        walk = WALKS[key]
        assert all(walk.low <= p["value"] <= walk.high for p in points)


def test_mock_is_stateless_across_calls() -> None:
    first = generate_mock_telemetry(now_ms=NOW_MS, rng=random.Random(7))
    second = generate_mock_telemetry(now_ms=NOW_MS, rng=random.Random(7))
    assert first == second


def test_mock_spikes_land_on_trailing_samples() -> None:
    # Every draw below the spike probability, so all three spikes fire.
    class Always(random.Random):
        def random(self) -> float:
            return 0.0

    data = generate_mock_telemetry(now_ms=NOW_MS, rng=Always(1))
    assert all(p["value"] >= 27.0 for p in data["temperature"][-5:])
    assert all(p["value"] >= 62.0 for p in data["humidity"][-7:])
    assert all(p["value"] >= 11.0 for p in data["windSpeed"][-3:])


def test_mock_rejects_empty_window() -> None:
    with pytest.raises(ValueError):
        generate_mock_telemetry(data_points=0)
