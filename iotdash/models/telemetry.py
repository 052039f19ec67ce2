from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


class Direction(str, enum.Enum):
    ABOVE = "above"
    BELOW = "below"


class Source(str, enum.Enum):
    PULL = "pull"
    PUSH = "push"


@dataclass(frozen=True)
class Sample:
    ts: int
    value: float


@dataclass(frozen=True)
class ThresholdRule:
    bound: float
    direction: Direction

    def describe(self) -> str:
        op = ">" if self.direction is Direction.ABOVE else "<"
        return f"{op}{self.bound:g}"


@dataclass(frozen=True)
class Channel:
    name: str
    source: Source
    key: str
    label: str
    unit: str = ""
    rule: ThresholdRule | None = None
    default: float | str = 0.0


@dataclass(frozen=True)
class DashboardState:
    series: Mapping[str, tuple[Sample, ...]] = field(default_factory=dict)
    current: Mapping[str, float] = field(default_factory=dict)
    alerts: Mapping[str, bool] = field(default_factory=dict)
    push: Mapping[str, float | str] = field(default_factory=dict)
    last_pull_at: datetime | None = None
    last_push_at: datetime | None = None


@dataclass(frozen=True)
class SeriesReplaced:
    """A pull cycle produced a fresh window for every pull channel."""

    series: Mapping[str, tuple[Sample, ...]]
    received_at: datetime


@dataclass(frozen=True)
class PushReceived:
    """The realtime record changed; ``fields`` uses the wire field names."""

    fields: Mapping[str, Any]
    received_at: datetime
