from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from iotdash.models.telemetry import DashboardState, Direction
from iotdash.services.channels import thresholds


class SamplePoint(BaseModel):
    ts: int
    value: float


class ThresholdOut(BaseModel):
    bound: float
    direction: Direction


class DashboardSnapshot(BaseModel):
    series: dict[str, list[SamplePoint]] = Field(default_factory=dict)
    current: dict[str, float] = Field(default_factory=dict)
    alerts: dict[str, bool] = Field(default_factory=dict)
    thresholds: dict[str, ThresholdOut] = Field(default_factory=dict)
    push: dict[str, float | str] = Field(default_factory=dict)
    last_pull_at: datetime | None = None
    last_push_at: datetime | None = None

    @classmethod
    def from_state(cls, state: DashboardState) -> DashboardSnapshot:
        return cls(
            series={
                name: [SamplePoint(ts=s.ts, value=s.value) for s in samples]
                for name, samples in state.series.items()
            },
            current=dict(state.current),
            alerts=dict(state.alerts),
            thresholds={
                name: ThresholdOut(bound=rule.bound, direction=rule.direction)
                for name, rule in thresholds().items()
            },
            push=dict(state.push),
            last_pull_at=state.last_pull_at,
            last_push_at=state.last_push_at,
        )


class RefreshResponse(BaseModel):
    updated: bool
    source: str


class PushDummyResponse(BaseModel):
    path: str = Field(min_length=1)
    record: dict[str, Any]
