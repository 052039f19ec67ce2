"""Dashboard state: the reducer plus the projector and alert evaluator it uses.

Every change to what the dashboard shows goes through :func:`reduce`, which
never mutates its input. :class:`DashboardStore` holds the one live state
and swaps it under a lock, so readers always see a series together with the
current values and alerts derived from it.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Mapping, Sequence

from iotdash.models.telemetry import (
    Channel,
    DashboardState,
    Direction,
    PushReceived,
    Sample,
    SeriesReplaced,
    Source,
    ThresholdRule,
)
from iotdash.services.channels import (
    CHANNELS,
    PULL_CHANNELS,
    PUSH_CHANNELS,
    push_channel_for_key,
)

logger = logging.getLogger(__name__)

Event = SeriesReplaced | PushReceived


def project_current(series: Sequence[Sample]) -> float:
    if not series:
        return 0.0
    return float(series[-1].value)


def evaluate(rule: ThresholdRule, value: float) -> bool:
    if rule.direction is Direction.ABOVE:
        return value > rule.bound
    return value < rule.bound


def evaluate_alerts(
    current: Mapping[str, float],
    push: Mapping[str, float | str] | None = None,
    *,
    channels: Sequence[Channel] = CHANNELS,
) -> dict[str, bool]:
    """Evaluate every channel that carries a rule, pull or push."""
    push = push or {}
    alerts: dict[str, bool] = {}
    for channel in channels:
        if channel.rule is None:
            continue
        if channel.source is Source.PULL:
            value = current.get(channel.name, 0.0)
        else:
            value = push.get(channel.name, channel.default)
        if isinstance(value, str):
            continue
        alerts[channel.name] = evaluate(channel.rule, float(value))
    return alerts


def initial_state() -> DashboardState:
    current = {c.name: 0.0 for c in PULL_CHANNELS}
    push = {c.name: c.default for c in PUSH_CHANNELS}
    return DashboardState(
        series={c.name: () for c in PULL_CHANNELS},
        current=current,
        alerts=evaluate_alerts(current, push),
        push=push,
    )


def _coerce_push_value(default: float | str, raw: Any) -> float | str | None:
    if isinstance(default, str):
        return raw if isinstance(raw, str) else None
    if isinstance(raw, bool) or raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    return value if math.isfinite(value) else None


def _apply_series(state: DashboardState, event: SeriesReplaced) -> DashboardState:
    series = {c.name: tuple(event.series.get(c.name, ())) for c in PULL_CHANNELS}
    current = {name: project_current(samples) for name, samples in series.items()}
    return DashboardState(
        series=series,
        current=current,
        alerts=evaluate_alerts(current, state.push),
        push=state.push,
        last_pull_at=event.received_at,
        last_push_at=state.last_push_at,
    )


def _apply_push(state: DashboardState, event: PushReceived) -> DashboardState:
    push = dict(state.push)
    for key, raw in event.fields.items():
        channel = push_channel_for_key(key)
        if channel is None:
            continue
        value = _coerce_push_value(channel.default, raw)
        if value is None:
            logger.warning("Ignoring malformed push value for %s: %r", key, raw)
            continue
        push[channel.name] = value
    return DashboardState(
        series=state.series,
        current=state.current,
        alerts=evaluate_alerts(state.current, push),
        push=push,
        last_pull_at=state.last_pull_at,
        last_push_at=event.received_at,
    )


def reduce(state: DashboardState, event: Event) -> DashboardState:
    if isinstance(event, SeriesReplaced):
        return _apply_series(state, event)
    if isinstance(event, PushReceived):
        return _apply_push(state, event)
    raise TypeError(f"Unsupported dashboard event: {type(event).__name__}")


class DashboardStore:
    def __init__(self, state: DashboardState | None = None) -> None:
        self._lock = threading.Lock()
        self._state = state or initial_state()

    def dispatch(self, event: Event) -> DashboardState:
        with self._lock:
            self._state = reduce(self._state, event)
            return self._state

    def snapshot(self) -> DashboardState:
        with self._lock:
            return self._state
