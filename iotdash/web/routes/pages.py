from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Annotated, Sequence

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse

from iotdash.api.deps import authenticate_user, get_dashboard_store, get_settings
from iotdash.core.config import Settings
from iotdash.models.telemetry import Channel, DashboardState, Sample
from iotdash.schemas.auth import User
from iotdash.services.channels import PULL_CHANNELS, PUSH_CHANNELS
from iotdash.services.ingestion import POLL_INTERVAL_SECONDS
from iotdash.services.state import DashboardStore
from iotdash.web.deps import csrf_protect, ensure_csrf_token, require_session_user
from iotdash.web.templates import templates

router = APIRouter()

SPARK_WIDTH = 240
SPARK_HEIGHT = 48


@dataclass(frozen=True)
class Card:
    name: str
    label: str
    value: str
    alert: bool = False
    threshold: str | None = None
    sparkline: str = ""


def _format_value(channel: Channel, value: float | str) -> str:
    if isinstance(value, str):
        return value
    digits = 0 if channel.unit == "hPa" else 1
    if not channel.unit:
        return f"{value:.{digits}f}"
    sep = "" if channel.unit in {"%", "°C"} else " "
    return f"{value:.{digits}f}{sep}{channel.unit}"


def sparkline_points(
    samples: Sequence[Sample], *, width: int = SPARK_WIDTH, height: int = SPARK_HEIGHT
) -> str:
    if len(samples) < 2:
        return ""
    values = [s.value for s in samples]
    low, high = min(values), max(values)
    span = (high - low) or 1.0
    step = width / (len(values) - 1)
    return " ".join(
        f"{i * step:.1f},{height - (v - low) / span * height:.1f}"
        for i, v in enumerate(values)
    )


def _pull_cards(state: DashboardState) -> list[Card]:
    cards: list[Card] = []
    for channel in PULL_CHANNELS:
        threshold = None
        if channel.rule is not None:
            threshold = f"{channel.rule.describe()} {channel.unit}".rstrip()
        cards.append(
            Card(
                name=channel.name,
                label=channel.label,
                value=_format_value(channel, state.current.get(channel.name, 0.0)),
                alert=bool(state.alerts.get(channel.name, False)),
                threshold=threshold,
                sparkline=sparkline_points(state.series.get(channel.name, ())),
            )
        )
    return cards


def _push_cards(state: DashboardState) -> list[Card]:
    return [
        Card(
            name=channel.name,
            label=channel.label,
            value=_format_value(channel, state.push.get(channel.name, channel.default)),
        )
        for channel in PUSH_CHANNELS
    ]


@router.get("/", include_in_schema=False)
def ui_index(request: Request):
    if request.session.get("user"):
        return RedirectResponse("/ui/dashboard", status_code=303)
    return RedirectResponse("/ui/login", status_code=303)


@router.get("/login", include_in_schema=False)
def login_page(request: Request):
    csrf_token = ensure_csrf_token(request)
    return templates.TemplateResponse(
        request,
        "login.html",
        {"title": "Login", "csrf_token": csrf_token},
    )


@router.post("/login", include_in_schema=False, dependencies=[Depends(csrf_protect)])
def login_submit(
    request: Request,
    username: Annotated[str, Form(min_length=1, max_length=64)],
    password: Annotated[str, Form(min_length=1, max_length=256)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    user = authenticate_user(username=username, password=password, settings=settings)
    if not user:
        csrf_token = ensure_csrf_token(request)
        return templates.TemplateResponse(
            request,
            "login.html",
            {
                "title": "Login",
                "csrf_token": csrf_token,
                "error": "Invalid username or password",
            },
            status_code=401,
        )

    request.session["user"] = user.model_dump()
    request.session["csrf_token"] = secrets.token_urlsafe(32)
    return RedirectResponse("/ui/dashboard", status_code=303)


@router.get("/logout", include_in_schema=False)
def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/ui/login", status_code=303)


@router.get("/dashboard", include_in_schema=False)
def dashboard(
    request: Request,
    user: Annotated[User, Depends(require_session_user)],
    store: Annotated[DashboardStore, Depends(get_dashboard_store)],
):
    state = store.snapshot()
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": "Dashboard",
            "user": user,
            "pull_cards": _pull_cards(state),
            "push_cards": _push_cards(state),
            "last_pull_at": state.last_pull_at,
            "last_push_at": state.last_push_at,
            "refresh_seconds": int(POLL_INTERVAL_SECONDS),
            "spark_width": SPARK_WIDTH,
            "spark_height": SPARK_HEIGHT,
        },
    )
