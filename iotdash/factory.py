from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from iotdash.api.router import api_router
from iotdash.clients.realtime import MqttRealtimeFeed, RealtimeFeed
from iotdash.clients.thingsboard import ThingsBoardClient
from iotdash.core.config import Settings, load_settings
from iotdash.core.logs import configure_logging
from iotdash.services.ingestion import (
    HttpTelemetrySource,
    MockTelemetrySource,
    PullIngestionService,
    TelemetryPoller,
    TelemetrySource,
    ThingsBoardTelemetrySource,
)
from iotdash.services.push import PushIngestionService
from iotdash.services.state import DashboardStore
from iotdash.web.router import ui_router

logger = logging.getLogger(__name__)


def create_thingsboard_client(settings: Settings) -> ThingsBoardClient | None:
    if not settings.thingsboard_configured:
        return None
    return ThingsBoardClient(
        base_url=str(settings.thingsboard_api_url),
        token=settings.thingsboard_token or "",
        device_id=settings.thingsboard_device_id or "",
        timeout_seconds=settings.telemetry_timeout_seconds,
    )


def create_telemetry_source(
    settings: Settings, thingsboard: ThingsBoardClient | None
) -> TelemetrySource:
    if settings.telemetry_source == "thingsboard":
        return ThingsBoardTelemetrySource(thingsboard)
    if settings.telemetry_source == "http":
        if settings.telemetry_source_url is None:
            raise ValueError("APP_TELEMETRY_SOURCE_URL is required for the http source")
        return HttpTelemetrySource(
            url=str(settings.telemetry_source_url),
            timeout_seconds=settings.telemetry_timeout_seconds,
        )
    return MockTelemetrySource()


def create_realtime_feed(settings: Settings) -> RealtimeFeed:
    return MqttRealtimeFeed(
        host=settings.mqtt_host,
        port=settings.mqtt_port,
        username=settings.mqtt_username,
        password=settings.mqtt_password,
    )


def create_app(
    settings: Settings | None = None,
    *,
    source: TelemetrySource | None = None,
    feed: RealtimeFeed | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.dashboard_store = DashboardStore()
        app.state.thingsboard_client = create_thingsboard_client(settings)

        pull_source = source or create_telemetry_source(
            settings, app.state.thingsboard_client
        )
        app.state.pull_service = PullIngestionService(
            source=pull_source,
            store=app.state.dashboard_store,
            window=settings.telemetry_window,
        )

        poller: TelemetryPoller | None = None
        if settings.poll_enabled:
            poller = TelemetryPoller(app.state.pull_service)
            poller.start()

        push_feed: RealtimeFeed | None = None
        app.state.push_service = None
        if settings.push_enabled:
            push_feed = feed or create_realtime_feed(settings)
            app.state.push_service = PushIngestionService(
                store=app.state.dashboard_store,
                feed=push_feed,
                path=settings.push_path,
            )
            app.state.push_service.start()

        yield

        if poller is not None:
            poller.stop()
        if app.state.push_service is not None:
            app.state.push_service.stop()
        if push_feed is not None:
            push_feed.close()
        # The thingsboard source shares its client with the proxy route.
        if not isinstance(pull_source, ThingsBoardTelemetrySource):
            pull_source.close()
        if app.state.thingsboard_client is not None:
            app.state.thingsboard_client.close()

    docs_enabled = settings.docs_enabled and not settings.is_production
    app = FastAPI(
        title="IoT Telemetry Dashboard",
        version="0.1.0",
        debug=settings.debug,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    if settings.trusted_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if settings.is_production:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response

    @app.get("/", tags=["meta"])
    def root():
        return {"name": "iotdash", "status": "ok"}

    @app.get("/health", tags=["meta"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(api_router)
    app.include_router(ui_router)

    static_dir = Path(__file__).resolve().parent / "web" / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    return app
