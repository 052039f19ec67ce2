from fastapi import APIRouter

from iotdash.api.routes import auth, dashboard, telemetry

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(telemetry.router, tags=["telemetry"])
api_router.include_router(dashboard.router, tags=["dashboard"])
