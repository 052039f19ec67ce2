from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from iotdash.api.deps import (
    ReadUser,
    WriteUser,
    get_dashboard_store,
    get_pull_service,
    get_push_service,
)
from iotdash.core.errors import RealtimeFeedError
from iotdash.schemas.telemetry import DashboardSnapshot, PushDummyResponse, RefreshResponse
from iotdash.services.ingestion import PullIngestionService
from iotdash.services.push import PushIngestionService
from iotdash.services.state import DashboardStore

router = APIRouter()


@router.get("/dashboard", response_model=DashboardSnapshot)
def read_dashboard(
    _: ReadUser,
    store: Annotated[DashboardStore, Depends(get_dashboard_store)],
) -> DashboardSnapshot:
    return DashboardSnapshot.from_state(store.snapshot())


@router.post("/dashboard/refresh", response_model=RefreshResponse)
def refresh_dashboard(
    _: WriteUser,
    service: Annotated[PullIngestionService, Depends(get_pull_service)],
) -> RefreshResponse:
    return RefreshResponse(updated=service.tick(), source=service.source_name)


@router.post("/push/dummy", response_model=PushDummyResponse)
def push_dummy(
    _: WriteUser,
    service: Annotated[PushIngestionService | None, Depends(get_push_service)],
) -> PushDummyResponse:
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Realtime feed disabled",
        )
    try:
        record = service.publish_dummy()
    except RealtimeFeedError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Realtime broker unavailable",
        ) from e
    return PushDummyResponse(path=service.path, record=record)
