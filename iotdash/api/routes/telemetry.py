from __future__ import annotations

import logging
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from iotdash.api.deps import get_thingsboard_client
from iotdash.clients.thingsboard import ThingsBoardClient
from iotdash.services.channels import PULL_KEYS
from iotdash.services.mock import generate_mock_telemetry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/mock-telemetry")
def mock_telemetry() -> JSONResponse:
    try:
        return JSONResponse(generate_mock_telemetry())
    except Exception as e:  # noqa: BLE001 - wire contract is {"error": ...}
        logger.exception("Error generating mock data")
        return JSONResponse(
            {"error": str(e) or "Failed to generate mock data"}, status_code=500
        )


@router.get("/telemetry")
def live_telemetry(
    client: Annotated[ThingsBoardClient | None, Depends(get_thingsboard_client)],
) -> JSONResponse:
    if client is None:
        return JSONResponse(
            {"error": "ThingsBoard credentials not configured"}, status_code=500
        )
    try:
        resp = client.fetch_timeseries_response(PULL_KEYS)
        if not resp.is_success:
            logger.error(
                "ThingsBoard API error: %d %s", resp.status_code, resp.reason_phrase
            )
            return JSONResponse(
                {"error": "Failed to fetch data from ThingsBoard"},
                status_code=resp.status_code,
            )
        return JSONResponse(resp.json())
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("Error in telemetry proxy")
        return JSONResponse(
            {"error": str(e) or "Failed to fetch telemetry data"}, status_code=500
        )
