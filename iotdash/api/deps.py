from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import OAuth2PasswordBearer, SecurityScopes

from iotdash.clients.thingsboard import ThingsBoardClient
from iotdash.core.config import Settings
from iotdash.core.security import TELEMETRY_SCOPES, verify_password
from iotdash.schemas.auth import User
from iotdash.services.ingestion import PullIngestionService
from iotdash.services.push import PushIngestionService
from iotdash.services.state import DashboardStore

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/auth/token",
    scopes=TELEMETRY_SCOPES,
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def authenticate_user(*, username: str, password: str, settings: Settings) -> User | None:
    if username != settings.admin_username:
        return None
    if not verify_password(password, settings.admin_password_hash):
        return None
    return User(username=username, scopes=list(TELEMETRY_SCOPES))


def get_dashboard_store(request: Request) -> DashboardStore:
    return request.app.state.dashboard_store


def get_pull_service(request: Request) -> PullIngestionService:
    return request.app.state.pull_service


def get_push_service(request: Request) -> PushIngestionService | None:
    service = getattr(request.app.state, "push_service", None)
    if not isinstance(service, PushIngestionService):
        return None
    return service


def get_thingsboard_client(request: Request) -> ThingsBoardClient | None:
    return getattr(request.app.state, "thingsboard_client", None)


def get_current_user(
    security_scopes: SecurityScopes,
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    authenticate_value = "Bearer"
    if security_scopes.scopes:
        authenticate_value = f'Bearer scope="{security_scopes.scope_str}"'

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": authenticate_value},
    )

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:  # noqa: BLE001 - normalize to 401
        raise credentials_exception from e

    sub = payload.get("sub")
    token_scopes = payload.get("scopes", [])
    if not isinstance(sub, str) or not isinstance(token_scopes, list):
        raise credentials_exception

    exp = payload.get("exp")
    if isinstance(exp, (int, float)) and exp < datetime.now(tz=timezone.utc).timestamp():
        raise credentials_exception

    user = User(username=sub, scopes=[str(s) for s in token_scopes])

    for scope in security_scopes.scopes:
        if scope not in user.scopes:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
                headers={"WWW-Authenticate": authenticate_value},
            )

    return user


ReadUser = Annotated[User, Security(get_current_user, scopes=["telemetry:read"])]
WriteUser = Annotated[User, Security(get_current_user, scopes=["telemetry:write"])]
