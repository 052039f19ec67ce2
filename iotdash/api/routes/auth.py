from __future__ import annotations

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from iotdash.api.deps import ReadUser, authenticate_user, get_settings
from iotdash.core.config import Settings
from iotdash.core.security import TELEMETRY_SCOPES, create_access_token
from iotdash.schemas.auth import Token, User

router = APIRouter(prefix="/auth")


def _granted_scopes(requested: list[str], user: User) -> list[str]:
    """Narrow the token to the scopes asked for; no request means all of the user's."""
    if not requested:
        return list(user.scopes)
    unknown = [s for s in requested if s not in TELEMETRY_SCOPES]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown scope(s): {', '.join(unknown)}",
        )
    return [s for s in user.scopes if s in requested]


@router.post("/token", response_model=Token)
def issue_dashboard_token(
    response: Response,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Token:
    user = authenticate_user(
        username=form_data.username, password=form_data.password, settings=settings
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    scopes = _granted_scopes(form_data.scopes, user)
    expires = timedelta(minutes=settings.access_token_expire_minutes)
    token = create_access_token(
        subject=user.username,
        scopes=scopes,
        settings=settings,
        expires_delta=expires,
    )

    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return Token(
        access_token=token,
        scope=" ".join(scopes),
        expires_in=int(expires.total_seconds()),
    )


@router.get("/me", response_model=User)
def read_dashboard_user(user: ReadUser) -> User:
    return user
