from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, get_settings
from .errors import ForbiddenError, UnauthenticatedError


security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    scopes: tuple[str, ...] = ()


def _decode_token(token: str, settings: Settings) -> dict:
    try:
        payload = jwt.decode(
            token,
            settings.secrets.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except jwt.PyJWTError as exc:  # pragma: no cover - library handles message
        raise UnauthenticatedError() from exc
    return payload


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    if not credentials:
        raise UnauthenticatedError("missing_authorization")

    payload = _decode_token(credentials.credentials, settings)
    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        raise UnauthenticatedError()

    scopes = tuple(payload.get("scopes") or [])

    context = AuthContext(user_id=str(user_id), scopes=scopes)
    request.state.auth = context
    return context


def authorize_owner(principal_id: Optional[str], record: Any) -> None:
    """Raise ForbiddenError unless ``principal_id`` owns ``record``.

    Callers must have confirmed the record exists; a missing record is a
    NotFoundError and takes precedence.
    """
    if record.user_id != principal_id:
        raise ForbiddenError(detail=f"video {record.id} is not owned by the caller")


__all__ = ["AuthContext", "get_auth_context", "authorize_owner"]
