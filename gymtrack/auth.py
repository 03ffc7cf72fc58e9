from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import google.auth.transport.requests
from fastapi import Header, HTTPException, Query, WebSocketException, status
from google.auth import exceptions as gauth_exc
from google.oauth2 import id_token

from . import settings
from .logging import get_logger

logger = get_logger(__name__)

_request = google.auth.transport.requests.Request()


@dataclass(frozen=True)
class AuthenticatedUser:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


def parse_bearer(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Invalid Authorization scheme")
    token = authorization[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Empty bearer token")
    return token


class AuthNotConfigured(RuntimeError):
    pass


def verify_id_token(token: str) -> dict[str, Any]:
    """Verify a Firebase ID token and return its claims. Raises ValueError when invalid.

    Blocks on a certificate fetch, so callers must not run it on the event loop.
    """
    if not settings.FIREBASE_PROJECT_ID:
        raise AuthNotConfigured("FIREBASE_PROJECT_ID not set")
    try:
        claims = id_token.verify_firebase_token(token, _request, audience=settings.FIREBASE_PROJECT_ID)
    except gauth_exc.GoogleAuthError as exc:
        raise ValueError(str(exc)) from exc
    if not claims:
        raise ValueError("empty token claims")
    return claims


def user_from_claims(claims: dict[str, Any]) -> AuthenticatedUser:
    uid = claims.get("user_id") or claims.get("sub")
    if not uid:
        raise ValueError("token has no subject")
    return AuthenticatedUser(
        uid=str(uid),
        email=claims.get("email"),
        display_name=claims.get("name"),
        avatar_url=claims.get("picture"),
    )


# Plain `def` dependencies: FastAPI runs them in its threadpool.
def require_user(authorization: str | None = Header(default=None)) -> AuthenticatedUser:
    token = parse_bearer(authorization)
    try:
        return user_from_claims(verify_id_token(token))
    except AuthNotConfigured as exc:
        logger.error("auth_misconfigured", error=str(exc))
        raise HTTPException(status_code=500, detail="Server misconfigured: FIREBASE_PROJECT_ID not set") from exc
    except ValueError as exc:
        logger.info("auth_rejected", reason=str(exc))
        raise HTTPException(status_code=401, detail="Invalid token") from exc


def require_ws_user(token: str | None = Query(default=None)) -> AuthenticatedUser:
    # Browsers cannot set headers on a WebSocket handshake, so the token rides in the query.
    if not token:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Missing token")
    try:
        return user_from_claims(verify_id_token(token))
    except AuthNotConfigured as exc:
        logger.error("auth_misconfigured", error=str(exc), transport="websocket")
        raise WebSocketException(code=status.WS_1011_INTERNAL_ERROR, reason="Server misconfigured") from exc
    except ValueError as exc:
        logger.info("auth_rejected", reason=str(exc), transport="websocket")
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token") from exc
