"""Auth middleware: resolve the actor id from the Authorization header (or auth_token cookie) only.

Accepted forms:
  - Bearer <JWT> signed with JWT_SECRET; user id in the "sub" (or legacy "userId") claim
  - Bearer actor:<user_id>, outside production only (local dev and tests)
Actor identity in query/body is never read. Role is loaded from the users table per request.
"""

import logging
import os
import re

import jwt
from starlette.requests import Request
from starlette.responses import JSONResponse

from podtrack.api.config import config

logger = logging.getLogger(__name__)

# "Bearer actor:<id>" or "Bearer actor=<id>"
BEARER_ACTOR_PATTERN = re.compile(r"^Bearer\s+actor[:=](.+)$", re.IGNORECASE)

AUTH_COOKIE = "auth_token"
EXEMPT_PATHS = frozenset({"/health"})


def _is_production() -> bool:
    """Return True if environment indicates production."""
    env = (os.getenv("ENV") or os.getenv("ENVIRONMENT") or "").lower()
    return env in ("production", "prod")


def _parse_actor_from_jwt(token: str) -> str | None:
    """Verify the JWT signature and expiry; return the user id claim or None."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info("rejected auth token: %s", e)
        return None
    uid = str(payload.get("sub") or payload.get("userId") or "").strip()
    return uid or None


def _extract_actor_id(auth_header: str | None) -> str | None:
    """Parse the actor id from a Bearer Authorization header."""
    if not auth_header or not auth_header.strip().lower().startswith("bearer "):
        return None
    m = BEARER_ACTOR_PATTERN.match(auth_header.strip())
    if m:
        if _is_production():
            return None
        return m.group(1).strip() or None
    return _parse_actor_from_jwt(auth_header.strip()[7:].strip())


async def auth_middleware(request: Request, call_next):
    """Set request.state.actor_id or answer 401 before any route code runs. /health is exempt."""
    if request.url.path.rstrip("/") in EXEMPT_PATHS:
        return await call_next(request)

    actor_id = _extract_actor_id(request.headers.get("Authorization"))
    if actor_id is None:
        cookie = request.cookies.get(AUTH_COOKIE)
        if cookie:
            actor_id = _parse_actor_from_jwt(cookie)

    if not actor_id:
        return JSONResponse(status_code=401, content={"detail": "Unauthorized"})

    request.state.actor_id = actor_id
    return await call_next(request)
