"""Bearer-token middleware for the Track Store proxy.

- Applies to every path under ``/api/``
- Reads the Spotify access token from ``Authorization: Bearer <token>``
- Stores it on ``request.state.access_token`` for the route handlers
- OAuth routes (``/login``, ``/callback``, ``/refresh-token``) and health
  checks are outside ``/api/`` and never require a token
- The token is not validated here; Spotify is the authority and a rejected
  token comes back from upstream as a 401
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

from core.logging_config import token_fingerprint

logger = logging.getLogger(__name__)

PROTECTED_PREFIX = "/api/"


def extract_bearer_token(header: str) -> str | None:
    """Return the token part of a ``Bearer`` authorization header."""
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that requires a bearer token on ``/api/*``."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not request.url.path.startswith(PROTECTED_PREFIX):
            return await call_next(request)

        # CORS preflight is answered by CORSMiddleware
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if not auth_header:
            logger.warning("No authorization header provided for %s", request.url.path)
            return JSONResponse(status_code=401, content={"detail": "No authorization header"})

        token = extract_bearer_token(auth_header)
        if token is None:
            return JSONResponse(
                status_code=401,
                content={"detail": "Missing or invalid Authorization header"},
            )

        request.state.access_token = token
        logger.debug("Bearer token accepted", extra={"token": token_fingerprint(token)})
        return await call_next(request)


async def get_access_token(request: Request) -> str:
    """FastAPI dependency: the bearer token set by the auth middleware."""
    token: str | None = getattr(request.state, "access_token", None)
    if not token:
        raise HTTPException(status_code=401, detail="No authorization header")
    return token
