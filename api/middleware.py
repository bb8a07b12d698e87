"""Request-scoped middleware for API requests."""

import logging
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from clients.identity import IdentityProvider, UnknownIdentityError

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ActorMiddleware(BaseHTTPMiddleware):
    """Resolves the bearer token to an Actor and stores it on request.state.

    The actor is handed to every service call explicitly; nothing is kept
    in ambient context. Public paths bypass the lookup.
    """

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, identity: IdentityProvider):
        super().__init__(app)
        self._identity = identity

    def _is_public_path(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "/") for p in self.PUBLIC_PATHS)

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )

        try:
            actor = self._identity.current_user(token.strip())
        except UnknownIdentityError:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.INVALID_TOKEN,
                    "Unknown or expired token",
                ).model_dump(mode="json"),
            )

        request.state.actor = actor
        return await call_next(request)
