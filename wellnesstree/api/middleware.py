"""API middleware for the Wellness Tree API.

Request ID correlation, bearer API key checks and a last-resort
500 handler. Every error these produce uses the same envelope as
the routers: ``{error_code, message, details, request_id}``.
"""

import secrets
import time
from typing import Any, Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from wellnesstree.infrastructure.config import settings

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

PUBLIC_PATHS = frozenset({"/health", "/ready", "/docs", "/redoc", "/openapi.json"})


def error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render the standard error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details or {},
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and log its outcome.

    The ID comes from the ``X-Request-ID`` header when the caller
    sends one. It is stored on ``request.state``, bound into the
    structlog context for the request, and echoed on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Require ``Authorization: Bearer <api_key>`` outside the public paths."""

    def __init__(
        self,
        app: ASGIApp,
        api_key: str | None = None,
        public_paths: frozenset[str] = PUBLIC_PATHS,
    ) -> None:
        super().__init__(app)
        self.api_key = api_key
        self.public_paths = public_paths

    def is_public(self, path: str) -> bool:
        path = path.rstrip("/") or "/"
        return path in self.public_paths or path.startswith(("/docs", "/redoc"))

    def check(self, authorization: str | None) -> tuple[str, str] | None:
        """Validate an Authorization header.

        Returns:
            ``(error_code, message)`` on failure, None when the key is valid.
        """
        if not authorization:
            return "UNAUTHORIZED", "Missing Authorization header"

        scheme, _, key = authorization.partition(" ")
        if scheme.lower() != "bearer" or not key:
            return "UNAUTHORIZED", "Invalid Authorization header format. Use 'Bearer <api_key>'"

        expected = self.api_key if self.api_key is not None else settings.api_key
        if not secrets.compare_digest(key.encode(), expected.encode()):
            return "INVALID_API_KEY", "Invalid API key"
        return None

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.is_public(request.url.path):
            return await call_next(request)

        failure = self.check(request.headers.get("Authorization"))
        if failure is not None:
            error_code, message = failure
            logger.warning(
                "API key rejected",
                error_code=error_code,
                path=request.url.path,
                method=request.method,
            )
            return error_response(
                request,
                status.HTTP_401_UNAUTHORIZED,
                error_code,
                message,
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.authenticated = True
        return await call_next(request)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn exceptions that escaped every handler into a 500 envelope."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return error_response(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "INTERNAL_ERROR",
                "An internal error occurred",
            )


def setup_middleware(app: FastAPI) -> None:
    """Install the middleware stack.

    Starlette runs the last added middleware first, so request IDs
    are assigned before authentication and error handling run.
    """
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(ApiKeyMiddleware)
    app.add_middleware(RequestIdMiddleware)
