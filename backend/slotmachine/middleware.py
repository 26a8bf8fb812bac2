"""Middleware for session cookies, request logging and error handling."""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from slotmachine.errors import ErrorCode, GameError


logger = logging.getLogger(__name__)


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Expose the session cookie as request.state.session_id."""

    def __init__(self, app, cookie_name: str):
        super().__init__(app)
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next):
        request.state.session_id = request.cookies.get(self.cookie_name) or None
        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request."""

    async def dispatch(self, request: Request, call_next):
        t0 = time.monotonic()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - t0) * 1000,
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Convert GameError exceptions to protocol-compliant responses."""

    def __init__(self, app, protocol_version: str):
        super().__init__(app)
        self.protocol_version = protocol_version

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except GameError as e:
            if e.code == ErrorCode.INTERNAL_INCONSISTENCY:
                logger.error("Ledger inconsistency on %s: %s", request.url.path, e.message)
            return e.to_response(self.protocol_version)
        except Exception as e:
            logger.exception("Unhandled error on %s", request.url.path)
            error = GameError(ErrorCode.INTERNAL_ERROR, str(e))
            return error.to_response(self.protocol_version)
