"""Error codes and exceptions for the slot service."""
from enum import Enum

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from slotmachine.config import settings


class ErrorCode(str, Enum):
    """Error codes surfaced to callers."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    ROUND_IN_PROGRESS = "ROUND_IN_PROGRESS"
    INTERNAL_INCONSISTENCY = "INTERNAL_INCONSISTENCY"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.INSUFFICIENT_CREDITS: 400,
    ErrorCode.ROUND_IN_PROGRESS: 409,
    ErrorCode.INTERNAL_INCONSISTENCY: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}

ERROR_RECOVERABLE: dict[ErrorCode, bool] = {
    ErrorCode.INVALID_REQUEST: False,
    ErrorCode.UNAUTHORIZED: False,
    ErrorCode.INSUFFICIENT_CREDITS: False,
    ErrorCode.ROUND_IN_PROGRESS: True,
    ErrorCode.INTERNAL_INCONSISTENCY: False,
    ErrorCode.INTERNAL_ERROR: True,
}


class ErrorBody(BaseModel):
    """Error body shape."""

    code: str
    message: str
    recoverable: bool


class ErrorResponse(BaseModel):
    """Full error response."""

    protocolVersion: str = settings.protocol_version
    error: ErrorBody


class GameError(Exception):
    """Base game error that maps to protocol error response."""

    def __init__(self, code: ErrorCode, message: str | None = None):
        self.code = code
        self.message = message or f"Error: {code.value}"
        self.status_code = ERROR_HTTP_STATUS[code]
        self.recoverable = ERROR_RECOVERABLE[code]
        super().__init__(self.message)

    def to_response(self, protocol_version: str | None = None) -> JSONResponse:
        """Convert to JSONResponse, stamped with the app's protocol version."""
        return JSONResponse(
            status_code=self.status_code,
            content=ErrorResponse(
                protocolVersion=protocol_version or settings.protocol_version,
                error=ErrorBody(
                    code=self.code.value,
                    message=self.message,
                    recoverable=self.recoverable,
                )
            ).model_dump(),
        )


class LedgerInconsistencyError(GameError):
    """
    A session resolved earlier in the same operation vanished from the ledger.

    Only possible when per-session serialization is violated. Never retried
    and never reported as UNAUTHORIZED.
    """

    def __init__(self, session_id: str, stage: str):
        self.session_id = session_id
        self.stage = stage
        super().__init__(
            ErrorCode.INTERNAL_INCONSISTENCY,
            f"Session lost during {stage}",
        )
