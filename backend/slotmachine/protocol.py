"""Wire models for the /api/slot endpoints."""
from pydantic import BaseModel, Field


class SessionResponse(BaseModel):
    """GET /api/slot/session response."""

    credits: int


class RollResponse(BaseModel):
    """POST /api/slot/roll response."""

    symbols: list[str] = Field(..., min_length=3, max_length=3)
    credits: int
    isWin: bool
    reward: int


class CashoutResponse(BaseModel):
    """POST /api/slot/cashout response."""

    credits: int
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"
