"""Slot machine FastAPI application."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from slotmachine.config import Settings, settings
from slotmachine.ledger import SessionManager
from slotmachine.logic.engine import SlotMachine, build_slot_machine
from slotmachine.middleware import (
    ErrorHandlerMiddleware,
    RequestLoggingMiddleware,
    SessionCookieMiddleware,
)
from slotmachine.protocol import (
    CashoutResponse,
    HealthResponse,
    RollResponse,
    SessionResponse,
)
from slotmachine.services import SlotService
from slotmachine.telemetry import TelemetryService


logger = logging.getLogger(__name__)

API_PREFIX = "/api/slot"


def configure_logging(config: Settings) -> None:
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _get_service(request: Request) -> SlotService:
    return request.app.state.service


def _set_session_cookie(response: Response, config: Settings, session_id: str) -> None:
    response.set_cookie(
        key=config.session_cookie_name,
        value=session_id,
        httponly=True,
        samesite="lax",
        path="/",
        secure=config.cookie_secure,
    )


def _clear_session_cookie(response: Response, config: Settings) -> None:
    response.delete_cookie(key=config.session_cookie_name, path="/")


def create_app(
    config: Settings | None = None,
    ledger: SessionManager | None = None,
    machine: SlotMachine | None = None,
    telemetry: TelemetryService | None = None,
) -> FastAPI:
    """
    Build the application with its own ledger and engine.

    Every collaborator can be injected; anything omitted is built from
    config.
    """
    config = config or settings
    configure_logging(config)

    ledger = ledger or SessionManager(
        initial_credits=config.initial_credits,
        lock_timeout_seconds=config.lock_timeout_seconds,
    )
    machine = machine or build_slot_machine(config)
    service = SlotService(ledger, machine, telemetry=telemetry, config=config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Slot service starting: symbols=%s roll_cost=%d initial_credits=%d "
            "(sessions are held in memory and lost on restart)",
            config.symbols,
            config.roll_cost,
            config.initial_credits,
        )
        yield
        logger.info("Slot service stopping: %d active session(s) dropped", len(ledger))

    app = FastAPI(
        title="Slot Machine",
        version="0.1.0",
        description="Session-based three-reel slot machine",
        debug=config.debug,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.ledger = ledger
    app.state.service = service

    # Last added runs first.
    app.add_middleware(SessionCookieMiddleware, cookie_name=config.session_cookie_name)
    app.add_middleware(ErrorHandlerMiddleware, protocol_version=config.protocol_version)
    app.add_middleware(RequestLoggingMiddleware)
    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint."""
        return HealthResponse().model_dump()

    @app.get(f"{API_PREFIX}/session")
    async def get_session(request: Request, response: Response) -> dict:
        """Return the caller's balance, opening a session if needed."""
        svc = _get_service(request)
        session, created = svc.resolve_or_create_session(request.state.session_id)
        if created:
            _set_session_cookie(response, config, session.id)
        return SessionResponse(credits=session.credits).model_dump()

    @app.post(f"{API_PREFIX}/roll")
    async def roll(request: Request, response: Response) -> dict:
        """Spend one roll; the cookie is cleared when the session hits zero."""
        receipt = await _get_service(request).roll(request.state.session_id)
        if receipt.session_destroyed:
            _clear_session_cookie(response, config)
        return RollResponse(
            symbols=list(receipt.symbols),
            credits=receipt.credits,
            isWin=receipt.is_win,
            reward=receipt.reward,
        ).model_dump()

    @app.post(f"{API_PREFIX}/cashout")
    async def cashout(request: Request, response: Response) -> dict:
        """Close the session and return its balance."""
        receipt = await _get_service(request).cashout(request.state.session_id)
        _clear_session_cookie(response, config)
        return CashoutResponse(
            credits=receipt.credits,
            message=receipt.message,
        ).model_dump()

    return app


app = create_app()


def run() -> None:
    """Serve the app. Always a single worker: each process has its own ledger."""
    uvicorn.run(
        "slotmachine.main:app",
        host=settings.host,
        port=settings.port,
        workers=1,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
