# backend/hyve_relay/main.py
# Serve with `python -m hyve_relay` or `uvicorn --factory hyve_relay.main:create_app`.
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .deps import get_state, setup_cors
from .errors import NotFoundError, RelayError, ValidationError
from .models import (
    CompleteHandshakeIn,
    Handshake,
    HandshakeEntry,
    HandshakeStatus,
    InitHandshakeIn,
    Message,
    MessageIn,
    PairHandshakeIn,
)
from .storage import RelayState, utc_now
from .sweeper import ExpirySweeper

logger = logging.getLogger("hyve_relay.server")


def create_app(settings: Optional[Settings] = None, state: Optional[RelayState] = None) -> FastAPI:
    settings = settings or load_settings()
    state = state or RelayState()
    sweeper = ExpirySweeper(
        state.handshakes, settings.handshake_expiry, settings.sweep_interval_seconds
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(title="Hyve Relay", version="0.1.0", lifespan=lifespan)
    app.state.relay = state
    app.state.sweeper = sweeper
    app.state.settings = settings
    setup_cors(app, settings.cors_origins)

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.kind, "detail": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = []
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ())]
            field = ".".join(loc[1:]) or ".".join(loc)
            problems.append(f"{field}: {err.get('msg', 'invalid')}")
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"error": ValidationError.kind, "detail": "; ".join(problems)},
        )

    @app.get("/health")
    def health(relay: RelayState = Depends(get_state)):
        return {
            "status": "ok",
            "ts": utc_now().isoformat(),
            "handshakes": relay.handshakes.count_by_status(),
            "mailbox": relay.mailbox.stats(),
            "sweeper": sweeper.get_health(),
        }

    # -------------------- Key exchange --------------------
    @app.post("/exchanges/init", response_model=Handshake, status_code=status.HTTP_201_CREATED)
    def init_exchange(payload: InitHandshakeIn, relay: RelayState = Depends(get_state)):
        return relay.handshakes.init(
            payload.initiator_pubkey,
            payload.responder_pubkey,
            payload.initiator_kx_pubkey,
            payload.initiator_signature,
        )

    @app.post("/exchanges/pair", response_model=Handshake)
    def pair_exchange(payload: PairHandshakeIn, relay: RelayState = Depends(get_state)):
        return relay.handshakes.pair(
            payload.initiator_pubkey,
            payload.responder_pubkey,
            payload.encapsulated_secret,
            payload.responder_signature,
        )

    @app.post("/exchanges/complete", response_model=Handshake)
    def complete_exchange(payload: CompleteHandshakeIn, relay: RelayState = Depends(get_state)):
        return relay.handshakes.complete(payload.initiator_pubkey, payload.responder_pubkey)

    @app.get("/exchanges/{initiator}/{responder}/record", response_model=Handshake)
    def get_exchange(initiator: str, responder: str, relay: RelayState = Depends(get_state)):
        rec = relay.handshakes.get(initiator, responder)
        if rec is None:
            raise NotFoundError("exchange not found")
        return rec

    @app.get("/exchanges/{exchange_status}/{responder}", response_model=List[HandshakeEntry])
    def list_exchanges(
        exchange_status: HandshakeStatus,
        responder: str,
        relay: RelayState = Depends(get_state),
    ):
        if exchange_status == HandshakeStatus.EXPIRED:
            # Expired records are discarded by the sweep.
            return []
        return relay.handshakes.list_by_responder_and_status(responder, exchange_status)

    # -------------------- Messages --------------------
    @app.post("/messages", response_model=Message, status_code=status.HTTP_201_CREATED)
    def store_message(payload: MessageIn, relay: RelayState = Depends(get_state)):
        return relay.mailbox.store_message(
            payload.from_pubkey, payload.to_pubkey, payload.ciphertext
        )

    @app.get("/messages/{recipient}", response_model=List[Message])
    def fetch_messages(recipient: str, relay: RelayState = Depends(get_state)):
        return relay.mailbox.fetch_messages(recipient)

    return app

