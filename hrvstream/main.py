"""
HRV Stream - FastAPI Application

Service entry point with API endpoints for:
- Session lifecycle (start, attach pairing context, close)
- Device pairing (device code, confirmation polling)
- Beat-interval and heart-rate ingestion
- Latest metrics per session
- Health checks
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from hrvstream import __version__
from hrvstream.config import settings
from hrvstream.core.session import HrvEngine, SessionContext, SessionRegistry
from hrvstream.models import (
    SessionContextInput,
    SessionCreateRequest,
    SessionResponse,
    IntervalBatchRequest,
    HeartRateRequest,
    MetricsResponse,
    IngestResponse,
    HealthResponse,
    PairingStartResponse,
    PairingPollRequest,
    PairingStatusResponse,
)
from hrvstream.services.auth import DeviceAuthClient
from hrvstream.services.relay import build_relay
from hrvstream.utils import (
    get_logger,
    setup_logging,
    AuthenticationError,
    HrvStreamError,
    RelayError,
    SessionNotFoundError,
)

# Load environment variables
load_dotenv()
setup_logging(settings.log_level, settings.log_file)

logger = get_logger(__name__)


# ---- Session state (in-memory, one engine per sensor session) ----
_registry = SessionRegistry(relay_factory=build_relay)
_auth_client = DeviceAuthClient()
START_TIME = datetime.now()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close every open session on shutdown."""
    logger.info("API ready to accept requests")
    yield
    await run_in_threadpool(_registry.close_all)
    logger.info("HRV Stream API shut down.")


app = FastAPI(
    title="HRV Stream API",
    description="Streaming heart-rate variability (RMSSD, LF/HF) from beat-to-beat intervals",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# ---- Error mapping ----

@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    return JSONResponse(status_code=502, content=exc.to_dict())


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content=exc.to_dict())


@app.exception_handler(HrvStreamError)
async def hrvstream_error_handler(request: Request, exc: HrvStreamError):
    return JSONResponse(status_code=400, content=exc.to_dict())


# ---- Utility Functions ----

def _metrics_response(engine: HrvEngine) -> MetricsResponse:
    """Latest metrics of a session."""
    band_power = engine.band_power
    record = engine.last_record
    return MetricsResponse(
        session_id=engine.session_id,
        heart_rate=record.heart_rate if record else None,
        hrv=engine.hrv,
        lf=band_power.lf,
        hf=band_power.hf,
        lf_hf_ratio=band_power.lf_hf_ratio,
        window_size=len(engine.window),
        window_full=engine.window.is_full(),
        timestamp=record.timestamp if record else None,
    )


def _session_response(engine: HrvEngine) -> SessionResponse:
    relay = _registry.relay_for(engine.session_id)
    status = getattr(relay, "status", None)
    return SessionResponse(
        session_id=engine.session_id,
        context_attached=engine.context is not None,
        window_capacity=engine.window.capacity,
        relay_status=status.value if status is not None else None,
    )


def _to_context(context_input: SessionContextInput) -> SessionContext:
    return SessionContext(user_id=context_input.user_id, device_code=context_input.device_code)


async def _bind_context(
    engine: HrvEngine,
    context: SessionContext,
    auth_token: Optional[str] = None
) -> None:
    """Attach the pairing context and connect the session relay if a token is given."""
    if auth_token:
        relay = _registry.relay_for(engine.session_id)
        connect = getattr(relay, "connect", None)
        if callable(connect):
            await run_in_threadpool(connect, auth_token, context)

    engine.attach_context(context)


def _health(status: str = "healthy") -> HealthResponse:
    return HealthResponse(
        status=status,
        version=__version__,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        active_sessions=len(_registry),
        relay={"enabled": settings.relay_enabled},
    )


# ---- API Endpoints ----

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """API root - health check."""
    return _health()


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return _health()


@app.post("/api/v1/sessions", response_model=SessionResponse, status_code=201, tags=["Sessions"])
async def create_session(request: Optional[SessionCreateRequest] = None):
    """Start a sensor session."""
    engine = _registry.create()
    if request is not None and request.context is not None:
        try:
            await _bind_context(engine, _to_context(request.context), request.context.auth_token)
        except RelayError:
            await run_in_threadpool(_registry.close, engine.session_id)
            raise
    return _session_response(engine)


@app.put("/api/v1/sessions/{session_id}/context", response_model=SessionResponse, tags=["Sessions"])
async def attach_context(session_id: str, request: SessionContextInput):
    """Attach the context delivered by device pairing; enables emission."""
    engine = _registry.get(session_id)
    await _bind_context(engine, _to_context(request), request.auth_token)
    return _session_response(engine)


@app.post("/api/v1/pairing", response_model=PairingStartResponse, tags=["Pairing"])
async def start_pairing():
    """Request a device code for the user to confirm on a PC."""
    start = await _auth_client.start_device_auth()
    if start is None:
        raise AuthenticationError("Could not obtain a device code")
    return PairingStartResponse(
        code=start.code,
        device_token=start.device_token,
        expires_at=start.expires_at,
    )


@app.post("/api/v1/sessions/{session_id}/pairing", response_model=PairingStatusResponse, tags=["Pairing"])
async def poll_pairing(session_id: str, request: PairingPollRequest):
    """
    Poll the pairing once for a session.

    Once the user has confirmed the code, the returned context is attached
    and the session relay is connected with the session token.
    """
    engine = _registry.get(session_id)
    poll = await _auth_client.poll_device_auth(request.device_token)
    if poll is None or not poll.authenticated:
        logger.info("Waiting for user auth...")
        return PairingStatusResponse(authenticated=False)

    await _bind_context(engine, poll.to_context(), poll.session or None)
    return PairingStatusResponse(authenticated=True, session=_session_response(engine))


@app.post("/api/v1/sessions/{session_id}/intervals", response_model=IngestResponse, tags=["Ingestion"])
async def ingest_intervals(session_id: str, request: IntervalBatchRequest):
    """Feed beat intervals (ms) in arrival order."""
    engine = _registry.get(session_id)
    accepted = sum(1 for interval in request.intervals_ms if engine.push_interval(interval))

    return IngestResponse(
        session_id=session_id,
        accepted=accepted,
        rejected=len(request.intervals_ms) - accepted,
        metrics=_metrics_response(engine),
    )


@app.post("/api/v1/sessions/{session_id}/heart-rate", response_model=MetricsResponse, tags=["Ingestion"])
async def ingest_heart_rate(session_id: str, request: HeartRateRequest):
    """Feed a heart-rate notification (bpm)."""
    engine = _registry.get(session_id)
    engine.push_heart_rate(request.bpm)
    return _metrics_response(engine)


@app.get("/api/v1/sessions/{session_id}/metrics", response_model=MetricsResponse, tags=["Metrics"])
async def get_metrics(session_id: str, wait: bool = False):
    """
    Latest metrics of a session.

    With ``wait=true`` pending spectral work is awaited first.
    """
    engine = _registry.get(session_id)
    if wait:
        await run_in_threadpool(engine.flush, 5.0)
    return _metrics_response(engine)


@app.delete("/api/v1/sessions/{session_id}", status_code=204, tags=["Sessions"])
async def close_session(session_id: str):
    """Close a session (sensor disconnected)."""
    await run_in_threadpool(_registry.close, session_id)


def main_cli() -> None:
    """Run the API with uvicorn."""
    import uvicorn
    uvicorn.run("hrvstream.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main_cli()
