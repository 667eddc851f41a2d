"""FastAPI backend exposing IQ360 sessions to a web front-end.

Each client names its session in the ``X-Session-ID`` header (issued by
``POST /api/session``); requests without one share the ``default``
session.  Every session has its own machine and its own stored snapshot.
Every route returns the full view model, so the front-end simply
re-renders from whatever it gets back.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Annotated, Any

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

import src.settings as settings
from src.errors import (
    CollaboratorError,
    InvalidTransitionError,
    OperationInProgressError,
    SessionError,
    ValidationError,
)
from src.logging_config import setup_logging
from src.session.machine import SessionStateMachine
from src.session.store import PersistenceStore
from src.session.view import build_view_model

load_dotenv()
setup_logging()

# Hosting dashboards sometimes store env values with trailing whitespace.
_api_key = os.environ.get("OPENAI_API_KEY")
if _api_key:
    os.environ["OPENAI_API_KEY"] = _api_key.strip()

logger = logging.getLogger(__name__)

app = FastAPI(title="IQ360 Cognitive Engine", version="0.1.0")
MAX_ANSWER_CHARS = 4000
DEFAULT_SESSION = "default"
SESSION_ID_PATTERN = r"^[A-Za-z0-9_-]+$"

_machines: dict[str, SessionStateMachine] = {}

_STATUS_BY_ERROR: tuple[tuple[type[SessionError], int], ...] = (
    (ValidationError, 400),
    (InvalidTransitionError, 409),
    (OperationInProgressError, 409),
    (CollaboratorError, 502),
)


# ── Request logging middleware ────────────────────────────────────────────

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with method, path, and response time."""
    request_id = uuid.uuid4().hex[:8]
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s -> %s (%.0fms) [rid=%s]",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(SessionError)
async def session_error_handler(_request: Request, exc: SessionError) -> JSONResponse:
    status = next(
        (code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)),
        500,
    )
    body: dict[str, Any] = {"code": exc.code, "detail": exc.message}
    if isinstance(exc, ValidationError) and exc.missing:
        body["missing"] = exc.missing
    return JSONResponse(status_code=status, content=body)


# ── Health check ──────────────────────────────────────────────────────────

@app.get("/health")
def health_check() -> JSONResponse:
    """Lightweight health probe for deployment platforms."""
    return JSONResponse({"status": "ok"})


class ResponseRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question_id: str = Field(..., min_length=1, max_length=64)
    answer: str = Field(..., max_length=MAX_ANSWER_CHARS)


class ResetRequest(BaseModel):
    confirm: bool = False


# ── Sessions ──────────────────────────────────────────────────────────────

def _new_machine(session_id: str) -> SessionStateMachine:
    key = settings.STATE_KEY
    if session_id != DEFAULT_SESSION:
        key = f"{key}_{session_id}"
    return SessionStateMachine(PersistenceStore(key=key))


def get_machine(
    x_session_id: str = Header(
        default=DEFAULT_SESSION,
        min_length=1,
        max_length=64,
        pattern=SESSION_ID_PATTERN,
    ),
) -> SessionStateMachine:
    """Return the machine for the caller's session, loading it on first use."""
    machine = _machines.get(x_session_id)
    if machine is None:
        machine = _new_machine(x_session_id)
        _machines[x_session_id] = machine
        logger.info("Opened session %s", x_session_id)
    return machine


SessionMachine = Annotated[SessionStateMachine, Depends(get_machine)]


@app.post("/api/session")
async def create_session() -> dict[str, Any]:
    """Issue a fresh session id and return its view model."""
    session_id = str(uuid.uuid4())[:8]
    machine = get_machine(session_id)
    return {"sessionId": session_id, **build_view_model(machine)}


# ── Session routes ────────────────────────────────────────────────────────

@app.get("/api/state")
async def get_state(machine: SessionMachine) -> dict[str, Any]:
    return build_view_model(machine)


@app.post("/api/level/start")
async def start_level(machine: SessionMachine) -> dict[str, Any]:
    await machine.start_level()
    return build_view_model(machine)


@app.post("/api/responses")
async def record_response(req: ResponseRequest, machine: SessionMachine) -> dict[str, Any]:
    machine.record_response(req.question_id, req.answer)
    return build_view_model(machine)


@app.post("/api/submit")
async def submit_answers(machine: SessionMachine) -> dict[str, Any]:
    await machine.submit_answers()
    return build_view_model(machine)


@app.post("/api/next")
async def proceed_to_next(machine: SessionMachine) -> dict[str, Any]:
    machine.proceed_to_next()
    return build_view_model(machine)


@app.post("/api/reset")
async def reset(req: ResetRequest, machine: SessionMachine) -> dict[str, Any]:
    machine.reset(confirm=req.confirm)
    return build_view_model(machine)


@app.post("/api/view/dashboard")
async def open_dashboard(machine: SessionMachine) -> dict[str, Any]:
    machine.open_dashboard()
    return build_view_model(machine)


@app.post("/api/view/history")
async def open_history(machine: SessionMachine) -> dict[str, Any]:
    machine.open_history()
    return build_view_model(machine)


@app.post("/api/view/back")
async def go_back(machine: SessionMachine) -> dict[str, Any]:
    machine.go_back()
    return build_view_model(machine)


def run() -> None:
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    print(f"Starting web interface on http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
