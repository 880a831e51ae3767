# wrapper/main.py
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wrapper import __version__
from wrapper.config import settings
from wrapper.guard import HostGuard, RequestRejected
from wrapper.models import ForwardRequest, rejection, utc_timestamp
from wrapper.proxy import ForwardingEngine

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "CORS Wrapper Server"
AVAILABLE_ENDPOINTS = ["/api/health", "/api/wrapper"]

# Friendlier wording for missing required fields.
_REQUIRED_MESSAGES = {"url": "URL is required", "method": "Method is required"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Shared HTTP client; connection pools are reused across all forwards.
    app.state.http_client = httpx.AsyncClient(
        verify=settings.verify_tls,
        timeout=settings.forward_timeout,
    )
    app.state.host_guard = HostGuard(settings.blocked_hosts)
    app.state.engine = ForwardingEngine(
        app.state.http_client, settings, guard=app.state.host_guard
    )
    logger.info(
        "Wrapper ready (environment=%s, blocked hosts=%s)",
        settings.environment, sorted(settings.blocked_hosts),
    )

    yield

    await app.state.http_client.aclose()


app = FastAPI(title="API Wrapper Gateway", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
    max_age=3600,
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Propagate or generate an X-Request-ID header for end-to-end tracing."""
    req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = req_id
    response = await call_next(request)
    response.headers["x-request-id"] = req_id
    return response


def _validation_message(errors: list[dict[str, Any]]) -> str:
    messages = []
    for err in errors:
        field = str(err.get("loc", ("",))[-1])
        if err.get("type") == "missing" and field in _REQUIRED_MESSAGES:
            messages.append(_REQUIRED_MESSAGES[field])
            continue
        msg = str(err.get("msg", "Invalid value"))
        messages.append(msg.removeprefix("Value error, "))
    return "; ".join(messages) or "Invalid request body"


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc.errors())
    logger.warning("Rejected invalid request to %s: %s", request.url.path, message)
    return JSONResponse(
        status_code=400, content=rejection("Invalid request", message).to_wire()
    )


@app.exception_handler(StarletteHTTPException)
async def not_found(request: Request, exc: StarletteHTTPException):
    if exc.status_code != 404:
        return await http_exception_handler(request, exc)
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": "Not found",
            "message": "The requested endpoint does not exist",
            "availableEndpoints": AVAILABLE_ENDPOINTS,
        },
    )


@app.exception_handler(Exception)
async def server_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Server error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "message": str(exc) if settings.is_development else "Something went wrong",
        },
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/health")
async def api_health() -> dict[str, str]:
    return {
        "status": "OK",
        "timestamp": utc_timestamp(),
        "service": SERVICE_NAME,
        "version": __version__,
        "environment": settings.environment,
        "serverIP": settings.server_ip,
    }


@app.post("/api/wrapper")
async def api_wrapper(forward_request: ForwardRequest, request: Request) -> JSONResponse:
    guard: HostGuard = request.app.state.host_guard
    engine: ForwardingEngine = request.app.state.engine

    try:
        guard.check(forward_request.url)
    except RequestRejected as exc:
        envelope = rejection(
            exc.error,
            exc.message,
            target_url=forward_request.url,
            method=forward_request.method,
        )
        return JSONResponse(status_code=400, content=envelope.to_wire())

    response = await engine.forward(forward_request)
    return JSONResponse(content=response.to_wire())
