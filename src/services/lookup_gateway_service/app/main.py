# src/services/lookup_gateway_service/app/main.py
import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from lookup_cache_engine.store import LookupStore
from lookup_cache_engine.transport import HttpLookupTransport, create_http_client
from lookup_common.config import LOOKUP_GATEWAY_HOST, LOOKUP_GATEWAY_PORT
from lookup_common.error_handling import handle_error
from lookup_common.exceptions import AppError
from lookup_common.health import check_upstream_health, create_health_router
from lookup_common.logging_utils import (
    correlation_id_var,
    generate_correlation_id,
    request_id_var,
    setup_logging,
    trace_id_var,
)
from lookup_common.monitoring import HTTP_REQUEST_LATENCY_SECONDS, HTTP_REQUESTS_TOTAL

from .dependencies import app_state
from .routers import lookups

SERVICE_PREFIX = "LKP"
SERVICE_NAME = "lookup_gateway_service"
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the shared HTTP client and lookup store on startup and releases
    them on shutdown.
    """
    logger.info("Lookup Gateway Service starting up...")
    client = create_http_client()
    transport = HttpLookupTransport(client)
    app_state["http_client"] = client
    app_state["lookup_store"] = LookupStore(transport.for_entity)
    logger.info("Lookup store initialized successfully.")

    yield

    logger.info("Lookup Gateway Service shutting down...")
    store = app_state.pop("lookup_store", None)
    if store is not None:
        await store.aclose()
    client = app_state.pop("http_client", None)
    if client is not None:
        await client.aclose()
    logger.info("Lookup Gateway Service has shut down gracefully.")


app = FastAPI(
    title="Lookup Gateway API",
    description=(
        "Serves paginated reference-data lookups (customers, SKUs, warehouses, statuses, ...) "
        "from per-entity caches backed by the upstream ERP lookup API."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

Instrumentator().instrument(app).expose(app)
logger.info("Prometheus metrics exposed at /metrics")


@app.middleware("http")
async def add_correlation_id_middleware(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-Id") or generate_correlation_id(SERVICE_PREFIX)
    request_id = request.headers.get("X-Request-Id") or generate_correlation_id("REQ")
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex

    correlation_token = correlation_id_var.set(correlation_id)
    request_token = request_id_var.set(request_id)
    trace_token = trace_id_var.set(trace_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(correlation_token)
        request_id_var.reset(request_token)
        trace_id_var.reset(trace_token)

    response.headers["X-Correlation-Id"] = correlation_id
    response.headers["X-Request-Id"] = request_id
    response.headers["X-Trace-Id"] = trace_id
    return response


@app.middleware("http")
async def emit_http_observability(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    labels = {
        "service": SERVICE_NAME,
        "method": request.method,
        "path": request.url.path,
    }
    HTTP_REQUEST_LATENCY_SECONDS.labels(**labels).observe(elapsed)
    HTTP_REQUESTS_TOTAL.labels(status=str(response.status_code), **labels).inc()
    logger.info(
        "http_request_completed",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(elapsed * 1000, 2),
        },
    )
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Classified failures (unknown entity, malformed request) keep their own status."""
    logger.warning(f"{request.method} {request.url.path} failed: [{exc.kind.value}] {exc.message}")
    return JSONResponse(
        status_code=exc.status,
        content={"message": exc.message, "kind": exc.kind.value, "status": exc.status},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catches any unhandled exception and returns it as a normalized 500 error response.
    """
    error = handle_error(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "message": error.message,
            "kind": error.kind.value,
            "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "correlation_id": request.headers.get("X-Correlation-Id") or correlation_id_var.get(),
        },
    )


async def upstream_ready() -> bool:
    client = app_state.get("http_client")
    if client is None:
        return False
    return await check_upstream_health(client)


app.include_router(create_health_router(upstream=upstream_ready))
app.include_router(lookups.router)


def run() -> None:
    """Serves the gateway with uvicorn, keeping the JSON logging configured above."""
    config = uvicorn.Config(app, host=LOOKUP_GATEWAY_HOST, port=LOOKUP_GATEWAY_PORT, log_config=None)
    uvicorn.Server(config).run()


if __name__ == "__main__":
    run()
