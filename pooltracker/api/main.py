"""FastAPI application for pooltracker.

Note: Authentication is not implemented. The X-Caller header is trusted as
the caller identity; deploy behind a gateway that sets it.
"""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pooltracker import __version__
from pooltracker.api.endpoints import router
from pooltracker.errors import (
    DivisionByZeroError,
    DuplicatePairError,
    IndexOutOfRangeError,
    InsufficientAllowanceError,
    InsufficientLiquidityError,
    InsufficientSharesError,
    InvalidAmountError,
    InvalidPairError,
    NoValuationPathError,
    NotOwnerError,
    PoolAlreadyInitializedError,
    PoolNotFoundError,
    PoolTrackerError,
    SlippageExceededError,
    TransferFailure,
    UnknownAssetError,
    UnknownFeedError,
    Uint256Overflow,
    UnknownPoolError,
)

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("POOLTRACKER_HOST", "0.0.0.0")
PORT = int(os.environ.get("POOLTRACKER_PORT", "8000"))
DEBUG = os.environ.get("POOLTRACKER_DEBUG", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.environ.get("POOLTRACKER_LOG_LEVEL", "INFO").upper()

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024

# Most specific class first; the first isinstance match wins
ERROR_STATUS: list[tuple[type[PoolTrackerError], int]] = [
    (InvalidPairError, 400),
    (InvalidAmountError, 400),
    (InsufficientAllowanceError, 402),
    (TransferFailure, 402),
    (NotOwnerError, 403),
    (UnknownAssetError, 404),
    (UnknownPoolError, 404),
    (PoolNotFoundError, 404),
    (UnknownFeedError, 404),
    (IndexOutOfRangeError, 404),
    (NoValuationPathError, 404),
    (DuplicatePairError, 409),
    (PoolAlreadyInitializedError, 409),
    (InsufficientLiquidityError, 409),
    (InsufficientSharesError, 409),
    (SlippageExceededError, 409),
    (DivisionByZeroError, 422),
    (Uint256Overflow, 422),
]

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        getattr(logging, LOG_LEVEL, logging.INFO)
    ),
)

logger = structlog.get_logger()

app = FastAPI(
    title="pooltracker",
    description="Liquidity pool registry, constant product swaps and pool metrics",
    version=__version__,
)


def status_for(error: PoolTrackerError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


@app.exception_handler(PoolTrackerError)
async def handle_pooltracker_error(request: Request, exc: PoolTrackerError) -> JSONResponse:
    """Map core errors to HTTP statuses with a {"error", "detail"} body."""
    status = status_for(exc)
    log = logger.error if status >= 500 else logger.info
    log(
        "request_failed",
        method=request.method,
        path=request.url.path,
        status=status,
        error=type(exc).__name__,
        detail=str(exc),
    )
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the pooltracker API server.

    Configuration via environment variables:
    - POOLTRACKER_HOST: Host to bind to (default: 0.0.0.0)
    - POOLTRACKER_PORT: Port to bind to (default: 8000)
    - POOLTRACKER_DEBUG: Enable debug/reload mode (default: false)
    - POOLTRACKER_LOG_LEVEL: Minimum log level (default: INFO)
    - POOLTRACKER_REQUEST_TIMEOUT: Per-call timeout in seconds (default: 5.0)
    - POOLTRACKER_ADMIN, POOLTRACKER_FEE_BPS, POOLTRACKER_QUOTE_UNIT: see
      pooltracker.context.context_from_env
    """
    uvicorn.run(
        "pooltracker.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
