"""Maps engine exceptions onto HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    ArbWatchError,
    BudgetExhausted,
    InvalidInput,
    JobAlreadyRunning,
    NoEligibleBookmakers,
    NotFound,
    ProviderError,
    ProviderNotConfigured,
    ProviderTimeout,
    UnknownJob,
)

logger = structlog.get_logger()

# Most specific first; the first matching class wins.
STATUS_CODES: list[tuple[type[ArbWatchError], int]] = [
    (InvalidInput, 400),
    (NotFound, 404),
    (UnknownJob, 404),
    (JobAlreadyRunning, 409),
    (NoEligibleBookmakers, 422),
    (BudgetExhausted, 429),
    (ProviderNotConfigured, 503),
    (ProviderTimeout, 504),
    (ProviderError, 502),
]


def status_for(exc: ArbWatchError) -> int:
    for error_type, status in STATUS_CODES:
        if isinstance(exc, error_type):
            return status
    return 500


def _error_body(exc: ArbWatchError) -> dict:
    body = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, NoEligibleBookmakers):
        body["jurisdictions"] = exc.jurisdictions
    elif isinstance(exc, BudgetExhausted):
        body["required"] = exc.required
        body["available"] = exc.available
    elif isinstance(exc, ProviderError) and exc.sport:
        body["sport"] = exc.sport
    return body


async def arbwatch_error_handler(request: Request, exc: ArbWatchError) -> JSONResponse:
    status = status_for(exc)
    log = logger.warning if status < 500 else logger.error
    log("request_failed", path=request.url.path, status=status, error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=status, content=_error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ArbWatchError, arbwatch_error_handler)
