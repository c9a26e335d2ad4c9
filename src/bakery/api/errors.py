"""Map business and framework errors to structured JSON responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.exceptions import ValidationError as DomainValidationError

from bakery.errors import BakeryError

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, kind: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": jsonable_encoder({"kind": kind, "message": message, **extra})},
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BakeryError)
    async def bakery_error_handler(request: Request, exc: BakeryError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed", kind=exc.kind, message=exc.message, path=request.url.path)
        return _error_response(exc.status_code, exc.kind, exc.message, **exc.details)

    @app.exception_handler(DomainValidationError)
    async def domain_validation_handler(request: Request, exc: DomainValidationError) -> JSONResponse:
        return _error_response(400, "ValidationError", "Invalid input", errors=exc.messages)

    @app.exception_handler(ObjectNotFoundError)
    async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
        return _error_response(404, "NotFoundError", str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(400, "ValidationError", "Invalid request", errors=exc.errors())
