from __future__ import annotations

import logging
from typing import TypeVar

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketplace.schemas.common import ErrorResponse
from marketplace.services.errors import ErrorKind, Outcome, ServiceError

T = TypeVar("T")

log = logging.getLogger(__name__)


class ApiError(Exception):
    """The only exception the HTTP layer raises; rendered as ErrorResponse."""

    def __init__(self, error: ServiceError):
        super().__init__(error.message)
        self.error = error

    @classmethod
    def of(cls, kind: ErrorKind, message: str) -> "ApiError":
        return cls(ServiceError(kind, message))


def unwrap(outcome: Outcome[T]) -> T:
    if not outcome.ok:
        assert outcome.error is not None
        raise ApiError(outcome.error)
    return outcome.value  # type: ignore[return-value]


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    err = exc.error
    details = list(err.details)
    if err.field:
        details.insert(0, {"field": err.field})
    if err.http_status >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, err.message)
    body = ErrorResponse(code=err.kind.value, message=err.message, details=details)
    return JSONResponse(status_code=err.http_status, content=body.model_dump())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg", "Invalid request"))
    body = ErrorResponse(code=ErrorKind.VALIDATION.value, message=message, details=errors)
    return JSONResponse(status_code=400, content=body.model_dump())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
