from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dc_field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    IDENTITY_PROVIDER = "identity_provider_error"


_DEFAULT_HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.IDENTITY_PROVIDER: 502,
}


@dataclass(frozen=True)
class ServiceError:
    kind: ErrorKind
    message: str
    field: str | None = None
    # overrides the kind's default status (e.g. 400 for a conflict caused by bad input)
    status_code: int | None = None
    details: list[dict[str, Any]] = dc_field(default_factory=list)

    @property
    def http_status(self) -> int:
        return self.status_code or _DEFAULT_HTTP_STATUS[self.kind]


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a service call: either a value or a ServiceError, never both."""

    value: T | None = None
    error: ServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ServiceError) -> "Outcome[T]":
        return cls(error=error)


def validation_error(message: str, *, field: str | None = None) -> Outcome[Any]:
    return Outcome.failure(ServiceError(ErrorKind.VALIDATION, message, field=field))


def not_found(message: str) -> Outcome[Any]:
    return Outcome.failure(ServiceError(ErrorKind.NOT_FOUND, message))


def forbidden(message: str) -> Outcome[Any]:
    return Outcome.failure(ServiceError(ErrorKind.FORBIDDEN, message))


def conflict(message: str, *, status_code: int | None = None) -> Outcome[Any]:
    return Outcome.failure(ServiceError(ErrorKind.CONFLICT, message, status_code=status_code))
