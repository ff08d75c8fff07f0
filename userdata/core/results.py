"""Tagged outcomes returned by every fallible data-access operation.

Store faults are converted into a ``Failure`` at the boundary where they are
raised, so callers only ever branch on ``result.ok``.
"""

from enum import Enum
from typing import Any, Generic, Literal, Mapping, TypeVar

from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

T = TypeVar('T')

REDACTED = '***'
SENSITIVE_KEYS = frozenset({'password', 'hashed_password'})


class ErrorKind(str, Enum):
    VALIDATION = 'validation'
    NOT_FOUND = 'not_found'
    CONSTRAINT = 'constraint'
    CONSISTENCY = 'consistency'
    STORAGE = 'storage'


class FieldViolation(BaseModel):
    field: str
    message: str


class Success(BaseModel, Generic[T]):
    ok: Literal[True] = True
    value: T


class Failure(BaseModel):
    ok: Literal[False] = False
    error: ErrorKind
    message: str
    violations: list[FieldViolation] = Field(default_factory=list)
    payload: dict[str, Any] | None = None

    def messages(self) -> set[str]:
        if self.violations:
            return {violation.message for violation in self.violations}
        return {self.message}


def redact(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode='json')
    if isinstance(payload, Mapping):
        return {
            key: REDACTED if key in SENSITIVE_KEYS else redact(value)
            for key, value in payload.items()
        }
    if isinstance(payload, (list, tuple)):
        return [redact(item) for item in payload]
    return payload


def _diagnostic_payload(payload: Any) -> dict[str, Any] | None:
    if payload is None:
        return None
    redacted = redact(payload)
    return redacted if isinstance(redacted, dict) else {'value': redacted}


def validation_failure(violations: list[FieldViolation], payload: Any = None) -> Failure:
    return Failure(
        error=ErrorKind.VALIDATION,
        message='; '.join(f'{violation.field}: {violation.message}' for violation in violations),
        violations=violations,
        payload=_diagnostic_payload(payload),
    )


def not_found(message: str) -> Failure:
    return Failure(error=ErrorKind.NOT_FOUND, message=message)


def consistency_failure(message: str, payload: Any = None) -> Failure:
    return Failure(error=ErrorKind.CONSISTENCY, message=message, payload=_diagnostic_payload(payload))


def storage_failure(message: str, payload: Any = None) -> Failure:
    return Failure(error=ErrorKind.STORAGE, message=message, payload=_diagnostic_payload(payload))


def failure_from_exception(exc: SQLAlchemyError, payload: Any = None) -> Failure:
    # Only the driver's own message is kept; str(exc) would echo bound parameters.
    driver_error = getattr(exc, 'orig', None)
    message = str(driver_error) if driver_error is not None else exc.__class__.__name__

    if isinstance(exc, IntegrityError):
        return Failure(
            error=ErrorKind.CONSTRAINT,
            message=message,
            payload=_diagnostic_payload(payload),
        )

    return storage_failure(message, payload)
