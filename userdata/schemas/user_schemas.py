from typing import Any, Mapping

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from userdata.core import config
from userdata.core.results import Failure, FieldViolation, Success, validation_failure
from userdata.models.user import UserRole

MAX_NAME_LENGTH = 255
# bcrypt only looks at the first 72 bytes.
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def normalize_name(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise PydanticCustomError('name_too_short', 'Minimum of 1 Character')
    if len(normalized) > MAX_NAME_LENGTH:
        raise PydanticCustomError('name_too_long', f'Maximum of {MAX_NAME_LENGTH} Characters')
    return normalized


class CreateAddressRequest(BaseModel):
    street: str = ''
    city: str = ''
    province: str = ''

    @field_validator('street', 'city', 'province', mode='before')
    @classmethod
    def default_missing_to_blank(cls, value: Any) -> Any:
        return '' if value is None else value


class CreateUserRequest(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    address: CreateAddressRequest
    role: UserRole = UserRole.USER

    @field_validator('email')
    @classmethod
    def check_email(cls, value: str) -> str:
        normalized = normalize_email(value)
        try:
            validate_email(normalized, check_deliverability=False)
        except EmailNotValidError as exc:
            raise PydanticCustomError('invalid_email', 'Invalid Email') from exc
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        # Empty passwords are rejected whatever the configured minimum is.
        min_length = max(config.PASSWORD_MIN_LENGTH, 1)
        if len(value) < min_length:
            raise PydanticCustomError(
                'password_too_short',
                'Minimum of {min_length} Characters',
                {'min_length': min_length},
            )
        if len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise PydanticCustomError('password_too_long', f'Maximum of {MAX_PASSWORD_BYTES} Bytes')
        return value

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return normalize_name(value)

    @field_validator('role', mode='before')
    @classmethod
    def normalize_role(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class UpdateUserNamesRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_name(value)


class AddressResponse(BaseModel):
    id: int
    street: str
    city: str
    province: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    address: AddressResponse

    class Config:
        from_attributes = True


def violations_from_error(exc: ValidationError) -> list[FieldViolation]:
    violations = []
    for error in exc.errors():
        field = '.'.join(str(part) for part in error['loc']) or 'payload'
        violations.append(FieldViolation(field=field, message=error['msg']))
    return violations


def _validate(model: type[BaseModel], payload: Any) -> Success | Failure:
    if isinstance(payload, model):
        return Success(value=payload)
    try:
        return Success(value=model.model_validate(payload))
    except ValidationError as exc:
        return validation_failure(violations_from_error(exc), payload if isinstance(payload, Mapping) else None)


def validate_create_user(payload: Any) -> Success[CreateUserRequest] | Failure:
    """Check an untrusted create-user payload without touching the store.

    Every violated field is reported, not just the first one.
    """
    return _validate(CreateUserRequest, payload)


def validate_name_update(payload: Any) -> Success[UpdateUserNamesRequest] | Failure:
    return _validate(UpdateUserNamesRequest, payload)
