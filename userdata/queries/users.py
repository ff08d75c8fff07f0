"""User and address persistence.

Every function takes the caller's ``Session`` and returns ``Success`` or
``Failure``. SQLAlchemy faults are caught here, the session is rolled back, and
the fault is turned into a ``Failure``; none of them propagate to callers.
"""

import logging
from typing import Any, Mapping

from pydantic import ValidationError
from sqlalchemy import bindparam, delete, func, or_, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from userdata.auth.passwords import PasswordHashError, hash_password, verify_password
from userdata.core.results import (
    ErrorKind,
    Failure,
    FieldViolation,
    Success,
    consistency_failure,
    failure_from_exception,
    not_found,
    storage_failure,
    validation_failure,
)
from userdata.models.address import Address
from userdata.models.user import User
from userdata.schemas.user_schemas import (
    AddressResponse,
    CreateAddressRequest,
    CreateUserRequest,
    UserResponse,
    normalize_email,
    validate_create_user,
    validate_name_update,
    violations_from_error,
)

logger = logging.getLogger(__name__)

# Largest value a signed 64-bit INTEGER primary key can hold.
MAX_ID = 2 ** 63 - 1

UPSERT_INSERTS = {
    'postgresql': postgresql_insert,
    'sqlite': sqlite_insert,
}

# Prepared once, bound per call.
_users_with_address = select(User).options(joinedload(User.address))

ALL_USERS = _users_with_address.order_by(User.id)
USER_BY_ID = _users_with_address.where(User.id == bindparam('user_id'))
USER_BY_EMAIL = _users_with_address.where(User.email == bindparam('email'))
USERS_WITH_NAME_LIKE = _users_with_address.where(
    or_(
        User.first_name.ilike(bindparam('first_name_pattern')),
        User.last_name.ilike(bindparam('last_name_pattern')),
    )
).order_by(User.id)
COUNT_USERS_WITH_EMAIL = select(func.count(User.id)).where(User.email == bindparam('email'))


def _store_failure(session: Session, exc: SQLAlchemyError, action: str, payload: Any = None) -> Failure:
    session.rollback()
    if isinstance(exc, IntegrityError):
        logger.warning('%s rejected by the store: %s', action, getattr(exc, 'orig', exc))
    else:
        logger.exception('%s failed', action)
    return failure_from_exception(exc, payload)


def _to_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


def _add_address(session: Session, fields: CreateAddressRequest) -> Address:
    address = Address(street=fields.street, city=fields.city, province=fields.province)
    session.add(address)
    session.flush()
    return address


def _is_valid_id(user_id: int) -> bool:
    return 1 <= user_id <= MAX_ID


def _hash_request_password(request: CreateUserRequest) -> str | Failure:
    try:
        return hash_password(request.password)
    except PasswordHashError as exc:
        return validation_failure([FieldViolation(field='password', message=str(exc))], request)


def _add_user(session: Session, request: CreateUserRequest, address: Address, password_hash: str) -> User:
    user = User(
        email=request.email,
        hashed_password=password_hash,
        first_name=request.first_name,
        last_name=request.last_name,
        address_id=address.id,
        role=request.role,
    )
    session.add(user)
    session.flush()
    return user


def insert_address(session: Session, fields: CreateAddressRequest | Mapping[str, Any]) -> Success[AddressResponse] | Failure:
    if not isinstance(fields, CreateAddressRequest):
        try:
            fields = CreateAddressRequest.model_validate(fields)
        except ValidationError as exc:
            return validation_failure(violations_from_error(exc), fields)

    try:
        address = _add_address(session, fields)
        if address.id is None:
            session.rollback()
            return storage_failure('Address insert returned no row.', fields)

        response = AddressResponse.model_validate(address)
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'Address insert', fields)

    return Success(value=response)


def insert_user(session: Session, user: CreateUserRequest | Mapping[str, Any]) -> Success[UserResponse] | Failure:
    """Write the address, then the user pointing at it, as one transaction.

    Nothing is committed unless both rows were written, so a rejected user
    never leaves its address behind.
    """
    validated = validate_create_user(user)
    if not validated.ok:
        return validated
    request = validated.value
    password_hash = _hash_request_password(request)
    if isinstance(password_hash, Failure):
        return password_hash

    try:
        address = _add_address(session, request.address)
        if address.id is None:
            session.rollback()
            return storage_failure('Address insert returned no row.', request)

        new_user = _add_user(session, request, address, password_hash)
        if new_user.id is None:
            session.rollback()
            return storage_failure('User insert returned no row.', request)

        response = _to_response(new_user)
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User insert', request)

    return Success(value=response)


def get_user_by_id(session: Session, user_id: int) -> Success[UserResponse] | Failure:
    if not _is_valid_id(user_id):
        return not_found(f'User {user_id} not found.')

    try:
        user = session.execute(USER_BY_ID, {'user_id': user_id}).scalar_one_or_none()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User lookup by id')

    if user is None:
        return not_found(f'User {user_id} not found.')
    return Success(value=_to_response(user))


def get_user_by_email(session: Session, email: str) -> Success[UserResponse] | Failure:
    try:
        user = session.execute(USER_BY_EMAIL, {'email': normalize_email(email)}).scalar_one_or_none()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User lookup by email')

    if user is None:
        return not_found(f'User with email {email!r} not found.')
    return Success(value=_to_response(user))


def get_users_with_name_like(
    session: Session,
    first_name_pattern: str = '%',
    last_name_pattern: str = '%',
) -> Success[list[UserResponse]] | Failure:
    """Case-insensitive LIKE on first name OR last name. No match is an empty list."""
    try:
        users = session.execute(
            USERS_WITH_NAME_LIKE,
            {'first_name_pattern': first_name_pattern, 'last_name_pattern': last_name_pattern},
        ).scalars().all()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User name search')

    return Success(value=[_to_response(user) for user in users])


def list_users(session: Session) -> Success[list[UserResponse]] | Failure:
    try:
        users = session.execute(ALL_USERS).scalars().all()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User listing')

    return Success(value=[_to_response(user) for user in users])


def count_users_with_email(session: Session, email: str) -> Success[int] | Failure:
    try:
        count = session.execute(COUNT_USERS_WITH_EMAIL, {'email': normalize_email(email)}).scalar_one()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User count by email')

    return Success(value=count)


def create_user(session: Session, candidate: CreateUserRequest | Mapping[str, Any]) -> Success[UserResponse] | Failure:
    validated = validate_create_user(candidate)
    if not validated.ok:
        return validated

    inserted = insert_user(session, validated.value)
    if not inserted.ok:
        return inserted

    stored = get_user_by_id(session, inserted.value.id)
    if not stored.ok and stored.error is ErrorKind.NOT_FOUND:
        logger.error('User %s was inserted but could not be read back', inserted.value.id)
        return consistency_failure('Failed to create user', validated.value)
    return stored


def update_user_names(
    session: Session,
    user_id: int,
    first_name: str | None = None,
    last_name: str | None = None,
) -> Success[UserResponse] | Failure:
    validated = validate_name_update({'first_name': first_name, 'last_name': last_name})
    if not validated.ok:
        return validated
    changes = validated.value

    if not _is_valid_id(user_id):
        return not_found(f'User {user_id} not found.')

    try:
        user = session.execute(USER_BY_ID, {'user_id': user_id}).scalar_one_or_none()
        if user is None:
            return not_found(f'User {user_id} not found.')

        if changes.first_name is not None:
            user.first_name = changes.first_name
        if changes.last_name is not None:
            user.last_name = changes.last_name

        session.flush()
        response = _to_response(user)
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User rename', changes)

    return Success(value=response)


def upsert_user(session: Session, candidate: CreateUserRequest | Mapping[str, Any]) -> Success[UserResponse] | Failure:
    """Insert a user, or rename the existing user that already owns the email."""
    validated = validate_create_user(candidate)
    if not validated.ok:
        return validated
    request = validated.value
    password_hash = _hash_request_password(request)
    if isinstance(password_hash, Failure):
        return password_hash

    dialect = session.get_bind().dialect.name
    insert_for_dialect = UPSERT_INSERTS.get(dialect)
    if insert_for_dialect is None:
        return storage_failure(f'Upsert is not supported on {dialect}.', request)

    table = User.__table__
    try:
        address = _add_address(session, request.address)

        statement = insert_for_dialect(table).values(
            email=request.email,
            hashed_password=password_hash,
            first_name=request.first_name,
            last_name=request.last_name,
            address_id=address.id,
            role=request.role,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[table.c.email],
            set_={
                table.c.first_name: request.first_name,
                table.c.last_name: request.last_name,
            },
        ).returning(table.c.id, table.c.address_id)
        row = session.execute(statement).one()

        if row.address_id != address.id:
            # Existing user kept its address.
            session.delete(address)
            session.flush()

        user = session.execute(
            USER_BY_ID.execution_options(populate_existing=True),
            {'user_id': row.id},
        ).scalar_one()
        response = _to_response(user)
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User upsert', request)

    return Success(value=response)


def delete_user_by_email(session: Session, email: str) -> Success[UserResponse] | Failure:
    try:
        user = session.execute(USER_BY_EMAIL, {'email': normalize_email(email)}).scalar_one_or_none()
        if user is None:
            return not_found(f'User with email {email!r} not found.')

        response = _to_response(user)
        session.delete(user)
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'User delete')

    return Success(value=response)


def delete_all(session: Session) -> Success[dict[str, int]] | Failure:
    try:
        deleted_users = session.execute(delete(User)).rowcount
        deleted_addresses = session.execute(delete(Address)).rowcount
        session.commit()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'Delete all')

    # Bulk deletes bypass the identity map.
    session.expunge_all()
    return Success(value={'users': deleted_users, 'addresses': deleted_addresses})


def verify_user_password(session: Session, email: str, password: str) -> Success[UserResponse] | Failure:
    try:
        user = session.execute(USER_BY_EMAIL, {'email': normalize_email(email)}).scalar_one_or_none()
    except SQLAlchemyError as exc:
        return _store_failure(session, exc, 'Password check')

    if user is None or not verify_password(password, user.hashed_password):
        return not_found('Invalid email or password.')
    return Success(value=_to_response(user))
