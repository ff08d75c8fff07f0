import pytest

from userdata.core.results import ErrorKind
from userdata.models.user import UserRole
from userdata.schemas.user_schemas import (
    CreateUserRequest,
    validate_create_user,
    validate_name_update,
)

RIZAL = {
    'email': 'j.rizal@lasolidaridad.org',
    'password': 'noli-me-tangere',
    'first_name': 'Jose',
    'last_name': 'Rizal',
    'address': {
        'street': 'Rizal Avenue',
        'city': 'Calamba',
        'province': 'Laguna',
    },
}


def test_validate_create_user_accepts_valid_payload() -> None:
    result = validate_create_user(RIZAL)

    assert result.ok
    assert result.value.email == 'j.rizal@lasolidaridad.org'
    assert result.value.address.city == 'Calamba'
    assert result.value.role is UserRole.USER


def test_validate_create_user_normalizes_fields() -> None:
    result = validate_create_user({
        **RIZAL,
        'email': ' J.Rizal@LaSolidaridad.ORG ',
        'first_name': '  Jose ',
        'last_name': ' Rizal  ',
        'role': ' admin ',
    })

    assert result.ok
    assert result.value.email == 'j.rizal@lasolidaridad.org'
    assert result.value.first_name == 'Jose'
    assert result.value.last_name == 'Rizal'
    assert result.value.role is UserRole.ADMIN


def test_validate_create_user_defaults_missing_address_fields() -> None:
    result = validate_create_user({**RIZAL, 'address': {'city': 'Calamba', 'province': None}})

    assert result.ok
    assert result.value.address.street == ''
    assert result.value.address.city == 'Calamba'
    assert result.value.address.province == ''


def test_validate_create_user_rejects_invalid_email() -> None:
    result = validate_create_user({**RIZAL, 'email': 'not an email'})

    assert not result.ok
    assert result.error is ErrorKind.VALIDATION
    assert 'Invalid Email' in result.messages()
    assert [violation.field for violation in result.violations] == ['email']


@pytest.mark.parametrize(
    'email',
    ['jose..rizal@example.org', '.jose@example.org', 'jose.@example.org', 'jose@', '@example.org'],
)
def test_validate_create_user_rejects_malformed_local_part_and_domain(email: str) -> None:
    result = validate_create_user({**RIZAL, 'email': email})

    assert not result.ok
    assert 'Invalid Email' in result.messages()


@pytest.mark.parametrize('first_name', ['', '   '])
def test_validate_create_user_rejects_blank_first_name(first_name: str) -> None:
    result = validate_create_user({**RIZAL, 'first_name': first_name})

    assert not result.ok
    assert {(violation.field, violation.message) for violation in result.violations} == {
        ('first_name', 'Minimum of 1 Character'),
    }


def test_validate_create_user_rejects_overlong_last_name() -> None:
    result = validate_create_user({**RIZAL, 'last_name': 'R' * 256})

    assert not result.ok
    assert 'Maximum of 255 Characters' in result.messages()


def test_validate_create_user_rejects_short_password() -> None:
    result = validate_create_user({**RIZAL, 'password': 'ab'})

    assert not result.ok
    assert 'Minimum of 3 Characters' in result.messages()


def test_validate_create_user_rejects_empty_password_when_minimum_is_zero(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr('userdata.core.config.PASSWORD_MIN_LENGTH', 0)

    result = validate_create_user({**RIZAL, 'password': ''})

    assert not result.ok
    assert 'Minimum of 1 Characters' in result.messages()


def test_validate_create_user_reports_every_violation() -> None:
    result = validate_create_user({
        'email': 'not an email',
        'password': 'x',
        'first_name': '',
        'last_name': 'Rizal',
        'role': 'ROOT',
    })

    assert not result.ok
    assert {violation.field for violation in result.violations} == {
        'email',
        'password',
        'first_name',
        'address',
        'role',
    }


def test_validate_create_user_reports_nested_address_paths() -> None:
    result = validate_create_user({**RIZAL, 'address': {'city': 42}})

    assert not result.ok
    assert [violation.field for violation in result.violations] == ['address.city']


def test_validation_failure_payload_never_contains_password() -> None:
    result = validate_create_user({**RIZAL, 'email': 'nope'})

    assert result.payload['password'] == '***'
    assert 'noli-me-tangere' not in result.model_dump_json()


def test_validate_create_user_rejects_non_mapping_payload() -> None:
    result = validate_create_user(None)

    assert not result.ok
    assert result.violations[0].field == 'payload'


def test_validate_create_user_passes_through_validated_request() -> None:
    request = CreateUserRequest.model_validate(RIZAL)

    assert validate_create_user(request).value is request


def test_validate_name_update_trims_and_allows_partial_updates() -> None:
    result = validate_name_update({'first_name': ' Jose Protasio ', 'last_name': None})

    assert result.ok
    assert result.value.first_name == 'Jose Protasio'
    assert result.value.last_name is None


def test_validate_name_update_rejects_blank_names() -> None:
    result = validate_name_update({'first_name': '', 'last_name': ' '})

    assert not result.ok
    assert {violation.field for violation in result.violations} == {'first_name', 'last_name'}
