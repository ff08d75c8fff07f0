import pytest

from userdata.auth.passwords import PasswordHashError, hash_password, verify_password


def test_hash_password_round_trips_with_verify() -> None:
    password_hash = hash_password('noli-me-tangere')

    assert password_hash != 'noli-me-tangere'
    assert verify_password('noli-me-tangere', password_hash)
    assert not verify_password('el-filibusterismo', password_hash)


def test_hash_password_rejects_empty_password() -> None:
    with pytest.raises(PasswordHashError):
        hash_password('')


def test_verify_password_rejects_malformed_hash() -> None:
    assert not verify_password('noli-me-tangere', 'not-a-bcrypt-hash')
    assert not verify_password('noli-me-tangere', '')
