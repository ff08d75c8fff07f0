"""
Password hashing helpers.
"""

import bcrypt

from userdata.core import config


class PasswordHashError(ValueError):
    pass


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    password = (plain_password or "").encode("utf-8")
    if not password:
        raise PasswordHashError("Password is empty.")
    salt = bcrypt.gensalt(rounds=rounds or config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password, salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False
