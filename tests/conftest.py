import pytest
from sqlalchemy.pool import StaticPool

from userdata.database import Database


def in_memory_database() -> Database:
    return Database(
        'sqlite://',
        echo=False,
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('userdata.core.config.BCRYPT_ROUNDS', 4)


@pytest.fixture
def database():
    database = in_memory_database().open()
    database.create_schema()
    try:
        yield database
    finally:
        database.drop_schema()
        database.close()


@pytest.fixture
def user_db(database):
    with database.session() as db:
        yield db
