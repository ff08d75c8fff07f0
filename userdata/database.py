import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from userdata.core import config


Base = declarative_base()

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


class Database:
    """Explicitly owned store handle.

    Nothing is connected until ``open()`` is called, and ``close()`` disposes
    the engine's pool. Sessions handed out by ``session()`` are passed down to
    the query functions instead of being looked up globally.
    """

    def __init__(self, url: str | None = None, *, echo: bool | None = None, **engine_options) -> None:
        self.url = url or config.DATABASE_URL
        self.echo = config.SQL_ECHO if echo is None else echo
        self._engine_options = engine_options
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    def __enter__(self) -> 'Database':
        return self.open()

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError('Database is not open. Call open() first.')
        return self._engine

    def open(self) -> 'Database':
        if self._engine is not None:
            return self

        engine = create_engine(self.url, echo=self.echo, **self._engine_options)
        if config.is_sqlite_url(self.url):
            event.listen(engine, 'connect', _enable_sqlite_foreign_keys)

        self._engine = engine
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=engine,
        )
        logger.debug('Opened database %s', engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is None:
            return

        self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def new_session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError('Database is not open. Call open() first.')
        return self._session_factory()

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.new_session()
        try:
            yield db
        finally:
            db.close()

    def create_schema(self) -> None:
        # Table classes must be registered on Base before create_all runs.
        from userdata.models import address, user  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_schema(self) -> None:
        from userdata.models import address, user  # noqa: F401

        Base.metadata.drop_all(bind=self.engine)
