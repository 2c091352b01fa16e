import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

logger = logging.getLogger(__name__)


class Database:
    """Owns the engine (and its connection pool) for one application instance.

    Built once when the app is constructed, `create_db_and_tables` runs at
    startup and `dispose` at shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        connect_args = {}
        engine_kwargs = {}
        # check_same_thread is needed for SQLite, not for PostgreSQL
        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, echo=echo, connect_args=connect_args, **engine_kwargs)

    def create_db_and_tables(self) -> None:
        # Registers every table on SQLModel.metadata
        import lapcms.models  # noqa: F401

        SQLModel.metadata.create_all(self.engine)

    def session(self) -> Session:
        return Session(self.engine)

    def dispose(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()


def get_session(request: Request) -> Iterator[Session]:
    db: Database = request.app.state.db
    with db.session() as session:
        yield session
