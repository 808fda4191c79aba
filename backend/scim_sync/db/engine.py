from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scim_sync.configs.app_configs import SCIM_SYNC_DATABASE_ECHO
from scim_sync.configs.app_configs import SCIM_SYNC_DATABASE_URL
from scim_sync.db.models import Base
from scim_sync.utils.logger import setup_logger

logger = setup_logger()


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """pysqlite emits its own BEGIN lazily, which breaks SAVEPOINT. Take
    over transaction control so ``Session.begin_nested`` works."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def build_engine(
    url: str = SCIM_SYNC_DATABASE_URL,
    echo: bool = SCIM_SYNC_DATABASE_ECHO,
) -> Engine:
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live in a single connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        _enable_sqlite_savepoints(engine)
    else:
        engine = create_engine(url, echo=echo, pool_pre_ping=True)
    return engine


class SqlEngine:
    _engine: Engine | None = None
    _sessionmaker: sessionmaker[Session] | None = None

    @classmethod
    def init_engine(cls, url: str = SCIM_SYNC_DATABASE_URL) -> Engine:
        if cls._engine is None:
            cls._engine = build_engine(url)
            cls._sessionmaker = sessionmaker(bind=cls._engine, expire_on_commit=False)
            logger.info("Initialized mapping store engine for %s", cls._engine.url)
        return cls._engine

    @classmethod
    def get_engine(cls) -> Engine:
        if cls._engine is None:
            raise RuntimeError("Engine not initialized. Call init_engine first.")
        return cls._engine

    @classmethod
    def create_tables(cls) -> None:
        Base.metadata.create_all(cls.get_engine())

    @classmethod
    def reset_engine(cls) -> None:
        if cls._engine is not None:
            cls._engine.dispose()
        cls._engine = None
        cls._sessionmaker = None

    @classmethod
    @contextmanager
    def get_session(cls) -> Generator[Session, None, None]:
        if cls._sessionmaker is None:
            raise RuntimeError("Engine not initialized. Call init_engine first.")
        with cls._sessionmaker() as session:
            yield session
