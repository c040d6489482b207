from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from src.config import settings
from src.logger import logger

Base = declarative_base()


def _build_connect_args(url: str, statement_timeout_ms: int, connect_timeout: int) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # Busy timeout bounds how long a writer waits on a locked database
        return {
            "check_same_thread": False,
            "timeout": max(statement_timeout_ms / 1000.0, 1.0),
        }
    if url.startswith("postgresql"):
        return {
            "connect_timeout": connect_timeout,
            "options": f"-c statement_timeout={statement_timeout_ms}",
        }
    return {}


class Database:
    """Storage handle owning the engine and session factory.

    Created once at process start (see ``src.main`` lifespan) and passed to
    the services that need it; ``dispose()`` releases the pool at shutdown.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        statement_timeout_ms: Optional[int] = None,
        connect_timeout: Optional[int] = None,
        echo: bool = False,
    ):
        self.url = url or settings.database_url
        connect_args = _build_connect_args(
            self.url,
            statement_timeout_ms or settings.DB_STATEMENT_TIMEOUT_MS,
            connect_timeout or settings.DB_CONNECT_TIMEOUT,
        )
        engine_kwargs: Dict[str, Any] = {
            "connect_args": connect_args,
            "pool_pre_ping": True,
            "echo": echo,
        }
        if not self.url.startswith("sqlite"):
            engine_kwargs["pool_size"] = settings.DB_POOL_SIZE

        self.engine: Engine = create_engine(self.url, **engine_kwargs)
        if self.url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite_connection)
            event.listen(self.engine, "begin", _begin_sqlite_immediate)

        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    def create_all(self):
        """Create all tables (used by tests and local development)"""
        import src.models  # noqa: F401  registers mappers on Base

        Base.metadata.create_all(bind=self.engine)

    def dispose(self):
        self.engine.dispose()
        logger.info("Database pool disposed")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """One unit of work: commit on success, roll back otherwise.

        BaseException is caught too so an abandoned request never leaves a
        half-applied transaction committed.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()


def _configure_sqlite_connection(dbapi_connection, _connection_record):
    # Take over BEGIN from pysqlite so transactions cover reads as well
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_immediate(conn):
    # SQLite has a single writer; grab it up front instead of upgrading a read lock mid-transaction
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the handle opened by the app lifespan"""
    return request.app.state.database
