from typing import Annotated
from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
import logging

from ..core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def enable_sqlite_savepoints(engine: Engine) -> None:
    """Let pysqlite honour BEGIN/SAVEPOINT so nested transactions behave as on PostgreSQL."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, **kwargs) -> Engine:
    # Create engine with appropriate settings for PostgreSQL vs SQLite
    if database_url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        engine = create_engine(database_url, connect_args=connect_args, echo=False, **kwargs)
        enable_sqlite_savepoints(engine)
    else:
        engine = create_engine(
            database_url,
            pool_pre_ping=True,
            pool_recycle=300,
            echo=False,
            **kwargs
        )
    return engine


engine = build_engine(settings.DATABASE_URL)
logger.info("Using database: PostgreSQL" if "postgresql" in settings.DATABASE_URL else "Using database: SQLite")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]
