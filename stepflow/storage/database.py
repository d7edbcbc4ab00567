"""Database connection and session management."""

from typing import Optional
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config

# Base class for all database models
Base = declarative_base()

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_database_engine(database_url: Optional[str] = None,
                        echo: Optional[bool] = None,
                        connect_args: Optional[dict] = None) -> Engine:
    """Get or create the database engine."""
    global _engine

    if _engine is None:
        config = get_config()
        if database_url is None:
            database_url = config.database_url
        if echo is None:
            echo = config.database_echo

        if connect_args is None:
            connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}

        if database_url.startswith("sqlite"):
            _engine = create_engine(
                database_url,
                connect_args=connect_args,
                poolclass=StaticPool,
                echo=echo
            )
        else:
            _engine = create_engine(
                database_url,
                echo=echo,
                connect_args=connect_args
            )

    return _engine


def get_session_factory() -> sessionmaker:
    """Session factory bound to the current engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_database_engine())
    return _session_factory


def reset_database_engine():
    """Reset the global database engine (mainly for testing)."""
    global _engine, _session_factory
    if _engine:
        _engine.dispose()
    _engine = None
    _session_factory = None


def init_database(database_url: Optional[str] = None, echo: Optional[bool] = None) -> sessionmaker:
    """Point the module at a database, create its tables and return a session factory."""
    reset_database_engine()
    engine = get_database_engine(database_url, echo)
    create_tables(engine)
    return get_session_factory()


def get_db():
    """Yield a database session and close it afterwards."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine: Optional[Engine] = None):
    """Create all database tables."""
    from . import models  # noqa: F401  registers the tables on Base
    Base.metadata.create_all(bind=engine or get_database_engine())


def drop_tables(engine: Optional[Engine] = None):
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine or get_database_engine())
