"""Run history storage layer."""

from .database import (
    Base,
    get_db,
    get_database_engine,
    get_session_factory,
    init_database,
    reset_database_engine,
    create_tables,
    drop_tables,
)
from .models import WorkflowRunModel, LogEntryModel
from .run_history import RunHistory

__all__ = [
    "Base",
    "get_db",
    "get_database_engine",
    "get_session_factory",
    "init_database",
    "reset_database_engine",
    "create_tables",
    "drop_tables",
    "WorkflowRunModel",
    "LogEntryModel",
    "RunHistory",
]
