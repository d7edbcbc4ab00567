"""SQLAlchemy database models for run history."""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Text, JSON, Integer, ForeignKey
from sqlalchemy.orm import relationship
from .database import Base


def _utc_now():
    return datetime.now(timezone.utc)


class WorkflowRunModel(Base):
    """Database model for workflow runs."""
    __tablename__ = "workflow_runs"

    id = Column(String, primary_key=True)
    workflow_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)  # pending, running, completed, failed
    inputs = Column(JSON)
    outputs = Column(JSON)
    results = Column(JSON)  # Ordered per-step results
    error_message = Column(Text)
    failed_step_id = Column(String)
    started_at = Column(DateTime, default=_utc_now)
    completed_at = Column(DateTime)

    logs = relationship("LogEntryModel", back_populates="run", cascade="all, delete-orphan")


class LogEntryModel(Base):
    """Database model for run history events."""
    __tablename__ = "log_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String, ForeignKey("workflow_runs.id"), nullable=False, index=True)
    timestamp = Column(DateTime, default=_utc_now)
    node_id = Column(String)
    event_type = Column(String, nullable=False)  # workflow_start, node_start, node_complete, ...
    message = Column(Text, nullable=False)
    state_snapshot = Column(JSON)

    run = relationship("WorkflowRunModel", back_populates="logs")
