"""Pytest configuration and fixtures."""

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stepflow.config import reset_config
from stepflow.core.execution_engine import ExecutionEngine
from stepflow.core.logging import clear_logging_context
from stepflow.core.step_registry import StepRegistry
from stepflow.models.core import NodeOutput, NodeStatusEnum, WorkflowDefinition, WorkflowEdge, WorkflowNode
from stepflow.storage.database import Base, reset_database_engine
from stepflow.storage.run_history import RunHistory
from stepflow.variables.store import VariableStore


@pytest.fixture(autouse=True)
def reset_globals(monkeypatch):
    """Isolate tests from STEPFLOW_* environment and cached globals."""
    for key in list(os.environ):
        if key.startswith("STEPFLOW_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
    reset_database_engine()
    clear_logging_context()


@pytest.fixture
def session_factory():
    """In-memory database shared across sessions through a static pool."""
    from stepflow.storage import models  # noqa: F401

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield factory

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def run_history(session_factory):
    return RunHistory(session_factory)


@pytest.fixture
def store():
    return VariableStore()


@pytest.fixture
def populated_store():
    """Store holding one successful step 'A' with raw and extracted data."""
    variable_store = VariableStore()
    variable_store.put("A", NodeOutput(
        node_id="A",
        node_type="lambda",
        status=NodeStatusEnum.SUCCESS,
        data={"user": {"name": "ada"}, "items": [{"id": 1}, {"id": 2}]},
        extracted_data={"ids": ["x", "y"], "count": 2, "flags": {"on": True}}
    ))
    return variable_store


class RecordingExecutor:
    """Fake executor that records resolved configs and returns canned results."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def __call__(self, config):
        self.calls.append(config)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def registry():
    return StepRegistry()


@pytest.fixture
def engine(registry):
    return ExecutionEngine(registry)


def make_workflow(nodes, edges=(), **kwargs) -> WorkflowDefinition:
    """Build a workflow from (id, type, config) tuples and (source, target) pairs."""
    return WorkflowDefinition(
        nodes=[WorkflowNode(id=node_id, type=node_type, config=config) for node_id, node_type, config in nodes],
        edges=[WorkflowEdge(source=source, target=target) for source, target in edges],
        **kwargs
    )


@pytest.fixture
def workflow_factory():
    return make_workflow


@pytest.fixture
def executor_factory():
    return RecordingExecutor
