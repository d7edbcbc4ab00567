"""Tests for the workflow data models."""

import pytest
from pydantic import ValidationError

from stepflow.models.core import (
    ExecutionStatusEnum,
    NodeExecutionResult,
    NodeOutput,
    NodeStatusEnum,
    WorkflowDefinition,
    WorkflowExecution,
    WorkflowNode,
    WorkflowVariable,
)


class TestWorkflowDefinition:

    def test_duplicate_step_ids_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowDefinition(nodes=[WorkflowNode(id="A", type="s3"), WorkflowNode(id="A", type="s3")])

    def test_duplicate_variable_names_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowDefinition(variables=[WorkflowVariable(name="env"), WorkflowVariable(name="env")])

    def test_blank_step_fields_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowNode(id=" ", type="s3")
        with pytest.raises(ValidationError):
            WorkflowNode(id="A", type="")

    def test_lookup(self):
        workflow = WorkflowDefinition(nodes=[WorkflowNode(id=" A ", type="s3"), WorkflowNode(id="B", type="s3")])
        assert workflow.node_ids() == ["A", "B"]
        assert workflow.get_node("A").type == "s3"
        assert workflow.get_node("missing") is None


class TestExecutionModels:

    def test_terminal_run_requires_end_time(self):
        with pytest.raises(ValidationError):
            WorkflowExecution(workflow_id="wf", status=ExecutionStatusEnum.COMPLETED)

    def test_new_run_is_pending(self):
        execution = WorkflowExecution(workflow_id="wf")
        assert execution.status == ExecutionStatusEnum.PENDING
        assert not execution.is_terminal
        assert execution.results == []

    def test_step_result_is_immutable(self):
        result = NodeExecutionResult(node_id="A", node_type="s3", status=NodeStatusEnum.SUCCESS)
        assert result.is_success
        with pytest.raises(ValidationError):
            result.status = NodeStatusEnum.ERROR

    def test_reference_view_keys(self):
        output = NodeOutput(node_id="A", node_type="s3", data={"k": 1}, extracted_data={"e": 2}, duration_ms=3.0)
        view = output.as_reference_view()
        assert set(view) == {"nodeId", "nodeType", "status", "data", "extractedData", "timestamp", "duration"}
        assert view["status"] == "success"
        assert view["duration"] == 3.0
