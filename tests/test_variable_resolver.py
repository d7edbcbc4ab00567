"""Tests for reference resolution against the variable store."""

import pytest

from stepflow.core.exceptions import (
    IndexOutOfRangeError,
    NotAnArrayError,
    PropertyNotFoundError,
    StepNotFoundError,
    StepNotSuccessfulError,
    VariableResolutionError,
)
from stepflow.models.core import NodeOutput, NodeStatusEnum
from stepflow.variables.parser import parse_variable_references
from stepflow.variables.resolver import resolve_reference, try_resolve


def ref(expression):
    return parse_variable_references(expression)[0]


class TestResolveReference:
    """Path navigation through stored outputs."""

    def test_extracted_data_index(self, populated_store):
        assert resolve_reference(ref("{{A.extractedData.ids[0]}}"), populated_store) == "x"
        assert resolve_reference(ref("{{A.extractedData.ids[1]}}"), populated_store) == "y"

    def test_nested_raw_data(self, populated_store):
        assert resolve_reference(ref("{{A.data.user.name}}"), populated_store) == "ada"

    def test_index_then_property(self, populated_store):
        assert resolve_reference(ref("{{A.data.items[1].id}}"), populated_store) == 2

    def test_non_string_values_are_returned_as_is(self, populated_store):
        assert resolve_reference(ref("{{A.extractedData.count}}"), populated_store) == 2
        assert resolve_reference(ref("{{A.extractedData.flags}}"), populated_store) == {"on": True}

    def test_record_level_fields(self, populated_store):
        assert resolve_reference(ref("{{A.nodeType}}"), populated_store) == "lambda"
        assert resolve_reference(ref("{{A.status}}"), populated_store) == "success"

    def test_missing_step(self, populated_store):
        with pytest.raises(StepNotFoundError):
            resolve_reference(ref("{{Z.data}}"), populated_store)

    def test_failed_step_is_not_referenceable(self, store):
        store.put("F", NodeOutput(node_id="F", node_type="s3", status=NodeStatusEnum.ERROR))
        with pytest.raises(StepNotSuccessfulError):
            resolve_reference(ref("{{F.data}}"), store)

    def test_missing_property(self, populated_store):
        with pytest.raises(PropertyNotFoundError) as exc_info:
            resolve_reference(ref("{{A.extractedData.missing}}"), populated_store)
        assert "Property missing not found" in exc_info.value.message
        assert exc_info.value.reference == "{{A.extractedData.missing}}"

    def test_property_of_scalar(self, populated_store):
        with pytest.raises(PropertyNotFoundError):
            resolve_reference(ref("{{A.extractedData.count.value}}"), populated_store)

    def test_index_into_non_array(self, populated_store):
        with pytest.raises(NotAnArrayError):
            resolve_reference(ref("{{A.extractedData.count[0]}}"), populated_store)

    def test_index_out_of_range(self, populated_store):
        with pytest.raises(IndexOutOfRangeError):
            resolve_reference(ref("{{A.extractedData.ids[5]}}"), populated_store)

    def test_all_failures_share_a_base_class(self, populated_store):
        for expression in ("{{Z.data}}", "{{A.nope}}", "{{A.data.user[0]}}"):
            with pytest.raises(VariableResolutionError):
                resolve_reference(ref(expression), populated_store)


class TestTryResolve:
    """Non-raising resolution."""

    def test_success(self, populated_store):
        resolution = try_resolve(ref("{{A.extractedData.ids[0]}}"), populated_store)
        assert resolution.ok
        assert resolution.value == "x"
        assert resolution.error is None

    def test_failure_carries_error(self, populated_store):
        resolution = try_resolve(ref("{{A.extractedData.nope}}"), populated_store)
        assert not resolution.ok
        assert isinstance(resolution.error, PropertyNotFoundError)
        assert resolution.reference.full_expression == "{{A.extractedData.nope}}"

    def test_resolved_none_is_still_ok(self, store):
        store.put("A", NodeOutput(node_id="A", node_type="s3", data={"value": None}))
        resolution = try_resolve(ref("{{A.data.value}}"), store)
        assert resolution.ok
        assert resolution.value is None
