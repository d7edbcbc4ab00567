"""Tests for substituting references into strings and configuration trees."""

import copy

import pytest

from stepflow.variables.substitution import (
    stringify_value,
    substitute_config,
    substitute_config_detailed,
    substitute_string,
    substitute_string_detailed,
)


class TestSubstituteString:
    """String-level substitution."""

    def test_replaces_resolvable_reference(self, populated_store):
        assert substitute_string("id={{A.extractedData.ids[0]}}", populated_store) == "id=x"

    def test_unresolvable_reference_left_verbatim(self, populated_store):
        text = "id={{A.extractedData.missing}}"
        assert substitute_string(text, populated_store) == text

    def test_mixed_resolvable_and_unresolvable(self, populated_store):
        result = substitute_string("{{A.extractedData.ids[1]}}/{{Z.data.x}}", populated_store)
        assert result == "y/{{Z.data.x}}"

    def test_repeated_reference_replaced_everywhere(self, populated_store):
        assert substitute_string("{{A.data.user.name}}-{{A.data.user.name}}", populated_store) == "ada-ada"

    def test_non_string_values_serialized_compactly(self, populated_store):
        assert substitute_string("{{A.extractedData.count}}", populated_store) == "2"
        assert substitute_string("{{A.extractedData.flags}}", populated_store) == '{"on":true}'
        assert substitute_string("ids={{A.extractedData.ids}}", populated_store) == 'ids=["x","y"]'

    def test_text_without_references_unchanged(self, populated_store):
        assert substitute_string("no refs {{here}}", populated_store) == "no refs {{here}}"

    @pytest.mark.parametrize("text", [
        "{{A.data.user.name}} owns {{A.extractedData.ids[1]}}",
        "{{A.data.user.name}} vs {{Z.data.x}} and {{nodot}}",
        "{{A.extractedData.ids[5]}}|{{A.extractedData.count}}|{{ A.data.items[0].id }}",
        "{{A.extractedData.flags}} {{A.data.user.missing}} {{A.extractedData.count.deeper}}",
        "{{A.extractedData.ids}}{{A.extractedData.ids}} {{}} plain",
    ])
    def test_second_pass_changes_nothing(self, populated_store, text):
        once = substitute_string(text, populated_store)
        assert substitute_string(once, populated_store) == once

    def test_empty_store_leaves_everything(self, store):
        assert substitute_string("{{A.data}}", store) == "{{A.data}}"

    def test_whitespace_variant_replaced_by_its_own_span(self, populated_store):
        result = substitute_string("{{ A.data.user.name }}:{{A.data.user.name}}", populated_store)
        assert result == "ada:ada"

    def test_detailed_reports_unresolved(self, populated_store):
        result = substitute_string_detailed("{{A.nope}} {{A.nope}} {{A.data.user.name}}", populated_store)
        assert result.value == "{{A.nope}} {{A.nope}} ada"
        assert not result.fully_resolved
        assert result.unresolved_expressions() == ["{{A.nope}}"]

    def test_detailed_fully_resolved(self, populated_store):
        result = substitute_string_detailed("{{A.data.user.name}}", populated_store)
        assert result.fully_resolved
        assert result.unresolved == []


class TestStringifyValue:

    def test_strings_inserted_as_is(self):
        assert stringify_value("plain") == "plain"

    def test_scalars(self):
        assert stringify_value(3) == "3"
        assert stringify_value(1.5) == "1.5"
        assert stringify_value(True) == "true"
        assert stringify_value(None) == "null"


class TestSubstituteConfig:
    """Tree-level substitution."""

    def test_nested_maps(self, populated_store):
        config = {"query": {"user": "{{A.data.user.name}}", "limit": 10}}
        assert substitute_config(config, populated_store) == {"query": {"user": "ada", "limit": 10}}

    def test_strings_in_lists_substituted(self, populated_store):
        config = {"ids": ["{{A.extractedData.ids[0]}}", "{{A.extractedData.ids[1]}}", 7]}
        assert substitute_config(config, populated_store) == {"ids": ["x", "y", 7]}

    def test_non_string_list_elements_copied_unchanged(self, populated_store):
        inner = {"id": "{{A.data.user.name}}"}
        config = {"items": [inner]}
        result = substitute_config(config, populated_store)
        assert result == {"items": [{"id": "{{A.data.user.name}}"}]}
        assert result["items"][0] is not inner

    def test_does_not_mutate_input(self, populated_store):
        config = {"a": "{{A.data.user.name}}", "b": ["{{A.extractedData.ids[0]}}"], "c": {"d": 1}}
        original = copy.deepcopy(config)
        result = substitute_config(config, populated_store)
        assert config == original
        assert result["c"] is not config["c"]

    def test_scalars_pass_through(self, populated_store):
        assert substitute_config(5, populated_store) == 5
        assert substitute_config(None, populated_store) is None
        assert substitute_config("{{A.data.user.name}}", populated_store) == "ada"

    def test_unresolved_collected_across_tree(self, populated_store):
        config = {"a": "{{Z.x}}", "b": ["{{A.missing}}"], "c": "{{A.data.user.name}}"}
        result = substitute_config_detailed(config, populated_store)
        assert result.value == {"a": "{{Z.x}}", "b": ["{{A.missing}}"], "c": "ada"}
        assert result.unresolved_expressions() == ["{{Z.x}}", "{{A.missing}}"]
