"""Tests for {{step.path}} reference parsing."""

from stepflow.models.core import VariableReference
from stepflow.variables.parser import contains_references, parse_variable_references


class TestParseVariableReferences:
    """Reference extraction from arbitrary strings."""

    def test_single_reference(self):
        assert parse_variable_references("id={{A.data.id}}") == [
            VariableReference(node_id="A", path="data.id", full_expression="{{A.data.id}}")
        ]

    def test_multiple_references_in_order(self):
        refs = parse_variable_references("{{A.x}} and {{B.y.z}}")
        assert [(ref.node_id, ref.path) for ref in refs] == [("A", "x"), ("B", "y.z")]

    def test_span_without_dot_is_skipped(self):
        assert parse_variable_references("{{nodot}} {{A.b}}") == [
            VariableReference(node_id="A", path="b", full_expression="{{A.b}}")
        ]

    def test_whitespace_inside_braces_is_trimmed(self):
        ref = parse_variable_references("{{  A.extractedData.ids[0]  }}")[0]
        assert ref.node_id == "A"
        assert ref.path == "extractedData.ids[0]"
        assert ref.full_expression == "{{  A.extractedData.ids[0]  }}"

    def test_split_happens_on_first_dot_only(self):
        ref = parse_variable_references("{{step-1.data.a.b.c}}")[0]
        assert ref.node_id == "step-1"
        assert ref.path == "data.a.b.c"

    def test_repeated_reference_appears_twice(self):
        refs = parse_variable_references("{{A.x}}-{{A.x}}")
        assert len(refs) == 2
        assert refs[0] == refs[1]

    def test_no_references(self):
        assert parse_variable_references("plain text {single} braces") == []
        assert parse_variable_references("") == []

    def test_unclosed_span_is_ignored(self):
        assert parse_variable_references("{{A.x") == []

    def test_recovers_tokens_built_into_text(self):
        tokens = [
            ("cloudwatch1", "extractedData.userIds[0]"),
            ("s3", "data.objects[2].key"),
            ("step-9", "extractedData"),
            ("cloudwatch1", "extractedData.userIds[0]"),
        ]
        fillers = ["Users: ", " then ", "\n", " / ", " (end)"]
        text = fillers[0] + "".join(
            "{{" + node_id + "." + path + "}}" + filler
            for (node_id, path), filler in zip(tokens, fillers[1:])
        )

        refs = parse_variable_references(text)

        assert [(ref.node_id, ref.path) for ref in refs] == tokens
        assert [ref.full_expression for ref in refs] == ["{{%s.%s}}" % token for token in tokens]
        assert parse_variable_references(text) == refs

    def test_non_string_input(self):
        assert parse_variable_references(42) == []
        assert parse_variable_references(None) == []


class TestContainsReferences:

    def test_detects_reference(self):
        assert contains_references("hello {{A.data}}")

    def test_rejects_span_without_dot(self):
        assert not contains_references("hello {{name}}")
