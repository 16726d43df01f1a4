"""Tests for structural validation and repair."""

import pytest

from nodeflow.core.exceptions import StructuralError
from nodeflow.engine.types import WorkflowGraph
from nodeflow.engine.validator import GraphValidator
from tests.conftest import make_graph


@pytest.fixture
def validator(registry) -> GraphValidator:
    return GraphValidator(registry)


def kinds(result):
    return [issue.kind for issue in result.errors]


class TestFatalIssues:

    def test_duplicate_node_ids(self, validator):
        graph = make_graph([("t", "manual_trigger"), ("a", "noop"), ("a", "noop")], [("t", "a")])
        result = validator.validate(graph)
        assert "duplicate_node" in kinds(result)
        with pytest.raises(StructuralError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.issues[0]["kind"] == "duplicate_node"

    def test_unknown_kind(self, validator):
        graph = make_graph([("t", "manual_trigger"), ("x", "teleport")], [("t", "x")])
        assert kinds(validator.validate(graph)) == ["unknown_kind"]

    def test_dangling_edge(self, validator):
        graph = make_graph([("t", "manual_trigger"), ("a", "noop")], [("t", "a"), ("a", "ghost")])
        result = validator.validate(graph)
        assert kinds(result) == ["dangling_edge"]
        assert result.errors[0].edge_id == "e1"

    def test_trigger_with_incoming_edge(self, validator):
        graph = make_graph([("t", "manual_trigger"), ("a", "noop"), ("w", "webhook")], [("t", "a"), ("a", "w")])
        assert kinds(validator.validate(graph)) == ["trigger_has_input"]

    def test_missing_trigger(self, validator):
        graph = make_graph([("a", "noop"), ("b", "noop")], [("a", "b")])
        assert "missing_trigger" in kinds(validator.validate(graph))

    def test_cycle_outside_loop(self, validator):
        graph = make_graph(
            [("t", "manual_trigger"), ("a", "noop"), ("b", "noop")],
            [("t", "a"), ("a", "b"), ("b", "a")],
        )
        result = validator.validate(graph)
        assert kinds(result) == ["illegal_cycle"]
        assert "a" in result.errors[0].message and "b" in result.errors[0].message

    def test_loop_back_edge_is_legal(self, validator):
        graph = make_graph(
            [("t", "manual_trigger"), ("loop", "loop"), ("body", "noop"), ("after", "noop")],
            [("t", "loop"), ("loop", "body", "loop"), ("body", "loop"), ("loop", "after", "done")],
        )
        assert validator.validate(graph).is_valid

    def test_empty_graph_is_valid(self, validator):
        assert validator.validate(make_graph([], [])).is_valid

    def test_duplicate_edge_ids(self, validator):
        graph = WorkflowGraph.from_dict(
            {
                "nodes": [{"id": "t", "kind": "manual_trigger"}, {"id": "loop", "kind": "loop"}, {"id": "b", "kind": "noop"}],
                "edges": [
                    {"id": "e1", "source": "t", "target": "loop"},
                    {"id": "e2", "source": "loop", "target": "b", "label": "loop"},
                    {"id": "e1", "source": "b", "target": "loop"},
                ],
            }
        )
        result = validator.validate(graph)
        assert kinds(result) == ["duplicate_edge"]
        assert result.errors[0].edge_id == "e1"

    def test_generated_edge_ids_avoid_supplied_ones(self, validator):
        graph = WorkflowGraph.from_dict(
            {
                "nodes": [{"id": "t", "kind": "manual_trigger"}, {"id": "a", "kind": "noop"}, {"id": "b", "kind": "noop"}],
                "edges": [{"id": "e1", "source": "t", "target": "a"}, {"source": "a", "target": "b"}],
            }
        )
        assert [e.id for e in graph.edges] == ["e1", "e1_"]
        assert validator.validate(graph).is_valid


class TestRepairs:

    def test_orphan_is_wired_from_trigger(self, validator):
        graph = make_graph([("t", "manual_trigger"), ("a", "noop"), ("orphan", "noop")], [("t", "a")])
        result = validator.validate(graph)
        assert result.is_valid
        wired = [e for e in result.graph.edges if e.target == "orphan"]
        assert len(wired) == 1 and wired[0].source == "t"
        assert [w.kind for w in result.warnings] == ["orphan_node"]

    def test_orphan_uses_closest_preceding_trigger(self, validator):
        graph = make_graph(
            [("t1", "manual_trigger"), ("a", "noop"), ("t2", "webhook"), ("orphan", "noop")],
            [("t1", "a")],
        )
        result = validator.validate(graph)
        wired = [e for e in result.graph.edges if e.target == "orphan"]
        assert wired[0].source == "t2"

    def test_conditional_missing_branch_gets_noop(self, validator):
        graph = make_graph(
            [("t", "manual_trigger"), ("c", "if_else", {"condition": "true"}), ("yes", "noop")],
            [("t", "c"), ("c", "yes", "true")],
        )
        result = validator.validate(graph)
        assert result.is_valid
        added = result.graph.node_map["c__false_noop"]
        assert added.kind == "noop"
        assert any(e.source == "c" and e.target == added.id and e.label == "false" for e in result.graph.edges)

    def test_revalidating_applies_no_repairs(self, validator):
        graph = make_graph(
            [("t", "manual_trigger"), ("c", "if_else"), ("orphan", "noop")],
            [("t", "c")],
        )
        first = validator.validate(graph)
        assert first.repairs
        second = validator.validate(first.graph)
        assert second.repairs == []
        assert second.graph == first.graph

    def test_valid_graph_returned_unchanged(self, validator):
        graph = make_graph([("t", "manual_trigger"), ("a", "noop")], [("t", "a")])
        result = validator.validate(graph)
        assert result.repairs == []
        assert result.graph is graph

    def test_error_trigger_is_not_a_start_trigger(self, validator):
        graph = make_graph([("err", "error_trigger"), ("a", "noop")], [("err", "a")])
        assert "missing_trigger" in kinds(validator.validate(graph))
