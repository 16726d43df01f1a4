"""
Structural validation and repair of workflow graphs.

Fatal issues stop a graph from running. Repairable issues (orphan nodes,
conditionals missing a branch) are fixed in the returned graph and reported
as warnings. Generated ids are deterministic, so validating a repaired graph
again applies no further repairs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from ..core.exceptions import StructuralError
from .topology import (
    KindTraits,
    find_back_edges,
    find_cycle_members,
    find_loop_bodies,
    stable_topological_order,
)
from .types import Edge, Node, WorkflowGraph

if TYPE_CHECKING:
    from .node_registry import NodeRegistryClass

logger = logging.getLogger(__name__)

CONDITIONAL_BRANCHES = ("true", "false")


@dataclass
class ValidationIssue:
    """A single finding about the graph."""

    kind: str
    message: str
    node_id: str | None = None
    edge_id: str | None = None
    fatal: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "nodeId": self.node_id,
            "edgeId": self.edge_id,
            "fatal": self.fatal,
        }


@dataclass
class ValidationResult:
    graph: WorkflowGraph
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    repairs: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            summary = "; ".join(issue.message for issue in self.errors)
            raise StructuralError(
                f"Graph is not runnable: {summary}",
                issues=[issue.to_dict() for issue in self.errors],
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.is_valid,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "repairs": list(self.repairs),
            "graph": self.graph.to_dict(),
        }


class GraphValidator:
    """Checks a raw graph and returns a repaired copy plus issues."""

    def __init__(self, registry: NodeRegistryClass | None = None) -> None:
        self._registry = registry
        self._traits = KindTraits(registry)

    def validate(self, graph: WorkflowGraph) -> ValidationResult:
        nodes = list(graph.nodes)
        edges = list(graph.edges)
        result = ValidationResult(graph=graph)

        self._check_duplicates(nodes, result)
        self._check_duplicate_edges(edges, result)
        self._check_kinds(nodes, result)
        node_ids = {n.id for n in nodes}
        edges = self._check_dangling(edges, node_ids, result)
        self._check_trigger_inputs(nodes, edges, result)
        self._check_missing_trigger(nodes, result)

        self._repair_conditionals(nodes, edges, result)
        self._repair_orphans(nodes, edges, result)

        repaired = WorkflowGraph(nodes=tuple(nodes), edges=tuple(edges))
        self._check_cycles(repaired, result)

        result.graph = repaired if result.repairs else graph
        for issue in result.warnings:
            logger.warning("Graph repair: %s", issue.message)
        return result

    def _fatal(self, result: ValidationResult, kind: str, message: str, **ids: Any) -> None:
        result.errors.append(ValidationIssue(kind=kind, message=message, fatal=True, **ids))

    def _check_duplicates(self, nodes: list[Node], result: ValidationResult) -> None:
        seen: set[str] = set()
        for node in nodes:
            if node.id in seen:
                self._fatal(result, "duplicate_node", f'Duplicate node id "{node.id}"', node_id=node.id)
            seen.add(node.id)

    def _check_duplicate_edges(self, edges: list[Edge], result: ValidationResult) -> None:
        seen: set[str] = set()
        for edge in edges:
            if edge.id in seen:
                self._fatal(result, "duplicate_edge", f'Duplicate edge id "{edge.id}"', edge_id=edge.id)
            seen.add(edge.id)

    def _check_kinds(self, nodes: list[Node], result: ValidationResult) -> None:
        if self._registry is None:
            return
        for node in nodes:
            if not self._registry.has(node.kind):
                self._fatal(
                    result,
                    "unknown_kind",
                    f'Node "{node.display_name}" has unknown kind "{node.kind}"',
                    node_id=node.id,
                )

    def _check_dangling(self, edges: list[Edge], node_ids: set[str], result: ValidationResult) -> list[Edge]:
        kept = []
        for edge in edges:
            missing = [end for end in (edge.source, edge.target) if end not in node_ids]
            if missing:
                self._fatal(
                    result,
                    "dangling_edge",
                    f'Edge "{edge.id}" references missing node(s): {", ".join(missing)}',
                    edge_id=edge.id,
                )
            else:
                kept.append(edge)
        return kept

    def _check_trigger_inputs(self, nodes: list[Node], edges: list[Edge], result: ValidationResult) -> None:
        triggers = {n.id: n for n in nodes if self._traits.is_trigger(n.kind)}
        for edge in edges:
            if edge.target in triggers:
                self._fatal(
                    result,
                    "trigger_has_input",
                    f'Trigger "{triggers[edge.target].display_name}" cannot have incoming edges',
                    node_id=edge.target,
                    edge_id=edge.id,
                )

    def _check_missing_trigger(self, nodes: list[Node], result: ValidationResult) -> None:
        if not nodes or self._start_triggers(nodes):
            return
        if any(not self._traits.is_trigger(n.kind) for n in nodes):
            self._fatal(result, "missing_trigger", "Graph has no trigger node to start from")

    def _start_triggers(self, nodes: list[Node]) -> list[Node]:
        return [
            n for n in nodes
            if self._traits.is_trigger(n.kind) and not self._traits.is_error_trigger(n.kind)
        ]

    def _repair_conditionals(self, nodes: list[Node], edges: list[Edge], result: ValidationResult) -> None:
        existing = {n.id for n in nodes}
        for node in list(nodes):
            if not self._traits.is_conditional(node.kind):
                continue
            labels = {e.label for e in edges if e.source == node.id}
            for branch in CONDITIONAL_BRANCHES:
                if branch in labels:
                    continue
                terminal_id = f"{node.id}__{branch}_noop"
                if terminal_id not in existing:
                    nodes.append(
                        Node(
                            id=terminal_id,
                            kind="noop",
                            config={},
                            label=f"{node.display_name} ({branch})",
                        )
                    )
                    existing.add(terminal_id)
                edges.append(
                    Edge(id=f"{node.id}__{branch}_edge", source=node.id, target=terminal_id, label=branch)
                )
                message = f'Conditional "{node.display_name}" had no "{branch}" branch; added a no-op terminal'
                result.repairs.append(message)
                result.warnings.append(
                    ValidationIssue(kind="incomplete_conditional", message=message, node_id=node.id)
                )

    def _repair_orphans(self, nodes: list[Node], edges: list[Edge], result: ValidationResult) -> None:
        triggers = self._start_triggers(nodes)
        if not triggers:
            return
        has_input = {e.target for e in edges}
        positions = {n.id: i for i, n in enumerate(nodes)}
        for node in nodes:
            if self._traits.is_trigger(node.kind) or node.id in has_input:
                continue
            preceding = [t for t in triggers if positions[t.id] < positions[node.id]]
            trigger = preceding[-1] if preceding else triggers[0]
            edges.append(Edge(id=f"{trigger.id}__{node.id}_autowire", source=trigger.id, target=node.id))
            has_input.add(node.id)
            message = f'Node "{node.display_name}" had no incoming edge; wired it from "{trigger.display_name}"'
            result.repairs.append(message)
            result.warnings.append(ValidationIssue(kind="orphan_node", message=message, node_id=node.id))

    def _check_cycles(self, graph: WorkflowGraph, result: ValidationResult) -> None:
        bodies = find_loop_bodies(graph, self._traits)
        back_edges = find_back_edges(graph, bodies)
        forward = [e for i, e in enumerate(graph.edges) if i not in back_edges]
        _, leftover = stable_topological_order(graph, forward)
        if not leftover:
            return
        members = find_cycle_members(graph, forward, leftover) or leftover
        self._fatal(
            result,
            "illegal_cycle",
            f"Cycle outside a loop body: {', '.join(members)}",
            node_id=members[0],
        )
