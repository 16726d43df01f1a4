"""
Execution ordering for workflow graphs.

Loop bodies are carved out first so their back-edges do not count as cycles,
then the remaining forward edges are sorted with Kahn's algorithm using node
creation order as the tie-break.
"""

from __future__ import annotations

import heapq
from collections import defaultdict, deque
from typing import TYPE_CHECKING

from .types import Edge, Node, WorkflowGraph

if TYPE_CHECKING:
    from ..nodes.base import BaseNode
    from .node_registry import NodeRegistryClass

BODY_LABEL = "loop"
DONE_LABEL = "done"

ERROR_TRIGGER_KIND = "error_trigger"
CONDITIONAL_KIND = "if_else"

# Used when no registry is available to classify kinds
TRIGGER_KINDS = frozenset({"manual_trigger", "webhook", "schedule", "interval", ERROR_TRIGGER_KIND})
LOOP_KINDS = frozenset({"loop", "split_in_batches"})


class KindTraits:
    """Answers structural questions about node kinds."""

    def __init__(self, registry: NodeRegistryClass | None = None) -> None:
        self._registry = registry

    def handler(self, kind: str) -> BaseNode | None:
        if self._registry is not None and self._registry.has(kind):
            return self._registry.get(kind)
        return None

    def canonical(self, kind: str) -> str:
        return self._registry.canonical(kind) if self._registry is not None else kind

    def is_trigger(self, kind: str) -> bool:
        handler = self.handler(kind)
        return handler.is_trigger if handler else kind in TRIGGER_KINDS

    def is_error_trigger(self, kind: str) -> bool:
        return self.canonical(kind) == ERROR_TRIGGER_KIND

    def is_loop(self, kind: str) -> bool:
        handler = self.handler(kind)
        return handler.is_iterating if handler else kind in LOOP_KINDS

    def is_conditional(self, kind: str) -> bool:
        return self.canonical(kind) == CONDITIONAL_KIND

    def wraps_successors(self, kind: str) -> bool:
        handler = self.handler(kind)
        return bool(handler and handler.wraps_successors)


def find_loop_bodies(graph: WorkflowGraph, traits: KindTraits) -> dict[str, frozenset[str]]:
    """Nodes reachable from each loop node's `loop` edges without re-entering it."""
    outgoing: dict[str, list[str]] = defaultdict(list)
    for edge in graph.edges:
        outgoing[edge.source].append(edge.target)

    bodies: dict[str, frozenset[str]] = {}
    for node in graph.nodes:
        if not traits.is_loop(node.kind):
            continue
        starts = [
            e.target for e in graph.edges
            if e.source == node.id and e.label == BODY_LABEL and e.target != node.id
        ]
        seen: set[str] = set()
        queue = deque(starts)
        while queue:
            current = queue.popleft()
            if current in seen or current == node.id:
                continue
            seen.add(current)
            queue.extend(outgoing.get(current, []))
        bodies[node.id] = frozenset(seen)
    return bodies


def find_back_edges(graph: WorkflowGraph, bodies: dict[str, frozenset[str]]) -> set[int]:
    """Positions in `graph.edges` of edges from a loop body back into its loop node."""
    return {
        position for position, e in enumerate(graph.edges)
        if e.target in bodies and (e.source in bodies[e.target] or e.source == e.target)
    }


def stable_topological_order(
    graph: WorkflowGraph,
    edges: list[Edge],
) -> tuple[list[str], list[str]]:
    """
    Kahn's algorithm with creation order as tie-break.

    Returns (ordered, leftover); leftover nodes sit on or behind a cycle.
    """
    indegree: dict[str, int] = {n.id: 0 for n in graph.nodes}
    successors: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        if edge.source in indegree and edge.target in indegree:
            indegree[edge.target] += 1
            successors[edge.source].append(edge.target)

    heap = [(graph.index_of(node_id), node_id) for node_id, deg in indegree.items() if deg == 0]
    heapq.heapify(heap)
    ordered: list[str] = []
    while heap:
        _, node_id = heapq.heappop(heap)
        ordered.append(node_id)
        for target in successors.get(node_id, []):
            indegree[target] -= 1
            if indegree[target] == 0:
                heapq.heappush(heap, (graph.index_of(target), target))

    placed = set(ordered)
    leftover = [n.id for n in graph.nodes if n.id not in placed]
    return ordered, leftover


def find_cycle_members(graph: WorkflowGraph, edges: list[Edge], candidates: list[str]) -> list[str]:
    """Nodes among `candidates` that lie on a cycle (not merely downstream of one)."""
    candidate_set = set(candidates)
    successors: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        if edge.source in candidate_set and edge.target in candidate_set:
            successors[edge.source].append(edge.target)

    members = []
    for start in candidates:
        seen: set[str] = set()
        stack = list(successors.get(start, []))
        while stack:
            current = stack.pop()
            if current == start:
                members.append(start)
                break
            if current in seen:
                continue
            seen.add(current)
            stack.extend(successors.get(current, []))
    return members


class TopologyResolver:
    """
    Precomputed scheduling structure for one validated graph.

    Scopes: None is the top level, a loop node id is that loop's body. Each
    node belongs to the innermost loop whose body contains it.
    """

    def __init__(self, graph: WorkflowGraph, registry: NodeRegistryClass | None = None) -> None:
        self.graph = graph
        self.traits = KindTraits(registry)
        self.loop_bodies = find_loop_bodies(graph, self.traits)
        self.back_edges = find_back_edges(graph, self.loop_bodies)
        self.forward_edges = [e for i, e in enumerate(graph.edges) if i not in self.back_edges]

        self._incoming: dict[str, list[Edge]] = defaultdict(list)
        self._outgoing: dict[str, list[Edge]] = defaultdict(list)
        for edge in self.forward_edges:
            self._incoming[edge.target].append(edge)
            self._outgoing[edge.source].append(edge)

        self.owner = self._assign_owners()
        self.error_path = self._find_error_path()
        ordered, leftover = stable_topological_order(graph, self.forward_edges)
        self._order = ordered + leftover
        self._position = {node_id: i for i, node_id in enumerate(self._order)}

    def node(self, node_id: str) -> Node:
        return self.graph.node_map[node_id]

    def incoming(self, node_id: str) -> list[Edge]:
        return self._incoming.get(node_id, [])

    def outgoing(self, node_id: str) -> list[Edge]:
        return self._outgoing.get(node_id, [])

    def is_body_edge(self, edge: Edge) -> bool:
        return edge.label == BODY_LABEL and edge.source in self.loop_bodies

    @property
    def order(self) -> list[str]:
        return list(self._order)

    def scope_order(self, scope: str | None = None) -> list[str]:
        """Nodes of one scope in execution order; the top level excludes the error path."""
        return [
            node_id for node_id in self._order
            if self.owner.get(node_id) == scope
            and (scope is not None or node_id not in self.error_path)
        ]

    def error_path_order(self) -> list[str]:
        """Top-level nodes of the error path in execution order."""
        return [
            node_id for node_id in self._order
            if node_id in self.error_path and self.owner.get(node_id) is None
        ]

    def triggers(self) -> list[Node]:
        return [
            n for n in self.graph.nodes
            if self.traits.is_trigger(n.kind) and not self.traits.is_error_trigger(n.kind)
        ]

    def error_triggers(self) -> list[Node]:
        return [n for n in self.graph.nodes if self.traits.is_error_trigger(n.kind)]

    def error_handler_for(self, node_id: str) -> Node | None:
        """The error_handler node wrapping `node_id`, if any."""
        for edge in self.incoming(node_id):
            source = self.graph.node_map.get(edge.source)
            if source is not None and self.traits.wraps_successors(source.kind):
                return source
        return None

    def _assign_owners(self) -> dict[str, str | None]:
        owner: dict[str, str | None] = {n.id: None for n in self.graph.nodes}
        # Larger bodies first so inner loops overwrite their enclosing loop
        for loop_id, body in sorted(self.loop_bodies.items(), key=lambda kv: -len(kv[1])):
            for node_id in body:
                owner[node_id] = loop_id
        return owner

    def _reachable(self, starts: list[str]) -> set[str]:
        seen: set[str] = set()
        queue = deque(starts)
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(e.target for e in self.graph.edges if e.source == current)
        return seen

    def _find_error_path(self) -> frozenset[str]:
        error_starts = [n.id for n in self.error_triggers()]
        if not error_starts:
            return frozenset()
        normal = self._reachable([n.id for n in self.triggers()])
        return frozenset(self._reachable(error_starts) - normal)
