"""Core type definitions for the workflow engine."""

from __future__ import annotations

import asyncio
import copy
from collections import ChainMap
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import cached_property
from typing import Any, Callable, Iterator, Literal

TriggerMode = Literal["manual", "webhook", "schedule"]


class NodeStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionEventType(str, Enum):
    """Lifecycle events reported to an optional run callback."""

    EXECUTION_START = "execution:start"
    NODE_START = "node:start"
    NODE_COMPLETE = "node:complete"
    NODE_ERROR = "node:error"
    NODE_SKIPPED = "node:skipped"
    EXECUTION_COMPLETE = "execution:complete"
    EXECUTION_ERROR = "execution:error"


@dataclass
class ExecutionEvent:
    type: ExecutionEventType
    run_id: str
    timestamp: datetime
    node_id: str | None = None
    kind: str | None = None
    data: Any = None
    error: dict[str, Any] | None = None


# Callback type for receiving execution events
ExecutionEventCallback = Callable[[ExecutionEvent], None]


@dataclass(frozen=True)
class Node:
    """A node in the workflow graph."""

    id: str
    kind: str
    config: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    label: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or self.id


@dataclass(frozen=True)
class Edge:
    """Directed connection between two nodes."""

    id: str
    source: str
    target: str
    label: str | None = None


@dataclass(frozen=True)
class WorkflowGraph:
    """
    Immutable graph of nodes and edges.

    Node creation order is the position in `nodes`; it is the tie-break for
    every ordering decision the engine makes.
    """

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowGraph:
        """Build a graph from its JSON shape, accepting a few legacy key names."""
        nodes = tuple(
            Node(
                id=str(n["id"]),
                kind=n.get("kind") or n.get("type") or "",
                config=dict(n.get("config") or n.get("parameters") or {}),
                label=n.get("label") or n.get("name"),
            )
            for n in data.get("nodes", [])
        )
        raw_edges = data.get("edges", [])
        taken = {str(e["id"]) for e in raw_edges if e.get("id")}
        edges = []
        for index, e in enumerate(raw_edges):
            edge_id = str(e.get("id") or "")
            if not edge_id:
                # Generated ids never collide with supplied ones
                edge_id = f"e{index}"
                while edge_id in taken:
                    edge_id = f"{edge_id}_"
                taken.add(edge_id)
            label = e.get("label", e.get("sourceHandle"))
            edges.append(
                Edge(
                    id=edge_id,
                    source=str(e["source"]),
                    target=str(e["target"]),
                    label=str(label) if label not in (None, "") else None,
                )
            )
        return cls(nodes=nodes, edges=tuple(edges))

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [
                {"id": n.id, "kind": n.kind, "config": dict(n.config), "label": n.label}
                for n in self.nodes
            ],
            "edges": [
                {"id": e.id, "source": e.source, "target": e.target, "label": e.label}
                for e in self.edges
            ],
        }

    @cached_property
    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    @cached_property
    def _positions(self) -> dict[str, int]:
        positions: dict[str, int] = {}
        for index, node in enumerate(self.nodes):
            positions.setdefault(node.id, index)
        return positions

    def index_of(self, node_id: str) -> int:
        return self._positions.get(node_id, len(self.nodes))

    def incoming(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.target == node_id]

    def outgoing(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]


@dataclass
class NodeExecutionResult:
    """
    What a handler hands back to the runner.

    `branches` names the labeled outgoing edges to activate (None means all).
    `iterations` is set by loop-style handlers: the collection the runner
    drives the loop body over.
    """

    data: Any = None
    branches: list[str] | None = None
    iterations: list[Any] | None = None
    pass_through: bool | None = None


@dataclass
class NodeExecutionRecord:
    """One entry in the run log; a node keeps a single record per run."""

    node_id: str
    kind: str
    status: NodeStatus = NodeStatus.PENDING
    started_at: datetime | None = None
    finished_at: datetime | None = None
    input: Any = None
    output: Any = None
    error: dict[str, Any] | None = None
    attempts: int = 0
    iterations: int = 0
    fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "kind": self.kind,
            "status": self.status.value,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "input": self.input,
            "output": self.output,
            "error": self.error,
            "attempts": self.attempts,
            "iterations": self.iterations,
            "fallback": self.fallback,
        }


@dataclass
class LoopFrame:
    """Innermost-first scope entry pushed for each loop iteration."""

    loop_id: str
    item: Any
    index: int
    total: int

    def as_dict(self) -> dict[str, Any]:
        return {"item": self.item, "index": self.index, "total": self.total}


@dataclass
class ExecutionContext:
    """
    Per-run state, owned by exactly one run.

    Outputs and statuses are ChainMaps: each loop iteration pushes a child
    layer and discards it when the iteration ends, so body outputs never leak
    into the next iteration or the outer scope.
    """

    graph: WorkflowGraph
    run_id: str
    mode: TriggerMode = "manual"
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    status: RunStatus = RunStatus.PENDING

    variables: dict[str, Any] = field(default_factory=dict)
    node_outputs: ChainMap = field(default_factory=ChainMap)
    node_statuses: ChainMap = field(default_factory=ChainMap)
    node_branches: ChainMap = field(default_factory=ChainMap)
    loop_frames: list[LoopFrame] = field(default_factory=list)

    logs: list[NodeExecutionRecord] = field(default_factory=list)
    error: dict[str, Any] | None = None
    warnings: list[str] = field(default_factory=list)
    last_output: Any = None

    current_node: Node | None = None
    cancel_event: asyncio.Event | None = None
    # Shared HTTP client for the run (httpx.AsyncClient)
    http_client: Any | None = None

    _records: dict[str, NodeExecutionRecord] = field(default_factory=dict, repr=False)

    def record_output(self, node_id: str, output: Any) -> None:
        """Store a node's output in the current layer; a layer is write-once per node."""
        layer = self.node_outputs.maps[0]
        if node_id in layer:
            raise RuntimeError(f'Output for node "{node_id}" already recorded')
        layer[node_id] = copy.deepcopy(output)

    def get_output(self, node_id: str, default: Any = None) -> Any:
        return self.node_outputs.get(node_id, default)

    def set_status(self, node_id: str, status: NodeStatus) -> None:
        self.node_statuses[node_id] = status

    def get_status(self, node_id: str) -> NodeStatus | None:
        return self.node_statuses.get(node_id)

    def set_branches(self, node_id: str, branches: list[str] | None) -> None:
        self.node_branches[node_id] = None if branches is None else [str(b) for b in branches]

    def get_branches(self, node_id: str) -> list[str] | None:
        return self.node_branches.get(node_id)

    def ensure_record(self, node_id: str, kind: str) -> NodeExecutionRecord:
        """Get or create the run-log record for a node."""
        record = self._records.get(node_id)
        if record is None:
            record = NodeExecutionRecord(node_id=node_id, kind=kind)
            self._records[node_id] = record
            self.logs.append(record)
        return record

    @property
    def in_loop(self) -> bool:
        return bool(self.loop_frames)

    @contextmanager
    def iteration(self, loop_id: str, item: Any, index: int, total: int) -> Iterator[LoopFrame]:
        """Push a loop frame plus fresh output/status layers for one iteration."""
        frame = LoopFrame(loop_id=loop_id, item=item, index=index, total=total)
        self.loop_frames.append(frame)
        self.node_outputs = self.node_outputs.new_child()
        self.node_statuses = self.node_statuses.new_child()
        self.node_branches = self.node_branches.new_child()
        try:
            yield frame
        finally:
            self.node_branches = self.node_branches.parents
            self.node_statuses = self.node_statuses.parents
            self.node_outputs = self.node_outputs.parents
            self.loop_frames.pop()

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@dataclass
class ExecutionResult:
    """Final outcome of a run."""

    run_id: str
    status: RunStatus
    started_at: datetime
    finished_at: datetime
    logs: list[NodeExecutionRecord]
    output: Any = None
    error: dict[str, Any] | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    mode: TriggerMode = "manual"

    @classmethod
    def from_context(cls, context: ExecutionContext) -> ExecutionResult:
        return cls(
            run_id=context.run_id,
            status=context.status,
            started_at=context.started_at,
            finished_at=context.finished_at or utcnow(),
            logs=list(context.logs),
            output=context.last_output,
            error=context.error,
            variables=dict(context.variables),
            warnings=list(context.warnings),
            mode=context.mode,
        )

    @property
    def duration_ms(self) -> int:
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def record_for(self, node_id: str) -> NodeExecutionRecord | None:
        for record in self.logs:
            if record.node_id == node_id:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "status": self.status.value,
            "mode": self.mode,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat(),
            "durationMs": self.duration_ms,
            "logs": [record.to_dict() for record in self.logs],
            "output": self.output,
            "error": self.error,
            "variables": self.variables,
            "warnings": self.warnings,
        }
