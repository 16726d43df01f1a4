"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from nodeflow.core.config import Settings
from nodeflow.core.exceptions import PermanentError, TransientError
from nodeflow.engine.fault_handler import FaultHandler
from nodeflow.engine.node_registry import NodeRegistryClass, register_all_nodes
from nodeflow.engine.types import WorkflowGraph
from nodeflow.engine.workflow_runner import WorkflowRunner
from nodeflow.nodes.base import BaseNode, NodeTypeDescription


class FlakyNode(BaseNode):
    """Fails `failures` times, then returns {"ok": True, "attempt": n}."""

    node_description = NodeTypeDescription(
        name="flaky",
        display_name="Flaky",
        description="Test node that fails a fixed number of times",
        category="action",
    )

    failures = 0
    permanent = False
    calls = 0

    @property
    def kind(self) -> str:
        return "flaky"

    @property
    def description(self) -> str:
        return "Test node that fails a fixed number of times"

    async def execute(self, config: dict[str, Any], input_data: Any, context: Any) -> Any:
        cls = type(self)
        cls.calls += 1
        if cls.calls <= cls.failures:
            if cls.permanent:
                raise PermanentError("flaky node refused")
            raise TransientError(f"flaky failure #{cls.calls}")
        return {"ok": True, "attempt": cls.calls}


class SlowNode(BaseNode):
    """Sleeps longer than its own timeout."""

    node_description = NodeTypeDescription(
        name="slow",
        display_name="Slow",
        description="Test node that outlives its timeout",
        category="action",
    )

    timeout = 0.05

    @property
    def kind(self) -> str:
        return "slow"

    @property
    def description(self) -> str:
        return "Test node that outlives its timeout"

    async def execute(self, config: dict[str, Any], input_data: Any, context: Any) -> Any:
        await asyncio.sleep(5)
        return {}


class RecordingSleep:
    """Stands in for asyncio.sleep so retry delays cost nothing."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def settings() -> Settings:
    return Settings(max_loop_iterations=1000, max_wait_ms=50, default_node_timeout=5.0)


@pytest.fixture
def flaky():
    FlakyNode.failures = 0
    FlakyNode.permanent = False
    FlakyNode.calls = 0
    yield FlakyNode
    FlakyNode.failures = 0
    FlakyNode.permanent = False
    FlakyNode.calls = 0


@pytest.fixture
def registry(flaky) -> NodeRegistryClass:
    registry = register_all_nodes(NodeRegistryClass())
    registry.register(flaky)
    registry.register(SlowNode)
    return registry


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def runner(registry, settings, sleeper) -> WorkflowRunner:
    return WorkflowRunner(registry=registry, settings=settings, fault_handler=FaultHandler(sleep=sleeper))


def make_graph(nodes: list[tuple], edges: list[tuple]) -> WorkflowGraph:
    """
    Build a graph from compact tuples.

    nodes: (id, kind) or (id, kind, config); edges: (source, target) or
    (source, target, label).
    """
    return WorkflowGraph.from_dict(
        {
            "nodes": [
                {"id": n[0], "kind": n[1], "config": n[2] if len(n) > 2 else {}}
                for n in nodes
            ],
            "edges": [
                {"source": e[0], "target": e[1], "label": e[2] if len(e) > 2 else None}
                for e in edges
            ],
        }
    )
