"""
Workflow runner - executes a validated graph one node at a time.

Nodes run strictly sequentially in a stable topological order. Branch
selection decides which edges are active; a node with no active incoming
edge is skipped. Loop bodies run as nested scopes, once per item.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, TYPE_CHECKING

import httpx

from ..core.config import Settings, get_settings
from ..core.exceptions import (
    Cancelled,
    NodeError,
    StructuralError,
    TransientError,
    ValidationError,
)
from .expression_engine import ExpressionEngine, expression_engine
from .fault_handler import FaultHandler, RetryPolicy
from .node_registry import register_all_nodes
from .topology import TopologyResolver
from .types import (
    Edge,
    ExecutionContext,
    ExecutionEvent,
    ExecutionEventCallback,
    ExecutionEventType,
    ExecutionResult,
    Node,
    NodeExecutionResult,
    NodeStatus,
    RunStatus,
    TriggerMode,
    WorkflowGraph,
    utcnow,
)
from .validator import GraphValidator

if TYPE_CHECKING:
    from ..nodes.base import BaseNode
    from .node_registry import NodeRegistryClass

logger = logging.getLogger(__name__)

# Marks "nothing ran" / "node not schedulable" where None is a valid output
_NOT_RUN = object()


class WorkflowRunner:
    """Executes workflow graphs and tracks in-flight runs for cancellation."""

    def __init__(
        self,
        registry: NodeRegistryClass | None = None,
        settings: Settings | None = None,
        fault_handler: FaultHandler | None = None,
    ) -> None:
        self._registry = registry or register_all_nodes()
        self._settings = settings or get_settings()
        self._validator = GraphValidator(self._registry)
        self._fault_handler = fault_handler or FaultHandler()
        self._active_runs: dict[str, asyncio.Event] = {}

    @property
    def validator(self) -> GraphValidator:
        return self._validator

    @property
    def registry(self) -> NodeRegistryClass:
        return self._registry

    async def run(
        self,
        graph: WorkflowGraph | dict[str, Any],
        input_data: Any = None,
        *,
        mode: TriggerMode = "manual",
        trigger_id: str | None = None,
        variables: dict[str, Any] | None = None,
        run_id: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        on_event: ExecutionEventCallback | None = None,
    ) -> ExecutionResult:
        """
        Validate and run a graph.

        Args:
            graph: The graph to execute (or its JSON shape)
            input_data: Initial input for the starting trigger
            mode: How the run was triggered (manual, webhook, schedule)
            trigger_id: Trigger to start from; defaults to the first one
            variables: Initial run-global variables
            run_id: Explicit run id, generated when omitted
            http_client: Shared client for HTTP nodes; one is created when omitted
            on_event: Optional callback for lifecycle events

        Raises:
            StructuralError: If the graph has fatal structural issues
        """
        if isinstance(graph, dict):
            graph = WorkflowGraph.from_dict(graph)

        validation = self._validator.validate(graph)
        validation.raise_for_errors()
        graph = validation.graph
        resolver = TopologyResolver(graph, self._registry)
        start = self._select_trigger(resolver, trigger_id)

        context = ExecutionContext(
            graph=graph,
            run_id=run_id or self.new_run_id(),
            mode=mode,
            variables=dict(variables or {}),
        )
        context.warnings.extend(issue.message for issue in validation.warnings)
        context.cancel_event = asyncio.Event()
        self._active_runs[context.run_id] = context.cancel_event
        context.status = RunStatus.RUNNING

        logger.info(
            "Run %s started (%s, %d nodes, trigger %s)",
            context.run_id, mode, len(graph.nodes), start.id if start else None,
        )
        self._emit_event(on_event, context, ExecutionEventType.EXECUTION_START)

        try:
            async with self._client(http_client) as client:
                context.http_client = client
                triggers = {start.id: self._initial_input(input_data)} if start else {}
                await self._execute(context, resolver, triggers, on_event)
        finally:
            self._active_runs.pop(context.run_id, None)
            context.http_client = None
            context.current_node = None

        self._skip_unscheduled(context, resolver)
        context.finished_at = utcnow()
        logger.info("Run %s finished: %s", context.run_id, context.status.value)
        self._emit_event(
            on_event,
            context,
            ExecutionEventType.EXECUTION_COMPLETE
            if context.status == RunStatus.SUCCESS
            else ExecutionEventType.EXECUTION_ERROR,
            error=context.error,
        )
        return ExecutionResult.from_context(context)

    def cancel(self, run_id: str) -> bool:
        """Request cancellation; takes effect before the next dispatch."""
        event = self._active_runs.get(run_id)
        if event is None:
            return False
        event.set()
        logger.info("Run %s cancellation requested", run_id)
        return True

    def is_running(self, run_id: str) -> bool:
        return run_id in self._active_runs

    @property
    def active_run_count(self) -> int:
        return len(self._active_runs)

    async def _execute(
        self,
        context: ExecutionContext,
        resolver: TopologyResolver,
        triggers: dict[str, Any],
        on_event: ExecutionEventCallback | None,
    ) -> None:
        try:
            await self._run_scope(context, resolver, resolver.scope_order(None), on_event, triggers=triggers)
        except Cancelled as error:
            context.status = RunStatus.CANCELLED
            context.error = error.to_dict()
            logger.warning("Run %s cancelled before node %s", context.run_id, error.node_id)
        except NodeError as error:
            context.status = RunStatus.FAILED
            context.error = error.to_dict()
            logger.error("Run %s failed at node %s: %s", context.run_id, error.node_id, error.message)
            await self._run_error_path(context, resolver, error, on_event)
        else:
            context.status = RunStatus.SUCCESS

    async def _run_scope(
        self,
        context: ExecutionContext,
        resolver: TopologyResolver,
        node_ids: list[str],
        on_event: ExecutionEventCallback | None,
        triggers: dict[str, Any] | None = None,
        entry: tuple[str, Any] | None = None,
    ) -> Any:
        """
        Run one scope's nodes in order and return the last output produced.

        `triggers` maps the trigger nodes allowed to start to their input;
        `entry` is (loop_id, input) for nodes fed by that loop's body edges.
        """
        last: Any = _NOT_RUN
        for node_id in node_ids:
            node = resolver.node(node_id)
            self._check_cancelled(context, node_id)
            handler = self._registry.get(node.kind)

            if handler.is_trigger:
                if not triggers or node_id not in triggers:
                    self._mark_skipped(context, node, on_event)
                    continue
                input_data = triggers[node_id]
            else:
                input_data = self._collect_input(context, resolver, node, handler, entry)
                if input_data is _NOT_RUN:
                    self._mark_skipped(context, node, on_event)
                    continue

            last = await self._dispatch(context, resolver, node, handler, input_data, on_event)
        return last

    def _collect_input(
        self,
        context: ExecutionContext,
        resolver: TopologyResolver,
        node: Node,
        handler: BaseNode,
        entry: tuple[str, Any] | None,
    ) -> Any:
        edges = resolver.incoming(node.id)
        active = [e for e in edges if self._edge_active(context, resolver, e, entry)]
        sources = list(dict.fromkeys(e.source for e in active))
        total = len({e.source for e in edges})
        if not handler.is_ready(node.config, len(sources), total):
            return _NOT_RUN

        outputs: dict[str, Any] = {}
        for edge in active:
            if edge.source in outputs:
                continue
            if entry is not None and resolver.is_body_edge(edge):
                outputs[edge.source] = copy.deepcopy(entry[1])
            else:
                outputs[edge.source] = copy.deepcopy(context.get_output(edge.source))

        if handler.collects_inputs or len(outputs) > 1:
            return outputs
        return next(iter(outputs.values()))

    def _edge_active(
        self,
        context: ExecutionContext,
        resolver: TopologyResolver,
        edge: Edge,
        entry: tuple[str, Any] | None,
    ) -> bool:
        if resolver.is_body_edge(edge):
            return entry is not None and edge.source == entry[0]
        if context.get_status(edge.source) != NodeStatus.SUCCESS:
            return False
        if edge.label is None:
            return True
        branches = context.get_branches(edge.source)
        return branches is None or edge.label in branches

    async def _dispatch(
        self,
        context: ExecutionContext,
        resolver: TopologyResolver,
        node: Node,
        handler: BaseNode,
        input_data: Any,
        on_event: ExecutionEventCallback | None,
    ) -> Any:
        record = context.ensure_record(node.id, node.kind)
        record.status = NodeStatus.RUNNING
        record.started_at = record.started_at or utcnow()
        record.input = copy.deepcopy(input_data)
        record.error = None
        record.fallback = False
        if context.in_loop:
            record.iterations += 1
        context.set_status(node.id, NodeStatus.RUNNING)
        context.current_node = node

        logger.debug("Executing node %s (%s)", node.id, node.kind)
        self._emit_event(on_event, context, ExecutionEventType.NODE_START, node)

        policy = self._policy_for(resolver, node)
        try:
            outcome = await self._fault_handler.execute(
                lambda: self._invoke(context, node, handler, input_data),
                node.id,
                policy,
            )
        except NodeError as error:
            self._fail(context, node, record, error, error.attempts, on_event)
            raise

        result = outcome.result
        if result.iterations is not None:
            try:
                result.data = await self._run_loop(context, resolver, node, result, on_event)
            except Cancelled:
                record.status = NodeStatus.SKIPPED
                record.attempts = outcome.attempts
                record.finished_at = utcnow()
                self._mark_skipped(context, node, on_event)
                raise
            except NodeError as error:
                self._fail(context, node, record, error, outcome.attempts, on_event)
                raise
            context.current_node = node

        data = result.data
        context.record_output(node.id, data)
        context.set_branches(node.id, result.branches)
        context.set_status(node.id, NodeStatus.SUCCESS)

        record.status = NodeStatus.SUCCESS
        record.output = context.get_output(node.id)
        record.attempts = outcome.attempts
        record.finished_at = utcnow()
        if outcome.fallback and outcome.error is not None:
            record.fallback = True
            record.error = outcome.error.to_dict()
        if not context.in_loop:
            context.last_output = context.get_output(node.id)

        self._warn_unrouted(context, resolver, node, result)
        logger.debug("Node %s succeeded (attempts=%d)", node.id, outcome.attempts)
        self._emit_event(on_event, context, ExecutionEventType.NODE_COMPLETE, node, data=record.output)
        return data

    async def _invoke(
        self,
        context: ExecutionContext,
        node: Node,
        handler: BaseNode,
        input_data: Any,
    ) -> NodeExecutionResult:
        """One attempt: resolve config, call the handler under its timeout, apply pass-through."""
        config = self._prepare_config(context, node, handler, input_data)
        timeout = handler.timeout if handler.timeout is not None else self._settings.default_node_timeout
        try:
            raw = await asyncio.wait_for(
                handler.execute(config, copy.deepcopy(input_data), context),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TransientError(
                f'Node "{node.display_name}" timed out after {timeout}s',
                node_id=node.id,
                context={"timeout": timeout},
            ) from exc

        result = raw if isinstance(raw, NodeExecutionResult) else NodeExecutionResult(data=raw)
        pass_through = handler.pass_through if result.pass_through is None else result.pass_through
        if pass_through and isinstance(input_data, dict) and isinstance(result.data, dict):
            result.data = {**input_data, **result.data}
        return result

    def _prepare_config(
        self,
        context: ExecutionContext,
        node: Node,
        handler: BaseNode,
        input_data: Any,
    ) -> dict[str, Any]:
        """Resolve templates against the node's input and normalize to scalars."""
        expr_context = ExpressionEngine.create_context(context, input_data)
        handler_evaluated = handler.expression_fields()
        merged = {**handler.default_config(), **node.config}
        resolved = {
            key: value if key in handler_evaluated else expression_engine.resolve(value, expr_context)
            for key, value in merged.items()
        }
        config = expression_engine.normalize(resolved)

        for name in handler.required_fields():
            if config.get(name, "") == "":
                raise ValidationError(
                    f'Missing required parameter "{name}" in node "{node.display_name}"',
                    field=name,
                    node_id=node.id,
                )
        return config

    def _policy_for(self, resolver: TopologyResolver, node: Node) -> RetryPolicy | None:
        wrapper = resolver.error_handler_for(node.id)
        if wrapper is None:
            return None
        handler = self._registry.get(wrapper.kind)
        config = expression_engine.normalize({**handler.default_config(), **wrapper.config})
        return RetryPolicy.from_config(config, self._settings)

    async def _run_loop(
        self,
        context: ExecutionContext,
        resolver: TopologyResolver,
        node: Node,
        result: NodeExecutionResult,
        on_event: ExecutionEventCallback | None,
    ) -> dict[str, Any]:
        items = list(result.iterations or [])
        body = resolver.scope_order(node.id)
        total = len(items)
        logger.info("Loop %s: %d iteration(s) over %d body node(s)", node.id, total, len(body))

        results: list[Any] = []
        for index, item in enumerate(items):
            self._check_cancelled(context, node.id)
            entry_input = copy.deepcopy(item) if isinstance(item, dict) else {"item": copy.deepcopy(item), "index": index}
            with context.iteration(node.id, item, index, total) as frame:
                last = await self._run_scope(context, resolver, body, on_event, entry=(node.id, entry_input))
                results.append(copy.deepcopy(frame.as_dict() if last is _NOT_RUN else last))

        data = result.data if isinstance(result.data, dict) else {}
        return {**data, "results": results, "count": len(results)}

    async def _run_error_path(
        self,
        context: ExecutionContext,
        resolver: TopologyResolver,
        error: NodeError,
        on_event: ExecutionEventCallback | None,
    ) -> None:
        """Run error_trigger nodes and their downstream path once after a fatal failure."""
        triggers = resolver.error_triggers()
        if not triggers:
            return

        last = context.last_output if isinstance(context.last_output, dict) else {}
        payload = {
            **copy.deepcopy(last),
            "failed_node": error.node_id,
            "error_message": error.message,
            "error_kind": error.kind,
            "error_code": getattr(error, "code", None),
            "error": error.to_dict(),
        }
        logger.info("Run %s: running error path from %d trigger(s)", context.run_id, len(triggers))
        try:
            await self._run_scope(
                context,
                resolver,
                resolver.error_path_order(),
                on_event,
                triggers={t.id: payload for t in triggers},
            )
        except NodeError as path_error:
            message = f'Error path failed at node "{path_error.node_id}": {path_error.message}'
            logger.error("Run %s: %s", context.run_id, message)
            context.warnings.append(message)

    def _fail(
        self,
        context: ExecutionContext,
        node: Node,
        record: Any,
        error: NodeError,
        attempts: int,
        on_event: ExecutionEventCallback | None,
    ) -> None:
        record.status = NodeStatus.FAILED
        record.error = error.to_dict()
        record.attempts = attempts
        record.finished_at = utcnow()
        context.set_status(node.id, NodeStatus.FAILED)
        if error.node_id == node.id:
            logger.error("Node %s (%s) failed: [%s] %s", node.id, node.kind, error.kind, error.message)
        self._emit_event(on_event, context, ExecutionEventType.NODE_ERROR, node, error=error.to_dict())

    def _mark_skipped(
        self,
        context: ExecutionContext,
        node: Node,
        on_event: ExecutionEventCallback | None,
    ) -> None:
        record = context.ensure_record(node.id, node.kind)
        if record.status == NodeStatus.PENDING:
            record.status = NodeStatus.SKIPPED
        context.set_status(node.id, NodeStatus.SKIPPED)
        logger.debug("Node %s skipped", node.id)
        self._emit_event(on_event, context, ExecutionEventType.NODE_SKIPPED, node)

    def _skip_unscheduled(self, context: ExecutionContext, resolver: TopologyResolver) -> None:
        """Every node ends the run with a record; ones never reached are skipped."""
        for node_id in resolver.order:
            record = context.ensure_record(node_id, resolver.node(node_id).kind)
            if record.status in (NodeStatus.PENDING, NodeStatus.RUNNING):
                record.status = NodeStatus.SKIPPED

    def _warn_unrouted(
        self,
        context: ExecutionContext,
        resolver: TopologyResolver,
        node: Node,
        result: NodeExecutionResult,
    ) -> None:
        if result.branches is None:
            return
        outgoing = [e for e in resolver.outgoing(node.id) if not resolver.is_body_edge(e)]
        if not outgoing:
            return
        if any(e.label is None or e.label in result.branches for e in outgoing):
            return
        message = (
            f'Node "{node.display_name}" selected {result.branches or "no branch"} '
            f"but has no matching outgoing edge"
        )
        logger.warning("Run %s: %s", context.run_id, message)
        context.warnings.append(message)

    def _check_cancelled(self, context: ExecutionContext, node_id: str) -> None:
        if context.is_cancelled():
            raise Cancelled("Run was cancelled", node_id=node_id)

    def _select_trigger(self, resolver: TopologyResolver, trigger_id: str | None) -> Node | None:
        triggers = resolver.triggers()
        if trigger_id is None:
            return triggers[0] if triggers else None
        for trigger in triggers:
            if trigger.id == trigger_id:
                return trigger
        raise StructuralError(
            f'Trigger "{trigger_id}" not found',
            issues=[{"kind": "missing_trigger", "message": f'Trigger "{trigger_id}" not found', "nodeId": trigger_id}],
        )

    @staticmethod
    def _initial_input(input_data: Any) -> Any:
        if input_data is None:
            return {}
        return copy.deepcopy(input_data)

    @asynccontextmanager
    async def _client(self, client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
        if client is not None:
            yield client
            return
        async with httpx.AsyncClient(timeout=self._settings.http_timeout) as shared:
            yield shared

    def _emit_event(
        self,
        on_event: ExecutionEventCallback | None,
        context: ExecutionContext,
        event_type: ExecutionEventType,
        node: Node | None = None,
        data: Any = None,
        error: dict[str, Any] | None = None,
    ) -> None:
        """Helper to emit events safely."""
        if on_event:
            try:
                on_event(
                    ExecutionEvent(
                        type=event_type,
                        run_id=context.run_id,
                        timestamp=utcnow(),
                        node_id=node.id if node else None,
                        kind=node.kind if node else None,
                        data=data,
                        error=error,
                    )
                )
            except Exception:
                logger.exception("Error in execution event callback")

    @staticmethod
    def new_run_id() -> str:
        """Generate a unique run ID."""
        return f"run_{int(datetime.now().timestamp() * 1000)}_{uuid.uuid4().hex[:7]}"
