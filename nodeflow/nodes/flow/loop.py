"""Loop and SplitInBatches nodes - run their body once per item or batch."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ...core.config import get_settings
from ...core.exceptions import ValidationError
from ..base import BaseNode, NodeTypeDescription, NodeProperty

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext, NodeExecutionResult

logger = logging.getLogger(__name__)


class LoopNode(BaseNode):
    """
    Loop node - iterate a collection.

    The handler only picks the collection and the iteration count; the
    runner drives the body (nodes behind the `loop` edges) once per item and
    continues along `done` with {results, count, total}.
    """

    node_description = NodeTypeDescription(
        name="loop",
        display_name="Loop",
        description="Run the loop branch once per item",
        icon="fa:sync",
        category="logic",
        outputs=["loop", "done"],
        properties=[
            NodeProperty(
                display_name="Array",
                name="array",
                type="string",
                default="",
                placeholder="{{input.items}}",
                description="Array to iterate; defaults to the first array in the input",
            ),
            NodeProperty(
                display_name="Max Iterations",
                name="maxIterations",
                type="number",
                default=100,
            ),
        ],
    )

    is_iterating = True

    @property
    def kind(self) -> str:
        return "loop"

    @property
    def description(self) -> str:
        return "Run the loop branch once per item"

    def iteration_limit(self, config: dict[str, Any]) -> int:
        max_iterations = int(self.get_number(config, "maxIterations", 100))
        if max_iterations < 0:
            raise ValidationError("maxIterations must be non-negative", field="maxIterations")
        return min(max_iterations, get_settings().max_loop_iterations)

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeExecutionResult:
        from ...engine.types import NodeExecutionResult

        items = self.get_array(config, "array", input_data, context)
        limit = self.iteration_limit(config)
        if len(items) > limit:
            logger.info("Loop: %d items, stopping after %d iterations", len(items), limit)

        return NodeExecutionResult(
            data={"total": len(items), "maxIterations": limit},
            iterations=items[:limit],
        )


class SplitInBatchesNode(LoopNode):
    """SplitInBatches node - iterate a collection in fixed-size chunks."""

    node_description = NodeTypeDescription(
        name="split_in_batches",
        display_name="Split In Batches",
        description="Run the loop branch once per batch of items",
        icon="fa:th-large",
        category="logic",
        outputs=["loop", "done"],
        properties=[
            NodeProperty(
                display_name="Array",
                name="array",
                type="string",
                default="",
                placeholder="{{input.items}}",
            ),
            NodeProperty(
                display_name="Batch Size",
                name="batchSize",
                type="number",
                default=10,
            ),
            NodeProperty(
                display_name="Max Iterations",
                name="maxIterations",
                type="number",
                default=100,
            ),
        ],
    )

    @property
    def kind(self) -> str:
        return "split_in_batches"

    @property
    def description(self) -> str:
        return "Run the loop branch once per batch of items"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeExecutionResult:
        from ...engine.types import NodeExecutionResult

        items = self.get_array(config, "array", input_data, context)
        batch_size = int(self.get_number(config, "batchSize", 10))
        if batch_size < 1:
            raise ValidationError("batchSize must be at least 1", field="batchSize")

        batches = [items[i:i + batch_size] for i in range(0, len(items), batch_size)]
        limit = self.iteration_limit(config)
        return NodeExecutionResult(
            data={
                "total": len(batches),
                "totalItems": len(items),
                "batchSize": batch_size,
                "maxIterations": limit,
            },
            iterations=batches[:limit],
        )
