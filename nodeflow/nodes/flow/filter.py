"""Filter node - keep the items of an array that match a condition."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ...engine.expression_engine import ExpressionEngine, expression_engine
from ..base import BaseNode, NodeTypeDescription, NodeProperty

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext

logger = logging.getLogger(__name__)


class FilterNode(BaseNode):
    """
    Filter node - evaluates the condition once per item.

    The item is in scope as `item` (and `index`), so `item.price > 10` and
    `{{item.status}} == "active"` both work.
    """

    node_description = NodeTypeDescription(
        name="filter",
        display_name="Filter",
        description="Keep items that match a condition",
        icon="fa:filter",
        category="logic",
        properties=[
            NodeProperty(
                display_name="Array",
                name="array",
                type="string",
                default="",
                placeholder="{{input.items}}",
            ),
            NodeProperty(
                display_name="Condition",
                name="condition",
                type="expression",
                required=True,
                placeholder="item.price > 10",
            ),
        ],
    )

    @property
    def kind(self) -> str:
        return "filter"

    @property
    def description(self) -> str:
        return "Keep items that match a condition"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        items = self.get_array(config, "array", input_data, context)
        condition = config["condition"]
        base = ExpressionEngine.create_context(context, input_data)

        kept = [
            item for index, item in enumerate(items)
            if expression_engine.evaluate_condition(condition, base.with_item(item, index, len(items)))
        ]
        logger.debug("Filter: kept %d of %d items", len(kept), len(items))
        return {"items": kept, "count": len(kept), "total": len(items)}
