"""Limit and Aggregate nodes - operations over an array of items."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ...core.exceptions import ValidationError
from ..base import BaseNode, NodeTypeDescription, NodeProperty, NodePropertyOption
from ..utils import get_nested_value

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext

AGGREGATE_OPERATIONS = ("count", "sum", "avg", "min", "max")


class LimitNode(BaseNode):
    """Keep the first `limit` items."""

    node_description = NodeTypeDescription(
        name="limit",
        display_name="Limit",
        description="Keep the first N items of an array",
        icon="fa:compress",
        category="transform",
        properties=[
            NodeProperty(display_name="Array", name="array", type="string", default="", placeholder="{{input.items}}"),
            NodeProperty(display_name="Limit", name="limit", type="number", default=10),
        ],
    )

    @property
    def kind(self) -> str:
        return "limit"

    @property
    def description(self) -> str:
        return "Keep the first N items of an array"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        limit = int(self.get_number(config, "limit", 10))
        if limit < 0:
            raise ValidationError("limit must be non-negative", field="limit")
        items = self.get_array(config, "array", input_data, context)
        return {
            "items": items[:limit],
            "originalCount": len(items),
            "limitedCount": min(limit, len(items)),
        }


def aggregate(operation: str, items: list[Any], field: str) -> Any:
    """Apply one aggregate operation; non-numeric values count as 0 in sum/avg."""
    if operation == "count":
        return len(items)
    if not items:
        return None

    values = [get_nested_value(item, field) if field else item for item in items]
    if operation in ("sum", "avg", "average"):
        total = sum(v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool))
        return total if operation == "sum" else total / len(values)

    if operation in ("min", "max"):
        present = [v for v in values if v is not None]
        if not present:
            return None
        if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in present):
            return min(present) if operation == "min" else max(present)
        pick = min if operation == "min" else max
        return pick(present, key=str)

    raise ValidationError(
        f'Unknown aggregate operation "{operation}". Supported: {", ".join(AGGREGATE_OPERATIONS)}',
        field="operation",
    )


class AggregateNode(BaseNode):
    """Count, sum, average, min or max over an array, optionally grouped."""

    node_description = NodeTypeDescription(
        name="aggregate",
        display_name="Aggregate",
        description="Aggregate values across an array",
        icon="fa:calculator",
        category="transform",
        properties=[
            NodeProperty(display_name="Array", name="array", type="string", default="", placeholder="{{input.items}}"),
            NodeProperty(
                display_name="Operation",
                name="operation",
                type="options",
                default="sum",
                options=[NodePropertyOption(name=op.title(), value=op) for op in AGGREGATE_OPERATIONS],
            ),
            NodeProperty(display_name="Field", name="field", type="string", default=""),
            NodeProperty(display_name="Group By", name="groupBy", type="string", default=""),
        ],
    )

    @property
    def kind(self) -> str:
        return "aggregate"

    @property
    def description(self) -> str:
        return "Aggregate values across an array"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        operation = str(self.get_parameter(config, "operation", "sum"))
        field = str(self.get_parameter(config, "field", ""))
        group_by = str(self.get_parameter(config, "groupBy", ""))
        items = self.get_array(config, "array", input_data, context)

        if not group_by:
            return {
                "result": aggregate(operation, items, field),
                "operation": operation,
                "count": len(items),
            }

        groups: dict[str, list[Any]] = {}
        for item in items:
            if isinstance(item, dict):
                key = get_nested_value(item, group_by)
                groups.setdefault(str(key) if key is not None else "null", []).append(item)

        results = {key: aggregate(operation, members, field) for key, members in groups.items()}
        return {"groups": results, "groupCount": len(results), "operation": operation}
