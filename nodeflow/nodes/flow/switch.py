"""Switch node - route to the first matching case."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ...core.exceptions import ValidationError
from ..base import BaseNode, NodeTypeDescription, NodeProperty
from .conditions import compare

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext, NodeExecutionResult

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "default"


class SwitchNode(BaseNode):
    """
    Switch node - matches a value against an ordered case list.

    Each case is a plain value or {"value": ..., "operation": ..., "output": ...};
    the outgoing edge labeled with the case's output (the value by default)
    is taken. Unmatched values take the `default` edge.
    """

    node_description = NodeTypeDescription(
        name="switch",
        display_name="Switch",
        description="Route to the first matching case",
        icon="fa:random",
        category="logic",
        outputs=["<case>", DEFAULT_BRANCH],
        properties=[
            NodeProperty(
                display_name="Value",
                name="expression",
                type="string",
                required=True,
                placeholder="{{input.status}}",
                description="Value to match, usually an expression",
            ),
            NodeProperty(
                display_name="Cases",
                name="cases",
                type="json",
                default=[],
                placeholder='["active", "inactive"]',
            ),
        ],
    )

    @property
    def kind(self) -> str:
        return "switch"

    @property
    def description(self) -> str:
        return "Route to the first matching case"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeExecutionResult:
        value = config.get("expression")
        match_value = value.strip() if isinstance(value, str) else value
        cases = self.get_json(config, "cases", [])
        if not isinstance(cases, list):
            raise ValidationError("Switch cases must be a list", field="cases")

        for case in cases:
            if isinstance(case, dict):
                case_value = case.get("value")
                operation = case.get("operation", "equals")
                branch = case.get("output") or case.get("label") or case_value
            else:
                case_value, operation, branch = case, "equals", case
            if compare(match_value, operation, case_value):
                return self.output(
                    {"matchedCase": case_value, "value": match_value},
                    branches=[str(branch)],
                )

        logger.warning("Switch: no case matched %r; routing to default", match_value)
        return self.output({"matchedCase": None, "value": match_value}, branches=[DEFAULT_BRANCH])
