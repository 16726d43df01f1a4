"""SetVariable node - store a run-global variable."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription, NodeProperty
from ..utils import parse_json_text

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext

logger = logging.getLogger(__name__)


class SetVariableNode(BaseNode):
    """Writes `name` into the run's variables, readable later as {{vars.name}}."""

    node_description = NodeTypeDescription(
        name="set_variable",
        display_name="Set Variable",
        description="Store a value in the run's variables",
        icon="fa:database",
        category="transform",
        properties=[
            NodeProperty(
                display_name="Name",
                name="name",
                type="string",
                required=True,
            ),
            NodeProperty(
                display_name="Value",
                name="value",
                type="string",
                default="",
                placeholder="{{input.total}}",
            ),
        ],
    )

    @property
    def kind(self) -> str:
        return "set_variable"

    @property
    def description(self) -> str:
        return "Store a value in the run's variables"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        name = str(config["name"])
        value = config.get("value", "")
        if isinstance(value, str) and value[:1] in ("{", "["):
            value = parse_json_text(value)
        context.variables[name] = value
        logger.debug("Variable %s set", name)
        return {name: value}
