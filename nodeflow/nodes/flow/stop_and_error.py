"""StopAndError node - stop the run with a custom error."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ...core.exceptions import UserStop
from ..base import BaseNode, NodeTypeDescription, NodeProperty, NodePropertyOption

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Workflow stopped by Stop And Error node"
DEFAULT_CODE = "STOPPED"


class StopAndErrorNode(BaseNode):
    """StopAndError node - raises UserStop, or only records a warning."""

    node_description = NodeTypeDescription(
        name="stop_and_error",
        display_name="Stop and Error",
        description="Stop the workflow with a custom error",
        icon="fa:stop-circle",
        category="logic",
        properties=[
            NodeProperty(
                display_name="Error Type",
                name="errorType",
                type="options",
                default="error",
                options=[
                    NodePropertyOption(name="Error", value="error", description="Stop with an error"),
                    NodePropertyOption(name="Warning", value="warning", description="Record a warning and continue"),
                ],
            ),
            NodeProperty(
                display_name="Error Message",
                name="errorMessage",
                type="string",
                default=DEFAULT_MESSAGE,
                placeholder="Something went wrong: {{input.error}}",
            ),
            NodeProperty(
                display_name="Error Code",
                name="errorCode",
                type="string",
                default=DEFAULT_CODE,
            ),
        ],
    )

    aliases = ("stop_error",)

    @property
    def kind(self) -> str:
        return "stop_and_error"

    @property
    def description(self) -> str:
        return "Stop the workflow with a custom error"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        message = str(self.get_parameter(config, "errorMessage", DEFAULT_MESSAGE))
        code = str(self.get_parameter(config, "errorCode", DEFAULT_CODE))

        if self.get_parameter(config, "errorType", "error") == "warning":
            logger.warning("Stop and Error (warning): %s", message)
            context.warnings.append(message)
            return {"warning": message, "code": code}

        raise UserStop(message, code=code)
