"""Log node - writes a message to the engine log."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription, NodeProperty, NodePropertyOption

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LogNode(BaseNode):
    """Log node - records a resolved message and passes the input through."""

    node_description = NodeTypeDescription(
        name="log",
        display_name="Log",
        description="Write a message to the run log",
        icon="fa:terminal",
        category="action",
        properties=[
            NodeProperty(
                display_name="Message",
                name="message",
                type="string",
                default="",
                placeholder="Processed {{input.count}} items",
            ),
            NodeProperty(
                display_name="Level",
                name="level",
                type="options",
                default="info",
                options=[
                    NodePropertyOption(name="Debug", value="debug"),
                    NodePropertyOption(name="Info", value="info"),
                    NodePropertyOption(name="Warning", value="warning"),
                    NodePropertyOption(name="Error", value="error"),
                ],
            ),
        ],
    )

    aliases = ("log_output",)

    @property
    def kind(self) -> str:
        return "log"

    @property
    def description(self) -> str:
        return "Write a message to the run log"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        message = str(config.get("message", ""))
        level = str(self.get_parameter(config, "level", "info")).lower()
        node_id = context.current_node.id if context.current_node else None
        logger.log(LOG_LEVELS.get(level, logging.INFO), "[%s] %s", node_id, message)
        return {"logged": message, "level": level}
