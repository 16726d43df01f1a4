"""Wait node - pause the run for a while."""

from __future__ import annotations

import asyncio
from typing import Any, TYPE_CHECKING

from ...core.config import get_settings
from ...core.exceptions import ValidationError
from ..base import BaseNode, NodeTypeDescription, NodeProperty, NodePropertyOption

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext

_UNIT_MS = {"milliseconds": 1, "seconds": 1000, "minutes": 60000}


class WaitNode(BaseNode):
    """Wait node - sleeps, capped at the configured maximum wait."""

    node_description = NodeTypeDescription(
        name="wait",
        display_name="Wait",
        description="Pause execution for a duration",
        icon="fa:pause-circle",
        category="logic",
        properties=[
            NodeProperty(
                display_name="Duration",
                name="duration",
                type="number",
                default=1000,
            ),
            NodeProperty(
                display_name="Unit",
                name="unit",
                type="options",
                default="milliseconds",
                options=[
                    NodePropertyOption(name="Milliseconds", value="milliseconds"),
                    NodePropertyOption(name="Seconds", value="seconds"),
                    NodePropertyOption(name="Minutes", value="minutes"),
                ],
            ),
        ],
    )

    @property
    def kind(self) -> str:
        return "wait"

    @property
    def description(self) -> str:
        return "Pause execution for a duration"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        duration = self.get_number(config, "duration", 1000)
        unit = self.get_parameter(config, "unit", "milliseconds")
        if unit not in _UNIT_MS:
            raise ValidationError(f'Unknown unit "{unit}"', field="unit")
        if duration < 0:
            raise ValidationError("duration must be non-negative", field="duration")

        wait_ms = min(duration * _UNIT_MS[unit], get_settings().max_wait_ms)
        await asyncio.sleep(wait_ms / 1000)
        return {"waitedMs": wait_ms}
