"""Schedule and interval triggers - entry points for timed runs."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription, NodeProperty

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext

_TIME = re.compile(r"^(\d{2}):(\d{2})$")
_INTERVAL = re.compile(r"^\s*(\d+)\s*([smhd])\s*$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def time_to_cron(time: str) -> str | None:
    """Convert a daily HH:MM time into a cron expression."""
    match = _TIME.match(time.strip())
    if not match:
        return None
    hours, minutes = match.groups()
    return f"{int(minutes)} {int(hours)} * * *"


def interval_to_seconds(interval: str) -> int | None:
    match = _INTERVAL.match(interval)
    if not match:
        return None
    value, unit = match.groups()
    return int(value) * _UNIT_SECONDS[unit]


class ScheduleTriggerNode(BaseNode):
    """Daily schedule trigger. The external scheduler supplies the tick."""

    node_description = NodeTypeDescription(
        name="schedule",
        display_name="Schedule",
        description="Trigger workflow on a daily schedule",
        icon="fa:clock",
        category="trigger",
        properties=[
            NodeProperty(
                display_name="Time",
                name="time",
                type="string",
                default="09:00",
                placeholder="HH:MM",
            ),
            NodeProperty(
                display_name="Timezone",
                name="timezone",
                type="string",
                default="UTC",
            ),
            NodeProperty(
                display_name="Cron Expression",
                name="cron",
                type="string",
                default="0 9 * * *",
                description="Used when time is not in HH:MM format",
            ),
        ],
    )

    aliases = ("cron",)

    @property
    def kind(self) -> str:
        return "schedule"

    @property
    def description(self) -> str:
        return "Trigger workflow on a daily schedule"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        time = str(self.get_parameter(config, "time", ""))
        cron = time_to_cron(time) or str(self.get_parameter(config, "cron", "0 9 * * *"))
        return {
            "trigger": "schedule",
            "time": time,
            "cron": cron,
            "timezone": self.get_parameter(config, "timezone", "UTC"),
            "executed_at": datetime.now(timezone.utc).isoformat(),
        }


class IntervalTriggerNode(BaseNode):
    """Fixed-interval trigger such as every 10 minutes."""

    node_description = NodeTypeDescription(
        name="interval",
        display_name="Interval",
        description="Trigger workflow at a fixed interval",
        icon="fa:redo",
        category="trigger",
        properties=[
            NodeProperty(
                display_name="Interval",
                name="interval",
                type="string",
                default="10m",
                placeholder="30s, 10m, 1h, 1d",
            ),
        ],
    )

    @property
    def kind(self) -> str:
        return "interval"

    @property
    def description(self) -> str:
        return "Trigger workflow at a fixed interval"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        interval = str(self.get_parameter(config, "interval", "10m"))
        return {
            "trigger": "interval",
            "interval": interval,
            "interval_seconds": interval_to_seconds(interval),
            "executed_at": datetime.now(timezone.utc).isoformat(),
        }
