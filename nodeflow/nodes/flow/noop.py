"""NoOp node - passes its input through."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class NoOpNode(BaseNode):
    node_description = NodeTypeDescription(
        name="noop",
        display_name="No Operation",
        description="Do nothing and pass the input on",
        icon="fa:arrow-right",
        category="logic",
    )

    @property
    def kind(self) -> str:
        return "noop"

    @property
    def description(self) -> str:
        return "Do nothing and pass the input on"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        return input_data
