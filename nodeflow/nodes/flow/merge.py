"""Merge node - join several branches into one output."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ...core.exceptions import ValidationError
from ..base import BaseNode, NodeTypeDescription, NodeProperty, NodePropertyOption
from ..utils import get_nested_value

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class MergeNode(BaseNode):
    """
    Merge node - combines the outputs of its active upstream branches.

    Runs once every upstream edge has reported. With join `any` it runs on
    whichever branches are active; with `all` it is skipped unless every
    upstream branch is active.
    """

    node_description = NodeTypeDescription(
        name="merge",
        display_name="Merge",
        description="Merge data from multiple branches",
        icon="fa:code-merge",
        category="logic",
        properties=[
            NodeProperty(
                display_name="Mode",
                name="mode",
                type="options",
                default="merge",
                options=[
                    NodePropertyOption(name="Merge", value="merge", description="Merge objects into one"),
                    NodePropertyOption(name="Append", value="append", description="Concatenate into a list"),
                    NodePropertyOption(name="Concat", value="concat", description="Concatenate arrays"),
                    NodePropertyOption(name="Key Based", value="key_based", description="Join records on a key"),
                    NodePropertyOption(name="Wait All", value="wait_all", description="Outputs keyed by source node"),
                    NodePropertyOption(name="Combine Pairs", value="combine_pairs", description="Zip records pairwise"),
                ],
            ),
            NodeProperty(
                display_name="Merge Key",
                name="mergeKey",
                type="string",
                default="id",
                description="Field to join on in key_based mode",
            ),
            NodeProperty(
                display_name="Join",
                name="join",
                type="options",
                default="any",
                options=[
                    NodePropertyOption(name="Any", value="any", description="Run with whichever branches are active"),
                    NodePropertyOption(name="All", value="all", description="Only run when every branch is active"),
                ],
            ),
        ],
    )

    aliases = ("merge_data",)
    pass_through = False
    collects_inputs = True

    @property
    def kind(self) -> str:
        return "merge"

    @property
    def description(self) -> str:
        return "Merge data from multiple branches"

    def is_ready(self, raw_config: dict[str, Any], active_sources: int, total_sources: int) -> bool:
        if str(raw_config.get("join", "any")).lower() == "all":
            return total_sources > 0 and active_sources == total_sources
        return active_sources > 0

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        inputs: dict[str, Any] = input_data if isinstance(input_data, dict) else {}
        values = list(inputs.values())
        mode = self.get_parameter(config, "mode", "merge")

        if mode in ("append", "concat"):
            result: list[Any] = []
            for value in values:
                if isinstance(value, list):
                    result.extend(value)
                else:
                    result.append(value)
            return result

        if mode == "key_based":
            return self._merge_on_key(values, str(self.get_parameter(config, "mergeKey", "id")))

        if mode == "wait_all":
            return dict(inputs)

        if mode == "combine_pairs":
            lists = [v if isinstance(v, list) else [v] for v in values]
            longest = max((len(v) for v in lists), default=0)
            return [
                {f"input{index}": items[i] for index, items in enumerate(lists) if i < len(items)}
                for i in range(longest)
            ]

        if mode == "merge":
            merged: dict[str, Any] = {}
            for source, value in inputs.items():
                if isinstance(value, dict):
                    merged.update(value)
                else:
                    merged[source] = value
            return merged

        raise ValidationError(f'Unknown merge mode "{mode}"', field="mode")

    def _merge_on_key(self, values: list[Any], key: str) -> list[dict[str, Any]]:
        joined: dict[Any, dict[str, Any]] = {}
        unkeyed: list[Any] = []
        for value in values:
            records = value if isinstance(value, list) else [value]
            for record in records:
                record_key = get_nested_value(record, key) if isinstance(record, dict) else None
                if record_key is None:
                    unkeyed.append(record)
                    continue
                joined.setdefault(str(record_key), {}).update(record)
        return [*joined.values(), *unkeyed]
