"""Set node - add, change, delete and rename fields."""

from __future__ import annotations

import copy
from typing import Any, TYPE_CHECKING

from ...core.exceptions import ValidationError
from ..base import BaseNode, NodeTypeDescription, NodeProperty
from ..utils import delete_nested_value, get_nested_value, set_nested_value

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class SetNode(BaseNode):
    """
    Set node - builds a new object from the input and the configured fields.

    `fields` is an object ({"user.name": "{{input.name}}"}) or a list of
    {name, value}; names support dot notation.
    """

    node_description = NodeTypeDescription(
        name="set",
        display_name="Set",
        description="Set, delete and rename fields",
        icon="fa:pen",
        category="transform",
        properties=[
            NodeProperty(
                display_name="Fields",
                name="fields",
                type="json",
                default={},
                placeholder='{"status": "done", "total": "{{input.count}}"}',
            ),
            NodeProperty(
                display_name="Keep Only Set",
                name="keepOnlySet",
                type="boolean",
                default=False,
                description="Drop input fields that are not set here",
            ),
            NodeProperty(
                display_name="Delete Fields",
                name="deleteFields",
                type="json",
                default=[],
            ),
            NodeProperty(
                display_name="Rename Fields",
                name="renameFields",
                type="json",
                default=[],
                placeholder='[{"from": "old", "to": "new"}]',
            ),
        ],
    )

    aliases = ("edit_fields",)
    # Builds its own output from the input so deletions stick
    pass_through = False

    @property
    def kind(self) -> str:
        return "set"

    @property
    def description(self) -> str:
        return "Set, delete and rename fields"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        keep_only_set = self.get_bool(config, "keepOnlySet", False)
        if keep_only_set or not isinstance(input_data, dict):
            result: dict[str, Any] = {}
        else:
            result = copy.deepcopy(input_data)

        for name, value in self._fields(config):
            set_nested_value(result, name, value)

        for field in self.get_json(config, "deleteFields", []) or []:
            path = field.get("path") if isinstance(field, dict) else field
            if path:
                delete_nested_value(result, str(path))

        for rename in self.get_json(config, "renameFields", []) or []:
            from_path = rename.get("from", "") if isinstance(rename, dict) else ""
            to_path = rename.get("to", "") if isinstance(rename, dict) else ""
            if from_path and to_path:
                value = get_nested_value(result, from_path)
                if value is not None:
                    delete_nested_value(result, from_path)
                    set_nested_value(result, to_path, value)

        return result

    def _fields(self, config: dict[str, Any]) -> list[tuple[str, Any]]:
        fields = self.get_json(config, "fields", {})
        if isinstance(fields, dict):
            return [(str(name), value) for name, value in fields.items()]
        if isinstance(fields, list):
            return [
                (str(f["name"]), f.get("value"))
                for f in fields
                if isinstance(f, dict) and f.get("name")
            ]
        raise ValidationError("Set fields must be an object or a list of {name, value}", field="fields")
