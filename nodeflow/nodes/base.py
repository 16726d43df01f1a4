"""Base node class for all workflow nodes."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal, TYPE_CHECKING

from ..core.exceptions import ValidationError
from .utils import find_array, parse_json_text

if TYPE_CHECKING:
    from ..engine.types import ExecutionContext, NodeExecutionResult

Category = Literal["trigger", "logic", "transform", "action"]


@dataclass
class NodePropertyOption:
    """Option for a node property."""

    name: str
    value: str
    description: str | None = None


@dataclass
class NodeProperty:
    """Property definition for node schema."""

    display_name: str
    name: str
    # string, number, boolean, options, json, expression (handler-evaluated)
    type: str
    default: Any = None
    required: bool = False
    description: str | None = None
    placeholder: str | None = None
    options: list[NodePropertyOption] | None = None


@dataclass
class NodeTypeDescription:
    """Full description of a node type for catalog listings."""

    name: str
    display_name: str
    description: str
    icon: str | None = None
    category: Category = "transform"
    outputs: list[str] = field(default_factory=lambda: ["main"])
    properties: list[NodeProperty] = field(default_factory=list)


class BaseNode(ABC):
    """
    Abstract base class for all workflow nodes.

    Nodes define a class-level `node_description`. The runner resolves
    templates in the node's config, normalizes it to scalars and then calls
    `execute(config, input_data, context)`.
    """

    node_description: NodeTypeDescription | None = None

    # Alternate kind names accepted by the registry
    aliases: tuple[str, ...] = ()

    # Merge the node's input into an object output
    pass_through: bool = True

    # Seconds; None means the configured default
    timeout: float | None = None

    # Loop-style nodes return NodeExecutionResult.iterations for the runner to drive
    is_iterating: bool = False

    # Nodes directly downstream of this one run under its retry/fallback policy
    wraps_successors: bool = False

    # Handler receives {source_id: output} for every active upstream edge
    collects_inputs: bool = False

    @property
    @abstractmethod
    def kind(self) -> str:
        """Node kind identifier."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Short description of what the node does."""
        ...

    @property
    def category(self) -> Category:
        return self.node_description.category if self.node_description else "transform"

    @property
    def is_trigger(self) -> bool:
        return self.category == "trigger"

    @abstractmethod
    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        """Execute the node logic; return a plain value or a NodeExecutionResult."""
        ...

    def is_ready(self, raw_config: dict[str, Any], active_sources: int, total_sources: int) -> bool:
        """Whether the node runs given how many upstream sources are active."""
        return active_sources > 0

    def default_config(self) -> dict[str, Any]:
        if not self.node_description:
            return {}
        return {
            prop.name: prop.default
            for prop in self.node_description.properties
            if prop.default is not None
        }

    def expression_fields(self) -> set[str]:
        """Fields the handler evaluates itself, skipped by template pre-resolution."""
        if not self.node_description:
            return set()
        return {p.name for p in self.node_description.properties if p.type == "expression"}

    def required_fields(self) -> list[str]:
        if not self.node_description:
            return []
        return [p.name for p in self.node_description.properties if p.required]

    def get_parameter(self, config: dict[str, Any], key: str, default: Any = None) -> Any:
        """Get a parameter value, falling back to `default` when empty."""
        value = config.get(key)
        if value is None or value == "":
            return default
        return value

    def get_number(self, config: dict[str, Any], key: str, default: float | int) -> float | int:
        value = self.get_parameter(config, key, default)
        if isinstance(value, bool):
            raise ValidationError(f'Parameter "{key}" must be a number', field=key)
        if isinstance(value, (int, float)):
            return value
        try:
            number = float(str(value).strip())
        except ValueError:
            raise ValidationError(f'Parameter "{key}" must be a number, got "{value}"', field=key) from None
        return int(number) if number.is_integer() else number

    def get_bool(self, config: dict[str, Any], key: str, default: bool = False) -> bool:
        value = self.get_parameter(config, key, default)
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "on")
        return bool(value)

    def get_json(self, config: dict[str, Any], key: str, default: Any = None) -> Any:
        """Parse a JSON-text parameter (objects and lists arrive normalized to text)."""
        value = self.get_parameter(config, key)
        if value is None:
            return default
        if not isinstance(value, str):
            return value
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            raise ValidationError(f'Parameter "{key}" must be valid JSON', field=key) from None

    def get_array(
        self,
        config: dict[str, Any],
        key: str,
        input_data: Any,
        context: ExecutionContext,
    ) -> list[Any]:
        """
        Resolve the collection a list-processing node works on.

        The field may hold a resolved array, a path such as `input.items`, or
        nothing, in which case the first array found in the input is used.
        """
        from ..engine.expression_engine import ExpressionEngine, expression_engine

        value = parse_json_text(config.get(key))
        if isinstance(value, str) and value.strip():
            expression = value.strip()
            if expression.startswith("{{") and expression.endswith("}}"):
                expression = expression[2:-2]
            try:
                value = expression_engine.evaluate(
                    expression, ExpressionEngine.create_context(context, input_data)
                )
            except Exception:
                value = None
            value = parse_json_text(value)
            if not isinstance(value, list):
                raise ValidationError(f'"{key}" did not resolve to an array: {config.get(key)}', field=key)
        if isinstance(value, list):
            return value

        found = find_array(value if isinstance(value, dict) else input_data)
        if found is None:
            raise ValidationError(
                f'No array found in input. Set "{key}" to an expression such as {{{{input.items}}}}',
                field=key,
            )
        return found

    def output(self, data: Any, branches: list[str] | None = None) -> NodeExecutionResult:
        """Helper to create a result, optionally selecting outgoing branches."""
        from ..engine.types import NodeExecutionResult

        return NodeExecutionResult(data=data, branches=branches)
