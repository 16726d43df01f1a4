"""Node registry for managing workflow node kinds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from ..core.exceptions import NodeNotFoundError

if TYPE_CHECKING:
    from ..nodes.base import BaseNode, NodeProperty


@dataclass
class NodeTypeInfo:
    """Full node kind information for API responses."""

    kind: str
    display_name: str
    description: str
    category: str
    icon: str | None = None
    aliases: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=lambda: ["main"])
    properties: list[dict[str, Any]] = field(default_factory=list)


class NodeRegistryClass:
    """Registry for workflow node kinds."""

    def __init__(self) -> None:
        self._nodes: dict[str, type[BaseNode]] = {}
        self._instances: dict[str, BaseNode] = {}
        self._aliases: dict[str, str] = {}

    def get(self, kind: str) -> BaseNode:
        """
        Get a cached node instance by kind or alias.

        Node instances are stateless, so the same instance serves every run.

        Raises:
            NodeNotFoundError: If the kind is not registered
        """
        kind = self._aliases.get(kind, kind)
        if kind not in self._instances:
            raise NodeNotFoundError(kind)
        return self._instances[kind]

    def has(self, kind: str) -> bool:
        """Check if a kind (or alias) is registered."""
        return self._aliases.get(kind, kind) in self._nodes

    def list(self) -> list[str]:
        """List all registered node kinds."""
        return list(self._nodes.keys())

    def canonical(self, kind: str) -> str:
        return self._aliases.get(kind, kind)

    def get_node_info_full(self) -> list[NodeTypeInfo]:
        """Catalog metadata for every registered kind, used for UI grouping only."""
        return [self._build_node_type_info(instance) for instance in self._instances.values()]

    def get_node_type_info(self, kind: str) -> NodeTypeInfo | None:
        """Get full info for a specific node kind."""
        instance = self._instances.get(self.canonical(kind))
        if not instance:
            return None
        return self._build_node_type_info(instance)

    def _build_node_type_info(self, instance: BaseNode) -> NodeTypeInfo:
        desc = instance.node_description
        return NodeTypeInfo(
            kind=instance.kind,
            display_name=desc.display_name if desc else instance.kind,
            description=instance.description,
            category=instance.category,
            icon=desc.icon if desc else None,
            aliases=list(instance.aliases),
            outputs=list(desc.outputs) if desc else ["main"],
            properties=self._convert_properties(desc.properties) if desc else [],
        )

    def _convert_properties(self, properties: list[NodeProperty]) -> list[dict[str, Any]]:
        """Convert properties to dict format for API responses."""
        result = []
        for prop in properties:
            prop_dict: dict[str, Any] = {
                "displayName": prop.display_name,
                "name": prop.name,
                "type": prop.type,
                "default": prop.default,
            }
            if prop.required:
                prop_dict["required"] = True
            if prop.description:
                prop_dict["description"] = prop.description
            if prop.placeholder:
                prop_dict["placeholder"] = prop.placeholder
            if prop.options:
                prop_dict["options"] = [
                    {"name": o.name, "value": o.value, "description": o.description}
                    for o in prop.options
                ]
            result.append(prop_dict)
        return result

    def register(self, node_class: type[BaseNode]) -> None:
        """Register a node class if not already registered."""
        instance = node_class()
        if instance.kind in self._nodes:
            return
        self._nodes[instance.kind] = node_class
        self._instances[instance.kind] = instance
        for alias in instance.aliases:
            self._aliases.setdefault(alias, instance.kind)


# Singleton instance
node_registry = NodeRegistryClass()


def register_all_nodes(registry: NodeRegistryClass | None = None) -> NodeRegistryClass:
    """Register all built-in nodes."""
    from ..nodes import (
        # Triggers
        ManualTriggerNode,
        WebhookTriggerNode,
        ScheduleTriggerNode,
        IntervalTriggerNode,
        ErrorTriggerNode,
        # Flow control
        IfElseNode,
        SwitchNode,
        LoopNode,
        SplitInBatchesNode,
        MergeNode,
        ErrorHandlerNode,
        StopAndErrorNode,
        WaitNode,
        NoOpNode,
        FilterNode,
        # Transform
        SetNode,
        SetVariableNode,
        TextFormatterNode,
        JsonParserNode,
        LimitNode,
        AggregateNode,
        # Actions
        LogNode,
        HttpRequestNode,
    )

    registry = registry or node_registry
    all_node_classes: list[type[BaseNode]] = [
        ManualTriggerNode,
        WebhookTriggerNode,
        ScheduleTriggerNode,
        IntervalTriggerNode,
        ErrorTriggerNode,
        IfElseNode,
        SwitchNode,
        LoopNode,
        SplitInBatchesNode,
        MergeNode,
        ErrorHandlerNode,
        StopAndErrorNode,
        WaitNode,
        NoOpNode,
        FilterNode,
        SetNode,
        SetVariableNode,
        TextFormatterNode,
        JsonParserNode,
        LimitNode,
        AggregateNode,
        LogNode,
        HttpRequestNode,
    ]

    for node_class in all_node_classes:
        registry.register(node_class)
    return registry
