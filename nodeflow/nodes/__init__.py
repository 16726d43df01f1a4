"""Built-in workflow nodes."""

from .base import BaseNode, NodeProperty, NodePropertyOption, NodeTypeDescription
from .triggers import (
    ManualTriggerNode,
    WebhookTriggerNode,
    ScheduleTriggerNode,
    IntervalTriggerNode,
    ErrorTriggerNode,
)
from .flow import (
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
)
from .data import (
    SetNode,
    SetVariableNode,
    TextFormatterNode,
    JsonParserNode,
    LimitNode,
    AggregateNode,
)
from .output import LogNode
from .integrations import HttpRequestNode

__all__ = [
    "BaseNode",
    "NodeProperty",
    "NodePropertyOption",
    "NodeTypeDescription",
    # Triggers
    "ManualTriggerNode",
    "WebhookTriggerNode",
    "ScheduleTriggerNode",
    "IntervalTriggerNode",
    "ErrorTriggerNode",
    # Flow
    "IfElseNode",
    "SwitchNode",
    "LoopNode",
    "SplitInBatchesNode",
    "MergeNode",
    "ErrorHandlerNode",
    "StopAndErrorNode",
    "WaitNode",
    "NoOpNode",
    "FilterNode",
    # Data
    "SetNode",
    "SetVariableNode",
    "TextFormatterNode",
    "JsonParserNode",
    "LimitNode",
    "AggregateNode",
    # Output
    "LogNode",
    # Integrations
    "HttpRequestNode",
]
