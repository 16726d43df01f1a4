"""Trigger nodes - workflow entry points."""

from .manual import ManualTriggerNode
from .webhook import WebhookTriggerNode
from .schedule import ScheduleTriggerNode, IntervalTriggerNode
from .error_trigger import ErrorTriggerNode

__all__ = [
    "ManualTriggerNode",
    "WebhookTriggerNode",
    "ScheduleTriggerNode",
    "IntervalTriggerNode",
    "ErrorTriggerNode",
]
