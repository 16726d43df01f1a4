"""Flow control nodes - routing, looping and timing."""

from .if_else import IfElseNode
from .switch import SwitchNode
from .loop import LoopNode, SplitInBatchesNode
from .merge import MergeNode
from .error_handler import ErrorHandlerNode
from .stop_and_error import StopAndErrorNode
from .wait import WaitNode
from .noop import NoOpNode
from .filter import FilterNode

__all__ = [
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
]
