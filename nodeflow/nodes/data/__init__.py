"""Data transformation nodes."""

from .set_node import SetNode
from .set_variable import SetVariableNode
from .text_formatter import TextFormatterNode
from .json_parser import JsonParserNode
from .item_lists import LimitNode, AggregateNode

__all__ = [
    "SetNode",
    "SetVariableNode",
    "TextFormatterNode",
    "JsonParserNode",
    "LimitNode",
    "AggregateNode",
]
