"""Comparison operations shared by the routing nodes."""

from __future__ import annotations

import re
from typing import Any

from ..base import NodePropertyOption

OPERATION_OPTIONS = [
    NodePropertyOption(name="Equals", value="equals"),
    NodePropertyOption(name="Not Equals", value="notEquals"),
    NodePropertyOption(name="Contains", value="contains"),
    NodePropertyOption(name="Not Contains", value="notContains"),
    NodePropertyOption(name="Greater Than", value="gt"),
    NodePropertyOption(name="Greater or Equal", value="gte"),
    NodePropertyOption(name="Less Than", value="lt"),
    NodePropertyOption(name="Less or Equal", value="lte"),
    NodePropertyOption(name="Is Empty", value="isEmpty"),
    NodePropertyOption(name="Is Not Empty", value="isNotEmpty"),
    NodePropertyOption(name="Is True", value="isTrue"),
    NodePropertyOption(name="Is False", value="isFalse"),
    NodePropertyOption(name="Regex Match", value="regex"),
]


def _numbers(a: Any, b: Any) -> tuple[float, float] | None:
    try:
        return float(a), float(b)
    except (ValueError, TypeError):
        return None


def compare(field_value: Any, operation: str, compare_value: Any) -> bool:
    """Evaluate `field_value <operation> compare_value`."""
    if operation == "equals":
        if field_value == compare_value:
            return True
        return str(field_value if field_value is not None else "") == str(compare_value if compare_value is not None else "")
    elif operation == "notEquals":
        return not compare(field_value, "equals", compare_value)
    elif operation == "contains":
        if isinstance(field_value, (list, dict)):
            return compare_value in field_value
        return str(compare_value) in str(field_value)
    elif operation == "notContains":
        return not compare(field_value, "contains", compare_value)
    elif operation in ("gt", "gte", "lt", "lte"):
        pair = _numbers(field_value, compare_value)
        if pair is None:
            return False
        a, b = pair
        return {"gt": a > b, "gte": a >= b, "lt": a < b, "lte": a <= b}[operation]
    elif operation == "isEmpty":
        return field_value is None or field_value == "" or field_value == [] or field_value == {}
    elif operation == "isNotEmpty":
        return not compare(field_value, "isEmpty", None)
    elif operation == "isTrue":
        return field_value is True or field_value == "true" or field_value == 1
    elif operation == "isFalse":
        return field_value is False or field_value == "false" or field_value == 0
    elif operation == "regex":
        try:
            return bool(re.search(str(compare_value), str(field_value)))
        except re.error:
            return False
    else:
        return bool(field_value)
