"""Helpers shared by the built-in nodes."""

from __future__ import annotations

import json
from typing import Any

ARRAY_FALLBACK_KEYS = ("items", "data", "array", "results")


def get_nested_value(obj: Any, path: str) -> Any:
    """Get value at a dot-notation path; list segments may be indices."""
    if not path:
        return obj
    current: Any = obj
    for key in path.split("."):
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and key.lstrip("-").isdigit():
            index = int(key)
            current = current[index] if -len(current) <= index < len(current) else None
        else:
            return None
    return current


def set_nested_value(obj: dict[str, Any], path: str, value: Any) -> None:
    """Set value at a dot-notation path, creating objects as needed."""
    keys = path.split(".")
    current = obj
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def delete_nested_value(obj: dict[str, Any], path: str) -> None:
    keys = path.split(".")
    current: Any = obj
    for key in keys[:-1]:
        if not isinstance(current, dict) or key not in current:
            return
        current = current[key]
    if isinstance(current, dict):
        current.pop(keys[-1], None)


def parse_json_text(value: Any) -> Any:
    """Parse JSON text, returning the value unchanged when it is not JSON."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text or text[0] not in "[{\"" and text not in ("true", "false", "null") and not _looks_numeric(text):
        return value
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return value


def _looks_numeric(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def find_array(input_data: Any) -> list[Any] | None:
    """Locate the list a collection node should work on when none is configured."""
    if isinstance(input_data, list):
        return input_data
    if not isinstance(input_data, dict):
        return None
    for key in ARRAY_FALLBACK_KEYS:
        if isinstance(input_data.get(key), list):
            return input_data[key]
    for value in input_data.values():
        if isinstance(value, list):
            return value
    return None
