"""
Expression engine for resolving {{ }} template expressions.

Uses simpleeval for safe expression evaluation (no eval() or exec()).
References such as `input.user.name` or `item['id']` are resolved by item
lookup before evaluation and bound as plain names, so data fields that share
a name with a Python attribute (`items`, `keys`, `count`) still read as data.
"""

from __future__ import annotations

import ast
import json
import keyword
import logging
import math
import operator
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, TYPE_CHECKING

from simpleeval import SimpleEval, DEFAULT_FUNCTIONS, DEFAULT_OPERATORS

from .types import LoopFrame

if TYPE_CHECKING:
    from .types import ExecutionContext

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{(.+?)\}\}", re.DOTALL)
SINGLE_PLACEHOLDER = re.compile(r"^\s*\{\{(.+?)\}\}\s*$", re.DOTALL)

_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER = re.compile(r"\d[\w.]*")
_ATTR_SEGMENT = re.compile(r"\.([A-Za-z_][A-Za-z0-9_]*)")
_INDEX_SEGMENT = re.compile(r"""\[\s*(-?\d+|'[^']*'|"[^"]*")\s*\]""")

_KEYWORDS = frozenset(keyword.kwlist)
_FRAME_ROOTS = ("item", "index", "total")

_MISSING = object()
_LITERALS = {"true": True, "false": False, "null": None}

_COMPARISONS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(text: str) -> Any:
    """Numeric text as int or float; anything else is returned unchanged."""
    stripped = text.strip()
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        return float(stripped)
    except ValueError:
        return text


def _numeric_aware(compare: Any) -> Any:
    """Wrap a comparison so numeric text compared with a number is read as a number."""

    def apply(left: Any, right: Any) -> Any:
        if _is_number(left) and isinstance(right, str):
            right = _as_number(right)
        elif _is_number(right) and isinstance(left, str):
            left = _as_number(left)
        return compare(left, right)

    return apply


@dataclass
class ExpressionContext:
    """Scopes visible to an expression, innermost loop frame last."""

    input: Any = None
    variables: dict[str, Any] = field(default_factory=dict)
    nodes: Mapping[str, Any] = field(default_factory=dict)
    loop_frames: list[LoopFrame] = field(default_factory=list)
    run: dict[str, Any] = field(default_factory=dict)

    @property
    def frame(self) -> LoopFrame | None:
        return self.loop_frames[-1] if self.loop_frames else None

    def with_item(self, item: Any, index: int, total: int) -> ExpressionContext:
        """Copy of this context with one more loop frame (per-item evaluation)."""
        frames = [*self.loop_frames, LoopFrame(loop_id="", item=item, index=index, total=total)]
        return replace(self, loop_frames=frames)


class ExpressionEngine:
    """
    Safe expression parser that doesn't use eval() or exec().

    Uses simpleeval library with a whitelist of allowed functions.
    """

    def __init__(self) -> None:
        self._setup_evaluator()

    def _setup_evaluator(self) -> None:
        """Set up the safe evaluator with allowed functions."""
        self.evaluator = SimpleEval()
        self.evaluator.operators = DEFAULT_OPERATORS.copy()
        for node_type, compare in _COMPARISONS.items():
            self.evaluator.operators[node_type] = _numeric_aware(compare)

        self.evaluator.functions = {
            **DEFAULT_FUNCTIONS,
            # Type conversion
            "str": str,
            "int": int,
            "float": float,
            "bool": bool,
            "list": list,
            "dict": dict,
            "len": len,
            # String functions
            "lower": lambda s: str(s).lower(),
            "upper": lambda s: str(s).upper(),
            "trim": lambda s: str(s).strip(),
            "split": lambda s, sep=" ": str(s).split(sep),
            "join": lambda arr, sep="": sep.join(str(x) for x in arr),
            "includes": lambda s, search: search in s if isinstance(s, (list, dict)) else str(search) in str(s),
            "replace": lambda s, old, new: str(s).replace(old, new),
            "substring": lambda s, start, end=None: str(s)[start:end],
            "length": lambda x: len(x) if x is not None else 0,
            "startswith": lambda s, prefix: str(s).startswith(prefix),
            "endswith": lambda s, suffix: str(s).endswith(suffix),
            # Array functions
            "first": lambda arr: arr[0] if arr else None,
            "last": lambda arr: arr[-1] if arr else None,
            "at": lambda arr, idx: arr[idx] if -len(arr) <= idx < len(arr) else None,
            "slice": lambda arr, start, end=None: arr[start:end],
            "reverse": lambda arr: list(reversed(arr)),
            "sort": lambda arr: sorted(arr),
            "unique": lambda arr: list(dict.fromkeys(arr)),
            "flatten": lambda arr: [item for sublist in arr for item in sublist],
            # Math functions
            "abs": abs,
            "min": min,
            "max": max,
            "sum": sum,
            "round": round,
            "floor": math.floor,
            "ceil": math.ceil,
            # Date functions
            "now": lambda: int(datetime.now().timestamp() * 1000),
            "date_now": lambda: datetime.now().isoformat(),
            "timestamp": lambda: int(datetime.now().timestamp()),
            # JSON functions
            "json_stringify": lambda v: json.dumps(v),
            "json_parse": lambda s: json.loads(s) if s else None,
            # Type checking
            "typeof": lambda v: type(v).__name__,
            "is_array": lambda v: isinstance(v, list),
            "is_empty": lambda v: v is None or v == "" or (isinstance(v, (list, dict)) and len(v) == 0),
            "is_none": lambda v: v is None,
            # Object functions
            "keys": lambda d: list(d.keys()) if isinstance(d, dict) else [],
            "values": lambda d: list(d.values()) if isinstance(d, dict) else [],
            "get": lambda d, key, default=None: d.get(key, default) if isinstance(d, dict) else default,
        }

    def resolve(self, value: Any, context: ExpressionContext) -> Any:
        """
        Resolve all {{ }} expressions in a value.

        Handles strings, objects, and arrays recursively. A string that is
        exactly one placeholder keeps the evaluated type; anything else is
        interpolated as text.
        """
        if isinstance(value, str):
            return self._resolve_string(value, context)

        if isinstance(value, list):
            return [self.resolve(item, context) for item in value]

        if isinstance(value, dict):
            return {key: self.resolve(val, context) for key, val in value.items()}

        return value

    def _resolve_string(self, string: str, context: ExpressionContext) -> Any:
        if "{{" not in string:
            return string

        single = SINGLE_PLACEHOLDER.match(string)
        if single and "{{" not in single.group(1):
            result = self._safe_evaluate(single.group(1), context)
            return "" if result is None else result

        def replacer(match: re.Match[str]) -> str:
            return self.stringify(self._safe_evaluate(match.group(1), context))

        return PLACEHOLDER.sub(replacer, string)

    def evaluate(self, expression: str, context: ExpressionContext) -> Any:
        """Evaluate a bare expression (no braces). Raises on failure."""
        names: dict[str, Any] = {}
        transformed = self._bind_references(expression.strip(), context, names)
        self.evaluator.names = names
        return self.evaluator.eval(transformed)

    def _safe_evaluate(self, expression: str, context: ExpressionContext) -> Any:
        try:
            return self.evaluate(expression, context)
        except Exception as e:
            logger.warning("Expression evaluation failed: %s (expression: %s)", e, expression.strip())
            return None

    def evaluate_condition(self, condition: Any, context: ExpressionContext) -> bool:
        """
        Evaluate a boolean condition.

        Each {{ }} placeholder is bound to a generated name holding its typed
        value, then the whole condition is evaluated, so `{{input.x}} > 3`
        compares numbers rather than text. Errors yield False.
        """
        if isinstance(condition, bool):
            return condition
        text = str(condition if condition is not None else "").strip()
        if not text:
            return False

        names: dict[str, Any] = {}

        def bind(match: re.Match[str]) -> str:
            name = f"nfarg{len(names)}"
            names[name] = self._safe_evaluate(match.group(1), context)
            return name

        expression = PLACEHOLDER.sub(bind, text)
        try:
            transformed = self._bind_references(expression, context, names)
            self.evaluator.names = names
            result = self.evaluator.eval(transformed)
        except Exception as e:
            logger.warning("Condition evaluation failed: %s (condition: %s)", e, text)
            return False
        return self.truthy(result)

    @staticmethod
    def truthy(value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() not in ("", "false", "0", "no", "null", "none")
        return bool(value)

    def _bind_references(self, expression: str, context: ExpressionContext, names: dict[str, Any]) -> str:
        """Replace data references with bound names, leaving operators and calls alone."""
        expression = expression.replace("$json", "input").replace("$vars", "vars")
        out: list[str] = []
        i = 0
        length = len(expression)
        while i < length:
            ch = expression[i]

            if ch in "\"'":
                end = self._string_end(expression, i)
                out.append(expression[i:end])
                i = end
                continue

            if ch.isdigit():
                match = _NUMBER.match(expression, i)
                out.append(match.group(0))
                i = match.end()
                continue

            if not (ch.isalpha() or ch == "_"):
                out.append(ch)
                i += 1
                continue

            match = _NAME.match(expression, i)
            name = match.group(0)
            end = match.end()
            after = self._next_char(expression, end)
            before = self._previous_char(out)

            leave = (
                before == "."
                or name in _KEYWORDS
                or name in names
                or (after == "(" and name in self.evaluator.functions)
                or (after == "=" and not expression.startswith("==", self._skip_spaces(expression, end)))
            )
            if leave:
                out.append(name)
                i = end
                continue

            segments: list[tuple[Any, int]] = []
            pos = end
            while True:
                seg = _ATTR_SEGMENT.match(expression, pos) or _INDEX_SEGMENT.match(expression, pos)
                if not seg:
                    break
                segments.append((self._segment_key(seg), pos))
                pos = seg.end()

            # `input.name.upper()` keeps the method call for simpleeval
            if segments and self._next_char(expression, pos) == "(":
                pos = segments.pop()[1]

            value = self._lookup_root(name, context)
            for key, _ in segments:
                value = self._step(value, key)
            if value is _MISSING:
                value = None

            bound = f"nfref{len(names)}"
            names[bound] = value
            out.append(bound)
            i = pos

        return "".join(out)

    def _lookup_root(self, name: str, context: ExpressionContext) -> Any:
        frame = context.frame
        if name == "input":
            return context.input
        if name in _FRAME_ROOTS:
            return getattr(frame, name) if frame else _MISSING
        if name == "loop":
            return frame.as_dict() if frame else {}
        if name in ("vars", "variables"):
            return context.variables
        if name == "nodes":
            return context.nodes
        if name == "run":
            return context.run

        # Bare name: loop frame, then input fields, then variables
        for outer in reversed(context.loop_frames):
            if isinstance(outer.item, Mapping) and name in outer.item:
                return outer.item[name]
        if isinstance(context.input, Mapping) and name in context.input:
            return context.input[name]
        if name in context.variables:
            return context.variables[name]
        return _LITERALS.get(name, _MISSING)

    @staticmethod
    def _step(value: Any, key: Any) -> Any:
        """One path step by item lookup; JSON text is parsed on the way."""
        if value is _MISSING or value is None:
            return _MISSING
        if isinstance(value, str) and value[:1] in ("{", "["):
            try:
                value = json.loads(value)
            except ValueError:
                pass
        if isinstance(value, Mapping):
            if key in value:
                return value[key]
            if isinstance(key, int) and str(key) in value:
                return value[str(key)]
            return _MISSING
        if isinstance(value, (list, tuple, str)):
            if isinstance(key, str) and key.lstrip("-").isdigit():
                key = int(key)
            if isinstance(key, int):
                return value[key] if -len(value) <= key < len(value) else _MISSING
            if key == "length":
                return len(value)
        return _MISSING

    @staticmethod
    def _segment_key(match: re.Match[str]) -> Any:
        raw = match.group(1)
        if raw[:1] in ("'", '"'):
            return raw[1:-1]
        if match.group(0).startswith("["):
            return int(raw)
        return raw

    @staticmethod
    def _string_end(text: str, start: int) -> int:
        quote = text[start]
        i = start + 1
        while i < len(text):
            if text[i] == "\\":
                i += 2
                continue
            if text[i] == quote:
                return i + 1
            i += 1
        return len(text)

    @staticmethod
    def _skip_spaces(text: str, pos: int) -> int:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return pos

    def _next_char(self, text: str, pos: int) -> str:
        pos = self._skip_spaces(text, pos)
        return text[pos] if pos < len(text) else ""

    @staticmethod
    def _previous_char(out: list[str]) -> str:
        for chunk in reversed(out):
            stripped = chunk.rstrip()
            if stripped:
                return stripped[-1]
        return ""

    @staticmethod
    def stringify(value: Any) -> str:
        """Convert value to string for interpolation."""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value, default=str)
        return str(value)

    def normalize(self, config: dict[str, Any]) -> dict[str, str | int | float | bool]:
        """Coerce every top-level config value to a scalar handlers can rely on."""
        return {key: self.normalize_value(value) for key, value in config.items()}

    @staticmethod
    def normalize_value(value: Any) -> str | int | float | bool:
        if value is None:
            return ""
        if isinstance(value, (bool, int, float, str)):
            return value
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
        return str(value)

    @staticmethod
    def create_context(context: ExecutionContext, input_data: Any) -> ExpressionContext:
        """Create expression context from execution state."""
        return ExpressionContext(
            input=input_data,
            variables=context.variables,
            nodes=context.node_outputs,
            loop_frames=list(context.loop_frames),
            run={"id": context.run_id, "mode": context.mode},
        )


# Singleton instance
expression_engine = ExpressionEngine()
