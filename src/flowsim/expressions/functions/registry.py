"""
Closed function table for the expression language plus shared coercions.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from ...errors import EvaluationError


@dataclass
class BuiltinFunction:
    name: str
    fn: Callable[..., Any]
    min_args: int = 0
    max_args: Optional[int] = None
    lazy: bool = False


FUNCTIONS: Dict[str, BuiltinFunction] = {}


def builtin(
    name: str,
    *,
    min_args: int = 0,
    max_args: Optional[int] = None,
    lazy: bool = False,
    aliases: Iterable[str] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Register ``fn(runtime, *args)`` under ``name`` (case-insensitive).

    Lazy functions receive unevaluated AST nodes and call
    ``runtime.evaluate_node`` themselves.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        for alias in (name, *aliases):
            FUNCTIONS[alias.lower()] = BuiltinFunction(alias, fn, min_args, max_args, lazy)
        return fn

    return decorator


def lookup(name: str) -> BuiltinFunction | None:
    return FUNCTIONS.get(name.lower())


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value == int(value):
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def to_number(value: Any, fn_name: str) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            pass
    raise EvaluationError(f"{fn_name}() expected a number but got {type_name(value)} {value!r}")


def to_int(value: Any, fn_name: str) -> int:
    number = to_number(value, fn_name)
    return int(number)


def require_text(value: Any, fn_name: str) -> str:
    if value is None:
        raise EvaluationError(f"{fn_name}() expected a string but got null")
    if isinstance(value, str):
        return value
    return to_text(value)


def truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, dict, tuple)):
        return len(value) == 0
    return False


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def values_equal(left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if _numeric(left) and _numeric(right):
        return float(left) == float(right)
    if isinstance(left, str) and _numeric(right) or isinstance(right, str) and _numeric(left):
        try:
            return float(to_number(left, "equals")) == float(to_number(right, "equals"))
        except EvaluationError:
            return False
    return left == right


def compare(left: Any, right: Any, fn_name: str) -> int:
    if isinstance(left, str) and isinstance(right, str):
        return (left > right) - (left < right)
    a = to_number(left, fn_name)
    b = to_number(right, fn_name)
    return (a > b) - (a < b)


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
