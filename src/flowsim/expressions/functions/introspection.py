"""Type checks."""

from __future__ import annotations

from .registry import builtin


@builtin("isString", min_args=1, max_args=1)
def is_string(rt, value) -> bool:
    return isinstance(value, str)


@builtin("isInt", min_args=1, max_args=1)
def is_int(rt, value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, str):
        text = value.strip()
        return text.lstrip("-").isdigit()
    return False


@builtin("isFloat", min_args=1, max_args=1)
def is_float(rt, value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


@builtin("isArray", min_args=1, max_args=1)
def is_array(rt, value) -> bool:
    return isinstance(value, list)


@builtin("isObject", min_args=1, max_args=1)
def is_object(rt, value) -> bool:
    return isinstance(value, dict)
