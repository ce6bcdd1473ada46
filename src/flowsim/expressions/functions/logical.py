"""Comparison and logical functions.

``if``, ``and``, ``or`` and ``coalesce`` are lazy so that untaken branches are
never evaluated and arbitrarily deep nesting costs only what it touches.
"""

from __future__ import annotations

from typing import Any

from .registry import builtin, compare, is_empty, to_text, truthy, values_equal


@builtin("equals", min_args=2, max_args=2)
def equals(rt, left, right) -> bool:
    return values_equal(left, right)


@builtin("greater", min_args=2, max_args=2)
def greater(rt, left, right) -> bool:
    return compare(left, right, "greater") > 0


@builtin("greaterOrEquals", min_args=2, max_args=2)
def greater_or_equals(rt, left, right) -> bool:
    return compare(left, right, "greaterOrEquals") >= 0


@builtin("less", min_args=2, max_args=2)
def less(rt, left, right) -> bool:
    return compare(left, right, "less") < 0


@builtin("lessOrEquals", min_args=2, max_args=2)
def less_or_equals(rt, left, right) -> bool:
    return compare(left, right, "lessOrEquals") <= 0


@builtin("and", min_args=1, lazy=True)
def and_(rt, *nodes) -> bool:
    for node in nodes:
        if not truthy(rt.evaluate_node(node)):
            return False
    return True


@builtin("or", min_args=1, lazy=True)
def or_(rt, *nodes) -> bool:
    for node in nodes:
        if truthy(rt.evaluate_node(node)):
            return True
    return False


@builtin("not", min_args=1, max_args=1)
def not_(rt, value) -> bool:
    return not truthy(value)


@builtin("xor", min_args=2, max_args=2)
def xor(rt, left, right) -> bool:
    return truthy(left) != truthy(right)


@builtin("if", min_args=3, max_args=3, lazy=True)
def if_(rt, condition, when_true, when_false) -> Any:
    if truthy(rt.evaluate_node(condition)):
        return rt.evaluate_node(when_true)
    return rt.evaluate_node(when_false)


@builtin("coalesce", min_args=1, lazy=True)
def coalesce(rt, *nodes) -> Any:
    for node in nodes:
        value = rt.evaluate_node(node)
        if value is None or value == "":
            continue
        return value
    return None


@builtin("empty", min_args=1, max_args=1)
def empty(rt, value) -> bool:
    return is_empty(value)


@builtin("contains", min_args=2, max_args=2)
def contains(rt, collection, value) -> bool:
    if collection is None:
        return False
    if isinstance(collection, str):
        return to_text(value) in collection
    if isinstance(collection, dict):
        return to_text(value) in collection
    if isinstance(collection, list):
        return any(values_equal(item, value) for item in collection)
    return False
