"""Collection functions. Most accept strings as well as arrays."""

from __future__ import annotations

from typing import Any

from ...errors import EvaluationError
from .registry import builtin, to_int, to_text, values_equal


def _sequence(value: Any, fn_name: str) -> Any:
    if value is None:
        return []
    if isinstance(value, (list, str)):
        return value
    raise EvaluationError(f"{fn_name}() expected an array or string but got {value!r}")


@builtin("first", min_args=1, max_args=1)
def first(rt, collection) -> Any:
    seq = _sequence(collection, "first")
    return seq[0] if seq else None


@builtin("last", min_args=1, max_args=1)
def last(rt, collection) -> Any:
    seq = _sequence(collection, "last")
    return seq[-1] if seq else None


@builtin("take", min_args=2, max_args=2)
def take(rt, collection, count) -> Any:
    return _sequence(collection, "take")[: max(to_int(count, "take"), 0)]


@builtin("skip", min_args=2, max_args=2)
def skip(rt, collection, count) -> Any:
    return _sequence(collection, "skip")[max(to_int(count, "skip"), 0) :]


@builtin("join", min_args=2, max_args=2)
def join(rt, collection, separator) -> str:
    if not isinstance(collection, list):
        raise EvaluationError(f"join() expected an array but got {collection!r}")
    return to_text(separator).join(to_text(item) for item in collection)


@builtin("reverse", min_args=1, max_args=1)
def reverse(rt, collection) -> Any:
    return _sequence(collection, "reverse")[::-1]


@builtin("flatten", min_args=1, max_args=1)
def flatten(rt, collection) -> list:
    result: list = []

    def _walk(value: Any) -> None:
        for item in value:
            if isinstance(item, list):
                _walk(item)
            else:
                result.append(item)

    _walk(_sequence(collection, "flatten"))
    return result


@builtin("union", min_args=2)
def union(rt, *collections) -> Any:
    if all(isinstance(c, dict) for c in collections):
        merged: dict = {}
        for obj in collections:
            merged.update(obj)
        return merged
    result: list = []
    for collection in collections:
        for item in _sequence(collection, "union"):
            if not any(values_equal(item, seen) for seen in result):
                result.append(item)
    return result


@builtin("intersection", min_args=2)
def intersection(rt, *collections) -> Any:
    if all(isinstance(c, dict) for c in collections):
        head, *rest = collections
        return {k: v for k, v in head.items() if all(k in other and other[k] == v for other in rest)}
    head, *rest = [list(_sequence(c, "intersection")) for c in collections]
    result: list = []
    for item in head:
        if any(values_equal(item, seen) for seen in result):
            continue
        if all(any(values_equal(item, other) for other in seq) for seq in rest):
            result.append(item)
    return result
