"""Math functions. Integer inputs keep integer results."""

from __future__ import annotations

import random
from typing import Any

from ...errors import EvaluationError
from .registry import builtin, to_int, to_number


@builtin("add", min_args=2, max_args=2)
def add(rt, left, right) -> Any:
    return to_number(left, "add") + to_number(right, "add")


@builtin("sub", min_args=2, max_args=2)
def sub(rt, left, right) -> Any:
    return to_number(left, "sub") - to_number(right, "sub")


@builtin("mul", min_args=2, max_args=2)
def mul(rt, left, right) -> Any:
    return to_number(left, "mul") * to_number(right, "mul")


@builtin("div", min_args=2, max_args=2)
def div(rt, left, right) -> Any:
    a = to_number(left, "div")
    b = to_number(right, "div")
    if b == 0:
        raise EvaluationError("div() cannot divide by zero")
    if isinstance(a, int) and isinstance(b, int):
        quotient = abs(a) // abs(b)
        return quotient if (a >= 0) == (b >= 0) else -quotient
    return a / b


@builtin("mod", min_args=2, max_args=2)
def mod(rt, left, right) -> Any:
    a = to_number(left, "mod")
    b = to_number(right, "mod")
    if b == 0:
        raise EvaluationError("mod() cannot divide by zero")
    remainder = abs(a) % abs(b)
    return remainder if a >= 0 else -remainder


def _flatten_numbers(values: tuple, fn_name: str) -> list:
    if len(values) == 1 and isinstance(values[0], list):
        values = tuple(values[0])
    if not values:
        raise EvaluationError(f"{fn_name}() needs at least one number")
    return [to_number(v, fn_name) for v in values]


@builtin("min", min_args=1)
def min_(rt, *values) -> Any:
    return min(_flatten_numbers(values, "min"))


@builtin("max", min_args=1)
def max_(rt, *values) -> Any:
    return max(_flatten_numbers(values, "max"))


@builtin("rand", min_args=2, max_args=2)
def rand(rt, low, high) -> int:
    lo = to_int(low, "rand")
    hi = to_int(high, "rand")
    if hi <= lo:
        raise EvaluationError("rand() maximum must be greater than the minimum")
    return random.randrange(lo, hi)


@builtin("range", min_args=2, max_args=2)
def range_(rt, start, count) -> list[int]:
    begin = to_int(start, "range")
    size = to_int(count, "range")
    if size < 0:
        raise EvaluationError("range() count must not be negative")
    return list(range(begin, begin + size))
