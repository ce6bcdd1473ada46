"""String functions."""

from __future__ import annotations

import uuid
from typing import Any

from ...errors import EvaluationError
from .registry import builtin, require_text, to_int, to_number, to_text


@builtin("concat", min_args=1)
def concat(rt, *args) -> str:
    return "".join(to_text(arg) for arg in args)


@builtin("substring", min_args=2, max_args=3)
def substring(rt, text, start, length=None) -> str:
    value = require_text(text, "substring")
    begin = to_int(start, "substring")
    if begin < 0 or begin > len(value):
        raise EvaluationError(f"substring() start index {begin} is outside the string of length {len(value)}")
    if length is None:
        return value[begin:]
    count = to_int(length, "substring")
    if count < 0 or begin + count > len(value):
        raise EvaluationError(f"substring() length {count} runs past the end of the string")
    return value[begin : begin + count]


@builtin("slice", min_args=2, max_args=3)
def slice_text(rt, text, start, end=None) -> str:
    value = require_text(text, "slice")
    begin = to_int(start, "slice")
    if end is None:
        return value[begin:]
    return value[begin : to_int(end, "slice")]


@builtin("toLower", min_args=1, max_args=1)
def to_lower(rt, text) -> Any:
    return None if text is None else to_text(text).lower()


@builtin("toUpper", min_args=1, max_args=1)
def to_upper(rt, text) -> Any:
    return None if text is None else to_text(text).upper()


@builtin("trim", min_args=1, max_args=1)
def trim(rt, text) -> Any:
    return None if text is None else to_text(text).strip()


@builtin("replace", min_args=3, max_args=3)
def replace(rt, text, old, new) -> Any:
    if text is None:
        return None
    return to_text(text).replace(to_text(old), to_text(new))


@builtin("split", min_args=2, max_args=2)
def split(rt, text, separator) -> list[str]:
    value = require_text(text, "split")
    sep = to_text(separator)
    if not sep:
        return list(value)
    return value.split(sep)


@builtin("indexOf", min_args=2, max_args=2)
def index_of(rt, text, search) -> int:
    return require_text(text, "indexOf").lower().find(to_text(search).lower())


@builtin("lastIndexOf", min_args=2, max_args=2)
def last_index_of(rt, text, search) -> int:
    return require_text(text, "lastIndexOf").lower().rfind(to_text(search).lower())


@builtin("nthIndexOf", min_args=3, max_args=3)
def nth_index_of(rt, text, search, occurrence) -> int:
    value = require_text(text, "nthIndexOf")
    needle = to_text(search)
    nth = to_int(occurrence, "nthIndexOf")
    if nth == 0:
        raise EvaluationError("nthIndexOf() occurrence must not be zero")
    if not needle:
        return -1
    positions: list[int] = []
    idx = value.find(needle)
    while idx != -1:
        positions.append(idx)
        idx = value.find(needle, idx + 1)
    if abs(nth) > len(positions):
        return -1
    return positions[nth - 1] if nth > 0 else positions[nth]


@builtin("startsWith", min_args=2, max_args=2)
def starts_with(rt, text, prefix) -> bool:
    return require_text(text, "startsWith").lower().startswith(to_text(prefix).lower())


@builtin("endsWith", min_args=2, max_args=2)
def ends_with(rt, text, suffix) -> bool:
    return require_text(text, "endsWith").lower().endswith(to_text(suffix).lower())


@builtin("guid", max_args=1)
def guid(rt, fmt=None) -> str:
    value = uuid.uuid4()
    style = (to_text(fmt) or "D").upper()
    if style == "N":
        return value.hex
    if style == "B":
        return "{" + str(value) + "}"
    if style == "P":
        return "(" + str(value) + ")"
    return str(value)


@builtin("formatNumber", min_args=2, max_args=3)
def format_number(rt, number, fmt, locale=None) -> str:
    value = to_number(number, "formatNumber")
    pattern = to_text(fmt)
    if pattern and pattern[0] in "NnFfCcPp":
        decimals = int(pattern[1:]) if pattern[1:].isdigit() else 2
        kind = pattern[0].upper()
        if kind == "P":
            return f"{value * 100:,.{decimals}f}%"
        if kind == "F":
            return f"{value:.{decimals}f}"
        prefix = "$" if kind == "C" else ""
        return f"{prefix}{value:,.{decimals}f}"
    if pattern and set(pattern) <= set("#0,."):
        decimals = len(pattern.split(".", 1)[1]) if "." in pattern else 0
        grouping = "," if "," in pattern else ""
        return f"{value:{grouping}.{decimals}f}"
    return to_text(value)


@builtin("length", min_args=1, max_args=1)
def length(rt, value) -> int:
    if value is None:
        return 0
    if isinstance(value, (str, list, dict)):
        return len(value)
    raise EvaluationError(f"length() expected a string or array but got {value!r}")
