"""Conversion functions."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any
from urllib.parse import quote, unquote

from ...errors import EvaluationError
from .registry import builtin, require_text, to_number, to_text


@builtin("string", min_args=1, max_args=1)
def string(rt, value) -> str:
    return to_text(value)


@builtin("int", min_args=1, max_args=1)
def int_(rt, value) -> int:
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise EvaluationError(f"int() could not convert {value!r} to an integer") from exc
    return int(to_number(value, "int"))


@builtin("float", min_args=1, max_args=1)
def float_(rt, value) -> float:
    return float(to_number(value, "float"))


@builtin("bool", min_args=1, max_args=1)
def bool_(rt, value) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {"true", "1"}:
            return True
        if text in {"false", "0", ""}:
            return False
        raise EvaluationError(f"bool() could not convert {value!r} to a boolean")
    return bool(value)


@builtin("json", min_args=1, max_args=1)
def json_(rt, value) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise EvaluationError(f"json() could not parse {value!r}: {exc.msg}") from exc


@builtin("base64", min_args=1, max_args=1)
def base64_(rt, value) -> str:
    return base64.b64encode(to_text(value).encode("utf-8")).decode("ascii")


@builtin("base64ToString", min_args=1, max_args=1, aliases=("decodeBase64",))
def base64_to_string(rt, value) -> str:
    text = require_text(value, "base64ToString")
    try:
        return base64.b64decode(text, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise EvaluationError(f"base64ToString() got an invalid base64 value {text!r}") from exc


@builtin("uriComponent", min_args=1, max_args=1, aliases=("encodeUriComponent",))
def uri_component(rt, value) -> str:
    return quote(to_text(value), safe="")


@builtin("uriComponentToString", min_args=1, max_args=1, aliases=("decodeUriComponent",))
def uri_component_to_string(rt, value) -> str:
    return unquote(to_text(value))


@builtin("array", min_args=1, max_args=1)
def array(rt, value) -> list:
    if isinstance(value, list):
        return value
    return [value]


@builtin("createArray")
def create_array(rt, *values) -> list:
    return list(values)
