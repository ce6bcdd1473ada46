"""
Convert designer-style predicate objects into expression text.

The flow designer exports conditions as nested objects, e.g.
``{"and": [{"greater": ["@triggerBody()?['amount']", 1000]}]}``. Each key is a
function name and its value the argument list.
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import ValidationError
from ..expressions.evaluator import split_template


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def operand_to_expression(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, dict):
        return predicate_to_expression(value, top_level=False)
    if isinstance(value, list):
        return "createArray(" + ", ".join(operand_to_expression(item) for item in value) + ")"
    text = str(value)
    if text.startswith("@@"):
        return _quote(text[1:])
    if text.startswith("@") and not text.startswith("@{"):
        return text[1:]
    if "@{" in text:
        parts = []
        for part in split_template(text):
            parts.append(f"string({part[0]})" if isinstance(part, tuple) else _quote(part))
        return parts[0] if len(parts) == 1 else "concat(" + ", ".join(parts) + ")"
    return _quote(text)


def predicate_to_expression(predicate: Any, *, top_level: bool = True) -> str:
    if not isinstance(predicate, dict) or len(predicate) != 1:
        raise ValidationError(f"I couldn't read the condition {json.dumps(predicate, default=str)}.")
    name, raw_args = next(iter(predicate.items()))
    args = raw_args if isinstance(raw_args, list) else [raw_args]
    body = f"{name}(" + ", ".join(operand_to_expression(arg) for arg in args) + ")"
    return "@" + body if top_level else body


def normalize_expression(value: Any) -> Any:
    """Structured predicates become ``@...`` text; anything else passes through."""
    if isinstance(value, dict):
        return predicate_to_expression(value)
    return value
