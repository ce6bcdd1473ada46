from __future__ import annotations

from functools import lru_cache
from typing import Any, List, Tuple, Union

from ..errors import EvaluationError, ExpressionSyntaxError, FlowsimError
from ..flows.context import ExecutionContext
from . import ast_nodes
from .functions import lookup, to_text
from .parser import parse_expression

SIGIL = "@"
TEMPLATE_OPEN = "@{"

__all__ = ["ExpressionEvaluator", "compile_expression", "split_template", "is_expression"]


@lru_cache(maxsize=1024)
def compile_expression(source: str) -> ast_nodes.Expr:
    return parse_expression(source)


def is_expression(value: Any) -> bool:
    return isinstance(value, str) and (
        (value.startswith(SIGIL) and not value.startswith(SIGIL * 2)) or TEMPLATE_OPEN in value
    )


def split_template(text: str) -> List[Union[str, Tuple[str]]]:
    """
    Split interpolated text into literal chunks and ``(expression,)`` tuples.
    Braces inside quoted string literals do not close a segment.
    """
    parts: List[Union[str, Tuple[str]]] = []
    pos = 0
    while True:
        start = text.find(TEMPLATE_OPEN, pos)
        if start == -1:
            if pos < len(text):
                parts.append(text[pos:])
            return parts
        if start > pos:
            parts.append(text[pos:start])
        idx = start + len(TEMPLATE_OPEN)
        in_string = False
        while idx < len(text):
            ch = text[idx]
            if ch == "'":
                in_string = not in_string
            elif ch == "}" and not in_string:
                break
            idx += 1
        if idx >= len(text):
            raise ExpressionSyntaxError("Unterminated @{ ... } segment", expression=text, position=start)
        parts.append((text[start + len(TEMPLATE_OPEN) : idx],))
        pos = idx + 1


class ExpressionEvaluator:
    """Resolves dynamic values against one execution context."""

    def __init__(self, context: ExecutionContext | None = None) -> None:
        self.context = context if context is not None else ExecutionContext()

    def evaluate(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        if value.startswith(SIGIL * 2):
            return value[1:]
        if value.startswith(SIGIL) and not value.startswith(TEMPLATE_OPEN):
            return self.evaluate_expression(value[1:])
        if TEMPLATE_OPEN not in value:
            return value
        parts = split_template(value)
        if len(parts) == 1 and isinstance(parts[0], tuple):
            return self.evaluate_expression(parts[0][0])
        rendered: list[str] = []
        for part in parts:
            if isinstance(part, tuple):
                rendered.append(to_text(self.evaluate_expression(part[0])))
            else:
                rendered.append(part)
        return "".join(rendered)

    def evaluate_expression(self, source: str) -> Any:
        try:
            node = compile_expression(source.strip())
        except ExpressionSyntaxError as exc:
            if exc.expression is None:
                exc.expression = source
            raise
        return self.evaluate_node(node)

    def evaluate_node(self, node: ast_nodes.Expr) -> Any:
        if isinstance(node, ast_nodes.Literal):
            return node.value
        if isinstance(node, ast_nodes.FunctionCall):
            return self._call(node)
        if isinstance(node, ast_nodes.Accessor):
            return self._access(node)
        raise EvaluationError(f"Unsupported expression node {type(node).__name__}")

    def _call(self, node: ast_nodes.FunctionCall) -> Any:
        entry = lookup(node.name)
        if entry is None:
            raise ExpressionSyntaxError(f"Unknown function '{node.name}'")
        count = len(node.args)
        if count < entry.min_args or (entry.max_args is not None and count > entry.max_args):
            if entry.max_args is None:
                expected = f"at least {entry.min_args}"
            elif entry.min_args == entry.max_args:
                expected = str(entry.min_args)
            else:
                expected = f"{entry.min_args} to {entry.max_args}"
            raise ExpressionSyntaxError(f"{entry.name}() takes {expected} argument(s) but got {count}")
        if entry.lazy:
            return entry.fn(self, *node.args)
        args = [self.evaluate_node(arg) for arg in node.args]
        try:
            return entry.fn(self, *args)
        except FlowsimError:
            raise
        except (TypeError, ValueError, KeyError, IndexError, OverflowError) as exc:
            raise EvaluationError(f"{entry.name}() failed: {exc}") from exc

    def _access(self, node: ast_nodes.Accessor) -> Any:
        target = self.evaluate_node(node.target)
        key = self.evaluate_node(node.key)
        if target is None:
            if node.safe:
                return None
            raise EvaluationError(
                f"Cannot read property '{to_text(key)}' of null. Use ?['{to_text(key)}'] if the value may be missing."
            )
        if isinstance(target, dict):
            name = key if isinstance(key, str) else to_text(key)
            if name in target:
                return target[name]
            lowered = name.lower()
            for candidate, value in target.items():
                if isinstance(candidate, str) and candidate.lower() == lowered:
                    return value
            return None
        if isinstance(target, (list, str)):
            index = _as_index(key)
            if index is None:
                if node.safe:
                    return None
                raise EvaluationError(f"Cannot index an array with {key!r}")
            if -len(target) <= index < len(target):
                return target[index]
            if node.safe:
                return None
            raise EvaluationError(f"Index {index} is out of range for a collection of length {len(target)}")
        if node.safe:
            return None
        raise EvaluationError(f"Cannot read property '{to_text(key)}' of a {type(target).__name__} value")


def _as_index(key: Any) -> int | None:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, float) and key.is_integer():
        return int(key)
    if isinstance(key, str) and key.lstrip("-").isdigit():
        return int(key)
    return None
