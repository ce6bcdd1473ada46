"""
AST nodes for workflow expressions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List


class Expr:
    """Base class for expression nodes."""


@dataclass
class Literal(Expr):
    value: Any


@dataclass
class FunctionCall(Expr):
    name: str
    args: List[Expr] = field(default_factory=list)


@dataclass
class Accessor(Expr):
    """`target[key]`, `target?[key]` or `target.key`."""

    target: Expr
    key: Expr
    safe: bool = False
