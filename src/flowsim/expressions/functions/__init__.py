"""
Function library for workflow expressions.

Importing this package populates :data:`FUNCTIONS` from every group module.
"""

from . import arithmetic, collections, conversion, dates, introspection, logical, reference, strings, uris  # noqa: F401
from .registry import FUNCTIONS, BuiltinFunction, builtin, lookup, to_text, truthy

__all__ = ["FUNCTIONS", "BuiltinFunction", "builtin", "lookup", "to_text", "truthy"]
