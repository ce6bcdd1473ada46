"""
Workflow expression language: `@expr` values and `@{expr}` interpolation.
"""

from .evaluator import ExpressionEvaluator, compile_expression, is_expression, split_template
from .functions import FUNCTIONS

__all__ = ["ExpressionEvaluator", "FUNCTIONS", "compile_expression", "is_expression", "split_template"]
