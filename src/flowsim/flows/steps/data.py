from __future__ import annotations

from typing import Any

from ...errors import ActionExecutionError
from ..context import ExecutionContext
from ..models import ActionResult, ComposeAction, InitializeVariableAction, SetVariableAction

__all__ = ["FlowEngineDataMixin"]

_VARIABLE_DEFAULTS = {
    "string": "",
    "integer": 0,
    "float": 0.0,
    "boolean": False,
    "array": list,
    "object": dict,
}


class FlowEngineDataMixin:
    def _run_compose(self, action: ComposeAction, context: ExecutionContext) -> ActionResult:
        value = self._resolve_value(action.inputs, self._evaluator(context))
        return self._success(action, {"value": value})

    def _run_initialize_variable(self, action: InitializeVariableAction, context: ExecutionContext) -> ActionResult:
        if not action.variable:
            raise ActionExecutionError(f"Action '{action.name}' needs a variable name.")
        value = self._resolve_value(action.value, self._evaluator(context))
        if value is None:
            default: Any = _VARIABLE_DEFAULTS.get(action.variable_type.lower())
            value = default() if callable(default) else default
        context.set_variable(action.variable, value)
        return self._success(action, {"name": action.variable, "value": value})

    def _run_set_variable(self, action: SetVariableAction, context: ExecutionContext) -> ActionResult:
        if not context.has_variable(action.variable):
            raise ActionExecutionError(f"Variable '{action.variable}' has not been initialized.")
        value = self._resolve_value(action.value, self._evaluator(context))
        context.set_variable(action.variable, value)
        return self._success(action, {"name": action.variable, "value": value})
