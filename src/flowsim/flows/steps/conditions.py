from __future__ import annotations

from typing import Any

from ...expressions.functions import to_text, truthy
from ..context import ExecutionContext
from ..models import ActionResult, ConditionAction, SwitchAction

__all__ = ["FlowEngineConditionMixin"]


class FlowEngineConditionMixin:
    def _evaluate_condition(self, expression: Any, context: ExecutionContext) -> bool:
        value = self._resolve_value(expression, self._evaluator(context))
        return truthy(value)

    def _run_condition(self, action: ConditionAction, context: ExecutionContext) -> ActionResult:
        outcome = self._evaluate_condition(action.expression, context)
        branch = action.true_actions if outcome else action.false_actions
        results = self.execute(branch, context)
        outputs = {
            "conditionResult": outcome,
            "branchExecuted": "true" if outcome else "false",
            "branchResults": self._summarize(results),
        }
        failure = self._first_failure(results)
        if failure:
            return self._failure(action, failure, outputs)
        return self._success(action, outputs)

    def _run_switch(self, action: SwitchAction, context: ExecutionContext) -> ActionResult:
        value = self._resolve_value(action.expression, self._evaluator(context))
        switch_value = to_text(value)
        matched = "default"
        branch = action.default_actions
        for case in action.cases:
            # Case values compare as text, ignoring case; first match wins.
            if to_text(case.value).lower() == switch_value.lower():
                matched = to_text(case.value)
                branch = case.actions
                break
        results = self.execute(branch, context)
        outputs = {
            "switchValue": switch_value,
            "matchedCase": matched,
            "caseResults": self._summarize(results),
        }
        failure = self._first_failure(results)
        if failure:
            return self._failure(action, failure, outputs)
        return self._success(action, outputs)
