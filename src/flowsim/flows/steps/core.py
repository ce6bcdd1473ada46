from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from ...errors import FlowsimError, format_error
from ...expressions import ExpressionEvaluator
from ..context import ExecutionContext
from ..graph import order_actions
from ..models import Action, ActionKind, ActionResult

logger = logging.getLogger("flowsim.engine")

__all__ = ["FlowEngineCoreMixin"]

_STEP_METHODS: Dict[ActionKind, str] = {
    ActionKind.CONNECTOR: "_run_connector",
    ActionKind.COMPOSE: "_run_compose",
    ActionKind.CONDITION: "_run_condition",
    ActionKind.SWITCH: "_run_switch",
    ActionKind.PARALLEL: "_run_parallel",
    ActionKind.DO_UNTIL: "_run_do_until",
    ActionKind.APPLY_TO_EACH: "_run_apply_to_each",
    ActionKind.INITIALIZE_VARIABLE: "_run_initialize_variable",
    ActionKind.SET_VARIABLE: "_run_set_variable",
}

if set(_STEP_METHODS) != set(ActionKind):  # pragma: no cover - import-time guard
    raise RuntimeError(f"Missing engine steps for {set(ActionKind) - set(_STEP_METHODS)}")


class FlowEngineCoreMixin:
    def execute(self, actions: Sequence[Action], context: ExecutionContext) -> List[ActionResult]:
        """
        Run ``actions`` in dependency order, publishing each action's outputs
        to ``context``. The first failing action stops the list.
        """
        results: List[ActionResult] = []
        for action in order_actions(actions):
            result = self._run_action(action, context)
            results.append(result)
            context._add_action_outputs(action.name, result.outputs)
            if not result.succeeded:
                logger.info("Action '%s' failed: %s", action.name, result.error_message)
                break
        return results

    def _run_action(self, action: Action, context: ExecutionContext) -> ActionResult:
        step = getattr(self, _STEP_METHODS[action.kind])
        started = time.perf_counter()
        try:
            result = step(action, context)
        except FlowsimError as exc:
            result = self._failure(action, format_error(exc))
        logger.debug(
            "Action '%s' (%s) %s in %.4fs",
            action.name,
            action.kind.value,
            "succeeded" if result.succeeded else "failed",
            time.perf_counter() - started,
        )
        return result

    def _evaluator(self, context: ExecutionContext) -> ExpressionEvaluator:
        return ExpressionEvaluator(context)

    def _resolve_value(self, value: Any, evaluator: ExpressionEvaluator) -> Any:
        if isinstance(value, dict):
            return {key: self._resolve_value(item, evaluator) for key, item in value.items()}
        if isinstance(value, list):
            return [self._resolve_value(item, evaluator) for item in value]
        return evaluator.evaluate(value)

    def _success(self, action: Action, outputs: Optional[Dict[str, Any]] = None) -> ActionResult:
        return ActionResult(action.name, action.kind.value, True, dict(outputs or {}))

    def _failure(self, action: Action, message: str, outputs: Optional[Dict[str, Any]] = None) -> ActionResult:
        return ActionResult(action.name, action.kind.value, False, dict(outputs or {}), message)

    def _summarize(self, results: Sequence[ActionResult]) -> List[Dict[str, Any]]:
        summary: List[Dict[str, Any]] = []
        for result in results:
            entry: Dict[str, Any] = {
                "actionName": result.action_name,
                "succeeded": result.succeeded,
                "outputs": result.outputs,
            }
            if result.error_message:
                entry["error"] = result.error_message
            summary.append(entry)
        return summary

    def _first_failure(self, results: Sequence[ActionResult]) -> Optional[str]:
        for result in results:
            if not result.succeeded:
                return f"Action '{result.action_name}' failed: {result.error_message}"
        return None
