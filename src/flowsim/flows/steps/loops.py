from __future__ import annotations

import logging
from typing import Any, Dict, List

from ...expressions.functions import truthy
from ..context import ExecutionContext
from ..models import ActionResult, ApplyToEachAction, DoUntilAction

logger = logging.getLogger("flowsim.engine")

__all__ = ["FlowEngineLoopMixin"]


class FlowEngineLoopMixin:
    def _loop_limit(self, action: DoUntilAction) -> int:
        if action.max_iterations and action.max_iterations > 0:
            return action.max_iterations
        return self.config.default_until_limit

    def _run_do_until(self, action: DoUntilAction, context: ExecutionContext) -> ActionResult:
        limit = self._loop_limit(action)
        iteration_results: List[Dict[str, Any]] = []
        iterations = 0
        while iterations < limit:
            iterations += 1
            results = self.execute(action.actions, context)
            iteration_results.append({"iteration": iterations, "actions": self._summarize(results)})
            failure = self._first_failure(results)
            if failure:
                return self._failure(
                    action,
                    failure,
                    {"iterations": iterations, "iterationResults": iteration_results, "conditionMet": False},
                )
            if truthy(self._resolve_value(action.expression, self._evaluator(context))):
                return self._success(
                    action,
                    {"iterations": iterations, "iterationResults": iteration_results, "conditionMet": True},
                )
        logger.info("Do Until '%s' hit its ceiling of %d iterations", action.name, limit)
        return self._failure(
            action,
            f"Do Until loop exceeded maximum iterations ({limit})",
            {"iterations": iterations, "iterationResults": iteration_results, "conditionMet": False},
        )

    def _collection_items(self, value: Any) -> List[Any]:
        if value is None or value == "":
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, tuple):
            return list(value)
        return [value]

    def _run_apply_to_each(self, action: ApplyToEachAction, context: ExecutionContext) -> ActionResult:
        items = self._collection_items(self._resolve_value(action.collection, self._evaluator(context)))
        item_results: List[Dict[str, Any]] = []
        for index, item in enumerate(items):
            context.push_item(item, loop_name=action.name, index=index)
            try:
                results = self.execute(action.actions, context)
            finally:
                context.pop_item()
            item_results.append({result.action_name: result.outputs for result in results})
            failure = self._first_failure(results)
            if failure:
                return self._failure(
                    action,
                    f"Iteration {index + 1}: {failure}",
                    {"iterations": index + 1, "itemResults": item_results},
                )
        return self._success(action, {"iterations": len(items), "itemResults": item_results})
