from __future__ import annotations

from typing import Any, Dict, List

from ..context import ExecutionContext
from ..models import ActionResult, ParallelBranchAction

__all__ = ["FlowEngineParallelMixin"]


class FlowEngineParallelMixin:
    def _run_parallel(self, action: ParallelBranchAction, context: ExecutionContext) -> ActionResult:
        """
        Branches run one after another, each against its own fork of the
        outputs published before this action. Forks merge back only after
        every branch has finished.
        """
        forks: List[ExecutionContext] = []
        branch_results: List[Dict[str, Any]] = []
        failures: List[str] = []
        for branch in action.branches:
            fork = context.fork()
            results = self.execute(branch.actions, fork)
            forks.append(fork)
            failure = self._first_failure(results)
            branch_results.append(
                {
                    "branchName": branch.name,
                    "succeeded": failure is None,
                    "actions": self._summarize(results),
                }
            )
            if failure:
                failures.append(f"Branch '{branch.name}' failed: {failure}")
        for fork in forks:
            context.merge_outputs(fork)
        outputs = {"branchResults": branch_results}
        if failures:
            return self._failure(action, "; ".join(failures), outputs)
        return self._success(action, outputs)
