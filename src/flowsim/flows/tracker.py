"""
Append-only history of flow executions.
"""

from __future__ import annotations

import threading
from typing import List

from ..errors import FlowAssertionError
from .models import FlowExecutionResult


class ExecutionTracker:
    def __init__(self) -> None:
        self._history: List[FlowExecutionResult] = []
        self._lock = threading.Lock()

    def record(self, result: FlowExecutionResult) -> None:
        with self._lock:
            self._history.append(result)

    def results_for(self, flow_name: str) -> List[FlowExecutionResult]:
        with self._lock:
            return [result for result in self._history if result.flow_name == flow_name]

    def was_triggered(self, flow_name: str) -> bool:
        return self.execution_count(flow_name) > 0

    def execution_count(self, flow_name: str) -> int:
        with self._lock:
            return sum(1 for result in self._history if result.flow_name == flow_name)

    def all_results(self) -> List[FlowExecutionResult]:
        with self._lock:
            return list(self._history)

    def clear(self) -> None:
        with self._lock:
            self._history.clear()

    def assert_triggered(self, flow_name: str, times: int | None = None) -> None:
        count = self.execution_count(flow_name)
        if times is None and count == 0:
            raise FlowAssertionError(f"Expected flow '{flow_name}' to be triggered, but it never ran.")
        if times is not None and count != times:
            raise FlowAssertionError(f"Expected flow '{flow_name}' to run {times} time(s), but it ran {count} time(s).")

    def assert_not_triggered(self, flow_name: str) -> None:
        count = self.execution_count(flow_name)
        if count:
            raise FlowAssertionError(f"Expected flow '{flow_name}' not to run, but it ran {count} time(s).")
