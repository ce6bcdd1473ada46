"""
Flow registry and record-mutation trigger dispatch.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, List, Optional

from ..config import FlowsimConfig, load_config
from ..errors import FlowNotFoundError, FlowsimError, ValidationError
from ..expressions import ExpressionEvaluator
from ..expressions.functions import truthy
from ..observability.logging_utils import summarize_payload
from ..records.store import primary_key
from .context import ExecutionContext
from .engine import FlowEngine
from .graph import validate_actions
from .models import FlowDefinition, FlowExecutionResult, MutationKind, RecordTrigger
from .tracker import ExecutionTracker

logger = logging.getLogger("flowsim.dispatch")


def record_trigger_inputs(record_type: str, record: Dict[str, Any]) -> Dict[str, Any]:
    inputs = dict(record or {})
    record_id = inputs.get("id") or inputs.get(primary_key(record_type))
    if record_id is not None:
        inputs["id"] = record_id
        inputs[primary_key(record_type)] = record_id
    return inputs


class FlowRegistry:
    def __init__(
        self,
        engine: Optional[FlowEngine] = None,
        tracker: Optional[ExecutionTracker] = None,
        config: Optional[FlowsimConfig] = None,
    ) -> None:
        self.config = config or load_config()
        self.engine = engine or FlowEngine(config=self.config)
        self.tracker = tracker or ExecutionTracker()
        self._flows: Dict[str, FlowDefinition] = {}
        self._local = threading.local()

    def register(self, flow: FlowDefinition) -> None:
        if not flow.name:
            raise ValidationError("A flow needs a name to be registered.")
        if flow.trigger is None:
            raise ValidationError(f"Flow '{flow.name}' must have at least one trigger.")
        validate_actions(flow.actions, flow_name=flow.name)
        if flow.name in self._flows:
            logger.info("Replacing flow '%s'", flow.name)
        self._flows[flow.name] = flow

    def unregister(self, name: str) -> bool:
        return self._flows.pop(name, None) is not None

    def get(self, name: str) -> FlowDefinition:
        flow = self._flows.get(name)
        if flow is None:
            raise FlowNotFoundError(f"Flow '{name}' is not registered.")
        return flow

    def names(self) -> set[str]:
        return set(self._flows)

    def flows(self) -> List[FlowDefinition]:
        return list(self._flows.values())

    def clear(self) -> None:
        self._flows.clear()

    def simulate(self, flow_name: str, trigger_inputs: Optional[Dict[str, Any]] = None) -> FlowExecutionResult:
        flow = self.get(flow_name)
        if not flow.enabled:
            raise ValidationError(f"Flow '{flow_name}' is disabled and cannot be simulated.")
        return self._execute_flow(flow, dict(trigger_inputs or {}))

    def dispatch(
        self,
        mutation: MutationKind | str,
        record_type: str,
        record: Dict[str, Any],
        changed_attributes: Optional[List[str]] = None,
    ) -> List[FlowExecutionResult]:
        kind = MutationKind.parse(mutation)
        depth = getattr(self._local, "depth", 0)
        if depth >= self.config.max_dispatch_depth:
            logger.warning(
                "Skipping %s dispatch for %s: nested dispatch depth %d reached", kind.value, record_type, depth
            )
            return []
        inputs = record_trigger_inputs(record_type, record)
        results: List[FlowExecutionResult] = []
        for flow in list(self._flows.values()):
            if not self._should_fire(flow, kind, record_type, inputs, changed_attributes):
                continue
            self._local.depth = depth + 1
            try:
                results.append(self._execute_flow(flow, dict(inputs)))
            finally:
                self._local.depth = depth
        return results

    def _should_fire(
        self,
        flow: FlowDefinition,
        mutation: MutationKind,
        record_type: str,
        inputs: Dict[str, Any],
        changed_attributes: Optional[List[str]],
    ) -> bool:
        trigger = flow.trigger
        if not flow.enabled or not isinstance(trigger, RecordTrigger):
            return False
        if not trigger.matches(mutation, record_type, changed_attributes):
            return False
        if not trigger.accepts_record(inputs):
            return False
        if not trigger.condition:
            return True
        evaluator = ExpressionEvaluator(ExecutionContext(trigger_inputs=inputs, flow_name=flow.name))
        try:
            return truthy(evaluator.evaluate(trigger.condition))
        except FlowsimError as exc:
            logger.warning("Trigger condition for flow '%s' failed; skipping: %s", flow.name, exc)
            return False

    def _execute_flow(self, flow: FlowDefinition, inputs: Dict[str, Any]) -> FlowExecutionResult:
        context = ExecutionContext(
            trigger_inputs=inputs,
            flow_name=flow.name,
            parameters=dict(flow.metadata.get("parameters") or {}),
            depth=getattr(self._local, "depth", 0),
        )
        logger.info("Running flow '%s' with %s", flow.name, summarize_payload(inputs))
        started = time.perf_counter()
        action_results = self.engine.execute(flow.actions, context)
        errors = tuple(
            f"Action '{result.action_name}' failed: {result.error_message}"
            for result in action_results
            if not result.succeeded
        )
        result = FlowExecutionResult(
            flow_name=flow.name,
            succeeded=all(r.succeeded for r in action_results),
            trigger_inputs=dict(inputs),
            action_results=tuple(action_results),
            errors=errors,
            warnings=tuple(flow.metadata.get("warnings") or ()),
            duration_seconds=time.perf_counter() - started,
        )
        self.tracker.record(result)
        logger.info(
            "Flow '%s' %s after %d action(s)",
            flow.name,
            "succeeded" if result.succeeded else "failed",
            len(action_results),
        )
        return result
