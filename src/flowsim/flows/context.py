"""
Per-invocation execution state threaded through the engine and evaluator.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LoopBinding:
    item: Any
    loop_name: Optional[str] = None
    index: int = 0


@dataclass
class ExecutionContext:
    """
    Mutable state for one flow invocation: trigger inputs, published action
    outputs, flow variables and the loop-item stack (innermost on top).
    """

    trigger_inputs: Dict[str, Any] = field(default_factory=dict)
    flow_name: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    action_outputs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    variables: Dict[str, Any] = field(default_factory=dict)
    loop_stack: List[LoopBinding] = field(default_factory=list)
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    depth: int = 0

    def outputs_for(self, action_name: str) -> Optional[Dict[str, Any]]:
        return self.action_outputs.get(action_name)

    def _add_action_outputs(self, action_name: str, outputs: Dict[str, Any] | None) -> None:
        self.action_outputs[action_name] = dict(outputs or {})

    def get_variable(self, name: str) -> Any:
        return self.variables.get(name)

    def set_variable(self, name: str, value: Any) -> None:
        self.variables[name] = value

    def has_variable(self, name: str) -> bool:
        return name in self.variables

    def push_item(self, item: Any, loop_name: Optional[str] = None, index: int = 0) -> None:
        self.loop_stack.append(LoopBinding(item=item, loop_name=loop_name, index=index))

    def pop_item(self) -> Any:
        if not self.loop_stack:
            return None
        return self.loop_stack.pop().item

    def current_item(self) -> Any:
        if not self.loop_stack:
            return None
        return self.loop_stack[-1].item

    def item_for(self, loop_name: str) -> Any:
        for binding in reversed(self.loop_stack):
            if binding.loop_name == loop_name:
                return binding.item
        return None

    def fork(self) -> "ExecutionContext":
        """
        Branch view for parallel execution: sees a snapshot of the outputs
        published so far; variables and the loop stack are shared.
        """
        child = ExecutionContext(
            trigger_inputs=self.trigger_inputs,
            flow_name=self.flow_name,
            parameters=self.parameters,
            action_outputs=dict(self.action_outputs),
            variables=self.variables,
            loop_stack=self.loop_stack,
            run_id=self.run_id,
            depth=self.depth,
        )
        return child

    def merge_outputs(self, other: "ExecutionContext") -> None:
        self.action_outputs.update(other.action_outputs)
