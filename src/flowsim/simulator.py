"""
Public entry point tying together the registry, engine, handlers, tracker and
an optional record store.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set

from .config import FlowsimConfig, load_config
from .flows.engine import FlowEngine, default_handlers
from .flows.models import FlowDefinition, FlowExecutionResult, MutationKind
from .flows.registry import FlowRegistry
from .flows.tracker import ExecutionTracker
from .handlers.registry import ConnectorActionHandler, HandlerRegistry
from .importer import ImportResult, import_flow
from .records.store import InMemoryRecordStore

logger = logging.getLogger("flowsim.simulator")


class FlowSimulator:
    """
    Register flows and exercise them either directly with ``simulate_trigger``
    or by mutating records in the attached store.

    When ``store`` is given the simulator subscribes to its mutation feed, so
    every committed create, update or delete dispatches matching flows.
    """

    def __init__(
        self,
        store: Optional[InMemoryRecordStore] = None,
        *,
        handlers: Optional[HandlerRegistry] = None,
        config: Optional[FlowsimConfig] = None,
    ) -> None:
        self.config = config or load_config()
        self.store = store
        self.handlers = handlers if handlers is not None else default_handlers()
        self.tracker = ExecutionTracker()
        self.engine = FlowEngine(handlers=self.handlers, record_store=store, config=self.config)
        self.registry = FlowRegistry(engine=self.engine, tracker=self.tracker, config=self.config)
        self.last_import: Optional[ImportResult] = None
        if store is not None:
            store.subscribe(self._on_mutation)

    def close(self) -> None:
        """Stop listening to the store's mutation feed."""
        if self.store is not None:
            self.store.unsubscribe(self._on_mutation)

    def _on_mutation(self, mutation: str, record_type: str, record: Dict[str, Any], changed: List[str]) -> None:
        self.registry.dispatch(MutationKind.parse(mutation), record_type, record, changed)

    # Flows

    def register_flow(self, flow: FlowDefinition) -> None:
        self.registry.register(flow)
        logger.info("Registered flow '%s'", flow.name)

    def register_flow_from_document(self, document: Any, *, name: Optional[str] = None) -> FlowDefinition:
        result = import_flow(document, name=name)
        self.register_flow(result.flow)
        self.last_import = result
        return result.flow

    def unregister_flow(self, name: str) -> bool:
        return self.registry.unregister(name)

    def registered_flow_names(self) -> Set[str]:
        return self.registry.names()

    def get_flow(self, name: str) -> FlowDefinition:
        return self.registry.get(name)

    # Execution

    def simulate_trigger(self, flow_name: str, trigger_inputs: Optional[Dict[str, Any]] = None) -> FlowExecutionResult:
        return self.registry.simulate(flow_name, trigger_inputs)

    def dispatch(
        self,
        mutation: MutationKind | str,
        record_type: str,
        record: Dict[str, Any],
        changed_attributes: Optional[List[str]] = None,
    ) -> List[FlowExecutionResult]:
        return self.registry.dispatch(mutation, record_type, record, changed_attributes)

    def register_handler(self, capability: str, handler: ConnectorActionHandler | Any) -> ConnectorActionHandler:
        return self.handlers.register(capability, handler)

    # History

    def results_for(self, flow_name: str) -> List[FlowExecutionResult]:
        return self.tracker.results_for(flow_name)

    def was_triggered(self, flow_name: str) -> bool:
        return self.tracker.was_triggered(flow_name)

    def assert_triggered(self, flow_name: str, times: Optional[int] = None) -> None:
        self.tracker.assert_triggered(flow_name, times)

    def assert_not_triggered(self, flow_name: str) -> None:
        self.tracker.assert_not_triggered(flow_name)

    def clear_history(self) -> None:
        self.tracker.clear()


__all__ = ["FlowSimulator"]
