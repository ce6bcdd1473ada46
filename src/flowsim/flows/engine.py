"""
Action execution engine: walks a flow's action graph, including nested
condition, switch, parallel and loop containers.
"""

from __future__ import annotations

from typing import Any, Optional

from ..config import FlowsimConfig, load_config
from ..handlers.records import RecordStoreHandler
from ..handlers.registry import HandlerRegistry
from .models import RECORD_CAPABILITY
from .steps import (
    FlowEngineConditionMixin,
    FlowEngineConnectorMixin,
    FlowEngineCoreMixin,
    FlowEngineDataMixin,
    FlowEngineLoopMixin,
    FlowEngineParallelMixin,
)


def default_handlers() -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register(RECORD_CAPABILITY, RecordStoreHandler())
    return registry


class FlowEngine(
    FlowEngineCoreMixin,
    FlowEngineConnectorMixin,
    FlowEngineConditionMixin,
    FlowEngineLoopMixin,
    FlowEngineParallelMixin,
    FlowEngineDataMixin,
):
    def __init__(
        self,
        handlers: Optional[HandlerRegistry] = None,
        record_store: Any = None,
        config: Optional[FlowsimConfig] = None,
    ) -> None:
        self.handlers = handlers if handlers is not None else default_handlers()
        self.record_store = record_store
        self.config = config or load_config()


__all__ = ["FlowEngine", "default_handlers"]
