from .conditions import FlowEngineConditionMixin
from .connector import FlowEngineConnectorMixin
from .core import FlowEngineCoreMixin
from .data import FlowEngineDataMixin
from .loops import FlowEngineLoopMixin
from .parallel import FlowEngineParallelMixin

__all__ = [
    "FlowEngineConditionMixin",
    "FlowEngineConnectorMixin",
    "FlowEngineCoreMixin",
    "FlowEngineDataMixin",
    "FlowEngineLoopMixin",
    "FlowEngineParallelMixin",
]
