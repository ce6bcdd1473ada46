"""
flowsim: simulate record-change automation flows against an in-memory store.
"""

from .version import __version__  # noqa: F401
from .errors import FlowAssertionError, FlowsimError, ValidationError  # noqa: F401
from .flows.models import FlowDefinition, FlowExecutionResult, MutationKind  # noqa: F401
from .importer import import_flow  # noqa: F401
from .records.store import InMemoryRecordStore  # noqa: F401
from .simulator import FlowSimulator  # noqa: F401

__all__ = [
    "FlowAssertionError",
    "FlowDefinition",
    "FlowExecutionResult",
    "FlowSimulator",
    "FlowsimError",
    "InMemoryRecordStore",
    "MutationKind",
    "ValidationError",
    "import_flow",
    "__version__",
]
