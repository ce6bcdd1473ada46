"""
Registry for connector action handlers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from ..errors import HandlerNotFoundError, ValidationError
from ..flows.context import ExecutionContext
from ..flows.models import ConnectorAction

logger = logging.getLogger("flowsim.handlers")


class ConnectorActionHandler(Protocol):
    capability: str

    def can_handle(self, action: ConnectorAction) -> bool:
        ...

    def execute(self, action: ConnectorAction, record_store: Any, context: ExecutionContext) -> Dict[str, Any]:
        ...


@dataclass
class FunctionHandler:
    """
    Stub handler wrapping a plain callable ``fn(action, record_store, context)``.
    ``operations`` limits which operations it accepts; empty means all.
    """

    capability: str
    fn: Callable[[ConnectorAction, Any, ExecutionContext], Optional[Dict[str, Any]]]
    operations: Tuple[str, ...] = ()

    def can_handle(self, action: ConnectorAction) -> bool:
        if not self.operations:
            return True
        return action.operation.lower() in {op.lower() for op in self.operations}

    def execute(self, action: ConnectorAction, record_store: Any, context: ExecutionContext) -> Dict[str, Any]:
        return dict(self.fn(action, record_store, context) or {})


class HandlerRegistry:
    """Ordered capability -> handler mapping; built-ins are registered first."""

    def __init__(self) -> None:
        self._entries: List[Tuple[str, ConnectorActionHandler]] = []

    def register(self, capability: str, handler: ConnectorActionHandler | Callable[..., Any]) -> ConnectorActionHandler:
        if not capability:
            raise ValidationError("A handler needs a capability name.")
        if not (hasattr(handler, "can_handle") and hasattr(handler, "execute")):
            if not callable(handler):
                raise ValidationError(f"Handler for '{capability}' must implement can_handle/execute or be callable.")
            handler = FunctionHandler(capability=capability, fn=handler)
        self._entries.append((capability.lower(), handler))
        logger.debug("Registered handler %s for capability '%s'", type(handler).__name__, capability)
        return handler

    def unregister(self, capability: str) -> int:
        key = capability.lower()
        before = len(self._entries)
        self._entries = [(cap, h) for cap, h in self._entries if cap != key]
        return before - len(self._entries)

    def resolve(self, action: ConnectorAction) -> Optional[ConnectorActionHandler]:
        key = (action.capability or "").lower()
        for capability, handler in self._entries:
            if capability == key and handler.can_handle(action):
                return handler
        return None

    def require(self, action: ConnectorAction) -> ConnectorActionHandler:
        handler = self.resolve(action)
        if handler is None:
            raise HandlerNotFoundError(
                f"No connector handler registered for action type '{action.capability}'"
                + (f" (operation '{action.operation}')" if action.operation else "")
            )
        return handler

    def capabilities(self) -> List[str]:
        names: List[str] = []
        for capability, _ in self._entries:
            if capability not in names:
                names.append(capability)
        return names

    @property
    def handlers(self) -> List[Tuple[str, ConnectorActionHandler]]:
        return list(self._entries)
