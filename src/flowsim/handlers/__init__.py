"""
Connector action handlers.
"""

from .records import RecordStoreHandler
from .registry import ConnectorActionHandler, FunctionHandler, HandlerRegistry

__all__ = ["ConnectorActionHandler", "FunctionHandler", "HandlerRegistry", "RecordStoreHandler"]
