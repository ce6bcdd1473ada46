"""Router builders for the simulator API."""

from .flows import build_flows_router
from .health import build_health_router
from .records import build_records_router

__all__ = ["build_flows_router", "build_health_router", "build_records_router"]
