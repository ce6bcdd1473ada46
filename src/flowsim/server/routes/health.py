"""Health route."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from ...simulator import FlowSimulator
from ...version import __version__


def build_health_router(simulator: FlowSimulator) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok", "version": __version__, "flows": len(simulator.registered_flow_names())}

    return router


__all__ = ["build_health_router"]
