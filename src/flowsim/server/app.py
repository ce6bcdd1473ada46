"""Application factory that builds the FastAPI app with all wiring."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from ..records.store import InMemoryRecordStore
from ..simulator import FlowSimulator
from ..version import __version__
from .routes import build_flows_router, build_health_router, build_records_router

logger = logging.getLogger("flowsim.server")


def create_app(simulator: Optional[FlowSimulator] = None) -> FastAPI:
    """Build the API around ``simulator``; a store-backed one is created if omitted."""
    sim = simulator or FlowSimulator(store=InMemoryRecordStore())
    app = FastAPI(title="flowsim", version=__version__)
    app.state.simulator = sim
    app.include_router(build_health_router(sim))
    app.include_router(build_flows_router(sim))
    app.include_router(build_records_router(sim))
    logger.debug("Created app with %d registered flow(s)", len(sim.registered_flow_names()))
    return app


__all__ = ["create_app"]
