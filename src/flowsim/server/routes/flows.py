"""Flow registration, simulation and history routes."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException

from ...errors import FlowsimError
from ...flows.models import FlowDefinition, RecordTrigger
from ...importer import import_flow
from ...simulator import FlowSimulator
from ..errors import http_error
from ..schemas import FlowSummary, ImportFlowRequest, ImportFlowResponse, SimulateRequest


def summarize_flow(flow: FlowDefinition) -> FlowSummary:
    trigger = None
    if isinstance(flow.trigger, RecordTrigger):
        trigger = {
            "name": flow.trigger.name,
            "recordType": flow.trigger.record_type,
            "mutation": flow.trigger.mutation.value,
            "scope": flow.trigger.scope.name.lower(),
            "filteredAttributes": list(flow.trigger.filtered_attributes),
            "condition": flow.trigger.condition,
        }
    return FlowSummary(
        name=flow.name,
        display_name=flow.display_name,
        enabled=flow.enabled,
        trigger=trigger,
        actions=[action.name for action in flow.actions],
        warnings=list(flow.metadata.get("warnings") or []),
    )


def build_flows_router(simulator: FlowSimulator) -> APIRouter:
    router = APIRouter()

    @router.get("/api/flows", response_model=List[FlowSummary])
    def api_list_flows() -> List[FlowSummary]:
        return [summarize_flow(simulator.get_flow(name)) for name in sorted(simulator.registered_flow_names())]

    @router.post("/api/flows/import", response_model=ImportFlowResponse)
    def api_import_flow(payload: ImportFlowRequest) -> ImportFlowResponse:
        try:
            result = import_flow(payload.document, name=payload.name)
            simulator.register_flow(result.flow)
        except FlowsimError as exc:
            raise http_error(exc) from exc
        return ImportFlowResponse(flow=summarize_flow(result.flow), warnings=result.warnings)

    @router.delete("/api/flows/{name}")
    def api_delete_flow(name: str) -> Dict[str, Any]:
        if not simulator.unregister_flow(name):
            raise HTTPException(status_code=404, detail={"code": "FS-1003", "message": f"Flow '{name}' is not registered."})
        return {"deleted": name}

    @router.post("/api/flows/{name}/simulate")
    def api_simulate(name: str, payload: SimulateRequest) -> Dict[str, Any]:
        try:
            result = simulator.simulate_trigger(name, payload.inputs)
        except FlowsimError as exc:
            raise http_error(exc) from exc
        return result.to_dict()

    @router.get("/api/flows/{name}/results")
    def api_results(name: str) -> Dict[str, Any]:
        results = simulator.results_for(name)
        return {"flow": name, "count": len(results), "results": [r.to_dict() for r in results]}

    return router


__all__ = ["build_flows_router", "summarize_flow"]
