"""Record CRUD routes. Writes go through the store, so matching flows fire."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from ...errors import FlowsimError
from ...simulator import FlowSimulator
from ..errors import http_error
from ..schemas import RecordCreatedResponse, RecordWriteRequest


def build_records_router(simulator: FlowSimulator) -> APIRouter:
    router = APIRouter()

    def store():
        if simulator.store is None:
            raise HTTPException(status_code=409, detail={"code": "FS-4001", "message": "No record store is attached."})
        return simulator.store

    def run_count() -> int:
        return len(simulator.tracker.all_results())

    @router.post("/api/records/{record_type}", response_model=RecordCreatedResponse)
    def api_create_record(record_type: str, payload: RecordWriteRequest) -> RecordCreatedResponse:
        before = run_count()
        try:
            record_id = store().create(record_type, payload.attributes)
        except FlowsimError as exc:
            raise http_error(exc) from exc
        return RecordCreatedResponse(id=record_id, record_type=record_type.lower(), flows_triggered=run_count() - before)

    @router.get("/api/records/{record_type}/{record_id}")
    def api_get_record(record_type: str, record_id: str) -> Dict[str, Any]:
        try:
            return store().retrieve(record_type, record_id)
        except FlowsimError as exc:
            raise http_error(exc) from exc

    @router.patch("/api/records/{record_type}/{record_id}")
    def api_update_record(record_type: str, record_id: str, payload: RecordWriteRequest) -> Dict[str, Any]:
        before = run_count()
        try:
            record = store().update(record_type, record_id, payload.attributes)
        except FlowsimError as exc:
            raise http_error(exc) from exc
        return {"record": record, "flowsTriggered": run_count() - before}

    @router.delete("/api/records/{record_type}/{record_id}")
    def api_delete_record(record_type: str, record_id: str) -> Dict[str, Any]:
        before = run_count()
        try:
            store().delete(record_type, record_id)
        except FlowsimError as exc:
            raise http_error(exc) from exc
        return {"deleted": record_id, "flowsTriggered": run_count() - before}

    return router


__all__ = ["build_records_router"]
