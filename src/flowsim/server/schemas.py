"""Pydantic schemas used by the FastAPI server."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ImportFlowRequest(BaseModel):
    document: Dict[str, Any] | str = Field(..., description="Exported flow JSON, decoded or as text")
    name: Optional[str] = Field(None, description="Register under this name instead of the document's")


class FlowSummary(BaseModel):
    name: str
    display_name: Optional[str] = None
    enabled: bool = True
    trigger: Optional[Dict[str, Any]] = None
    actions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ImportFlowResponse(BaseModel):
    flow: FlowSummary
    warnings: List[str] = Field(default_factory=list)


class SimulateRequest(BaseModel):
    inputs: Dict[str, Any] = Field(default_factory=dict)


class RecordWriteRequest(BaseModel):
    attributes: Dict[str, Any] = Field(default_factory=dict)


class RecordCreatedResponse(BaseModel):
    id: str
    record_type: str
    flows_triggered: int = 0
