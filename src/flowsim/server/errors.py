"""Translate simulator errors into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException

from ..errors import FlowNotFoundError, FlowsimError, RecordNotFoundError


def http_error(exc: FlowsimError) -> HTTPException:
    status = 404 if isinstance(exc, (FlowNotFoundError, RecordNotFoundError)) else 400
    return HTTPException(status_code=status, detail={"code": exc.code, "message": exc.message})


__all__ = ["http_error"]
