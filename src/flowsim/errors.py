"""
Custom error types for the flowsim simulator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class FlowsimError(Exception):
    """Base error carrying a stable code and structured diagnostics."""

    message: str
    code: str = "FS-0000"
    diagnostics: list[dict[str, Any]] | None = None

    def __post_init__(self) -> None:  # pragma: no cover - trivial
        if self.diagnostics is None:
            self.diagnostics = [{"code": self.code, "message": self.message, "severity": "error"}]

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationError(FlowsimError):
    """Raised when a flow registration or document is malformed."""

    code: str = "FS-1001"


@dataclass
class NotSupportedError(FlowsimError):
    """Raised for recognised but unimplemented trigger shapes."""

    code: str = "FS-1002"


@dataclass
class FlowNotFoundError(FlowsimError):
    """Raised when a flow name is not registered."""

    code: str = "FS-1003"


@dataclass
class EvaluationError(FlowsimError):
    """Raised when an expression cannot be evaluated."""

    code: str = "FS-2001"
    expression: Optional[str] = None


@dataclass
class ExpressionSyntaxError(EvaluationError):
    """Raised when an expression is malformed or calls an unknown function."""

    code: str = "FS-2002"
    position: Optional[int] = None

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (at position {self.position})"


@dataclass
class ActionExecutionError(FlowsimError):
    """Raised by handlers when an action cannot be carried out."""

    code: str = "FS-3001"


@dataclass
class HandlerNotFoundError(FlowsimError):
    """Raised when no registered handler accepts a connector action."""

    code: str = "FS-3002"


@dataclass
class RecordStoreError(FlowsimError):
    """Raised by the record store for invalid CRUD calls."""

    code: str = "FS-4001"


@dataclass
class RecordNotFoundError(RecordStoreError):
    """Raised when a record id does not exist in the store."""

    code: str = "FS-4002"


class FlowAssertionError(AssertionError):
    """Raised by tracker assertion helpers."""


def format_error(exc: BaseException) -> str:
    """Render an error for ActionResult messages, prefixing flowsim codes."""
    if isinstance(exc, FlowsimError):
        return f"{exc.code}: {exc}"
    return str(exc) or type(exc).__name__
