"""
Flow definition and execution result models.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from ..errors import ValidationError
from ..records.query import FilterNode, QueryOptions, matches as filter_matches

RECORD_CAPABILITY = "records"


class MutationKind(enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CREATE_OR_UPDATE = "create_or_update"

    def matches(self, incoming: "MutationKind") -> bool:
        if self is MutationKind.CREATE_OR_UPDATE:
            return incoming in {MutationKind.CREATE, MutationKind.UPDATE, MutationKind.CREATE_OR_UPDATE}
        return self is incoming

    @classmethod
    def parse(cls, value: "MutationKind | str") -> "MutationKind":
        """Accept a member, its value or its name in any case, with or without underscores."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "")
        for member in cls:
            if member.name.lower().replace("_", "") == key:
                return member
        accepted = ", ".join(member.value for member in cls)
        raise ValidationError(f"Unknown mutation kind '{value}'; expected one of: {accepted}")


class TriggerScope(enum.IntEnum):
    ORGANIZATION = 1
    BUSINESS_UNIT = 2
    PARENT_CHILD_BUSINESS_UNITS = 3
    USER = 4


class ActionKind(enum.Enum):
    CONNECTOR = "connector"
    COMPOSE = "compose"
    CONDITION = "condition"
    SWITCH = "switch"
    PARALLEL = "parallel"
    DO_UNTIL = "do_until"
    APPLY_TO_EACH = "apply_to_each"
    INITIALIZE_VARIABLE = "initialize_variable"
    SET_VARIABLE = "set_variable"


class RecordOperation(enum.Enum):
    CREATE = "create"
    RETRIEVE = "retrieve"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    UPLOAD_FILE = "upload_file"
    DOWNLOAD_FILE = "download_file"


@dataclass
class Trigger:
    name: str = "trigger"
    kind: ClassVar[str] = "trigger"


@dataclass
class RecordTrigger(Trigger):
    kind: ClassVar[str] = "record"

    record_type: str = ""
    mutation: MutationKind = MutationKind.CREATE
    scope: TriggerScope = TriggerScope.ORGANIZATION
    filtered_attributes: List[str] = field(default_factory=list)
    condition: Optional[str] = None
    record_filter: Optional[FilterNode] = None

    def accepts_record(self, record: Dict[str, Any]) -> bool:
        return filter_matches(self.record_filter, record)

    def matches(self, mutation: MutationKind, record_type: str, changed_attributes: Optional[List[str]] = None) -> bool:
        if self.record_type.lower() != (record_type or "").lower():
            return False
        if not self.mutation.matches(mutation):
            return False
        if mutation is MutationKind.UPDATE and self.filtered_attributes:
            changed = {name.lower() for name in (changed_attributes or [])}
            return any(attr.lower() in changed for attr in self.filtered_attributes)
        return True


@dataclass
class Action:
    name: str
    run_after: List[str] = field(default_factory=list)
    kind: ClassVar[ActionKind]

    def children(self) -> List[List["Action"]]:
        """Nested action lists, in declaration order."""
        return []


@dataclass
class ConnectorAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.CONNECTOR

    capability: str = ""
    operation: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RecordAction(ConnectorAction):
    capability: str = RECORD_CAPABILITY
    operation: str = RecordOperation.CREATE.value
    record_type: str = ""
    record_id: Any = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    query: QueryOptions = field(default_factory=QueryOptions)
    column_name: Optional[str] = None
    file_name: Any = None
    file_content: Any = None

    @property
    def record_operation(self) -> RecordOperation:
        return RecordOperation(self.operation)


@dataclass
class ComposeAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.COMPOSE

    inputs: Any = None


@dataclass
class ConditionAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.CONDITION

    expression: Any = None
    true_actions: List[Action] = field(default_factory=list)
    false_actions: List[Action] = field(default_factory=list)

    def children(self) -> List[List[Action]]:
        return [self.true_actions, self.false_actions]


@dataclass
class SwitchCase:
    value: Any
    actions: List[Action] = field(default_factory=list)
    name: Optional[str] = None


@dataclass
class SwitchAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.SWITCH

    expression: Any = None
    cases: List[SwitchCase] = field(default_factory=list)
    default_actions: List[Action] = field(default_factory=list)

    def children(self) -> List[List[Action]]:
        return [case.actions for case in self.cases] + [self.default_actions]


@dataclass
class ParallelBranch:
    name: str
    actions: List[Action] = field(default_factory=list)


@dataclass
class ParallelBranchAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.PARALLEL

    branches: List[ParallelBranch] = field(default_factory=list)

    def children(self) -> List[List[Action]]:
        return [branch.actions for branch in self.branches]


@dataclass
class DoUntilAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.DO_UNTIL

    expression: Any = None
    actions: List[Action] = field(default_factory=list)
    max_iterations: Optional[int] = None
    timeout: Optional[str] = None

    def children(self) -> List[List[Action]]:
        return [self.actions]


@dataclass
class ApplyToEachAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.APPLY_TO_EACH

    collection: Any = None
    actions: List[Action] = field(default_factory=list)

    def children(self) -> List[List[Action]]:
        return [self.actions]


@dataclass
class InitializeVariableAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.INITIALIZE_VARIABLE

    variable: str = ""
    variable_type: str = "string"
    value: Any = None


@dataclass
class SetVariableAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.SET_VARIABLE

    variable: str = ""
    value: Any = None


@dataclass
class FlowDefinition:
    name: str
    trigger: Optional[Trigger] = None
    actions: List[Action] = field(default_factory=list)
    display_name: Optional[str] = None
    enabled: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ActionResult:
    action_name: str
    action_kind: str
    succeeded: bool
    outputs: Dict[str, Any] = field(default_factory=dict)
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actionName": self.action_name,
            "actionKind": self.action_kind,
            "succeeded": self.succeeded,
            "outputs": self.outputs,
            "errorMessage": self.error_message,
        }


@dataclass(frozen=True)
class FlowExecutionResult:
    flow_name: str
    succeeded: bool
    trigger_inputs: Dict[str, Any] = field(default_factory=dict)
    action_results: Tuple[ActionResult, ...] = ()
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)
    duration_seconds: float = 0.0

    def result_for(self, action_name: str) -> Optional[ActionResult]:
        for result in self.action_results:
            if result.action_name == action_name:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flowName": self.flow_name,
            "timestamp": self.timestamp.isoformat(),
            "succeeded": self.succeeded,
            "triggerInputs": self.trigger_inputs,
            "actionResults": [result.to_dict() for result in self.action_results],
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "durationSeconds": self.duration_seconds,
        }
