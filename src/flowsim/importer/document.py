"""
Import exported cloud-flow JSON documents into FlowDefinition objects.

Only the record-store connector is understood natively. Actions of any other
type are skipped with a warning so a partially supported flow can still be
registered and exercised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..errors import NotSupportedError, ValidationError
from ..expressions import is_expression
from ..flows.graph import order_by_dependencies, validate_actions
from ..flows.models import (
    Action,
    ApplyToEachAction,
    ComposeAction,
    ConditionAction,
    DoUntilAction,
    FlowDefinition,
    InitializeVariableAction,
    MutationKind,
    RecordAction,
    RecordOperation,
    RecordTrigger,
    SetVariableAction,
    SwitchAction,
    SwitchCase,
    TriggerScope,
)
from ..records.query import build_query_options, parse_filter
from .predicates import normalize_expression

logger = logging.getLogger("flowsim.importer")

RECORD_CONNECTOR = "commondataserviceforapps"
RECORD_TRIGGER_TYPE = "openapiconnectionwebhook"
RECORD_ACTION_TYPE = "openapiconnection"
SUBSCRIPTION_PREFIX = "subscriptionRequest/"
ITEM_PREFIX = "item/"

MESSAGE_CODES = {
    1: MutationKind.CREATE,
    2: MutationKind.UPDATE,
    3: MutationKind.DELETE,
    4: MutationKind.CREATE_OR_UPDATE,
}

RECORD_OPERATIONS = {
    "createrecord": RecordOperation.CREATE,
    "updaterecord": RecordOperation.UPDATE,
    "updateonlyrecord": RecordOperation.UPDATE,
    "deleterecord": RecordOperation.DELETE,
    "getitem": RecordOperation.RETRIEVE,
    "listrecords": RecordOperation.LIST,
    "uploadfile": RecordOperation.UPLOAD_FILE,
    "updateentityfileimagefieldcontent": RecordOperation.UPLOAD_FILE,
    "downloadfile": RecordOperation.DOWNLOAD_FILE,
    "getentityfileimagefieldcontent": RecordOperation.DOWNLOAD_FILE,
}


@dataclass
class ImportResult:
    flow: FlowDefinition
    warnings: List[str] = field(default_factory=list)


def load_document(document: Any) -> Dict[str, Any]:
    if isinstance(document, (bytes, bytearray)):
        document = document.decode("utf-8-sig")
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as exc:
            raise ValidationError(
                f"Flow document is not valid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})."
            ) from exc
    if not isinstance(document, Mapping):
        raise ValidationError("Flow document must be a JSON object.")
    return dict(document)


def import_flow(document: Any, *, name: Optional[str] = None) -> ImportResult:
    """Parse a flow document. ``name`` overrides the name stored in the document."""
    return FlowDocumentImporter().import_document(document, name=name)


class FlowDocumentImporter:
    def __init__(self) -> None:
        self.warnings: List[str] = []

    def import_document(self, document: Any, *, name: Optional[str] = None) -> ImportResult:
        self.warnings = []
        root = load_document(document)
        properties = root.get("properties") if isinstance(root.get("properties"), Mapping) else {}
        definition = properties.get("definition") or root.get("definition")
        if definition is None and "triggers" in root:
            definition = root
        if not isinstance(definition, Mapping):
            raise ValidationError("Flow document has no definition.")

        flow_name = name or root.get("name") or properties.get("displayName")
        if not flow_name:
            raise ValidationError("Flow document has no name; pass one explicitly.")
        trigger = self._parse_trigger(definition.get("triggers"))
        actions = self._parse_actions(definition.get("actions") or {}, scope=f"flow '{flow_name}'")
        validate_actions(actions, flow_name=str(flow_name))

        state = properties.get("state")
        flow = FlowDefinition(
            name=str(flow_name),
            trigger=trigger,
            actions=actions,
            display_name=properties.get("displayName") or root.get("displayName"),
            enabled=state is None or str(state).lower() == "started",
            metadata={
                "schema": definition.get("$schema"),
                "contentVersion": definition.get("contentVersion"),
                "description": properties.get("description"),
                "parameters": _parameter_defaults(definition.get("parameters")),
                "warnings": list(self.warnings),
            },
        )
        logger.info(
            "Imported flow '%s' with %d top-level action(s) and %d warning(s)",
            flow.name,
            len(actions),
            len(self.warnings),
        )
        return ImportResult(flow=flow, warnings=list(self.warnings))

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    # Triggers

    def _parse_trigger(self, triggers: Any) -> RecordTrigger:
        if not isinstance(triggers, Mapping) or not triggers:
            raise ValidationError("Flow must have at least one trigger")
        trigger_name, body = next(iter(triggers.items()))
        if len(triggers) > 1:
            self._warn(f"Flow declares {len(triggers)} triggers; only '{trigger_name}' is simulated.")
        if not isinstance(body, Mapping):
            raise ValidationError(f"Trigger '{trigger_name}' must be an object.")
        trigger_type = str(body.get("type") or "")
        inputs = body.get("inputs") if isinstance(body.get("inputs"), Mapping) else {}
        if trigger_type.lower() != RECORD_TRIGGER_TYPE or not _is_record_connector(inputs):
            raise NotSupportedError(
                f"Trigger '{trigger_name}' of type '{trigger_type or 'unknown'}' is not supported. "
                "Only record-change triggers can be simulated."
            )
        parameters = inputs.get("parameters")
        if not isinstance(parameters, Mapping):
            raise ValidationError(f"Trigger '{trigger_name}' has no parameters.")

        message = _subscription(parameters, "message")
        try:
            mutation = MESSAGE_CODES[int(message)]
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Trigger '{trigger_name}' has unknown message code {message!r}.") from exc
        record_type = _subscription(parameters, "entityname")
        if not record_type:
            raise ValidationError(f"Trigger '{trigger_name}' does not name a table.")

        scope_raw = _subscription(parameters, "scope")
        try:
            scope = TriggerScope(int(scope_raw)) if scope_raw is not None else TriggerScope.ORGANIZATION
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Trigger '{trigger_name}' has unknown scope {scope_raw!r}.") from exc

        attributes_raw = _subscription(parameters, "filteringattributes") or ""
        filtered = [part.strip() for part in str(attributes_raw).split(",") if part.strip()]

        conditions: List[str] = []
        record_filter = None
        filter_expression = _subscription(parameters, "filterexpression")
        if filter_expression:
            if is_expression(filter_expression):
                conditions.append(str(filter_expression))
            else:
                record_filter = parse_filter(str(filter_expression))
        for entry in body.get("conditions") or []:
            expression = entry.get("expression") if isinstance(entry, Mapping) else None
            if expression:
                conditions.append(normalize_expression(expression))

        return RecordTrigger(
            name=str(trigger_name),
            record_type=str(record_type),
            mutation=mutation,
            scope=scope,
            filtered_attributes=filtered,
            condition=_combine_conditions(conditions),
            record_filter=record_filter,
        )

    # Actions

    def _parse_actions(self, actions: Any, *, scope: str) -> List[Action]:
        if not isinstance(actions, Mapping):
            raise ValidationError(f"Actions in {scope} must be an object keyed by action name.")
        names = list(actions.keys())
        dependencies = {name: self._run_after(name, actions[name]) for name in names}
        ordered = order_by_dependencies(names, dependencies, scope=scope)

        skipped: Dict[str, List[str]] = {}
        parsed: List[Action] = []
        for name in ordered:
            run_after = _inherit_skipped(dependencies[name], skipped)
            try:
                action = self._parse_action(name, actions[name])
            except NotSupportedError as exc:
                self._warn(f"Skipped action '{name}': {exc.message}")
                skipped[name] = run_after
                continue
            action.run_after = run_after
            parsed.append(action)
        return parsed

    def _run_after(self, name: str, body: Any) -> List[str]:
        if not isinstance(body, Mapping):
            raise ValidationError(f"Action '{name}' must be an object.")
        run_after = body.get("runAfter") or {}
        if not isinstance(run_after, Mapping):
            raise ValidationError(f"Action '{name}' has a malformed runAfter block.")
        for dep, statuses in run_after.items():
            extra = [s for s in statuses or [] if str(s).lower() != "succeeded"]
            if extra:
                self._warn(
                    f"Action '{name}' runs after '{dep}' on {', '.join(map(str, extra))}; "
                    "only successful predecessors are simulated."
                )
        return [str(dep) for dep in run_after]

    def _parse_action(self, name: str, body: Mapping[str, Any]) -> Action:
        action_type = str(body.get("type") or "").lower()
        if action_type == "if":
            return ConditionAction(
                name=name,
                expression=self._required_expression(name, body.get("expression")),
                true_actions=self._parse_actions(body.get("actions") or {}, scope=f"'{name}'"),
                false_actions=self._parse_actions(_nested(body, "else"), scope=f"'{name}' else branch"),
            )
        if action_type == "switch":
            return self._parse_switch(name, body)
        if action_type == "foreach":
            collection = body.get("foreach", body.get("expression"))
            if collection is None:
                raise ValidationError(f"Apply to each '{name}' has no collection.")
            return ApplyToEachAction(
                name=name,
                collection=collection,
                actions=self._parse_actions(body.get("actions") or {}, scope=f"'{name}'"),
            )
        if action_type == "until":
            limit = body.get("limit") if isinstance(body.get("limit"), Mapping) else {}
            return DoUntilAction(
                name=name,
                expression=self._required_expression(name, body.get("expression")),
                actions=self._parse_actions(body.get("actions") or {}, scope=f"'{name}'"),
                max_iterations=_optional_int(limit.get("count"), f"Do Until '{name}' limit count"),
                timeout=limit.get("timeout"),
            )
        if action_type == "compose":
            return ComposeAction(name=name, inputs=body.get("inputs"))
        if action_type == "initializevariable":
            return self._parse_initialize_variable(name, body)
        if action_type == "setvariable":
            inputs = body.get("inputs") if isinstance(body.get("inputs"), Mapping) else {}
            if not inputs.get("name"):
                raise ValidationError(f"Set variable '{name}' does not name a variable.")
            return SetVariableAction(name=name, variable=str(inputs["name"]), value=inputs.get("value"))
        if action_type == RECORD_ACTION_TYPE:
            return self._parse_record_action(name, body)
        raise NotSupportedError(f"action type '{body.get('type')}' is not supported")

    def _required_expression(self, name: str, expression: Any) -> Any:
        if expression is None or expression == "":
            raise ValidationError(f"Action '{name}' has no expression.")
        return normalize_expression(expression)

    def _parse_switch(self, name: str, body: Mapping[str, Any]) -> SwitchAction:
        if body.get("expression") is None:
            raise ValidationError(f"Switch '{name}' has no expression.")
        cases: List[SwitchCase] = []
        for case_name, case_body in (body.get("cases") or {}).items():
            if not isinstance(case_body, Mapping):
                raise ValidationError(f"Case '{case_name}' of switch '{name}' must be an object.")
            cases.append(
                SwitchCase(
                    value=case_body.get("case", case_name),
                    actions=self._parse_actions(case_body.get("actions") or {}, scope=f"'{name}' case '{case_name}'"),
                    name=str(case_name),
                )
            )
        return SwitchAction(
            name=name,
            expression=body["expression"],
            cases=cases,
            default_actions=self._parse_actions(_nested(body, "default"), scope=f"'{name}' default"),
        )

    def _parse_initialize_variable(self, name: str, body: Mapping[str, Any]) -> InitializeVariableAction:
        inputs = body.get("inputs") if isinstance(body.get("inputs"), Mapping) else {}
        variables = inputs.get("variables") or []
        if not variables or not isinstance(variables[0], Mapping) or not variables[0].get("name"):
            raise ValidationError(f"Initialize variable '{name}' does not declare a variable.")
        if len(variables) > 1:
            self._warn(f"Initialize variable '{name}' declares several variables; only the first is used.")
        declared = variables[0]
        return InitializeVariableAction(
            name=name,
            variable=str(declared["name"]),
            variable_type=str(declared.get("type") or "string"),
            value=declared.get("value"),
        )

    def _parse_record_action(self, name: str, body: Mapping[str, Any]) -> RecordAction:
        inputs = body.get("inputs") if isinstance(body.get("inputs"), Mapping) else {}
        host = inputs.get("host") if isinstance(inputs.get("host"), Mapping) else {}
        if not _is_record_connector(inputs):
            raise NotSupportedError(f"connector '{host.get('connectionName') or host.get('apiId')}' is not supported")
        operation_id = str(host.get("operationId") or "")
        operation = RECORD_OPERATIONS.get(operation_id.lower())
        if operation is None:
            raise NotSupportedError(f"record operation '{operation_id}' is not supported")

        parameters = dict(inputs.get("parameters") or {})
        record_type = parameters.get("entityName")
        if not record_type:
            raise ValidationError(f"Action '{name}' does not name a table (entityName).")
        attributes = {key[len(ITEM_PREFIX) :]: value for key, value in parameters.items() if key.startswith(ITEM_PREFIX)}
        if operation is not RecordOperation.UPLOAD_FILE and isinstance(parameters.get("item"), Mapping):
            attributes.update(parameters["item"])

        raw_filter = parameters.get("$filter")
        query = build_query_options(
            raw_filter,
            parameters.get("$orderby"),
            parameters.get("$top"),
            parameters.get("$skip"),
            parameters.get("$count"),
            parameters.get("$select"),
            parameters.get("$expand"),
            defer_filter=is_expression(raw_filter),
        )
        return RecordAction(
            name=name,
            operation=operation.value,
            parameters=parameters,
            record_type=record_type,
            record_id=parameters.get("recordId"),
            attributes=attributes,
            query=query,
            column_name=parameters.get("columnName") or parameters.get("fileImageFieldName"),
            file_name=parameters.get("fileName") or parameters.get("x-ms-file-name"),
            file_content=parameters.get("fileContent") or (
                parameters.get("item") if operation is RecordOperation.UPLOAD_FILE else None
            ),
        )


def _is_record_connector(inputs: Mapping[str, Any]) -> bool:
    host = inputs.get("host") if isinstance(inputs.get("host"), Mapping) else {}
    connection = f"{host.get('connectionName') or ''} {host.get('apiId') or ''}".lower()
    return RECORD_CONNECTOR in connection


def _subscription(parameters: Mapping[str, Any], key: str) -> Any:
    wanted = (SUBSCRIPTION_PREFIX + key).lower()
    for name, value in parameters.items():
        if str(name).lower() == wanted:
            return value
    return None


def _combine_conditions(conditions: List[str]) -> Optional[str]:
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    body = ", ".join(text[1:] if text.startswith("@") else text for text in conditions)
    return f"@and({body})"


def _nested(body: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = body.get(key)
    if not isinstance(section, Mapping):
        return {}
    return section.get("actions") or {}


def _inherit_skipped(run_after: List[str], skipped: Dict[str, List[str]]) -> List[str]:
    """Replace skipped predecessors with their own predecessors."""
    resolved: List[str] = []
    pending = list(run_after)
    while pending:
        dep = pending.pop(0)
        if dep in skipped:
            pending[:0] = skipped[dep]
        elif dep not in resolved:
            resolved.append(dep)
    return resolved


def _optional_int(value: Any, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be an integer but got {value!r}.") from exc
    if number < 1:
        raise ValidationError(f"{label} must be at least 1.")
    return number


def _parameter_defaults(parameters: Any) -> Dict[str, Any]:
    if not isinstance(parameters, Mapping):
        return {}
    defaults: Dict[str, Any] = {}
    for key, declared in parameters.items():
        if isinstance(declared, Mapping) and "defaultValue" in declared:
            defaults[key] = declared["defaultValue"]
    return defaults


__all__ = ["FlowDocumentImporter", "ImportResult", "import_flow", "load_document"]
