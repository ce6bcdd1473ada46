import json

import pytest

from flowsim.errors import NotSupportedError, ValidationError
from flowsim.flows.models import (
    ApplyToEachAction,
    ComposeAction,
    ConditionAction,
    DoUntilAction,
    InitializeVariableAction,
    MutationKind,
    RecordAction,
    RecordOperation,
    SetVariableAction,
    SwitchAction,
    TriggerScope,
)
from flowsim.importer import import_flow, predicate_to_expression
from flowsim.records.query import Comparison, LogicalFilter


def compose(inputs, run_after=None):
    return {"type": "Compose", "inputs": inputs, "runAfter": run_after or {}}


def test_trigger_fields(documents):
    doc = documents.flow({}, message=4, entity="contact", filtering="firstname, lastname ,", scope=2)
    flow = import_flow(doc).flow
    trigger = flow.trigger
    assert flow.name == "test_flow"
    assert flow.display_name == "Test Flow"
    assert flow.enabled
    assert trigger.record_type == "contact"
    assert trigger.mutation is MutationKind.CREATE_OR_UPDATE
    assert trigger.scope is TriggerScope.BUSINESS_UNIT
    assert trigger.filtered_attributes == ["firstname", "lastname"]
    assert flow.actions == []


@pytest.mark.parametrize(
    "code, kind",
    [(1, MutationKind.CREATE), (2, MutationKind.UPDATE), (3, MutationKind.DELETE), ("4", MutationKind.CREATE_OR_UPDATE)],
)
def test_message_codes(documents, code, kind):
    assert import_flow(documents.flow({}, message=code)).flow.trigger.mutation is kind


def test_unknown_message_code_is_rejected(documents):
    with pytest.raises(ValidationError):
        import_flow(documents.flow({}, message=7))


def test_missing_triggers_is_rejected(documents):
    with pytest.raises(ValidationError) as excinfo:
        import_flow(documents.flow({}, triggers={}))
    assert "at least one trigger" in excinfo.value.message


def test_non_record_trigger_is_not_supported(documents):
    triggers = {"Recurrence": {"type": "Recurrence", "recurrence": {"frequency": "Day", "interval": 1}}}
    with pytest.raises(NotSupportedError):
        import_flow(documents.flow({}, triggers=triggers))


def test_invalid_json_text_is_a_validation_error():
    with pytest.raises(ValidationError):
        import_flow("{not json")


def test_accepts_text_bytes_and_bare_definition(documents):
    doc = documents.flow({"Compose": compose("x")})
    assert import_flow(json.dumps(doc)).flow.actions[0].name == "Compose"
    assert import_flow(json.dumps(doc).encode("utf-8")).flow.name == "test_flow"
    bare = {"name": "bare", "definition": doc["properties"]["definition"]}
    assert import_flow(bare).flow.name == "bare"


def test_state_other_than_started_imports_disabled(documents):
    assert not import_flow(documents.flow({}, state="Stopped")).flow.enabled
    assert import_flow(documents.flow({}, state="started")).flow.enabled


def test_filter_expression_becomes_row_filter(documents):
    doc = documents.flow({}, filter_expression="statecode eq 0 and revenue gt 1000")
    trigger = import_flow(doc).flow.trigger
    assert isinstance(trigger.record_filter, LogicalFilter)
    assert trigger.accepts_record({"statecode": 0, "revenue": 5000})
    assert not trigger.accepts_record({"statecode": 1, "revenue": 5000})


def test_trigger_conditions_become_condition_expression(documents):
    doc = documents.flow({})
    doc["properties"]["definition"]["triggers"]["When_a_row_is_added"]["conditions"] = [
        {"expression": "@equals(triggerBody()?['statecode'], 0)"},
        {"expression": "@greater(triggerBody()?['revenue'], 10)"},
    ]
    condition = import_flow(doc).flow.trigger.condition
    assert condition == "@and(equals(triggerBody()?['statecode'], 0), greater(triggerBody()?['revenue'], 10))"


def test_actions_sorted_by_run_after_with_document_order_ties(documents):
    actions = {
        "C": compose("c", {"A": ["Succeeded"]}),
        "A": compose("a"),
        "B": compose("b"),
        "D": compose("d", {"B": ["Succeeded"], "C": ["Succeeded"]}),
    }
    flow = import_flow(documents.flow(actions)).flow
    assert [a.name for a in flow.actions] == ["A", "C", "B", "D"]
    assert flow.actions[-1].run_after == ["B", "C"]


def test_cycle_is_rejected(documents):
    actions = {"A": compose("a", {"B": ["Succeeded"]}), "B": compose("b", {"A": ["Succeeded"]})}
    with pytest.raises(ValidationError) as excinfo:
        import_flow(documents.flow(actions))
    assert "cycle" in excinfo.value.message


def test_unresolved_run_after_is_rejected(documents):
    with pytest.raises(ValidationError):
        import_flow(documents.flow({"A": compose("a", {"Ghost": ["Succeeded"]})}))


def test_control_actions_import_recursively(documents):
    actions = {
        "Check": {
            "type": "If",
            "expression": "@greater(triggerBody()?['revenue'], 1000)",
            "actions": {"Big": compose("big")},
            "else": {"actions": {"Small": compose("small")}},
            "runAfter": {},
        },
        "Route": {
            "type": "Switch",
            "expression": "@triggerBody()?['tier']",
            "cases": {"Case_gold": {"case": "Gold", "actions": {"Gold_path": compose("g")}}},
            "default": {"actions": {"Other_path": compose("o")}},
            "runAfter": {"Check": ["Succeeded"]},
        },
        "Each": {
            "type": "Foreach",
            "foreach": "@triggerBody()?['lines']",
            "actions": {"Per_line": compose("@item()")},
            "runAfter": {"Route": ["Succeeded"]},
        },
        "Wait": {
            "type": "Until",
            "expression": "@equals(variables('done'), true)",
            "limit": {"count": 5, "timeout": "PT1H"},
            "actions": {"Mark": {"type": "SetVariable", "inputs": {"name": "done", "value": True}}},
            "runAfter": {"Init": ["Succeeded"]},
        },
        "Init": {
            "type": "InitializeVariable",
            "inputs": {"variables": [{"name": "done", "type": "boolean", "value": False}]},
            "runAfter": {"Each": ["Succeeded"]},
        },
    }
    flow = import_flow(documents.flow(actions)).flow
    assert [a.name for a in flow.actions] == ["Check", "Route", "Each", "Init", "Wait"]
    check, route, each, init, wait = flow.actions
    assert isinstance(check, ConditionAction)
    assert [a.name for a in check.true_actions] == ["Big"]
    assert [a.name for a in check.false_actions] == ["Small"]
    assert isinstance(route, SwitchAction)
    assert route.cases[0].value == "Gold" and route.cases[0].name == "Case_gold"
    assert [a.name for a in route.default_actions] == ["Other_path"]
    assert isinstance(each, ApplyToEachAction) and each.collection == "@triggerBody()?['lines']"
    assert isinstance(init, InitializeVariableAction) and init.variable_type == "boolean"
    assert isinstance(wait, DoUntilAction)
    assert wait.max_iterations == 5 and wait.timeout == "PT1H"
    assert isinstance(wait.actions[0], SetVariableAction)
    assert isinstance(each.actions[0], ComposeAction)


def test_duplicate_names_across_nesting_are_rejected(documents):
    actions = {
        "Check": {
            "type": "If",
            "expression": "@true",
            "actions": {"Same": compose("x")},
            "runAfter": {},
        },
        "Same": compose("y", {"Check": ["Succeeded"]}),
    }
    with pytest.raises(ValidationError):
        import_flow(documents.flow(actions))


def test_structured_predicates_are_converted(documents):
    predicate = {
        "and": [
            {"greater": ["@triggerBody()?['revenue']", 1000]},
            {"not": {"equals": ["@triggerBody()?['name']", "Don't"]}},
        ]
    }
    actions = {"Check": {"type": "If", "expression": predicate, "actions": {}, "runAfter": {}}}
    flow = import_flow(documents.flow(actions)).flow
    assert flow.actions[0].expression == (
        "@and(greater(triggerBody()?['revenue'], 1000), not(equals(triggerBody()?['name'], 'Don''t')))"
    )


def test_predicate_operand_interpolation():
    assert predicate_to_expression({"equals": ["id-@{triggerBody()?['n']}", "id-1"]}) == (
        "@equals(concat('id-', string(triggerBody()?['n'])), 'id-1')"
    )


def test_record_actions(documents):
    actions = {
        "Create": documents.record_action(
            "CreateRecord",
            {"entityName": "tasks", "item/subject": "Follow up @{triggerBody()?['name']}", "item/prioritycode": 2},
        ),
        "List": documents.record_action(
            "ListRecords",
            {
                "entityName": "contacts",
                "$filter": "lastname eq 'Smith' and (age ge 18 or vip eq true)",
                "$orderby": "createdon desc, lastname",
                "$top": 5,
                "$skip": "1",
                "$count": True,
                "$select": "fullname, emailaddress1",
            },
            {"Create": ["Succeeded"]},
        ),
        "Dynamic": documents.record_action(
            "ListRecords",
            {"entityName": "contacts", "$filter": "parentcustomerid eq '@{triggerBody()?['accountid']}'"},
            {"List": ["Succeeded"]},
        ),
    }
    flow = import_flow(documents.flow(actions)).flow
    create, listing, dynamic = flow.actions
    assert isinstance(create, RecordAction)
    assert create.record_operation is RecordOperation.CREATE
    assert create.record_type == "tasks"
    assert create.attributes == {"subject": "Follow up @{triggerBody()?['name']}", "prioritycode": 2}
    query = listing.query
    assert isinstance(query.filter, LogicalFilter) and query.filter.op == "and"
    assert [(c.field, c.descending) for c in query.order_by] == [("createdon", True), ("lastname", False)]
    assert (query.top, query.skip, query.include_count) == (5, 1, True)
    assert query.select == ["fullname", "emailaddress1"]
    assert dynamic.query.filter is None
    assert dynamic.query.filter_text == "parentcustomerid eq '@{triggerBody()?['accountid']}'"


def test_malformed_static_filter_is_rejected(documents):
    actions = {"List": documents.record_action("ListRecords", {"entityName": "contacts", "$filter": "name eq"})}
    with pytest.raises(ValidationError):
        import_flow(documents.flow(actions))


def test_unrecognised_actions_are_skipped_with_warning(documents, caplog):
    actions = {
        "Post_message": {
            "type": "OpenApiConnection",
            "inputs": {"host": {"connectionName": "shared_teams", "operationId": "PostMessageToConversation"}},
            "runAfter": {},
        }
    }
    with caplog.at_level("WARNING", logger="flowsim.importer"):
        result = import_flow(documents.flow(actions))
    assert result.flow.actions == []
    assert len(result.warnings) == 1 and "Post_message" in result.warnings[0]
    assert result.flow.metadata["warnings"] == result.warnings
    assert "Post_message" in caplog.text


def test_successors_of_skipped_actions_inherit_their_predecessors(documents):
    actions = {
        "First": compose("1"),
        "Http": {"type": "Http", "inputs": {"method": "GET"}, "runAfter": {"First": ["Succeeded"]}},
        "Last": compose("2", {"Http": ["Succeeded"]}),
    }
    flow = import_flow(documents.flow(actions)).flow
    assert [a.name for a in flow.actions] == ["First", "Last"]
    assert flow.actions[1].run_after == ["First"]


def test_non_success_run_after_statuses_produce_warning(documents):
    actions = {"A": compose("a"), "B": compose("b", {"A": ["Failed", "Succeeded"]})}
    result = import_flow(documents.flow(actions))
    assert any("Failed" in warning for warning in result.warnings)


def test_parameter_defaults_are_collected(documents):
    doc = documents.flow({})
    doc["properties"]["definition"]["parameters"] = {
        "threshold": {"type": "Int", "defaultValue": 1000},
        "$connections": {"type": "Object"},
    }
    assert import_flow(doc).flow.metadata["parameters"] == {"threshold": 1000}
