from flowsim.config import FlowsimConfig
from flowsim.flows.context import ExecutionContext
from flowsim.flows.engine import FlowEngine
from flowsim.flows.models import (
    ApplyToEachAction,
    ComposeAction,
    ConditionAction,
    ConnectorAction,
    DoUntilAction,
    FlowDefinition,
    InitializeVariableAction,
    MutationKind,
    ParallelBranch,
    ParallelBranchAction,
    RecordTrigger,
    SetVariableAction,
    SwitchAction,
    SwitchCase,
)


def make_flow(actions, name="control"):
    return FlowDefinition(name=name, trigger=RecordTrigger(record_type="account", mutation=MutationKind.CREATE), actions=actions)


def run(simulator, actions, inputs=None):
    simulator.register_flow(make_flow(actions))
    return simulator.simulate_trigger("control", inputs or {})


def test_empty_action_list_is_trivial_success(simulator):
    result = run(simulator, [])
    assert result.succeeded
    assert result.action_results == ()
    assert result.errors == ()


def test_compose_resolves_nested_values(simulator):
    compose = ComposeAction(
        name="Shape",
        inputs={"who": "@triggerBody()?['name']", "tags": ["@{triggerBody()?['tier']}-tier", 1]},
    )
    result = run(simulator, [compose], {"name": "Contoso", "tier": "gold"})
    assert result.result_for("Shape").outputs == {"value": {"who": "Contoso", "tags": ["gold-tier", 1]}}


def test_actions_see_earlier_outputs(simulator):
    actions = [
        ComposeAction(name="Second", inputs="@concat(outputs('First')?['value'], '!')", run_after=["First"]),
        ComposeAction(name="First", inputs="hello"),
    ]
    result = run(simulator, actions)
    assert [r.action_name for r in result.action_results] == ["First", "Second"]
    assert result.result_for("Second").outputs["value"] == "hello!"


def test_condition_runs_only_taken_branch(simulator):
    condition = ConditionAction(
        name="Big_deal",
        expression="@greater(triggerBody()?['revenue'], 1000)",
        true_actions=[ComposeAction(name="Yes", inputs="big")],
        false_actions=[ComposeAction(name="No", inputs="small")],
    )
    result = run(simulator, [condition], {"revenue": 5000})
    outputs = result.result_for("Big_deal").outputs
    assert outputs["conditionResult"] is True
    assert outputs["branchExecuted"] == "true"
    assert [entry["actionName"] for entry in outputs["branchResults"]] == ["Yes"]

    result = run(simulator, [condition], {"revenue": 10})
    assert result.result_for("Big_deal").outputs["branchExecuted"] == "false"


def test_condition_with_nested_logic_tree(simulator):
    condition = ConditionAction(
        name="Eligible",
        expression=(
            "@or(and(equals(triggerBody()?['tier'], 'gold'), greater(triggerBody()?['revenue'], 100)), "
            "if(empty(triggerBody()?['override']), false, equals(triggerBody()?['override'], 'yes')))"
        ),
    )
    assert run(simulator, [condition], {"tier": "gold", "revenue": 500}).result_for("Eligible").outputs["conditionResult"]
    assert run(simulator, [condition], {"tier": "silver", "override": "yes"}).result_for("Eligible").outputs[
        "conditionResult"
    ]
    assert not run(simulator, [condition], {"tier": "silver"}).result_for("Eligible").outputs["conditionResult"]


def test_switch_matches_case_insensitively_first_wins(simulator):
    switch = SwitchAction(
        name="Route",
        expression="@triggerBody()?['tier']",
        cases=[
            SwitchCase("Gold", [ComposeAction(name="Gold_path", inputs="g")]),
            SwitchCase("gold", [ComposeAction(name="Shadowed", inputs="s")]),
        ],
        default_actions=[ComposeAction(name="Fallback", inputs="d")],
    )
    outputs = run(simulator, [switch], {"tier": "GOLD"}).result_for("Route").outputs
    assert outputs["switchValue"] == "GOLD"
    assert outputs["matchedCase"] == "Gold"
    assert [entry["actionName"] for entry in outputs["caseResults"]] == ["Gold_path"]

    outputs = run(simulator, [switch], {"tier": "bronze"}).result_for("Route").outputs
    assert outputs["matchedCase"] == "default"
    assert [entry["actionName"] for entry in outputs["caseResults"]] == ["Fallback"]


def test_switch_compares_numbers_as_text(simulator):
    switch = SwitchAction(name="Code", expression="@triggerBody()?['code']", cases=[SwitchCase(2, [])])
    assert run(simulator, [switch], {"code": "2"}).result_for("Code").outputs["matchedCase"] == "2"


def test_parallel_branches_are_isolated_then_merged(simulator):
    parallel = ParallelBranchAction(
        name="Fan_out",
        branches=[
            ParallelBranch("Left", [ComposeAction(name="Left_value", inputs="L")]),
            ParallelBranch(
                "Right",
                [ComposeAction(name="Peek", inputs="@coalesce(outputs('Left_value')?['value'], 'unseen')")],
            ),
        ],
    )
    after = ComposeAction(
        name="Join",
        inputs="@concat(outputs('Left_value')?['value'], outputs('Peek')?['value'])",
        run_after=["Fan_out"],
    )
    result = run(simulator, [parallel, after])
    assert result.succeeded
    assert result.result_for("Join").outputs["value"] == "Lunseen"
    branches = result.result_for("Fan_out").outputs["branchResults"]
    assert [(b["branchName"], b["succeeded"]) for b in branches] == [("Left", True), ("Right", True)]


def test_parallel_fails_when_any_branch_fails(simulator):
    parallel = ParallelBranchAction(
        name="Fan_out",
        branches=[
            ParallelBranch("Ok", [ComposeAction(name="Fine", inputs="x")]),
            ParallelBranch("Broken", [ComposeAction(name="Bad", inputs="@div(1, 0)")]),
        ],
    )
    result = run(simulator, [parallel])
    assert not result.succeeded
    fan_out = result.result_for("Fan_out")
    assert "Branch 'Broken' failed" in fan_out.error_message
    assert fan_out.outputs["branchResults"][0]["succeeded"] is True


def test_do_until_stops_on_condition(simulator):
    actions = [
        InitializeVariableAction(name="Init", variable="count", variable_type="integer", value=0),
        DoUntilAction(
            name="Loop",
            expression="@greaterOrEquals(variables('count'), 3)",
            actions=[SetVariableAction(name="Bump", variable="count", value="@add(variables('count'), 1)")],
            run_after=["Init"],
        ),
    ]
    result = run(simulator, actions)
    loop = result.result_for("Loop").outputs
    assert result.succeeded
    assert loop["iterations"] == 3
    assert loop["conditionMet"] is True
    assert [entry["iteration"] for entry in loop["iterationResults"]] == [1, 2, 3]


def test_do_until_ceiling_fails_with_iteration_count(simulator):
    loop = DoUntilAction(name="Forever", expression="@false", actions=[ComposeAction(name="Tick", inputs=1)], max_iterations=4)
    result = run(simulator, [loop])
    failed = result.result_for("Forever")
    assert not failed.succeeded
    assert failed.error_message == "Do Until loop exceeded maximum iterations (4)"
    assert failed.outputs["iterations"] == 4
    assert result.errors == ("Action 'Forever' failed: Do Until loop exceeded maximum iterations (4)",)


def test_do_until_default_ceiling_comes_from_config(simulator):
    engine = FlowEngine(config=FlowsimConfig(default_until_limit=7))
    loop = DoUntilAction(name="Forever", expression="@false")
    [result] = engine.execute([loop], ExecutionContext())
    assert result.outputs["iterations"] == 7


def test_apply_to_each_binds_items_and_restores_stack(simulator):
    loop = ApplyToEachAction(
        name="Each_line",
        collection="@triggerBody()?['lines']",
        actions=[ComposeAction(name="Line_total", inputs="@mul(item()?['qty'], item()?['price'])")],
    )
    after = ComposeAction(name="After", inputs="@coalesce(item(), 'no item')", run_after=["Each_line"])
    result = run(simulator, [loop, after], {"lines": [{"qty": 2, "price": 5}, {"qty": 1, "price": 7}]})
    outputs = result.result_for("Each_line").outputs
    assert outputs["iterations"] == 2
    assert [entry["Line_total"]["value"] for entry in outputs["itemResults"]] == [10, 7]
    assert result.result_for("After").outputs["value"] == "no item"


def test_apply_to_each_over_missing_or_scalar_collection(simulator):
    loop = ApplyToEachAction(name="Each", collection="@triggerBody()?['missing']", actions=[ComposeAction(name="X", inputs="@item()")])
    result = run(simulator, [loop])
    assert result.succeeded and result.result_for("Each").outputs["iterations"] == 0

    loop.collection = "@triggerBody()?['one']"
    result = run(simulator, [loop], {"one": "solo"})
    assert result.result_for("Each").outputs["itemResults"] == [{"X": {"value": "solo"}}]


def test_nested_loops_reach_outer_item_by_name(simulator):
    inner = ApplyToEachAction(
        name="Inner",
        collection="@item()?['children']",
        actions=[ComposeAction(name="Pair", inputs="@{items('Outer')?['name']}/@{item()}")],
    )
    outer = ApplyToEachAction(name="Outer", collection="@triggerBody()?['groups']", actions=[inner])
    result = run(simulator, [outer], {"groups": [{"name": "a", "children": [1, 2]}]})
    inner_results = result.result_for("Outer").outputs["itemResults"][0]["Inner"]["itemResults"]
    assert [entry["Pair"]["value"] for entry in inner_results] == ["a/1", "a/2"]


def test_failure_stops_remaining_actions_and_is_reported(simulator):
    actions = [
        ComposeAction(name="Ok", inputs=1),
        ComposeAction(name="Boom", inputs="@div(1, 0)", run_after=["Ok"]),
        ComposeAction(name="Never", inputs=2, run_after=["Boom"]),
    ]
    result = run(simulator, actions)
    assert not result.succeeded
    assert [r.action_name for r in result.action_results] == ["Ok", "Boom"]
    assert result.errors[0].startswith("Action 'Boom' failed: FS-2001")


def test_failure_inside_loop_names_iteration(simulator):
    loop = ApplyToEachAction(
        name="Each",
        collection="@createArray(1, 0, 2)",
        actions=[ComposeAction(name="Invert", inputs="@div(10, item())")],
    )
    failed = run(simulator, [loop]).result_for("Each")
    assert not failed.succeeded
    assert failed.error_message.startswith("Iteration 2: Action 'Invert' failed")
    assert failed.outputs["iterations"] == 2


def test_syntax_errors_are_distinguishable(simulator):
    result = run(simulator, [ComposeAction(name="Typo", inputs="@concatt('a')")])
    assert result.result_for("Typo").error_message.startswith("FS-2002")


def test_missing_handler_is_a_failed_result(simulator):
    action = ConnectorAction(name="Notify", capability="teams", operation="post", parameters={"text": "hi"})
    result = run(simulator, [action])
    assert not result.succeeded
    assert result.result_for("Notify").error_message.startswith("FS-3002")


def test_stub_handler_receives_resolved_parameters(simulator):
    seen = []

    def post(action, record_store, context):
        seen.append(action.parameters)
        return {"posted": True}

    simulator.register_handler("teams", post)
    action = ConnectorAction(name="Notify", capability="teams", operation="post", parameters={"text": "Hi @{triggerBody()?['name']}"})
    result = run(simulator, [action], {"name": "Dana"})
    assert result.succeeded
    assert seen == [{"text": "Hi Dana"}]
    assert result.result_for("Notify").outputs == {"posted": True}


def test_set_variable_requires_initialization(simulator):
    result = run(simulator, [SetVariableAction(name="Set", variable="nope", value=1)])
    assert not result.succeeded
    assert "has not been initialized" in result.result_for("Set").error_message


def test_initialize_variable_type_defaults(simulator):
    actions = [
        InitializeVariableAction(name="Init_list", variable="items", variable_type="array"),
        ComposeAction(name="Count", inputs="@length(variables('items'))", run_after=["Init_list"]),
    ]
    result = run(simulator, actions)
    assert result.result_for("Init_list").outputs == {"name": "items", "value": []}
    assert result.result_for("Count").outputs["value"] == 0


def test_apply_to_each_over_empty_array(simulator):
    loop = ApplyToEachAction(name="Each_line", collection="@triggerBody()?['lines']", actions=[ComposeAction(name="X", inputs="@item()")])
    result = run(simulator, [loop], {"lines": []})
    assert result.succeeded
    outputs = result.result_for("Each_line").outputs
    assert outputs["iterations"] == 0
    assert outputs["itemResults"] == []


def test_compose_chaining_across_actions(simulator):
    actions = [
        ComposeAction(name="Compose_1", inputs="@concat('Hello ', triggerBody()['firstname'])"),
        ComposeAction(name="Compose_2", inputs="@concat(outputs('Compose_1')['value'], '!')", run_after=["Compose_1"]),
    ]
    result = run(simulator, actions, {"firstname": "Bob"})
    assert result.result_for("Compose_1").outputs["value"] == "Hello Bob"
    assert result.result_for("Compose_2").outputs["value"] == "Hello Bob!"


class _TextHandler:
    def can_handle(self, action):
        return True

    def execute(self, action, record_store, context):
        return "sent"


def test_handler_returning_non_object_is_a_failed_result(simulator):
    simulator.register_handler("sms", _TextHandler())
    result = run(simulator, [ConnectorAction(name="Text", capability="sms", operation="send")])
    assert not result.succeeded
    assert "returned str, expected an object" in result.result_for("Text").error_message


def test_handler_returning_none_succeeds_with_empty_outputs(simulator):
    simulator.register_handler("sms", lambda action, store, ctx: None)
    result = run(simulator, [ConnectorAction(name="Text", capability="sms", operation="send")])
    assert result.succeeded
    assert result.result_for("Text").outputs == {}
