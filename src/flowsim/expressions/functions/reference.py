"""Reference functions: trigger data, action outputs, variables and loop items."""

from __future__ import annotations

from typing import Any

from .registry import builtin, require_text


def _with_body(payload: dict[str, Any] | None) -> dict[str, Any] | None:
    if payload is None:
        return None
    result: dict[str, Any] = {"body": payload}
    result.update(payload)
    return result


@builtin("triggerOutputs", max_args=0)
def trigger_outputs(rt) -> Any:
    return _with_body(rt.context.trigger_inputs)


@builtin("triggerBody", max_args=0)
def trigger_body(rt) -> Any:
    return rt.context.trigger_inputs


@builtin("trigger", max_args=0)
def trigger(rt) -> Any:
    return {"name": rt.context.flow_name, "outputs": _with_body(rt.context.trigger_inputs)}


@builtin("outputs", min_args=1, max_args=1)
def outputs(rt, action_name) -> Any:
    return _with_body(rt.context.outputs_for(require_text(action_name, "outputs")))


@builtin("body", min_args=1, max_args=1)
def body(rt, action_name) -> Any:
    return rt.context.outputs_for(require_text(action_name, "body"))


@builtin("actions", min_args=1, max_args=1)
def actions(rt, action_name) -> Any:
    name = require_text(action_name, "actions")
    outs = rt.context.outputs_for(name)
    if outs is None:
        return None
    return {"name": name, "outputs": _with_body(outs)}


@builtin("variables", min_args=1, max_args=1)
def variables(rt, name) -> Any:
    return rt.context.get_variable(require_text(name, "variables"))


@builtin("setVariable", min_args=2, max_args=2)
def set_variable(rt, name, value) -> Any:
    rt.context.set_variable(require_text(name, "setVariable"), value)
    return value


@builtin("item", max_args=0)
def item(rt) -> Any:
    return rt.context.current_item()


@builtin("items", min_args=1, max_args=1)
def items(rt, loop_name) -> Any:
    return rt.context.item_for(require_text(loop_name, "items"))


@builtin("parameters", min_args=1, max_args=1)
def parameters(rt, name) -> Any:
    return rt.context.parameters.get(require_text(name, "parameters"))


@builtin("workflow", max_args=0)
def workflow(rt) -> Any:
    return {"name": rt.context.flow_name, "run": {"name": rt.context.run_id}}
