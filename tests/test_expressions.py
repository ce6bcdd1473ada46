import pytest

from flowsim.errors import EvaluationError, ExpressionSyntaxError
from flowsim.expressions import ExpressionEvaluator, is_expression, split_template
from flowsim.flows.context import ExecutionContext


def make_evaluator(inputs=None, **kwargs):
    return ExpressionEvaluator(ExecutionContext(trigger_inputs=inputs or {}, flow_name="expr", **kwargs))


def test_plain_values_pass_through():
    ev = make_evaluator()
    assert ev.evaluate("hello") == "hello"
    assert ev.evaluate(42) == 42
    assert ev.evaluate({"a": "@triggerBody()"}) == {"a": "@triggerBody()"}
    assert ev.evaluate(None) is None


def test_double_at_escapes_literal():
    assert make_evaluator().evaluate("@@mention") == "@mention"


def test_whole_expression_returns_typed_value():
    ev = make_evaluator({"amount": 1500, "tags": ["a", "b"]})
    assert ev.evaluate("@triggerBody()?['amount']") == 1500
    assert ev.evaluate("@{triggerBody()?['tags']}") == ["a", "b"]


def test_interpolation_stringifies_segments():
    ev = make_evaluator({"name": "Contoso", "amount": 2.0, "vip": True, "missing": None})
    text = ev.evaluate("Account @{triggerBody()?['name']} owes @{triggerBody()?['amount']} (@{triggerBody()?['vip']})")
    assert text == "Account Contoso owes 2 (true)"
    assert ev.evaluate("[@{triggerBody()?['missing']}]") == "[]"


def test_interpolation_ignores_braces_inside_strings():
    assert split_template("a @{concat('}', 'x')} b") == ["a ", ("concat('}', 'x')",), " b"]
    assert make_evaluator().evaluate("a @{concat('}', 'x')} b") == "a }x b"


def test_is_expression():
    assert is_expression("@x()")
    assert is_expression("text @{x()}")
    assert not is_expression("@@x")
    assert not is_expression("plain")
    assert not is_expression(3)


def test_function_names_are_case_insensitive():
    ev = make_evaluator()
    assert ev.evaluate("@TOUPPER('abc')") == "ABC"
    assert ev.evaluate("@toupper('abc')") == "ABC"


def test_unknown_function_is_a_syntax_error():
    with pytest.raises(ExpressionSyntaxError) as excinfo:
        make_evaluator().evaluate("@noSuchFunction(1)")
    assert excinfo.value.code == "FS-2002"


def test_wrong_arity_is_a_syntax_error():
    with pytest.raises(ExpressionSyntaxError):
        make_evaluator().evaluate("@equals(1)")


def test_malformed_expression_reports_syntax_error():
    with pytest.raises(ExpressionSyntaxError):
        make_evaluator().evaluate("@concat('a', ")


def test_nested_logical_trees():
    ev = make_evaluator({"amount": 1500, "status": "open", "region": "EU"})
    expr = (
        "@and(greater(triggerBody()?['amount'], 1000), "
        "or(equals(triggerBody()?['status'], 'closed'), "
        "and(equals(triggerBody()?['status'], 'open'), not(equals(triggerBody()?['region'], 'US')))))"
    )
    assert ev.evaluate(expr) is True
    assert ev.evaluate("@if(and(true, or(false, true)), if(false, 'x', 'y'), 'z')") == "y"


def test_lazy_functions_skip_untaken_branches():
    ev = make_evaluator()
    assert ev.evaluate("@if(true, 1, div(1, 0))") == 1
    assert ev.evaluate("@and(false, div(1, 0))") is False
    assert ev.evaluate("@or(true, div(1, 0))") is True
    assert ev.evaluate("@coalesce(null, '', 'first', div(1, 0))") == "first"


def test_string_truthiness_in_logic():
    ev = make_evaluator()
    assert ev.evaluate("@and('true', true)") is True
    assert ev.evaluate("@and('yes', true)") is False


def test_comparisons():
    ev = make_evaluator()
    assert ev.evaluate("@equals('10', 10)") is True
    assert ev.evaluate("@equals('a', 'A')") is False
    assert ev.evaluate("@greaterOrEquals(5, 5)") is True
    assert ev.evaluate("@less('apple', 'banana')") is True
    assert ev.evaluate("@empty('')") is True
    assert ev.evaluate("@contains(createArray(1, 2), 2)") is True
    assert ev.evaluate("@contains('Contoso', 'toso')") is True


def test_string_functions():
    ev = make_evaluator()
    assert ev.evaluate("@concat('a', 1, true)") == "a1true"
    assert ev.evaluate("@substring('abcdef', 2, 3)") == "cde"
    assert ev.evaluate("@replace('a-b-c', '-', '+')") == "a+b+c"
    assert ev.evaluate("@split('a,b', ',')") == ["a", "b"]
    assert ev.evaluate("@indexOf('Hello', 'L')") == 2
    assert ev.evaluate("@nthIndexOf('a.b.c', '.', 2)") == 3
    assert ev.evaluate("@length('four')") == 4
    assert ev.evaluate("@trim('  x ')") == "x"
    assert len(ev.evaluate("@guid()")) == 36
    assert ev.evaluate("@formatNumber(1234.5, 'N1')") == "1,234.5"


def test_substring_out_of_range_is_an_evaluation_error():
    with pytest.raises(EvaluationError):
        make_evaluator().evaluate("@substring('abc', 2, 5)")


def test_math_keeps_integers():
    ev = make_evaluator()
    assert ev.evaluate("@add(2, 3)") == 5
    assert ev.evaluate("@div(7, 2)") == 3
    assert ev.evaluate("@div(-7, 2)") == -3
    assert ev.evaluate("@div(7.0, 2)") == 3.5
    assert ev.evaluate("@mod(-7, 3)") == -1
    assert ev.evaluate("@max(createArray(3, 9, 4))") == 9
    assert ev.evaluate("@range(2, 3)") == [2, 3, 4]


def test_division_by_zero_fails():
    with pytest.raises(EvaluationError):
        make_evaluator().evaluate("@div(1, 0)")
    with pytest.raises(EvaluationError):
        make_evaluator().evaluate("@mod(1, 0)")


def test_conversions():
    ev = make_evaluator()
    assert ev.evaluate("@int('42')") == 42
    assert ev.evaluate("@float('2.5')") == 2.5
    assert ev.evaluate("@bool('true')") is True
    assert ev.evaluate("@string(createArray(1, 2))") == "[1,2]"
    assert ev.evaluate("@json('{\"a\": 1}')?['a']") == 1
    assert ev.evaluate("@base64ToString(base64('hi there'))") == "hi there"
    assert ev.evaluate("@decodeUriComponent(encodeUriComponent('a b/c'))") == "a b/c"
    with pytest.raises(EvaluationError):
        ev.evaluate("@int('forty')")


def test_collections():
    ev = make_evaluator()
    assert ev.evaluate("@first(createArray('x', 'y'))") == "x"
    assert ev.evaluate("@last('abc')") == "c"
    assert ev.evaluate("@take(createArray(1, 2, 3), 2)") == [1, 2]
    assert ev.evaluate("@skip(createArray(1, 2, 3), 2)") == [3]
    assert ev.evaluate("@join(createArray('a', 'b'), ';')") == "a;b"
    assert ev.evaluate("@union(createArray(1, 2), createArray(2, 3))") == [1, 2, 3]
    assert ev.evaluate("@intersection(createArray(1, 2, 3), createArray(3, 2))") == [2, 3]
    assert ev.evaluate("@first(createArray())") is None


def test_dates():
    ev = make_evaluator()
    assert ev.evaluate("@addDays('2024-01-30T10:00:00Z', 3)") == "2024-02-02T10:00:00.0000000Z"
    assert ev.evaluate("@formatDateTime('2024-03-05T14:07:09Z', 'yyyy-MM-dd HH:mm')") == "2024-03-05 14:07"
    assert ev.evaluate("@formatDateTime('2024-03-05T14:07:09Z', 'MMM d, yyyy h:mm tt')") == "Mar 5, 2024 2:07 PM"
    assert ev.evaluate("@addToTime('2024-01-31T00:00:00Z', 1, 'Month', 'yyyy-MM-dd')") == "2024-02-29"
    assert ev.evaluate("@startOfMonth('2024-03-05T14:07:09Z', 'yyyy-MM-dd')") == "2024-03-01"
    assert ev.evaluate("@dayOfWeek('2024-03-03T00:00:00Z')") == 0
    assert ev.evaluate("@dayOfYear('2024-02-01T00:00:00Z')") == 32
    assert ev.evaluate("@ticks('0001-01-01T00:00:01Z')") == 10_000_000
    assert ev.evaluate("@utcNow()").endswith("Z")


def test_type_checks_and_uris():
    ev = make_evaluator()
    assert ev.evaluate("@isInt(3)") is True
    assert ev.evaluate("@isString(3)") is False
    assert ev.evaluate("@isArray(createArray())") is True
    assert ev.evaluate("@uriHost('https://contoso.com:8443/a/b?x=1')") == "contoso.com"
    assert ev.evaluate("@uriPort('https://contoso.com/a')") == 443
    assert ev.evaluate("@uriPathAndQuery('https://contoso.com/a/b?x=1')") == "/a/b?x=1"


def test_reference_functions():
    context = ExecutionContext(
        trigger_inputs={"accountid": "A1", "name": "Contoso"},
        flow_name="refs",
        parameters={"threshold": 10},
    )
    context._add_action_outputs("Compose", {"value": "done"})
    context.set_variable("counter", 3)
    ev = ExpressionEvaluator(context)
    assert ev.evaluate("@triggerOutputs()?['body/name']") == "Contoso"
    assert ev.evaluate("@trigger()?['outputs']?['body']?['accountid']") == "A1"
    assert ev.evaluate("@outputs('Compose')?['value']") == "done"
    assert ev.evaluate("@body('Compose')?['value']") == "done"
    assert ev.evaluate("@outputs('Never_ran')") is None
    assert ev.evaluate("@variables('counter')") == 3
    assert ev.evaluate("@variables('missing')") is None
    assert ev.evaluate("@parameters('threshold')") == 10
    assert ev.evaluate("@workflow()?['name']") == "refs"
    assert ev.evaluate("@item()") is None


def test_loop_item_functions():
    context = ExecutionContext()
    context.push_item({"n": 1}, loop_name="Outer")
    context.push_item({"n": 2}, loop_name="Inner")
    ev = ExpressionEvaluator(context)
    assert ev.evaluate("@item()?['n']") == 2
    assert ev.evaluate("@items('Outer')?['n']") == 1
    context.pop_item()
    assert ev.evaluate("@item()?['n']") == 1
