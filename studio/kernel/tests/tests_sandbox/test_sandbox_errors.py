"""
DSL Sandbox — Failure Handling

Everything that stops a source from producing a tree comes back as an
EvalError on the result. evaluate() itself never raises for script problems.
"""

import pytest

from studio.kernel.sandbox import NO_ROOT_MESSAGE, evaluate


def render_error(source, state=None, **kwargs):
    result = evaluate(source, state or {}, **kwargs)
    assert not result.ok
    assert result.node is None
    return result.error


class TestSyntaxErrors:
    def test_unbalanced_source(self):
        error = render_error("render(() => Column((add) => {")
        assert error.message.startswith("SyntaxError")
        assert error.line == 1

    def test_error_logged_for_operator(self):
        result = evaluate("render(() => ", {})
        assert any(line.startswith("DSL Execution Error:") for line in result.logs)


class TestRuntimeErrors:
    def test_unbound_identifier(self):
        error = render_error("render(() => Text(() => nope))")
        assert error.message == "ReferenceError: nope is not defined"
        assert error.trace.startswith("ReferenceError: nope is not defined")

    def test_reading_property_of_undefined(self):
        error = render_error("render(() => Text(() => state.user.name))")
        assert error.message == "TypeError: Cannot read properties of undefined (reading 'name')"

    def test_calling_a_non_function(self):
        error = render_error("const n = 3;\nrender(() => n())")
        assert "is not a function" in error.message
        assert error.line == 2

    def test_container_callback_failure_aborts_render(self):
        error = render_error("render(() => Column((add) => { add(Text(() => broken.value)); }))")
        assert "broken is not defined" in error.message

    def test_call_depth_is_bounded(self):
        source = "const f = (n) => f(n + 1);\nrender(() => Text(f(0)))"
        error = render_error(source, max_depth=16)
        assert error.message == "RangeError: Maximum call stack size exceeded"


class TestUnsupportedSyntax:
    @pytest.mark.parametrize(
        "source, fragment",
        [
            ("for (let i = 0; i < 3; i++) {}\nrender(() => Text('x'))", "loops are not supported"),
            ("while (true) {}\nrender(() => Text('x'))", "loops are not supported"),
            ("function f() { return 1; }\nrender(() => Text('x'))", "function declarations are not supported"),
            ("render(() => Text(new Date()))", "'new' is not supported"),
            ("class A {}\nrender(() => Text('x'))", "classes are not supported"),
        ],
    )
    def test_construct_is_named(self, source, fragment):
        error = render_error(source)
        assert fragment in error.message


class TestRenderRoot:
    def test_source_without_render(self):
        error = render_error("const x = Text('orphan');")
        assert error.message == NO_ROOT_MESSAGE

    def test_render_callback_returning_non_node(self):
        error = render_error("render(() => 'just a string')")
        assert error.message == NO_ROOT_MESSAGE

    def test_last_render_call_wins(self):
        result = evaluate("render(() => Text('first'));\nrender(() => Text('second'));", {})
        assert result.ok
        assert result.node.children == ["second"]


class TestExecuteDuringEvaluation:
    def test_execute_aborts_evaluation(self):
        dispatched = []
        error = render_error("execute('counter = 1');\nrender(() => Text('x'))", dispatch=dispatched.append)
        assert "execute() can only run from an interaction handler" in error.message
        assert dispatched == []


class TestIsolation:
    def test_source_cannot_mutate_caller_state(self):
        state = {"counter": 1, "nested": {"a": 1}}
        result = evaluate(
            "state.counter = 99;\nstate.nested.a = 2;\nrender(() => Text(() => state.counter))",
            state,
        )
        assert result.ok
        assert result.node.children == ["99"]
        assert state == {"counter": 1, "nested": {"a": 1}}

    def test_globals_do_not_leak_between_evaluations(self):
        first = evaluate("Math.max = 1;\nrender(() => Text('x'))", {})
        assert first.ok
        second = evaluate("render(() => Text(() => Math.max(1, 2)))", {})
        assert second.node.children == ["2"]

    def test_python_attributes_are_not_reachable(self):
        source = "render(() => Text(() => typeof state.__class__ + ' ' + typeof log.__globals__))"
        result = evaluate(source, {})
        assert result.node.children == ["undefined undefined"]
