"""
DSL Sandbox — Script Semantics

The supported JavaScript subset, observed through Text output.
"""

import pytest

from studio.kernel.sandbox import evaluate


def shown(expression, state=None, prelude=""):
    """Evaluate `expression` inside a Text producer and return the rendered string."""
    source = f"{prelude}\nrender(() => Text(() => {expression}))"
    result = evaluate(source, state or {})
    assert result.ok, result.error and result.error.message
    return result.node.children[0]


class TestOperators:
    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("1 + 2", "3"),
            ("'a' + 1", "a1"),
            ("1 + '1'", "11"),
            ("7 / 2", "3.5"),
            ("7 % 4", "3"),
            ("2 ** 10", "1024"),
            ("-(3)", "-3"),
            ("1 / 0", "Infinity"),
            ("0 / 0", "NaN"),
            ("3 > 2 && 'yes'", "yes"),
            ("0 || 'fallback'", "fallback"),
            ("null ?? 'default'", "default"),
            ("0 ?? 'default'", "0"),
            ("1 === 1.0", "true"),
            ("'1' == 1", "true"),
            ("'1' === 1", "false"),
            ("null == undefined", "true"),
            ("!''", "true"),
            ("'b' > 'a'", "true"),
            ("true ? 'on' : 'off'", "on"),
        ],
    )
    def test_expression(self, expression, expected):
        assert shown(expression) == expected

    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("typeof 1", "number"),
            ("typeof 'x'", "string"),
            ("typeof undefined", "undefined"),
            ("typeof neverDeclared", "undefined"),
            ("typeof state", "object"),
            ("typeof Text", "function"),
            ("typeof (() => 1)", "function"),
        ],
    )
    def test_typeof(self, expression, expected):
        assert shown(expression) == expected


class TestTruthiness:
    @pytest.mark.parametrize("value", ["0", "''", "null", "undefined", "NaN", "false"])
    def test_falsy(self, value):
        assert shown(f"{value} ? 'truthy' : 'falsy'") == "falsy"

    @pytest.mark.parametrize("value", ["[]", "({})", "'0'", "-1"])
    def test_truthy(self, value):
        assert shown(f"{value} ? 'truthy' : 'falsy'") == "truthy"


class TestDeclarationsAndFunctions:
    def test_const_and_let(self):
        prelude = "const greeting = 'Hi';\nlet count = 1;\ncount = count + 1;"
        assert shown("greeting + ' ' + count", prelude=prelude) == "Hi 2"

    def test_block_body_with_return(self):
        prelude = "const label = (n) => {\n  if (n > 1) {\n    return n + ' items';\n  }\n  return 'one item';\n};"
        assert shown("label(1) + ', ' + label(3)", prelude=prelude) == "one item, 3 items"

    def test_default_parameters(self):
        prelude = "const greet = (name = 'friend') => 'Hello ' + name;"
        assert shown("greet() + ' / ' + greet('Ada')", prelude=prelude) == "Hello friend / Hello Ada"

    def test_closures_capture_scope(self):
        prelude = "const make = (base) => (n) => base + n;\nconst addTen = make(10);"
        assert shown("addTen(5)", prelude=prelude) == "15"

    def test_else_branch(self):
        prelude = "let tone = 'none';\nif (state.warm) { tone = 'warm'; } else { tone = 'cold'; }"
        assert shown("tone", {"warm": False}, prelude) == "cold"

    def test_block_scoping(self):
        prelude = "const x = 'outer';\n{ const x = 'inner'; }"
        assert shown("x", prelude=prelude) == "outer"


class TestLiterals:
    def test_template_string(self):
        assert shown("`Count: ${state.count + 1}!`", {"count": 2}) == "Count: 3!"

    def test_string_escapes(self):
        assert shown("'a\\tb'") == "a\tb"

    def test_object_shorthand_and_spread(self):
        prelude = "const a = 1;\nconst base = { b: 2 };\nconst obj = { a, ...base, ['c' + 'd']: 3 };"
        assert shown("JSON.stringify(obj)", prelude=prelude) == '{"a":1,"b":2,"cd":3}'

    def test_array_spread(self):
        prelude = "const xs = [1, 2];"
        assert shown("[0, ...xs, 3].join('-')", prelude=prelude) == "0-1-2-3"


class TestMemberAccess:
    def test_missing_key_is_undefined(self):
        assert shown("state.missing", {}) == "undefined"

    def test_optional_chaining(self):
        assert shown("state.user?.name ?? 'anon'", {}) == "anon"
        assert shown("state.user?.name ?? 'anon'", {"user": {"name": "Ada"}}) == "Ada"

    def test_subscript(self):
        assert shown("state.items[1] + state['label']", {"items": ["a", "b"], "label": "!"}) == "b!"

    def test_list_methods(self):
        state = {"items": ["x", "y", "z"]}
        assert shown("state.items.length", state) == "3"
        assert shown("state.items.includes('y')", state) == "true"
        assert shown("state.items.slice(1).join('')", state) == "yz"

    def test_string_methods(self):
        assert shown("'  Hi '.trim().toUpperCase()") == "HI"
        assert shown("'hello'.includes('ell')") == "true"

    def test_number_methods(self):
        assert shown("(3.14159).toFixed(2)") == "3.14"

    def test_only_ascii_digits_index(self):
        assert shown("String(state.items['²'])", {"items": ["a", "b", "c"]}) == "undefined"
        assert shown("String('abc'['²'])") == "undefined"


class TestNonFiniteNumbers:
    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("Math.floor(state.missing)", "NaN"),
            ("Math.ceil(1 / 0)", "Infinity"),
            ("Math.floor(-1 / 0)", "-Infinity"),
            ("Math.round(0 / 0)", "NaN"),
            ("0 ** -1", "Infinity"),
            ("(-8) ** 0.5", "NaN"),
            ("NaN ** 0", "1"),
            ("1 ** NaN", "NaN"),
            ("'abc'.slice('q')", "abc"),
            ("'abcdef'.slice(2, 1 / 0)", "cdef"),
            ("(1).toFixed('z')", "1"),
            ("(0 / 0).toFixed(2)", "NaN"),
            ("JSON.stringify([1], null, 1 / 0)", "[\n          1\n]"),
        ],
    )
    def test_stays_in_number_domain(self, expression, expected):
        assert shown(expression) == expected

    def test_to_fixed_range(self):
        result = evaluate("render(() => Text(() => (1).toFixed(101)))", {})
        assert not result.ok
        assert result.error.message.startswith("RangeError")

    def test_unbounded_array_growth_is_rejected(self):
        result = evaluate("const items = [];\nitems[1e9] = 1;\nrender(() => Text('x'))", {})
        assert not result.ok
        assert result.error.message == "RangeError: Invalid array length"


class TestSafeGlobals:
    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("Math.max(1, 5, 3)", "5"),
            ("Math.min(4, 2)", "2"),
            ("Math.floor(2.7)", "2"),
            ("Math.ceil(2.1)", "3"),
            ("Math.round(2.5)", "3"),
            ("Math.abs(-4)", "4"),
            ("String(12) + 1", "121"),
            ("Number('4') + 1", "5"),
            ("Boolean('')", "false"),
            ("JSON.stringify({ a: [1, 2] })", '{"a":[1,2]}'),
        ],
    )
    def test_global(self, expression, expected):
        assert shown(expression) == expected

    def test_log_collects_messages(self):
        result = evaluate("log('starting');\nlog(42);\nrender(() => Text('x'))", {})
        assert result.logs == ["starting", "42"]

    def test_log_callback_mirrors_messages(self):
        seen = []
        evaluate("log('hello');\nrender(() => Text('x'))", {}, log=seen.append)
        assert seen == ["hello"]
