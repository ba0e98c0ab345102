"""
Compose Studio Kernel — Script Evaluator

Tagged-AST evaluator over tree-sitter nodes for the JavaScript subset the DSL
and the action mini-language use. Shared by the sandbox (statements) and the
action interpreter (single expressions).

The evaluator only reaches what is bound in its Scope. Member access works on
plain data (mappings, lists, strings, numbers) and a fixed method table;
every other host value reads as undefined, so Python attributes are never
exposed to scripts.

Values: None stands for both null and undefined. Numbers are int when
integral, float otherwise.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable
from typing import Any

from tree_sitter import Node

from studio.kernel.js_parser import SKIPPED_TYPES, node_text, position
from studio.kernel.types import ScriptError

DEFAULT_MAX_DEPTH = 64

_MAX_SAFE_INTEGER = 2**53
_MAX_ARRAY_GROWTH = 100_000


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


class Scope:
    """Lexical environment. Lookups walk the parent chain."""

    __slots__ = ("values", "parent")

    def __init__(self, values: dict[str, Any] | None = None, parent: Scope | None = None) -> None:
        self.values: dict[str, Any] = dict(values or {})
        self.parent = parent

    def lookup(self, name: str) -> Any:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.values:
                return scope.values[name]
            scope = scope.parent
        raise ScriptError("ReferenceError", f"{name} is not defined")

    def declare(self, name: str, value: Any) -> None:
        self.values[name] = value

    def assign(self, name: str, value: Any) -> None:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.values:
                scope.values[name] = value
                return
            scope = scope.parent
        raise ScriptError("ReferenceError", f"{name} is not defined")


class ArrowFunction:
    """A script closure. Callable from Python so builder primitives can invoke it."""

    __slots__ = ("node", "scope", "interpreter", "params")

    def __init__(self, node: Node, scope: Scope, interpreter: Interpreter) -> None:
        self.node = node
        self.scope = scope
        self.interpreter = interpreter
        self.params = _parameters(node)

    def __call__(self, *args: Any) -> Any:
        return self.interpreter.invoke(self, list(args))

    def __repr__(self) -> str:
        return f"ArrowFunction({node_text(self.node)[:40]!r})"


class _Return(Exception):
    """Unwinds a block body back to its arrow function."""

    def __init__(self, value: Any) -> None:
        self.value = value


# ---------------------------------------------------------------------------
# Value semantics
# ---------------------------------------------------------------------------


def normalize_number(value: float | int) -> float | int:
    if isinstance(value, float) and value.is_integer() and abs(value) < _MAX_SAFE_INTEGER:
        return int(value)
    return value


def is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def truthy(value: Any) -> bool:
    if value is None or value is False:
        return False
    if is_number(value):
        return not (value == 0 or (isinstance(value, float) and math.isnan(value)))
    if isinstance(value, str):
        return value != ""
    return True


def to_js_string(value: Any) -> str:
    if value is None:
        return "undefined"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        value = normalize_number(value)
        return str(value)
    if isinstance(value, list):
        return ",".join("" if v is None else to_js_string(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    if callable(value):
        return "function"
    return ""


def to_number(value: Any) -> float | int:
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return normalize_number(float(text))
        except ValueError:
            return math.nan
    return math.nan


def typeof(value: Any) -> str:
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if callable(value):
        return "function"
    return "object"


def strict_equals(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is b
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return a is b


def loose_equals(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if (is_number(a) or isinstance(a, bool)) and isinstance(b, str):
        return to_number(a) == to_number(b)
    if isinstance(a, str) and (is_number(b) or isinstance(b, bool)):
        return to_number(a) == to_number(b)
    if isinstance(a, bool) != isinstance(b, bool) and is_number(a) != is_number(b):
        return to_number(a) == to_number(b)
    return strict_equals(a, b)


def to_integer(value: Any) -> float | int:
    """Truncate toward zero; NaN becomes 0, infinities stay infinite."""
    number = to_number(value)
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return number
    return int(number)


def plain_data(value: Any) -> Any:
    """
    Deep copy of a script value as JSON-like data.
    Functions cannot live in data documents; NaN and Infinity become null.
    """
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, list):
        return [plain_data(v) for v in value]
    if isinstance(value, dict):
        return {str(k): plain_data(v) for k, v in value.items()}
    raise ScriptError("TypeError", f"Cannot store a {typeof(value)} in state")


def _binary(op: str, a: Any, b: Any) -> Any:
    if op == "+":
        if isinstance(a, str | list | dict) or isinstance(b, str | list | dict):
            return to_js_string(a) + to_js_string(b)
        return normalize_number(to_number(a) + to_number(b))
    if op in ("-", "*", "/", "%", "**"):
        x, y = to_number(a), to_number(b)
        if op == "-":
            return normalize_number(x - y)
        if op == "*":
            return normalize_number(x * y)
        if op == "/":
            if y == 0:
                if x == 0 or math.isnan(x):
                    return math.nan
                return math.copysign(math.inf, x) * math.copysign(1, y)
            return normalize_number(x / y)
        if op == "%":
            if y == 0 or math.isinf(x):
                return math.nan
            return normalize_number(math.fmod(x, y))
        if math.isnan(y) or (math.isnan(x) and y != 0):
            return math.nan
        if x == 0 and y < 0:
            return math.inf
        if x < 0 and isinstance(y, float) and math.isfinite(y) and not y.is_integer():
            return math.nan
        try:
            return normalize_number(float(x) ** y)
        except OverflowError:
            return math.inf
    if op in ("<", ">", "<=", ">="):
        if isinstance(a, str) and isinstance(b, str):
            x, y = a, b
        else:
            x, y = to_number(a), to_number(b)
            if math.isnan(x) or math.isnan(y):
                return False
        if op == "<":
            return x < y
        if op == ">":
            return x > y
        if op == "<=":
            return x <= y
        return x >= y
    if op == "===":
        return strict_equals(a, b)
    if op == "!==":
        return not strict_equals(a, b)
    if op == "==":
        return loose_equals(a, b)
    if op == "!=":
        return not loose_equals(a, b)
    if op == "in":
        if isinstance(b, dict):
            return to_js_string(a) in b
        raise ScriptError("TypeError", "Cannot use 'in' operator on a non-object")
    raise ScriptError("SyntaxError", f"Operator {op!r} is not supported")


# ---------------------------------------------------------------------------
# Member access
# ---------------------------------------------------------------------------


def _index(key: Any) -> int | None:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, float) and key.is_integer():
        return int(key)
    if isinstance(key, str) and key.isascii() and key.isdigit():
        return int(key)
    return None


def _to_fixed(number: Any) -> Callable[..., str]:
    def to_fixed(digits: Any = 0) -> str:
        places = to_integer(digits) if digits is not None else 0
        if not 0 <= places <= 100:
            raise ScriptError("RangeError", "toFixed() digits argument must be between 0 and 100")
        value = to_number(number)
        if not math.isfinite(value):
            return to_js_string(float(value))
        return f"{value:.{places}f}"

    return to_fixed


def _slice_bound(value: Any, length: int) -> int | None:
    if value is None:
        return None
    bound = to_integer(value)
    if bound == math.inf:
        return length
    if bound == -math.inf:
        return 0
    return bound


def _slice(seq: Any) -> Callable[..., Any]:
    def slice_(start: Any = None, end: Any = None) -> Any:
        return seq[_slice_bound(start, len(seq)) : _slice_bound(end, len(seq))]

    return slice_


def _string_method(text: str, name: str) -> Any:
    if name == "length":
        return len(text)
    methods: dict[str, Callable[..., Any]] = {
        "toUpperCase": lambda: text.upper(),
        "toLowerCase": lambda: text.lower(),
        "trim": lambda: text.strip(),
        "toString": lambda: text,
        "includes": lambda sub=None: to_js_string(sub) in text,
        "startsWith": lambda sub=None: text.startswith(to_js_string(sub)),
        "endsWith": lambda sub=None: text.endswith(to_js_string(sub)),
        "slice": _slice(text),
    }
    return methods.get(name)


def _list_method(items: list[Any], name: str) -> Any:
    if name == "length":
        return len(items)
    methods: dict[str, Callable[..., Any]] = {
        "join": lambda sep=",": to_js_string(sep).join("" if v is None else to_js_string(v) for v in items),
        "includes": lambda value=None: any(strict_equals(v, value) for v in items),
        "indexOf": lambda value=None: next((i for i, v in enumerate(items) if strict_equals(v, value)), -1),
        "slice": _slice(items),
        "toString": lambda: to_js_string(items),
    }
    return methods.get(name)


def get_member(obj: Any, key: Any) -> Any:
    if obj is None:
        raise ScriptError(
            "TypeError",
            f"Cannot read properties of undefined (reading '{to_js_string(key)}')",
        )
    if isinstance(obj, dict):
        return obj.get(to_js_string(key))
    if isinstance(obj, list):
        idx = _index(key)
        if idx is not None:
            return obj[idx] if 0 <= idx < len(obj) else None
        return _list_method(obj, to_js_string(key))
    if isinstance(obj, str):
        idx = _index(key)
        if idx is not None:
            return obj[idx] if 0 <= idx < len(obj) else None
        return _string_method(obj, to_js_string(key))
    if isinstance(obj, bool):
        return (lambda: to_js_string(obj)) if key == "toString" else None
    if is_number(obj):
        if key == "toFixed":
            return _to_fixed(obj)
        if key == "toString":
            return lambda: to_js_string(obj)
    return None


def set_member(obj: Any, key: Any, value: Any) -> None:
    if isinstance(obj, dict):
        obj[to_js_string(key)] = value
        return
    if isinstance(obj, list):
        idx = _index(key)
        if idx is not None and idx >= 0:
            if idx - len(obj) > _MAX_ARRAY_GROWTH:
                raise ScriptError("RangeError", "Invalid array length")
            while len(obj) <= idx:
                obj.append(None)
            obj[idx] = value
            return
    raise ScriptError(
        "TypeError",
        f"Cannot set properties of {typeof(obj)} (setting '{to_js_string(key)}')",
    )


# ---------------------------------------------------------------------------
# Safe globals
# ---------------------------------------------------------------------------


def _rounding(fn: Callable[[float], int]) -> Callable[..., Any]:
    def rounded(value: Any = None) -> Any:
        number = to_number(value)
        if not math.isfinite(number):
            return number
        return normalize_number(fn(number))

    return rounded


_js_round = _rounding(lambda number: math.floor(number + 0.5))


def _stringify(value: Any = None, _replacer: Any = None, indent: Any = None) -> str | None:
    if value is None or callable(value):
        return None

    def _default(o: Any) -> Any:
        return None

    spaces = min(max(to_integer(indent), 0), 10) if is_number(indent) else None
    separators = (",", ":") if spaces is None else (",", ": ")
    return json.dumps(value, default=_default, indent=spaces, separators=separators, ensure_ascii=False)


def safe_globals() -> dict[str, Any]:
    """
    Globals visible to every script. Built fresh per evaluation so scripts
    cannot leak changes between calls.
    """

    def _minmax(pick: Callable[..., Any], empty: float) -> Callable[..., Any]:
        def fn(*args: Any) -> Any:
            numbers = [to_number(a) for a in args]
            if any(isinstance(n, float) and math.isnan(n) for n in numbers):
                return math.nan
            return pick(numbers) if numbers else empty

        return fn

    return {
        "Math": {
            "min": _minmax(min, math.inf),
            "max": _minmax(max, -math.inf),
            "floor": _rounding(math.floor),
            "ceil": _rounding(math.ceil),
            "round": _js_round,
            "abs": lambda x=None: abs(to_number(x)),
            "PI": math.pi,
        },
        "JSON": {"stringify": _stringify},
        "String": lambda value="": to_js_string(value),
        "Number": lambda value=0: normalize_number(to_number(value)),
        "Boolean": lambda value=None: truthy(value),
        "NaN": math.nan,
        "Infinity": math.inf,
    }


# ---------------------------------------------------------------------------
# Strings and numbers
# ---------------------------------------------------------------------------

_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|.)", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def _unescape_match(m: re.Match[str]) -> str:
    body = m.group(1)
    if body in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[body]
    if body.startswith("u{"):
        code = int(body[2:-1], 16)
        if code > 0x10FFFF:
            raise ScriptError("SyntaxError", "Undefined Unicode code-point")
        return chr(code)
    if body.startswith("u") and len(body) == 5:
        return chr(int(body[1:], 16))
    if body.startswith("x") and len(body) == 3:
        return chr(int(body[1:], 16))
    if body in ("\n", "\r\n", "\r"):
        return ""
    return body


def unescape(raw: str) -> str:
    return _ESCAPE_RE.sub(_unescape_match, raw)


def _number_value(raw: str) -> float | int:
    text = raw.replace("_", "")
    if text.endswith("n"):
        return int(text[:-1], 0)
    if text[:2].lower() in ("0x", "0o", "0b"):
        return int(text, 0)
    return normalize_number(float(text))


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


def _parameters(node: Node) -> list[tuple[str, Node | None]]:
    single = node.child_by_field_name("parameter")
    if single is not None:
        return [(node_text(single), None)]
    params = node.child_by_field_name("parameters")
    result: list[tuple[str, Node | None]] = []
    if params is None:
        return result
    for p in params.named_children:
        if p.type in SKIPPED_TYPES:
            continue
        if p.type == "identifier":
            result.append((node_text(p), None))
            continue
        if p.type in ("required_parameter", "optional_parameter"):
            pattern = p.child_by_field_name("pattern")
            if pattern is not None and pattern.type == "identifier":
                result.append((node_text(pattern), p.child_by_field_name("value")))
                continue
        if p.type == "assignment_pattern":
            left = p.child_by_field_name("left")
            if left is not None and left.type == "identifier":
                result.append((node_text(left), p.child_by_field_name("right")))
                continue
        line, column = position(p)
        raise ScriptError("SyntaxError", "Only plain identifiers are supported as parameters", line, column)
    return result


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------

_UNSUPPORTED_HINTS = {
    "for_statement": "loops are not supported; use LazyColumn",
    "for_in_statement": "loops are not supported; use LazyColumn",
    "while_statement": "loops are not supported; use LazyColumn",
    "do_statement": "loops are not supported; use LazyColumn",
    "function_declaration": "function declarations are not supported",
    "function_expression": "function expressions are not supported; use arrow functions",
    "function": "function expressions are not supported; use arrow functions",
    "class_declaration": "classes are not supported",
    "class": "classes are not supported",
    "new_expression": "'new' is not supported",
    "import_statement": "imports are not supported",
    "export_statement": "exports are not supported",
}


class Interpreter:
    """
    Walks tree-sitter nodes. One instance per evaluation; it holds only the
    call depth counter.
    """

    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth
        self._depth = 0

    # -- entry points --

    def run_program(self, root: Node, scope: Scope) -> None:
        """Execute top-level statements. A top-level `return` ends the program."""
        try:
            self._exec_statements(root.named_children, scope)
        except _Return:
            pass

    def evaluate(self, node: Node, scope: Scope) -> Any:
        handler = _EXPRESSIONS.get(node.type)
        if handler is None:
            raise self._unsupported(node)
        try:
            return handler(self, node, scope)
        except ScriptError as err:
            if err.line is None:
                err.line, err.column = position(node)
            raise

    def invoke(self, fn: ArrowFunction, args: list[Any]) -> Any:
        self._depth += 1
        try:
            if self._depth > self.max_depth:
                raise ScriptError("RangeError", "Maximum call stack size exceeded")
            scope = Scope(parent=fn.scope)
            for i, (name, default) in enumerate(fn.params):
                value = args[i] if i < len(args) else None
                if value is None and default is not None:
                    value = self.evaluate(default, scope)
                scope.declare(name, value)
            body = fn.node.child_by_field_name("body")
            if body is None:
                return None
            if body.type == "statement_block":
                try:
                    self._exec_statements(body.named_children, scope)
                except _Return as ret:
                    return ret.value
                return None
            return self.evaluate(body, scope)
        finally:
            self._depth -= 1

    def call(self, fn: Any, args: list[Any], node: Node) -> Any:
        callee = node.child_by_field_name("function")
        label = node_text(callee)[:40] if callee is not None else "<anonymous>"
        if not callable(fn):
            raise ScriptError("TypeError", f"{label} is not a function")
        try:
            if isinstance(fn, ArrowFunction):
                return self.invoke(fn, args)
            return fn(*args)
        except ScriptError as err:
            line, column = position(node)
            err.frames.append(f"at {label} ({line}:{column})")
            raise

    # -- statements --

    def _exec_statements(self, nodes: list[Node], scope: Scope) -> None:
        for node in nodes:
            if node.type in SKIPPED_TYPES:
                continue
            self._exec(node, scope)

    def _exec(self, node: Node, scope: Scope) -> None:
        t = node.type
        try:
            if t == "expression_statement":
                for child in node.named_children:
                    if child.type not in SKIPPED_TYPES:
                        self.evaluate(child, scope)
            elif t in ("lexical_declaration", "variable_declaration"):
                for declarator in node.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    name = declarator.child_by_field_name("name")
                    if name is None or name.type != "identifier":
                        raise ScriptError("SyntaxError", "Destructuring declarations are not supported")
                    value_node = declarator.child_by_field_name("value")
                    value = self.evaluate(value_node, scope) if value_node is not None else None
                    scope.declare(node_text(name), value)
            elif t == "if_statement":
                condition = node.child_by_field_name("condition")
                if truthy(self.evaluate(condition, scope)):
                    self._exec(node.child_by_field_name("consequence"), scope)
                else:
                    alternative = node.child_by_field_name("alternative")
                    if alternative is not None:
                        self._exec_statements(alternative.named_children, scope)
            elif t == "statement_block":
                self._exec_statements(node.named_children, Scope(parent=scope))
            elif t == "return_statement":
                values = [c for c in node.named_children if c.type not in SKIPPED_TYPES]
                raise _Return(self.evaluate(values[0], scope) if values else None)
            elif t == "empty_statement" or t in SKIPPED_TYPES:
                return
            else:
                raise self._unsupported(node)
        except ScriptError as err:
            if err.line is None:
                err.line, err.column = position(node)
            raise

    def _unsupported(self, node: Node) -> ScriptError:
        hint = _UNSUPPORTED_HINTS.get(node.type)
        message = hint or f"{node.type.replace('_', ' ')} is not supported"
        line, column = position(node)
        return ScriptError("SyntaxError", message, line, column)

    # -- expressions --

    def _identifier(self, node: Node, scope: Scope) -> Any:
        name = node_text(node)
        if name == "undefined":
            return None
        return scope.lookup(name)

    def _literal(self, node: Node, scope: Scope) -> Any:
        t = node.type
        if t == "true":
            return True
        if t == "false":
            return False
        return None

    def _number(self, node: Node, scope: Scope) -> Any:
        return _number_value(node_text(node))

    def _string(self, node: Node, scope: Scope) -> str:
        return unescape(node_text(node)[1:-1])

    def _template_string(self, node: Node, scope: Scope) -> str:
        raw = node.text or b""
        base = node.start_byte
        parts: list[str] = []
        cursor = 1
        for child in node.named_children:
            if child.type != "template_substitution":
                continue
            parts.append(unescape(raw[cursor : child.start_byte - base].decode("utf-8")))
            inner = [c for c in child.named_children if c.type not in SKIPPED_TYPES]
            parts.append(to_js_string(self.evaluate(inner[0], scope)) if inner else "")
            cursor = child.end_byte - base
        parts.append(unescape(raw[cursor:-1].decode("utf-8")))
        return "".join(parts)

    def _passthrough(self, node: Node, scope: Scope) -> Any:
        inner = [c for c in node.named_children if c.type not in SKIPPED_TYPES]
        return self.evaluate(inner[0], scope) if inner else None

    def _sequence(self, node: Node, scope: Scope) -> Any:
        value = None
        for child in node.named_children:
            if child.type not in SKIPPED_TYPES:
                value = self.evaluate(child, scope)
        return value

    def _array(self, node: Node, scope: Scope) -> list[Any]:
        items: list[Any] = []
        for child in node.named_children:
            if child.type in SKIPPED_TYPES:
                continue
            if child.type == "spread_element":
                spread = self._passthrough(child, scope)
                if not isinstance(spread, list | str):
                    raise ScriptError("TypeError", f"{typeof(spread)} is not iterable")
                items.extend(spread)
            else:
                items.append(self.evaluate(child, scope))
        return items

    def _object(self, node: Node, scope: Scope) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for child in node.named_children:
            t = child.type
            if t in SKIPPED_TYPES:
                continue
            if t == "pair":
                key_node = child.child_by_field_name("key")
                result[self._property_key(key_node, scope)] = self.evaluate(
                    child.child_by_field_name("value"), scope
                )
            elif t == "shorthand_property_identifier":
                name = node_text(child)
                result[name] = scope.lookup(name)
            elif t == "spread_element":
                spread = self._passthrough(child, scope)
                if isinstance(spread, dict):
                    result.update(spread)
            else:
                raise self._unsupported(child)
        return result

    def _property_key(self, key: Node, scope: Scope) -> str:
        if key.type == "string":
            return self._string(key, scope)
        if key.type == "number":
            return to_js_string(self._number(key, scope))
        if key.type == "computed_property_name":
            return to_js_string(self._passthrough(key, scope))
        return node_text(key)

    def _is_optional(self, node: Node) -> bool:
        return any(c.type in ("?.", "optional_chain") for c in node.children)

    def _member(self, node: Node, scope: Scope) -> Any:
        obj = self.evaluate(node.child_by_field_name("object"), scope)
        if obj is None and self._is_optional(node):
            return None
        return get_member(obj, node_text(node.child_by_field_name("property")))

    def _subscript(self, node: Node, scope: Scope) -> Any:
        obj = self.evaluate(node.child_by_field_name("object"), scope)
        if obj is None and self._is_optional(node):
            return None
        return get_member(obj, self.evaluate(node.child_by_field_name("index"), scope))

    def _call(self, node: Node, scope: Scope) -> Any:
        fn = self.evaluate(node.child_by_field_name("function"), scope)
        if fn is None and self._is_optional(node):
            return None
        arguments = node.child_by_field_name("arguments")
        if arguments is None or arguments.type != "arguments":
            raise self._unsupported(node)
        args: list[Any] = []
        for child in arguments.named_children:
            if child.type in SKIPPED_TYPES:
                continue
            if child.type == "spread_element":
                spread = self._passthrough(child, scope)
                if not isinstance(spread, list):
                    raise ScriptError("TypeError", f"{typeof(spread)} is not iterable")
                args.extend(spread)
            else:
                args.append(self.evaluate(child, scope))
        return self.call(fn, args, node)

    def _arrow(self, node: Node, scope: Scope) -> ArrowFunction:
        return ArrowFunction(node, scope, self)

    def _unary(self, node: Node, scope: Scope) -> Any:
        op = node.child_by_field_name("operator").type
        argument = node.child_by_field_name("argument")
        if op == "typeof":
            try:
                return typeof(self.evaluate(argument, scope))
            except ScriptError as err:
                if err.name == "ReferenceError" and argument.type == "identifier":
                    return "undefined"
                raise
        value = self.evaluate(argument, scope)
        if op == "!":
            return not truthy(value)
        if op == "-":
            return normalize_number(-to_number(value))
        if op == "+":
            return to_number(value)
        if op == "void":
            return None
        raise ScriptError("SyntaxError", f"Operator {op!r} is not supported")

    def _binary_expression(self, node: Node, scope: Scope) -> Any:
        op = node.child_by_field_name("operator").type
        left = self.evaluate(node.child_by_field_name("left"), scope)
        if op == "&&":
            return self.evaluate(node.child_by_field_name("right"), scope) if truthy(left) else left
        if op == "||":
            return left if truthy(left) else self.evaluate(node.child_by_field_name("right"), scope)
        if op == "??":
            return left if left is not None else self.evaluate(node.child_by_field_name("right"), scope)
        right = self.evaluate(node.child_by_field_name("right"), scope)
        return _binary(op, left, right)

    def _ternary(self, node: Node, scope: Scope) -> Any:
        if truthy(self.evaluate(node.child_by_field_name("condition"), scope)):
            return self.evaluate(node.child_by_field_name("consequence"), scope)
        return self.evaluate(node.child_by_field_name("alternative"), scope)

    def _assignment(self, node: Node, scope: Scope) -> Any:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if node.type == "augmented_assignment_expression":
            op = node.child_by_field_name("operator").type[:-1]
            current = self.evaluate(left, scope)
            if op in ("&&", "||", "??"):
                raise ScriptError("SyntaxError", f"Operator {op}= is not supported")
            value = _binary(op, current, self.evaluate(right, scope))
        else:
            value = self.evaluate(right, scope)
        self._store(left, value, scope)
        return value

    def _store(self, target: Node, value: Any, scope: Scope) -> None:
        if target.type == "identifier":
            scope.assign(node_text(target), value)
        elif target.type == "member_expression":
            obj = self.evaluate(target.child_by_field_name("object"), scope)
            set_member(obj, node_text(target.child_by_field_name("property")), value)
        elif target.type == "subscript_expression":
            obj = self.evaluate(target.child_by_field_name("object"), scope)
            set_member(obj, self.evaluate(target.child_by_field_name("index"), scope), value)
        else:
            raise ScriptError("SyntaxError", "Invalid assignment target")


_EXPRESSIONS: dict[str, Callable[[Interpreter, Node, Scope], Any]] = {
    "identifier": Interpreter._identifier,
    "undefined": Interpreter._literal,
    "null": Interpreter._literal,
    "true": Interpreter._literal,
    "false": Interpreter._literal,
    "number": Interpreter._number,
    "string": Interpreter._string,
    "template_string": Interpreter._template_string,
    "parenthesized_expression": Interpreter._passthrough,
    "as_expression": Interpreter._passthrough,
    "satisfies_expression": Interpreter._passthrough,
    "non_null_expression": Interpreter._passthrough,
    "sequence_expression": Interpreter._sequence,
    "array": Interpreter._array,
    "object": Interpreter._object,
    "member_expression": Interpreter._member,
    "subscript_expression": Interpreter._subscript,
    "call_expression": Interpreter._call,
    "arrow_function": Interpreter._arrow,
    "unary_expression": Interpreter._unary,
    "binary_expression": Interpreter._binary_expression,
    "ternary_expression": Interpreter._ternary,
    "assignment_expression": Interpreter._assignment,
    "augmented_assignment_expression": Interpreter._assignment,
}
