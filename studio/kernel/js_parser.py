"""
Compose Studio Kernel — Script Parser

Uses tree-sitter (TypeScript grammar, a superset of the JavaScript the DSL is
written in) to turn DSL and action source into syntax trees.
The evaluator walks tree-sitter nodes directly; there is no second AST.

Trees are cached per source string: parse once, evaluate many times.
"""

from __future__ import annotations

from functools import lru_cache

import tree_sitter_typescript as _ts_mod
from tree_sitter import Language, Node, Parser, Tree

from studio.kernel.types import ScriptError

_LANG = Language(_ts_mod.language_typescript())
_PARSER = Parser(_LANG)

# Node types that carry no behaviour
SKIPPED_TYPES = {"comment", "hash_bang_line"}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_program(code: str) -> Node:
    """
    Parse DSL source into a `program` node.
    Raises ScriptError(SyntaxError) pointing at the first bad token.
    """
    root = _parse_cached(code).root_node
    if root.has_error:
        raise _syntax_error(root)
    return root


def parse_expression(code: str) -> Node:
    """
    Parse a single expression (an action right-hand side).

    The text is wrapped in parentheses so object literals parse as expressions;
    anything that is not exactly one expression is a SyntaxError.
    """
    if not code.strip():
        raise ScriptError("SyntaxError", "Expected an expression")
    root = parse_program(f"({code}\n)")
    statements = [n for n in root.named_children if n.type not in SKIPPED_TYPES]
    if len(statements) != 1 or statements[0].type != "expression_statement":
        raise ScriptError("SyntaxError", f"Expected a single expression: {code!r}")
    wrapped = statements[0].named_children[0]
    if wrapped.type != "parenthesized_expression":
        raise ScriptError("SyntaxError", f"Expected a single expression: {code!r}")
    inner = [n for n in wrapped.named_children if n.type not in SKIPPED_TYPES]
    if len(inner) != 1:
        raise ScriptError("SyntaxError", f"Expected a single expression: {code!r}")
    return inner[0]


def node_text(node: Node) -> str:
    return node.text.decode("utf-8") if node.text is not None else ""


def position(node: Node) -> tuple[int, int]:
    """1-based (line, column) of a node's first character."""
    row, col = node.start_point
    return row + 1, col + 1


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


@lru_cache(maxsize=256)
def _parse_cached(code: str) -> Tree:
    return _PARSER.parse(code.encode("utf-8"))


def _first_error(node: Node) -> Node | None:
    """Depth-first search for the first ERROR or MISSING node."""
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def _syntax_error(root: Node) -> ScriptError:
    bad = _first_error(root) or root
    line, column = position(bad)
    if bad.is_missing:
        message = f"Missing {bad.type!r}"
    else:
        snippet = node_text(bad).strip().splitlines()
        token = snippet[0][:40] if snippet else ""
        message = f"Unexpected token {token!r}" if token else "Unexpected end of input"
    return ScriptError("SyntaxError", message, line, column)
