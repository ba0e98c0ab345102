"""
Compose Studio Kernel — Action Interpreter

execute_action(action_text, state) → ActionResult

The action mini-language is a `;`-separated list of assignments:

    counter = (counter || 0) + 1; user.name = "Jane"

Each right-hand side is evaluated with the state document's top-level keys
bound as bare names (plus `state` itself). Statements run in order against
one in-progress deep copy, so earlier assignments are visible to later ones.
Assigning a bare name inside a right-hand side (`x = (counter = 5)`) only
rebinds that statement's scope; the state document keeps its old value.

Best-effort batch, not a transaction: a failing statement is recorded as an
ActionError and the rest still run. The input state is never modified.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from studio.kernel.interpreter import (
    DEFAULT_MAX_DEPTH,
    Interpreter,
    Scope,
    plain_data,
    safe_globals,
    truthy,
)
from studio.kernel.js_parser import parse_expression
from studio.kernel.types import ActionError, ActionResult, ScriptError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def split_statements(action_text: str) -> list[str]:
    """Trimmed, non-empty statements."""
    return [s.strip() for s in str(action_text).split(";") if s.strip()]


def execute_action(
    action_text: str,
    state: dict[str, Any],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> ActionResult:
    """
    Apply an action string to a state document.

    Statements without `=` are skipped silently. Statements with an empty side,
    a failing expression, or a malformed path are skipped and reported.
    When nothing applied, the returned state is the caller's object.
    """
    doc = copy.deepcopy(state)
    errors: list[ActionError] = []
    changed = False

    for statement in split_statements(action_text):
        left, sep, right = statement.partition("=")
        if not sep:
            continue
        left, right = left.strip(), right.strip()
        try:
            if not left:
                raise ActionError(statement, "Missing assignment target")
            if not right:
                raise ActionError(statement, f"Missing value for {left!r}")
            value = _evaluate(right, doc, max_depth)
            assign_path(doc, left, value)
        except ScriptError as err:
            errors.append(_report(statement, f"{err.name}: {err.message}"))
            continue
        except ActionError as err:
            errors.append(_report(statement, err.message))
            continue
        except RecursionError:
            errors.append(_report(statement, "RangeError: Maximum call stack size exceeded"))
            continue
        except Exception as exc:
            logger.exception("Unexpected failure applying action statement %r", statement)
            errors.append(ActionError(statement, f"{type(exc).__name__}: {exc}"))
            continue
        changed = True

    if not changed:
        return ActionResult(state=state, changed=False, errors=errors)
    return ActionResult(state=doc, changed=True, errors=errors)


def assign_path(doc: dict[str, Any], path: str, value: Any) -> None:
    """
    Assign `value` at a dot-separated path, creating empty mappings for
    missing (or falsy) intermediate segments.
    """
    parts = [p.strip() for p in path.split(".")]
    if not all(parts):
        raise ActionError(path, f"Malformed path: {path!r}")

    target = doc
    for part in parts[:-1]:
        current = target.get(part)
        if not truthy(current):
            current = {}
            target[part] = current
        elif not isinstance(current, dict):
            raise ActionError(path, f"Cannot assign into {part!r}: not an object")
        target = current
    target[parts[-1]] = value


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _evaluate(expression: str, doc: dict[str, Any], max_depth: int) -> Any:
    bindings = safe_globals()
    if "state" not in doc:
        bindings["state"] = doc
    bindings.update(doc)
    value = Interpreter(max_depth=max_depth).evaluate(parse_expression(expression), Scope(bindings))
    return plain_data(value)


def _report(statement: str, message: str) -> ActionError:
    logger.warning("Action statement failed: %r (%s)", statement, message)
    return ActionError(statement, message)
