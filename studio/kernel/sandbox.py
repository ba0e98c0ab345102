"""
Compose Studio Kernel — DSL Sandbox

evaluate(source, state, dispatch, log) → EvalResult

Runs DSL source against a fresh builder API bound to one state document,
one action dispatcher and one logger. The source sees only:

  Column, Row, Text, Button, Image, LazyColumn   — builder primitives
  render                                         — root entry point
  state, execute, log                            — runtime bindings
  Math, JSON, String, Number, Boolean, ...       — safe globals

Nothing survives between calls: every evaluation builds its own BuilderApi
and its own deep copy of the state document.

Failure policy:
  - a list item that fails becomes an inline placeholder node (the tree survives)
  - any other failure aborts the evaluation with an EvalError
  - button handlers run only on interaction; their errors are logged, never raised
"""

from __future__ import annotations

import copy
import logging
import traceback
from collections.abc import Callable
from typing import Any

from studio.kernel.interpreter import (
    DEFAULT_MAX_DEPTH,
    Interpreter,
    Scope,
    safe_globals,
    to_js_string,
    truthy,
)
from studio.kernel.js_parser import parse_program
from studio.kernel.types import EvalError, EvalResult, ItemRenderError, ScriptError, VNode

logger = logging.getLogger(__name__)

COLUMN_STYLE = {"display": "flex", "flexDirection": "column", "gap": "8px"}
ROW_STYLE = {"display": "flex", "flexDirection": "row", "gap": "8px", "alignItems": "center"}
TEXT_STYLE = {"fontSize": "14px", "color": "#e6f6ff"}
LIST_STYLE = {"display": "flex", "flexDirection": "column", "gap": "6px"}
BUTTON_CLASS = "bg-sky-700 text-white border-none px-3 py-1.5 rounded-lg transition-opacity hover:opacity-90 active:opacity-80"
ERROR_ITEM_CLASS = "text-red-500"

NO_ROOT_MESSAGE = "Render function did not return a valid element."


# ---------------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------------


class BuilderApi:
    """
    The capability set injected into one evaluation.

    `evaluating` is True while the source runs; handlers created during the
    evaluation only become live once it flips to False.
    """

    def __init__(
        self,
        dispatch: Callable[[str], Any] | None,
        log: Callable[[str], None],
    ) -> None:
        self._dispatch = dispatch
        self._log = log
        self.root: Any = None
        self.render_calls = 0
        self.evaluating = True
        self.item_errors: list[ItemRenderError] = []

    def bindings(self, state: dict[str, Any]) -> dict[str, Any]:
        return {
            **safe_globals(),
            "Column": self.column,
            "Row": self.row,
            "Text": self.text,
            "Button": self.button,
            "Image": self.image,
            "LazyColumn": self.lazy_column,
            "render": self.render,
            "state": state,
            "execute": self.execute,
            "log": self.log,
        }

    # -- runtime bindings --

    def render(self, fn: Any = None) -> None:
        # Last call wins. Multiple roots are not supported.
        self.render_calls += 1
        if self.render_calls > 1:
            logger.debug("render() called %d times; keeping the latest root", self.render_calls)
        self.root = fn() if callable(fn) else None

    def execute(self, action: Any = None) -> None:
        if self.evaluating:
            raise ScriptError("Error", "execute() can only run from an interaction handler")
        if self._dispatch is None:
            self._log("No action dispatcher is bound; ignoring execute()")
            return
        self._dispatch(to_js_string(action))

    def log(self, message: Any = None) -> None:
        self._log(to_js_string(message))

    # -- containers --

    def column(self, build: Any = None) -> VNode:
        return VNode("div", {"style": dict(COLUMN_STYLE)}, self._collect(build))

    def row(self, build: Any = None) -> VNode:
        return VNode("div", {"style": dict(ROW_STYLE)}, self._collect(build))

    def _collect(self, build: Any) -> list[VNode | str]:
        """
        Run the builder callback with an appender. The callback must finish
        before the container reads the collected children.
        """
        children: list[VNode | str] = []

        def add(child: Any = None) -> None:
            _append_child(children, child)

        if build is not None:
            if not callable(build):
                raise ScriptError("TypeError", "Container builder is not a function")
            build(add)
        return children

    # -- leaves --

    def text(self, producer: Any = None) -> VNode:
        if callable(producer):
            value = to_js_string(producer())
        else:
            value = to_js_string(producer) if truthy(producer) else ""
        return VNode("div", {"style": dict(TEXT_STYLE)}, [value])

    def button(self, action: Any = None, label: Any = None) -> VNode:
        def handler(*_event: Any) -> None:
            try:
                if isinstance(action, str):
                    self.execute(action)
                elif callable(action):
                    action()
            except Exception as exc:
                message = exc.message if isinstance(exc, ScriptError) else str(exc)
                logger.warning("Button handler failed: %s", message)
                self._log(f"Action error: {message}")

        if callable(label):
            text = to_js_string(label())
        else:
            text = to_js_string(label) if truthy(label) else "Button"
        return VNode("button", {"className": BUTTON_CLASS, "onClick": handler}, [text])

    def image(self, src: Any = None, opts: Any = None) -> VNode:
        width = opts.get("width") if isinstance(opts, dict) else None
        style = {"maxWidth": width if truthy(width) else 120, "borderRadius": "8px"}
        return VNode("img", {"src": src, "style": style}, [])

    def lazy_column(self, items: Any = None, render_item: Any = None) -> VNode:
        if items is None or items is False:
            items = []
        if not isinstance(items, list):
            raise ScriptError("TypeError", "LazyColumn items must be a list")
        children: list[VNode | str] = []
        for index, item in enumerate(items):
            try:
                if not callable(render_item):
                    raise ScriptError("TypeError", "renderItem is not a function")
                node = render_item(item, index)
            except Exception as exc:
                message = exc.message if isinstance(exc, ScriptError) else str(exc)
                self.item_errors.append(ItemRenderError(index, message))
                logger.warning("LazyColumn item %d failed: %s", index, message)
                self._log(f"LazyColumn item render error: {message}")
                node = VNode("div", {"className": ERROR_ITEM_CLASS}, [f"Error rendering item {index}"])
            _append_child(children, node)
        return VNode("div", {"style": dict(LIST_STYLE)}, children)


def _append_child(children: list[VNode | str], child: Any) -> None:
    """Nodes stay nodes; other values become literal text; undefined is dropped."""
    if child is None:
        return
    if isinstance(child, VNode):
        children.append(child)
    else:
        children.append(to_js_string(child))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def evaluate(
    source: str,
    state: dict[str, Any],
    dispatch: Callable[[str], Any] | None = None,
    log: Callable[[str], None] | None = None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> EvalResult:
    """
    Evaluate DSL source into a node tree.

    Never raises for script problems: syntax errors, runtime errors and a
    missing render root all come back as EvalResult.error.
    The caller's state document is never touched.
    """
    logs: list[str] = []

    def _log(message: str) -> None:
        logs.append(message)
        logger.debug("dsl: %s", message)
        if log is not None:
            log(message)

    api = BuilderApi(dispatch, _log)
    try:
        program = parse_program(source)
        scope = Scope(api.bindings(copy.deepcopy(state)))
        Interpreter(max_depth=max_depth).run_program(program, scope)
    except ScriptError as err:
        _log(f"DSL Execution Error: {err.message}")
        error = EvalError(f"{err.name}: {err.message}", trace=err.stack, line=err.line, column=err.column)
        return EvalResult(node=None, error=error, logs=logs)
    except RecursionError:
        _log("DSL Execution Error: Maximum call stack size exceeded")
        return EvalResult(
            node=None,
            error=EvalError("RangeError: Maximum call stack size exceeded"),
            logs=logs,
        )
    except Exception as exc:
        logger.exception("Unexpected failure evaluating DSL source")
        _log(f"DSL Execution Error: {exc}")
        return EvalResult(node=None, error=EvalError(str(exc), trace=traceback.format_exc()), logs=logs)
    finally:
        api.evaluating = False

    if not isinstance(api.root, VNode):
        _log(NO_ROOT_MESSAGE)
        return EvalResult(node=None, error=EvalError(NO_ROOT_MESSAGE), logs=logs)

    return EvalResult(node=api.root, logs=logs, item_errors=api.item_errors)
