"""
Compose Studio Kernel — Preview Pipeline

Chooses between two rendering strategies, selected explicitly by the operator:

  builtin   — evaluate DSL source in the sandbox, materialize the node tree
  external  — hand the serialized state document to an operator-loaded
              renderer (`render_into(serialized_state, target_id)`); the DSL
              source is not evaluated at all

There is no automatic fallback. A missing, malformed, failing or hung external
renderer is reported as RendererUnavailableError and the built-in adapter is
never substituted.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import json
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from studio.kernel.host import HostContainer, render_error, render_node
from studio.kernel.interpreter import DEFAULT_MAX_DEPTH
from studio.kernel.sandbox import evaluate
from studio.kernel.types import EvalResult, RendererUnavailableError, RenderOutcome

logger = logging.getLogger(__name__)

DEFAULT_RENDER_TIMEOUT = 10.0


class RenderMode(str, Enum):
    BUILTIN = "builtin"
    EXTERNAL = "external"


class ExternalRenderer(Protocol):
    """Capability supplied by an operator-loaded module."""

    async def render_into(self, serialized_state: str, target_id: str) -> Any: ...


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def check_renderer(candidate: Any) -> ExternalRenderer:
    """Shape check. A mismatch is a configuration error, not a crash."""
    if candidate is None:
        raise RendererUnavailableError("No external renderer is loaded")
    if not callable(getattr(candidate, "render_into", None)):
        raise RendererUnavailableError(
            f"{type(candidate).__name__} does not expose render_into(serialized_state, target_id)"
        )
    return candidate


def load_external_renderer(reference: str) -> ExternalRenderer:
    """
    Import an external renderer from "package.module:attribute".

    The attribute may be the renderer itself or a zero-argument factory.
    """
    module_name, _, attr = reference.partition(":")
    if not module_name or not attr:
        raise RendererUnavailableError(f"Renderer reference must look like 'module:attribute', got {reference!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise RendererUnavailableError(f"Cannot import renderer module {module_name!r}: {exc}") from exc

    target = getattr(module, attr, None)
    if target is None:
        raise RendererUnavailableError(f"Module {module_name!r} has no attribute {attr!r}")
    if inspect.isclass(target) or (callable(target) and not hasattr(target, "render_into")):
        try:
            target = target()
        except Exception as exc:
            raise RendererUnavailableError(f"Renderer factory {reference!r} failed: {exc}") from exc
    renderer = check_renderer(target)
    logger.info("Loaded external renderer %s", reference)
    return renderer


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Preview:
    """
    Owns the render target and the active rendering strategy.
    Every render replaces the container's content; nothing is appended.
    """

    def __init__(
        self,
        container: HostContainer | None = None,
        *,
        timeout: float = DEFAULT_RENDER_TIMEOUT,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.container = container or HostContainer()
        self.timeout = timeout
        self.max_depth = max_depth
        self.mode = RenderMode.BUILTIN
        self.external: ExternalRenderer | None = None
        self.last_result: EvalResult | None = None

    # -- mode switching --

    def use_builtin(self) -> None:
        self.mode = RenderMode.BUILTIN

    def use_external(self, renderer: Any = None) -> None:
        """
        Switch to the external renderer, optionally installing a new one.
        Raises RendererUnavailableError (mode unchanged) when none is usable.
        """
        if renderer is not None:
            self.external = check_renderer(renderer)
        else:
            check_renderer(self.external)
        self.mode = RenderMode.EXTERNAL

    # -- rendering --

    async def render(
        self,
        source: str,
        state: dict[str, Any],
        dispatch: Callable[[str], Any] | None = None,
    ) -> RenderOutcome:
        if self.mode is RenderMode.EXTERNAL:
            return await self._render_external(state)
        return self.render_builtin(source, state, dispatch)

    def render_builtin(
        self,
        source: str,
        state: dict[str, Any],
        dispatch: Callable[[str], Any] | None = None,
    ) -> RenderOutcome:
        result = evaluate(source, state, dispatch, max_depth=self.max_depth)
        self.last_result = result
        if not result.ok:
            # A failed render replaces the previous output with the error box
            render_error(result.error, self.container)
            return RenderOutcome(ok=False, mode=RenderMode.BUILTIN.value, logs=result.logs, error=result.error)
        render_node(result.node, self.container)
        return RenderOutcome(ok=True, mode=RenderMode.BUILTIN.value, logs=result.logs)

    async def _render_external(self, state: dict[str, Any]) -> RenderOutcome:
        mode = RenderMode.EXTERNAL.value
        logs = ["External renderer: rendering..."]
        renderer = self.external
        if renderer is None:
            error = RendererUnavailableError("No external renderer is loaded")
            logs.append(f"External renderer error: {error.message}")
            return RenderOutcome(ok=False, mode=mode, logs=logs, error=error)

        self.container.clear()
        try:
            pending = renderer.render_into(json.dumps(state), self.container.id)
            if inspect.isawaitable(pending):
                await asyncio.wait_for(pending, timeout=self.timeout)
        except asyncio.TimeoutError:
            error = RendererUnavailableError(f"External renderer timed out after {self.timeout}s")
        except Exception as exc:
            logger.warning("External renderer failed: %s", exc)
            error = RendererUnavailableError(f"External renderer failed: {exc}")
        else:
            logs.append("External renderer: render complete.")
            return RenderOutcome(ok=True, mode=mode, logs=logs)

        logs.append(f"External renderer error: {error.message}")
        return RenderOutcome(ok=False, mode=mode, logs=logs, error=error)
