"""Span helpers over the OpenTelemetry API.

@traced(name) runs the function inside a span called name. Spans nest through
the OTel context, so the embed call made by index.search shows up as its
child. The outermost traced call also owns an OverheadTimer: calls marked
external=True (model inference, HTTP) report their intervals to it, and the
root span is tagged with

    semkit.total_seconds      wall time of the root call
    semkit.overhead_seconds   the same minus the union of external intervals

With only opentelemetry-api installed the spans are no-ops and just the
timer runs.

Usage:
    @traced("index.search")
    def search(self, query: str) -> list[SearchResult]: ...

    @traced("embed.ollama", external=True)
    def embed(self, texts: list[str]) -> list[list[float]]: ...
"""

from __future__ import annotations

import contextvars
import functools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from opentelemetry import trace

F = TypeVar("F", bound=Callable[..., Any])

_current_timer: contextvars.ContextVar[OverheadTimer | None] = contextvars.ContextVar(
    "semkit_overhead_timer", default=None
)


@dataclass
class OverheadTimer:
    """Wall time since `started`, minus time spent in external calls."""

    started: float = field(default_factory=time.monotonic)
    external: list[tuple[float, float]] = field(default_factory=list)

    def record_external(self, start: float, end: float) -> None:
        self.external.append((start, end))

    def external_seconds(self) -> float:
        """Length of the union of external intervals (overlaps count once)."""
        covered = 0.0
        reach = float("-inf")
        for start, end in sorted(self.external):
            if end <= reach:
                continue
            covered += end - max(start, reach)
            reach = end
        return covered

    def overhead_seconds(self) -> float:
        return max(time.monotonic() - self.started - self.external_seconds(), 0.0)


def traced(name: str, *, external: bool = False) -> Callable[[F], F]:
    """Wrap a function in a span.

    external=True records the call's duration on the enclosing root timer,
    for work that waits on something outside semkit.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            parent = _current_timer.get()
            root = OverheadTimer() if parent is None else None
            token = _current_timer.set(root) if root is not None else None
            started = time.monotonic()
            try:
                with trace.get_tracer("semkit").start_as_current_span(
                    name, record_exception=False
                ) as span:
                    try:
                        return fn(*args, **kwargs)
                    except Exception as exc:
                        span.set_attributes({"error": True, "error.type": type(exc).__name__})
                        span.record_exception(exc)
                        raise
                    finally:
                        if root is not None:
                            span.set_attributes(
                                {
                                    "semkit.total_seconds": time.monotonic() - root.started,
                                    "semkit.overhead_seconds": root.overhead_seconds(),
                                }
                            )
            finally:
                if external and parent is not None:
                    parent.record_external(started, time.monotonic())
                if token is not None:
                    _current_timer.reset(token)

        return wrapper  # type: ignore[return-value]

    return decorator


def get_overhead_timer() -> OverheadTimer | None:
    """Timer of the enclosing root span, or None outside any traced call."""
    return _current_timer.get()


def set_span_attributes(**attributes: Any) -> None:
    """Tag the current span. No-op when there is no recording span."""
    span = trace.get_current_span()
    for key, value in attributes.items():
        span.set_attribute(key, value)
