"""Process-wide event bus.

Library code calls emit(event) and nothing else. Until configure() runs
there is no emitter and emit() returns immediately, so importing semkit
never sets up logging or subscribers on its own.
"""

from __future__ import annotations

from typing import Any

from pyventus.core.processing.asyncio import AsyncIOProcessingService
from pyventus.events import EventEmitter

from semkit.observability.config import ObservabilityConfig
from semkit.observability.linker import SemkitEventLinker
from semkit.observability.logging import setup_logging, shutdown_logging
from semkit.observability.subscribers.structlog_sub import register_structlog_subscriber

_emitter: EventEmitter | None = None


def emit(event: Any) -> None:
    """Publish an event to SemkitEventLinker subscribers, if configured."""
    if _emitter is None:
        return
    _emitter.emit(event)


def configure(config: ObservabilityConfig | None = None) -> EventEmitter:
    """Install logging, link the log subscriber and create the emitter.

    Only the first call does anything; later calls return the same emitter
    and ignore their config until reset().
    """
    global _emitter

    if _emitter is None:
        setup_logging(config or ObservabilityConfig())
        register_structlog_subscriber()
        _emitter = EventEmitter(
            event_linker=SemkitEventLinker,
            event_processor=AsyncIOProcessingService(),
        )
    return _emitter


def is_configured() -> bool:
    return _emitter is not None


def reset() -> None:
    """Drop the emitter and detach the log handler (tests call this)."""
    global _emitter

    shutdown_logging()
    _emitter = None
