"""semkit observability: structured logging, tracing, and typed events.

Public API:
    emit(event)     Fire-and-forget event emission (no-op if not configured)
    configure(cfg)  Initialize logging + emitter + subscribers (call once at startup)
    reset()         Reset for testing

Modules import `emit` and fire typed events. They don't know about
logs or sinks. Subscribers handle routing.
"""

from semkit.observability.config import ObservabilityConfig
from semkit.observability.emitter import configure, emit, is_configured, reset
from semkit.observability.events import (
    EmbeddingBatchCompleted,
    EmbeddingFailed,
    ModelLoaded,
    VecIndexCleared,
    VecIndexUpdated,
    VecSearchResults,
)
from semkit.observability.logging import (
    LogDestination,
    LogFormatter,
    get_logger,
    register_destination,
    register_formatter,
)
from semkit.observability.tracing import OverheadTimer, traced

__all__ = [
    # Core API
    "emit",
    "configure",
    "is_configured",
    "reset",
    "ObservabilityConfig",
    # Logging (swappable)
    "get_logger",
    "LogFormatter",
    "LogDestination",
    "register_formatter",
    "register_destination",
    # Embedding model
    "ModelLoaded",
    "EmbeddingBatchCompleted",
    "EmbeddingFailed",
    # Vector index
    "VecIndexUpdated",
    "VecIndexCleared",
    "VecSearchResults",
    # Tracing
    "traced",
    "OverheadTimer",
]
