"""Routes all events to structured log lines via the configured LogFormatter.

Always-on subscriber. Called by emitter.configure() on every startup.
Uses get_logger() from the logging module, so it works with structlog,
stdlib, or any registered LogFormatter.
"""

from __future__ import annotations

from dataclasses import asdict

from semkit.observability.events import (
    EmbeddingBatchCompleted,
    EmbeddingFailed,
    ModelLoaded,
    VecIndexCleared,
    VecIndexUpdated,
    VecSearchResults,
)
from semkit.observability.linker import SemkitEventLinker
from semkit.observability.logging import get_logger

_registered = False


def _get_logger():
    """Lazy logger: always reflects the active formatter."""
    return get_logger("semkit.events")


def _to_dict(event: object) -> dict:
    return asdict(event)  # type: ignore[arg-type]


def register_structlog_subscriber() -> None:
    """Register log handlers for all events on SemkitEventLinker.

    Handlers are linked once per process; later calls are no-ops.
    """
    global _registered
    if _registered:
        return

    @SemkitEventLinker.on(ModelLoaded)
    def _log_model_loaded(event: ModelLoaded) -> None:
        _get_logger().info("model.loaded", **_to_dict(event))

    @SemkitEventLinker.on(EmbeddingBatchCompleted)
    def _log_batch_completed(event: EmbeddingBatchCompleted) -> None:
        _get_logger().debug("embedding.batch_completed", **_to_dict(event))

    @SemkitEventLinker.on(EmbeddingFailed)
    def _log_embedding_failed(event: EmbeddingFailed) -> None:
        _get_logger().error("embedding.failed", **_to_dict(event))

    @SemkitEventLinker.on(VecIndexUpdated)
    def _log_index_updated(event: VecIndexUpdated) -> None:
        _get_logger().info("vec.index_updated", **_to_dict(event))

    @SemkitEventLinker.on(VecIndexCleared)
    def _log_index_cleared(event: VecIndexCleared) -> None:
        _get_logger().info("vec.index_cleared", **_to_dict(event))

    @SemkitEventLinker.on(VecSearchResults)
    def _log_search_results(event: VecSearchResults) -> None:
        _get_logger().debug("vec.search_results", **_to_dict(event))

    _registered = True
