"""Typed event dataclasses for semkit observability.

All events are frozen (immutable) dataclasses. Modules emit these;
they don't know about logs or sinks. Subscribers handle routing.
"""

from __future__ import annotations

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Embedding model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelLoaded:
    model_name: str
    backend: str
    dimensions: int
    latency_ms: float


@dataclass(frozen=True)
class EmbeddingBatchCompleted:
    model_name: str
    batch_count: int
    text_count: int
    latency_ms: float


@dataclass(frozen=True)
class EmbeddingFailed:
    model_name: str
    error: str
    text_preview: str  # first 100 chars of the offending input


# ---------------------------------------------------------------------------
# Similarity index
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VecIndexUpdated:
    count_added: int
    total_size: int
    replaced: bool
    latency_ms: float


@dataclass(frozen=True)
class VecIndexCleared:
    removed: int


@dataclass(frozen=True)
class VecSearchResults:
    candidates: int
    result_count: int
    top_k: int
    threshold: float
    top_score: float
    score_spread: float
    filtered: bool
    latency_ms: float


ALL_EVENTS = (
    ModelLoaded,
    EmbeddingBatchCompleted,
    EmbeddingFailed,
    VecIndexUpdated,
    VecIndexCleared,
    VecSearchResults,
)
