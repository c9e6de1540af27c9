"""Core data records shared by the engine and the similarity index.

These models define the contract between components:
- The engine produces EmbeddingResult / SimilarityResult
- The index stores IndexedItem and returns SearchResult
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

T = TypeVar("T")

Embedding = list[float]


# =============================================================================
# Engine outputs
# =============================================================================


@dataclass(frozen=True)
class ModelLoadProgress:
    """Progress report passed to ModelConfig.on_progress during initialize()."""
    status: Literal["downloading", "loading", "ready"]
    progress: float  # 0..100
    file: str | None = None


@dataclass
class EmbeddingResult:
    """A single embedded text."""
    embedding: Embedding
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)  # dimensions, model_name, processing_time_ms

    @property
    def dimensions(self) -> int:
        return len(self.embedding)


@dataclass(frozen=True)
class SimilarityResult:
    """Similarity score between two texts."""
    score: float
    texts: tuple[str, str]
    method: Literal["cosine", "euclidean", "dot"]
    processing_time_ms: float


# =============================================================================
# Index records
# =============================================================================


@dataclass
class IndexedItem(Generic[T]):
    """An item, its embedding, and the metadata extracted at index time."""
    item: T
    embedding: Embedding
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "item": copy.deepcopy(self.item),
            "embedding": list(self.embedding),
            "metadata": copy.deepcopy(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IndexedItem[Any]:
        return cls(
            item=copy.deepcopy(data["item"]),
            embedding=[float(x) for x in data["embedding"]],
            metadata=copy.deepcopy(data.get("metadata") or {}),
        )


@dataclass(frozen=True)
class SearchResult(Generic[T]):
    """One ranked hit. rank starts at 1 and is contiguous after filtering."""
    item: T
    score: float
    rank: int


@dataclass(frozen=True)
class IndexStats:
    item_count: int
    dimensions: int
    memory_estimate: str  # e.g. "12.00 KB", "1.46 MB"
