"""semkit: text embeddings and exact similarity search.

Usage:
    from semkit import create_search

    search = create_search(["apple pie", "beef stew", "fruit salad"])
    for hit in search.search("dessert", {"top_k": 2}):
        print(hit.rank, hit.item, round(hit.score, 3))

Lower level:
    engine = SemanticEngine()
    engine.initialize()
    index = SimilarityIndex(engine, SearchConfig(top_k=5))
    index.index(documents)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from semkit.engine import EmbeddingProvider, ModelConfig, SemanticEngine
from semkit.errors import (
    ComputationFailedError,
    DimensionMismatchError,
    EmbeddingFailedError,
    ErrorCode,
    InvalidInputError,
    ModelNotLoadedError,
    SemanticError,
)
from semkit.models import (
    Embedding,
    EmbeddingResult,
    IndexedItem,
    IndexStats,
    ModelLoadProgress,
    SearchResult,
    SimilarityResult,
)
from semkit.vec.index import SearchConfig, SimilarityIndex
from semkit.vec.vector import (
    centroid,
    cosine_similarity,
    dot_product,
    euclidean_distance,
    magnitude,
    normalize,
    top_k_similar,
)

T = TypeVar("T")


def create_engine(config: ModelConfig | None = None) -> SemanticEngine:
    """Build and initialize a SemanticEngine."""
    engine = SemanticEngine(config)
    engine.initialize()
    return engine


def create_search(
    items: Sequence[T],
    config: SearchConfig[T] | None = None,
    *,
    engine: SemanticEngine | None = None,
) -> SimilarityIndex[T]:
    """Build an index over items with a ready engine (a default one if not given)."""
    provider = engine or create_engine()
    if not provider.is_ready():
        provider.initialize()
    index: SimilarityIndex[T] = SimilarityIndex(provider, config)
    index.index(items)
    return index


__all__ = [
    # Entry points
    "create_engine",
    "create_search",
    # Engine
    "SemanticEngine",
    "ModelConfig",
    "EmbeddingProvider",
    # Index
    "SimilarityIndex",
    "SearchConfig",
    # Models
    "Embedding",
    "EmbeddingResult",
    "IndexedItem",
    "IndexStats",
    "ModelLoadProgress",
    "SearchResult",
    "SimilarityResult",
    # Errors
    "ErrorCode",
    "SemanticError",
    "ModelNotLoadedError",
    "InvalidInputError",
    "EmbeddingFailedError",
    "ComputationFailedError",
    "DimensionMismatchError",
    # Vector math
    "centroid",
    "cosine_similarity",
    "dot_product",
    "euclidean_distance",
    "magnitude",
    "normalize",
    "top_k_similar",
]
