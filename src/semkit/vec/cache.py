"""Memoizing wrapper for embedding backends.

Re-indexing a corpus with replace=True, or calling find_similar() on texts
that are already indexed, embeds the same strings again. Wrapping the
backend in CachedEmbeddingModel sends each distinct text to the model once
per cache lifetime.

    engine = SemanticEngine(model=CachedEmbeddingModel(SentenceTransformerEmbedding()))
"""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict

from semkit.errors import EmbeddingFailedError
from semkit.vec.embeddings import EmbeddingModel

logger = logging.getLogger(__name__)


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class CachedEmbeddingModel:
    """EmbeddingModel with a bounded LRU of sha256(text) -> vector.

    All texts missing from the cache in one embed() call reach the wrapped
    model as a single batch, each distinct text once. Vectors are copied
    into and out of the cache.

    Not thread-safe.
    """

    def __init__(self, model: EmbeddingModel, max_size: int = 1000) -> None:
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.model = model
        self.max_size = max_size
        self._lru: OrderedDict[str, list[float]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @property
    def dimensions(self) -> int:
        return self.model.dimensions

    @property
    def model_name(self) -> str:
        return getattr(self.model, "model_name", type(self.model).__name__)

    def _remember(self, key: str, vector: list[float]) -> None:
        self._lru[key] = vector
        while len(self._lru) > self.max_size:
            self._lru.popitem(last=False)

    def embed(self, texts: list[str]) -> list[list[float]]:
        keys = [_digest(t) for t in texts]
        found: dict[str, list[float]] = {}
        to_fetch: list[str] = []

        for key, text in zip(keys, texts):
            if key in found:
                self.hits += 1
            elif key in self._lru:
                self._lru.move_to_end(key)
                found[key] = self._lru[key]
                self.hits += 1
            else:
                # placeholder so later duplicates in this call count as hits
                found[key] = []
                to_fetch.append(text)
                self.misses += 1

        if to_fetch:
            fetched = self.model.embed(to_fetch)
            if len(fetched) != len(to_fetch):
                raise EmbeddingFailedError(
                    "Embedding model returned wrong number of vectors",
                    {"expected": len(to_fetch), "got": len(fetched)},
                )
            for text, raw in zip(to_fetch, fetched):
                vector = [float(x) for x in raw]
                found[_digest(text)] = vector
                self._remember(_digest(text), vector)

        logger.debug(
            "embedding cache: %d texts, %d sent to model (lifetime hits=%d misses=%d)",
            len(texts), len(to_fetch), self.hits, self.misses,
        )
        return [list(found[key]) for key in keys]

    @property
    def cache_stats(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": len(self._lru),
            "max_size": self.max_size,
        }

    def clear(self) -> None:
        """Drop every cached vector and zero the counters."""
        self._lru.clear()
        self.hits = self.misses = 0
