"""Exact top-k similarity index over embedded items.

SimilarityIndex keeps an ordered list of (item, embedding, metadata)
records and answers cosine-similarity queries by brute-force scan.
Append order is the tie-break order for equal scores.

Good for:
- Small to medium corpora (linear scan per query)
- Ephemeral, in-memory search (snapshot via export_index/import_index)

Not suitable for:
- Approximate nearest-neighbour workloads (no HNSW/IVF)
- Persistence (the snapshot is in-memory only)
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import math
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Callable, Generic, TypeVar

from semkit.config import get_config
from semkit.engine import EmbeddingProvider
from semkit.errors import EmbeddingFailedError, InvalidInputError
from semkit.models import IndexedItem, IndexStats, SearchResult
from semkit.observability.emitter import emit
from semkit.observability.events import (
    VecIndexCleared,
    VecIndexUpdated,
    VecSearchResults,
)
from semkit.observability.tracing import set_span_attributes, traced
from semkit.vec.vector import is_positive_int, top_k_similar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BYTES_PER_COMPONENT = 8
_MB = 1024 * 1024


def _no_metadata(item: Any) -> dict[str, Any]:
    return {}


@dataclass
class SearchConfig(Generic[T]):
    """Default search settings for a SimilarityIndex.

    text_extractor and metadata_extractor are plain callables:
        SearchConfig(text_extractor=lambda doc: doc["title"],
                     metadata_extractor=lambda doc: {"lang": doc["lang"]})
    """

    top_k: int = field(default_factory=lambda: get_config().top_k)
    threshold: float = field(default_factory=lambda: get_config().threshold)
    text_extractor: Callable[[T], str] = str
    metadata_extractor: Callable[[T], Mapping[str, Any]] = _no_metadata


_CONFIG_FIELDS = frozenset(f.name for f in fields(SearchConfig))


def _check_search_config(cfg: SearchConfig) -> None:
    if not is_positive_int(cfg.top_k):
        raise InvalidInputError("top_k must be positive", {"top_k": cfg.top_k})
    threshold = cfg.threshold
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or math.isnan(threshold):
        raise InvalidInputError("threshold must be a number", {"threshold": threshold})


class SimilarityIndex(Generic[T]):
    """In-memory exact cosine-similarity index.

    Thread-safety: the item list is replaced, never mutated in place, and
    every swap happens under a lock. Readers work on the list they grabbed,
    so a search running alongside index()/clear() sees either the old or
    the new contents, never a mix. Embedding calls happen outside the lock.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        config: SearchConfig[T] | None = None,
        *,
        batch_size: int | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or SearchConfig()
        self._batch_size = get_config().batch_size if batch_size is None else batch_size
        self._items: list[IndexedItem[T]] = []
        self._lock = threading.Lock()

        if not is_positive_int(self._batch_size):
            raise InvalidInputError("batch_size must be positive", {"batch_size": self._batch_size})
        _check_search_config(self._config)

    @property
    def config(self) -> SearchConfig[T]:
        return dataclasses.replace(self._config)

    def __len__(self) -> int:
        return len(self._items)

    def _snapshot(self) -> list[IndexedItem[T]]:
        with self._lock:
            return self._items

    def _effective_config(
        self, override: Mapping[str, Any] | SearchConfig[T] | None
    ) -> SearchConfig[T]:
        """Stored config with the given fields replaced (override wins per field).

        A SearchConfig override gives every field, so it replaces all of them.
        """
        if override is None:
            return self._config
        if isinstance(override, SearchConfig):
            override = {f.name: getattr(override, f.name) for f in fields(override)}
        elif not isinstance(override, Mapping):
            raise InvalidInputError(
                "Config override must be a mapping or SearchConfig",
                {"type": type(override).__name__},
            )
        unknown = set(override) - _CONFIG_FIELDS
        if unknown:
            raise InvalidInputError(
                f"Unknown search config fields: {sorted(unknown)}",
                {"unknown": sorted(unknown), "available": sorted(_CONFIG_FIELDS)},
            )
        return dataclasses.replace(self._config, **{k: v for k, v in override.items() if v is not None})

    # -- indexing -----------------------------------------------------------

    @traced("index.index")
    def index(self, items: Sequence[T], replace: bool = False) -> None:
        """Embed items and append them (or swap them in when replace=True).

        All-or-nothing: if text extraction, embedding, or metadata extraction
        fails, the index is left exactly as it was.
        """
        if (
            not isinstance(items, Sequence)
            or isinstance(items, (str, bytes))
            or len(items) == 0
        ):
            raise InvalidInputError(
                "Items must be a non-empty sequence",
                {"type": type(items).__name__},
            )

        t0 = time.perf_counter()
        cfg = self._config
        texts = [cfg.text_extractor(item) for item in items]
        results = self._provider.embed_batch(texts, batch_size=self._batch_size)
        if len(results) != len(items):
            raise EmbeddingFailedError(
                "Embedding provider returned wrong number of results",
                {"expected": len(items), "got": len(results)},
            )

        new_items = [
            IndexedItem(
                item=item,
                embedding=[float(x) for x in result.embedding],
                metadata=copy.deepcopy(dict(cfg.metadata_extractor(item))),
            )
            for item, result in zip(items, results)
        ]

        with self._lock:
            existing = [] if replace else self._items
            if existing and len(existing[0].embedding) != len(new_items[0].embedding):
                logger.warning(
                    "Indexing %d-dim embeddings into a %d-dim index; mismatched items will never match",
                    len(new_items[0].embedding), len(existing[0].embedding),
                )
            self._items = existing + new_items
            total = len(self._items)

        set_span_attributes(**{"vec.count_added": len(new_items), "vec.total_size": total})
        emit(
            VecIndexUpdated(
                count_added=len(new_items),
                total_size=total,
                replaced=replace,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
        )

    # -- search -------------------------------------------------------------

    def _search(
        self,
        query: str,
        items: list[IndexedItem[T]],
        override: Mapping[str, Any] | SearchConfig[T] | None,
        *,
        filtered: bool,
    ) -> list[SearchResult[T]]:
        if not items:
            raise InvalidInputError("Index is empty. Call index() before searching.")

        cfg = self._effective_config(override)
        _check_search_config(cfg)

        t0 = time.perf_counter()
        query_embedding = self._provider.embed(query).embedding
        ranked = top_k_similar(query_embedding, [it.embedding for it in items], cfg.top_k)

        results: list[SearchResult[T]] = []
        for idx, score in ranked:
            # -inf marks a candidate that could not be scored
            if math.isinf(score) or score < cfg.threshold:
                continue
            results.append(SearchResult(item=items[idx].item, score=score, rank=len(results) + 1))

        top_score = results[0].score if results else 0.0
        bottom_score = results[-1].score if results else 0.0
        set_span_attributes(
            **{
                "vec.top_k": cfg.top_k,
                "vec.threshold": cfg.threshold,
                "vec.result_count": len(results),
            }
        )
        emit(
            VecSearchResults(
                candidates=len(items),
                result_count=len(results),
                top_k=cfg.top_k,
                threshold=cfg.threshold,
                top_score=top_score,
                score_spread=top_score - bottom_score,
                filtered=filtered,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
        )
        return results

    @traced("index.search")
    def search(
        self,
        query: str,
        override: Mapping[str, Any] | SearchConfig[T] | None = None,
    ) -> list[SearchResult[T]]:
        """Top-k items most similar to query.

        Results scoring below the threshold are dropped and ranks are
        renumbered 1..n over what survives.
        """
        return self._search(query, self._snapshot(), override, filtered=False)

    @traced("index.search_with_filter")
    def search_with_filter(
        self,
        query: str,
        predicate: Callable[[Mapping[str, Any]], bool],
        override: Mapping[str, Any] | SearchConfig[T] | None = None,
    ) -> list[SearchResult[T]]:
        """Search only items whose metadata satisfies predicate.

        The predicate sees a read-only view of each item's metadata. If no
        item passes, raises the same InvalidInputError as an empty index.
        """
        view = [it for it in self._snapshot() if predicate(MappingProxyType(it.metadata))]
        return self._search(query, view, override, filtered=True)

    def find_similar(
        self,
        item: T,
        override: Mapping[str, Any] | SearchConfig[T] | None = None,
    ) -> list[SearchResult[T]]:
        """Search using item's extracted text as the query."""
        return self.search(self._config.text_extractor(item), override)

    # -- lifecycle ----------------------------------------------------------

    def get_stats(self) -> IndexStats:
        items = self._snapshot()
        item_count = len(items)
        dimensions = len(items[0].embedding) if items else 0
        total_bytes = item_count * dimensions * _BYTES_PER_COMPONENT

        if total_bytes < _MB:
            memory_estimate = f"{total_bytes / 1024:.2f} KB"
        else:
            memory_estimate = f"{total_bytes / _MB:.2f} MB"

        return IndexStats(
            item_count=item_count,
            dimensions=dimensions,
            memory_estimate=memory_estimate,
        )

    def clear(self) -> None:
        with self._lock:
            removed = len(self._items)
            self._items = []
        if removed:
            emit(VecIndexCleared(removed=removed))

    def export_index(self) -> list[IndexedItem[T]]:
        """Deep copy of the stored records."""
        return copy.deepcopy(self._snapshot())

    def import_index(self, snapshot: Sequence[IndexedItem[T] | Mapping[str, Any]]) -> None:
        """Replace the contents with a deep copy of snapshot.

        Records may be IndexedItem instances or {item, embedding, metadata}
        mappings; missing metadata becomes {}.
        """
        if not isinstance(snapshot, Sequence) or isinstance(snapshot, (str, bytes)):
            raise InvalidInputError(
                "Snapshot must be a sequence of indexed items",
                {"type": type(snapshot).__name__},
            )

        records: list[IndexedItem[T]] = []
        for position, record in enumerate(snapshot):
            if isinstance(record, IndexedItem):
                records.append(
                    IndexedItem(
                        item=copy.deepcopy(record.item),
                        embedding=[float(x) for x in record.embedding],
                        metadata=copy.deepcopy(dict(record.metadata or {})),
                    )
                )
            elif isinstance(record, Mapping) and "item" in record and "embedding" in record:
                records.append(IndexedItem.from_dict(record))
            else:
                raise InvalidInputError(
                    "Snapshot records need 'item' and 'embedding'",
                    {"position": position, "type": type(record).__name__},
                )

        with self._lock:
            self._items = records
        logger.debug("Imported %d indexed items", len(records))
