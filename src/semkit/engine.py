"""Semantic engine: text in, embeddings out.

SemanticEngine is the EmbeddingProvider the similarity index talks to. It
owns an EmbeddingModel backend, loads it lazily on initialize(), validates
inputs, chunks batch requests, and turns backend failures into the semkit
error taxonomy.

Usage:
    engine = SemanticEngine(ModelConfig(model_name="all-MiniLM-L6-v2"))
    engine.initialize()
    result = engine.embed("hello world")
    score = engine.similarity("cat", "kitten").score
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Literal, Protocol, runtime_checkable

from semkit.config import get_config
from semkit.errors import (
    EmbeddingFailedError,
    InvalidInputError,
    ModelNotLoadedError,
)
from semkit.models import EmbeddingResult, ModelLoadProgress, SimilarityResult
from semkit.observability.emitter import emit
from semkit.observability.events import (
    EmbeddingBatchCompleted,
    EmbeddingFailed,
    ModelLoaded,
)
from semkit.observability.tracing import set_span_attributes, traced
from semkit.vec.embeddings import EmbeddingModel, create_embedding_model
from semkit.vec.vector import cosine_similarity, dot_product, euclidean_distance

logger = logging.getLogger(__name__)

# Echoed input text in error details is capped at this many characters
_ERROR_TEXT_LIMIT = 100

ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class EmbeddingProvider(Protocol):
    """What the similarity index needs from an embedding source."""

    def embed(self, text: str) -> EmbeddingResult: ...

    def embed_batch(
        self,
        texts: list[str],
        batch_size: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[EmbeddingResult]: ...


@dataclass
class ModelConfig:
    """Embedding model settings. Unset fields fall back to semkit.config."""

    model_name: str = field(default_factory=lambda: get_config().model_name)
    backend: str = field(default_factory=lambda: get_config().backend)
    max_length: int = field(default_factory=lambda: get_config().max_length)
    batch_size: int = field(default_factory=lambda: get_config().batch_size)
    ollama_base_url: str = field(default_factory=lambda: get_config().ollama_base_url)
    normalize: bool = True
    on_progress: Callable[[ModelLoadProgress], None] | None = field(
        default=None, repr=False, compare=False
    )


class SemanticEngine:
    """Lazy-loading embedding engine over a pluggable EmbeddingModel.

    initialize() is idempotent and thread-safe: concurrent callers block on
    one load instead of each loading the model.
    """

    def __init__(
        self,
        config: ModelConfig | None = None,
        *,
        model: EmbeddingModel | None = None,
    ) -> None:
        self._config = config or ModelConfig()
        self._backend_override = model
        self._model: EmbeddingModel | None = None
        self._dimensions: int | None = None
        self._lock = threading.Lock()

    # -- lifecycle ----------------------------------------------------------

    @traced("engine.initialize")
    def initialize(self) -> None:
        if self._model is not None:
            return

        with self._lock:
            if self._model is not None:
                return

            t0 = time.perf_counter()
            self._report_progress("downloading", 0.0)
            try:
                model = self._backend_override or create_embedding_model(self._config)
                dimensions = model.dimensions
            except Exception as exc:
                raise ModelNotLoadedError(
                    f"Failed to initialize model: {exc}",
                    {"model_name": self._config.model_name, "error": repr(exc)},
                ) from exc

            self._model = model
            self._dimensions = dimensions
            self._report_progress("ready", 100.0)

        latency_ms = (time.perf_counter() - t0) * 1000
        logger.info(
            "Embedding model %s ready (%d dims, %.1f ms)",
            self._config.model_name, dimensions, latency_ms,
        )
        emit(
            ModelLoaded(
                model_name=self._config.model_name,
                backend=self._config.backend if self._backend_override is None else "custom",
                dimensions=dimensions,
                latency_ms=latency_ms,
            )
        )

    def dispose(self) -> None:
        with self._lock:
            self._model = None
            self._dimensions = None

    def is_ready(self) -> bool:
        return self._model is not None

    def get_config(self) -> ModelConfig:
        return dataclasses.replace(self._config)

    @property
    def dimensions(self) -> int:
        self._require_model()
        assert self._dimensions is not None
        return self._dimensions

    def _report_progress(self, status: str, progress: float) -> None:
        if self._config.on_progress is not None:
            self._config.on_progress(ModelLoadProgress(status=status, progress=progress))  # type: ignore[arg-type]

    def _require_model(self) -> EmbeddingModel:
        model = self._model
        if model is None:
            raise ModelNotLoadedError(
                "Model not initialized. Call initialize() first.",
                {"model_name": self._config.model_name},
            )
        return model

    # -- embedding ----------------------------------------------------------

    def _run_model(self, model: EmbeddingModel, texts: list[str]) -> list[list[float]]:
        """Call the backend, mapping any failure to EmbeddingFailedError."""
        try:
            vectors = model.embed(texts)
        except Exception as exc:
            preview = texts[0][:_ERROR_TEXT_LIMIT]
            emit(
                EmbeddingFailed(
                    model_name=self._config.model_name,
                    error=repr(exc),
                    text_preview=preview,
                )
            )
            raise EmbeddingFailedError(
                f"Failed to generate embedding: {exc}",
                {"text": preview, "batch_size": len(texts), "error": repr(exc)},
            ) from exc

        if len(vectors) != len(texts):
            raise EmbeddingFailedError(
                "Embedding model returned wrong number of vectors",
                {
                    "text": texts[0][:_ERROR_TEXT_LIMIT],
                    "expected": len(texts),
                    "got": len(vectors),
                },
            )
        return [[float(x) for x in v] for v in vectors]

    def _result(self, vector: list[float], text: str, elapsed_ms: float) -> EmbeddingResult:
        return EmbeddingResult(
            embedding=vector,
            text=text,
            metadata={
                "dimensions": len(vector),
                "model_name": self._config.model_name,
                "processing_time_ms": elapsed_ms,
            },
        )

    @traced("engine.embed")
    def embed(self, text: str) -> EmbeddingResult:
        """Embed one non-empty string."""
        model = self._require_model()

        if not isinstance(text, str) or not text:
            raise InvalidInputError(
                "Text must be a non-empty string",
                {"text": repr(text)[:_ERROR_TEXT_LIMIT]},
            )

        t0 = time.perf_counter()
        [vector] = self._run_model(model, [text])
        return self._result(vector, text, (time.perf_counter() - t0) * 1000)

    @traced("engine.embed_batch")
    def embed_batch(
        self,
        texts: list[str],
        batch_size: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[EmbeddingResult]:
        """Embed texts in fixed-size chunks, preserving input order.

        on_progress(completed, total) is called after each chunk.
        """
        model = self._require_model()

        if not isinstance(texts, (list, tuple)) or len(texts) == 0:
            raise InvalidInputError("Texts must be a non-empty list")
        for position, text in enumerate(texts):
            if not isinstance(text, str) or not text:
                raise InvalidInputError(
                    "Text must be a non-empty string",
                    {"position": position, "text": repr(text)[:_ERROR_TEXT_LIMIT]},
                )

        size = batch_size if batch_size is not None else self._config.batch_size
        if size <= 0:
            raise InvalidInputError("batch_size must be positive", {"batch_size": size})

        total = len(texts)
        set_span_attributes(**{"embed.text_count": total, "embed.batch_size": size})

        t_start = time.perf_counter()
        results: list[EmbeddingResult] = []
        batch_count = 0
        for start in range(0, total, size):
            batch = list(texts[start : start + size])
            t0 = time.perf_counter()
            vectors = self._run_model(model, batch)
            elapsed_ms = (time.perf_counter() - t0) * 1000
            results.extend(self._result(v, t, elapsed_ms) for v, t in zip(vectors, batch))
            batch_count += 1
            if on_progress is not None:
                on_progress(min(start + size, total), total)

        emit(
            EmbeddingBatchCompleted(
                model_name=self._config.model_name,
                batch_count=batch_count,
                text_count=total,
                latency_ms=(time.perf_counter() - t_start) * 1000,
            )
        )
        return results

    # -- comparison ---------------------------------------------------------

    def similarity(
        self,
        text_a: str,
        text_b: str,
        method: Literal["cosine", "euclidean", "dot"] = "cosine",
    ) -> SimilarityResult:
        """Score two texts. Higher is always more similar.

        euclidean returns the negated distance so the ordering matches
        cosine and dot.
        """
        if method not in ("cosine", "euclidean", "dot"):
            raise InvalidInputError(f"Unknown similarity method: {method}", {"method": method})

        t0 = time.perf_counter()
        a = self.embed(text_a).embedding
        b = self.embed(text_b).embedding

        if method == "cosine":
            score = cosine_similarity(a, b)
        elif method == "euclidean":
            score = -euclidean_distance(a, b)
        else:
            score = dot_product(a, b)

        return SimilarityResult(
            score=score,
            texts=(text_a, text_b),
            method=method,
            processing_time_ms=(time.perf_counter() - t0) * 1000,
        )
