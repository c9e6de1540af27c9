"""Model runtimes that turn text into vectors.

SemanticEngine talks to one of these through the EmbeddingModel protocol:
a batch embed() call plus a dimensions property. Two ship with semkit:

    SentenceTransformerEmbedding   in-process, all-MiniLM-L6-v2 by default
    OllamaEmbedding                HTTP to an Ollama server

Any other object with the same two members can be handed to SemanticEngine
as-is.

    engine = SemanticEngine(model=OllamaEmbedding("mxbai-embed-large"))
"""

from __future__ import annotations

import json
import logging
import urllib.request
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from semkit.errors import InvalidInputError
from semkit.observability.tracing import set_span_attributes, traced

if TYPE_CHECKING:
    from semkit.engine import ModelConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class EmbeddingModel(Protocol):
    """A backend that maps a list of strings to equally long vectors."""

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per text, in input order."""
        ...

    @property
    def dimensions(self) -> int:
        """Length of every vector embed() returns."""
        ...


class SentenceTransformerEmbedding:
    """In-process sentence-transformers model.

    The library is imported and the weights loaded on first use, so
    constructing one is free. Pooling is whatever the checkpoint defines;
    with normalize=True the output is unit length.

    Requires: pip install semkit[local]
    """

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        max_length: int | None = 512,
        normalize: bool = True,
    ) -> None:
        self.model_name = model_name
        self.max_length = max_length
        self.normalize = normalize
        self._st = None
        self._dims: int | None = None

    def _ensure_loaded(self):
        if self._st is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise ImportError(
                    "The local backend needs sentence-transformers: pip install semkit[local]"
                ) from e
            st = SentenceTransformer(self.model_name)
            if self.max_length:
                st.max_seq_length = self.max_length
            self._dims = int(st.get_sentence_embedding_dimension())
            self._st = st
            logger.info("sentence-transformers model %s ready, dims=%d", self.model_name, self._dims)
        return self._st

    @traced("embed.sentence_transformer", external=True)
    def embed(self, texts: list[str]) -> list[list[float]]:
        st = self._ensure_loaded()
        set_span_attributes(
            **{
                "embed.backend": "sentence_transformers",
                "embed.model": self.model_name,
                "embed.batch_size": len(texts),
            }
        )
        matrix = st.encode(texts, convert_to_numpy=True, normalize_embeddings=self.normalize)
        return matrix.tolist()

    @property
    def dimensions(self) -> int:
        self._ensure_loaded()
        return self._dims  # type: ignore[return-value]


# Used until the first response reveals the real width.
OLLAMA_DIMENSIONS = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "snowflake-arctic-embed": 1024,
    "all-minilm": 384,
}


class OllamaEmbedding:
    """Embeddings from an Ollama server's /api/embeddings endpoint.

    Ollama embeds one prompt per request, so a batch of n texts costs n
    round trips.
    """

    def __init__(
        self,
        model_name: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        timeout: float = 30.0,
    ) -> None:
        self.model_name = model_name
        self.endpoint = base_url.rstrip("/") + "/api/embeddings"
        self.timeout = timeout
        self._seen_dims: int | None = None

    def _post(self, prompt: str) -> list[float]:
        body = json.dumps({"model": self.model_name, "prompt": prompt}).encode()
        request = urllib.request.Request(
            self.endpoint, data=body, headers={"Content-Type": "application/json"}
        )
        with urllib.request.urlopen(request, timeout=self.timeout) as response:
            payload = json.loads(response.read())
        return [float(x) for x in payload["embedding"]]

    @traced("embed.ollama", external=True)
    def embed(self, texts: list[str]) -> list[list[float]]:
        set_span_attributes(
            **{
                "embed.backend": "ollama",
                "embed.model": self.model_name,
                "embed.batch_size": len(texts),
            }
        )
        vectors = [self._post(text) for text in texts]
        if vectors and self._seen_dims is None:
            self._seen_dims = len(vectors[0])
        return vectors

    @property
    def dimensions(self) -> int:
        if self._seen_dims is None:
            return OLLAMA_DIMENSIONS.get(self.model_name, 768)
        return self._seen_dims


def create_embedding_model(config: ModelConfig) -> EmbeddingModel:
    """Instantiate the backend named by config.backend."""
    backend = config.backend
    if backend == "sentence-transformers":
        return SentenceTransformerEmbedding(
            config.model_name, max_length=config.max_length, normalize=config.normalize
        )
    if backend == "ollama":
        return OllamaEmbedding(config.model_name, base_url=config.ollama_base_url)
    raise InvalidInputError(
        f"Unknown embedding backend: {backend!r}",
        {"backend": backend, "available": ["sentence-transformers", "ollama"]},
    )
