"""Vector layer for semkit: vector math, embedding backends, similarity index.

Install extras:
    pip install semkit[local]   # + sentence-transformers for local models

Usage:
    from semkit.vec import cosine_similarity, top_k_similar

    cosine_similarity([1.0, 2.0], [2.0, 1.0])        # 0.8
    top_k_similar([1.0, 0.0], [[0.0, 1.0], [1.0, 0.1]], k=1)  # [(1, 0.995...)]
"""

from semkit.vec.cache import CachedEmbeddingModel
from semkit.vec.embeddings import (
    EmbeddingModel,
    OllamaEmbedding,
    SentenceTransformerEmbedding,
    create_embedding_model,
)
from semkit.vec.vector import (
    centroid,
    cosine_similarity,
    dot_product,
    euclidean_distance,
    magnitude,
    normalize,
    top_k_similar,
)

__all__ = [
    "CachedEmbeddingModel",
    "EmbeddingModel",
    "OllamaEmbedding",
    "SentenceTransformerEmbedding",
    "create_embedding_model",
    "centroid",
    "cosine_similarity",
    "dot_product",
    "euclidean_distance",
    "magnitude",
    "normalize",
    "top_k_similar",
]
