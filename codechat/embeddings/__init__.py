"""Embedding service module."""

from codechat.embeddings.models import EmbeddingResult
from codechat.embeddings.service import EmbeddingService, HTTPEmbeddingService

__all__ = [
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
]

