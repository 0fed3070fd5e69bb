"""Retrieval module."""

from codechat.retrieval.models import ScoredItem
from codechat.retrieval.retriever import SemanticRetriever, rank_by_similarity

__all__ = [
    "ScoredItem",
    "SemanticRetriever",
    "rank_by_similarity",
]
