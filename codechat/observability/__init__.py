"""Observability module for metrics and monitoring."""

from codechat.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
    track_chat_turn,
    track_db_query,
    track_embedding_request,
    track_llm_request,
    track_search,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "get_metrics_content_type",
    "track_chat_turn",
    "track_db_query",
    "track_embedding_request",
    "track_llm_request",
    "track_search",
]
