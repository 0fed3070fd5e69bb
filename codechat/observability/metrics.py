"""Prometheus metrics for the chat service.

Covers:
- HTTP request latency and counts
- Chat turns by outcome
- LLM token usage and latency
- Embedding request latency
- Database query latency and search result quality
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from codechat.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Chat Metrics
CHAT_TURN_DURATION = Histogram(
    "chat_turn_duration_seconds",
    "End-to-end chat turn duration in seconds",
    ["outcome"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

CHAT_TURN_TOTAL = Counter(
    "chat_turns_total",
    "Total chat turns",
    ["outcome"],
)

# LLM Metrics
LLM_REQUEST_DURATION = Histogram(
    "llm_request_duration_seconds",
    "LLM request duration in seconds",
    ["model", "status"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

LLM_TOKENS_TOTAL = Counter(
    "llm_tokens_total",
    "Total LLM tokens used",
    ["model", "type"],  # prompt | completion
)

LLM_REQUEST_TOTAL = Counter(
    "llm_requests_total",
    "Total LLM requests",
    ["model", "status"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_TEXTS_TOTAL = Counter(
    "embedding_texts_total",
    "Texts sent for embedding",
    ["model"],
)

# Database Metrics
DB_QUERY_DURATION = Histogram(
    "db_query_duration_seconds",
    "Postgres query duration",
    ["operation", "status"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

# Search Metrics
SEARCH_ROWS_RETURNED = Histogram(
    "search_rows_returned",
    "Rows returned per nearest-neighbour query",
    buckets=[0, 1, 2, 3, 5, 10, 20],
)

SEARCH_TOP_SIMILARITY = Histogram(
    "search_top_similarity",
    "Best re-ranked cosine similarity per search",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        # /api/v1/items/42 -> /api/v1/items
        if path.startswith("/api/v1/"):
            parts = path.split("/")
            if len(parts) >= 4:
                return f"/api/v1/{parts[3]}"
        return path


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_llm_request(
    model: str,
    duration: float,
    prompt_tokens: int,
    completion_tokens: int,
    success: bool = True,
) -> None:
    """Track LLM request metrics.

    Args:
        model: LLM model name.
        duration: Request duration in seconds.
        prompt_tokens: Number of prompt tokens.
        completion_tokens: Number of completion tokens.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    LLM_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    LLM_REQUEST_TOTAL.labels(model=model, status=status).inc()

    if success:
        LLM_TOKENS_TOTAL.labels(model=model, type="prompt").inc(prompt_tokens)
        LLM_TOKENS_TOTAL.labels(model=model, type="completion").inc(completion_tokens)


def track_embedding_request(
    model: str,
    duration: float,
    texts: int,
    success: bool = True,
) -> None:
    """Track one embeddings call carrying ``texts`` inputs."""
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    if success:
        EMBEDDING_TEXTS_TOTAL.labels(model=model).inc(texts)


def track_db_query(operation: str, duration: float, success: bool = True) -> None:
    """Track a Postgres query by operation name."""
    status = "success" if success else "error"
    DB_QUERY_DURATION.labels(operation=operation, status=status).observe(duration)


def track_search(rows_returned: int, top_similarity: float | None) -> None:
    """Track nearest-neighbour search results.

    Args:
        rows_returned: Rows the database returned.
        top_similarity: Best re-ranked score, if any row could be scored.
    """
    SEARCH_ROWS_RETURNED.observe(rows_returned)
    if top_similarity is not None and top_similarity > 0:
        SEARCH_TOP_SIMILARITY.observe(top_similarity)


def track_chat_turn(outcome: str, duration: float) -> None:
    """Track a completed chat turn.

    Args:
        outcome: ``answered`` or ``error``.
        duration: Turn duration in seconds.
    """
    CHAT_TURN_DURATION.labels(outcome=outcome).observe(duration)
    CHAT_TURN_TOTAL.labels(outcome=outcome).inc()
