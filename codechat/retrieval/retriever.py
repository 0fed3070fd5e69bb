"""Semantic retriever: nearest-neighbour query plus local re-ranking."""

import math

from codechat.catalog.models import ContentItem, ContentTable
from codechat.catalog.repository import ContentRepository
from codechat.embeddings.service import EmbeddingService
from codechat.exceptions import DatabaseError, ErrorCode, RetrievalError
from codechat.logging_config import get_logger
from codechat.observability.metrics import track_search
from codechat.retrieval.models import ScoredItem
from codechat.similarity import cosine_similarity

logger = get_logger(__name__)


def rank_by_similarity(
    query_embedding: list[float],
    items: list[ContentItem],
    top_n: int,
) -> list[ScoredItem]:
    """Score items against the query and keep the best ``top_n``.

    Items without a usable embedding, or whose score is undefined, keep a
    ``None`` score and sort after every scored item. Ties keep the
    database order.

    Args:
        query_embedding: Vector of the user's text.
        items: Rows returned by the nearest-neighbour query.
        top_n: Number of items to keep.

    Returns:
        Scored items, best first.
    """
    scored: list[ScoredItem] = []
    for item in items:
        score = None
        if item.embedding is None:
            logger.debug(f"Item {item.id} has no usable embedding; left unscored")
        else:
            score = cosine_similarity(query_embedding, item.embedding)
            if score is None:
                logger.warning(
                    f"Similarity undefined for item {item.id}",
                    extra={
                        "query_dimensions": len(query_embedding),
                        "item_dimensions": len(item.embedding),
                    },
                )
            elif math.isnan(score):
                logger.warning(f"Similarity for item {item.id} is NaN; left unscored")
                score = None
        scored.append(ScoredItem(item=item, similarity_score=score))

    scored.sort(key=lambda s: s.sort_key, reverse=True)
    return scored[:top_n]


class SemanticRetriever:
    """Retrieves and re-ranks content rows for a query.

    The database orders candidates by pgvector distance; the retriever
    re-scores them by cosine similarity and keeps the best few.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        repository: ContentRepository,
        search_limit: int = 3,
        suggestion_count: int = 2,
    ) -> None:
        """Initialize the semantic retriever.

        Args:
            embedding_service: Service for embedding query text.
            repository: Content repository to search.
            search_limit: Rows requested from the nearest-neighbour query.
            suggestion_count: Rows kept after re-ranking.
        """
        self._embedding_service = embedding_service
        self._repository = repository
        self._search_limit = search_limit
        self._suggestion_count = suggestion_count

    async def rank(
        self,
        query_embedding: list[float],
        table: ContentTable,
        version: str | None = None,
        top_k: int | None = None,
    ) -> list[ScoredItem]:
        """Search with an existing query vector and re-rank the hits.

        Args:
            query_embedding: Vector of the user's text.
            table: Table to search.
            version: Version tag filter; ignored when blank.
            top_k: Rows to keep (defaults to ``suggestion_count``).

        Raises:
            RetrievalError: If the database search fails.
        """
        keep = top_k or self._suggestion_count
        try:
            items = await self._repository.search(
                embedding=query_embedding,
                table=table,
                limit=max(self._search_limit, keep),
                version=version,
            )
        except DatabaseError as e:
            raise RetrievalError(
                f"Semantic search failed: {e.message}",
                code=ErrorCode.RETRIEVAL_ERROR,
                details={"table": table.value, "version": version},
            ) from e

        ranked = rank_by_similarity(query_embedding, items, keep)
        track_search(len(items), ranked[0].similarity_score if ranked else None)

        logger.debug(
            f"Ranked {len(ranked)} of {len(items)} results",
            extra={"table": table.value, "version": version or "any"},
        )
        return ranked

    async def retrieve(
        self,
        query: str,
        table: ContentTable,
        version: str | None = None,
        top_k: int | None = None,
    ) -> list[ScoredItem]:
        """Embed ``query`` and return re-ranked matches.

        Raises:
            EmbeddingError: If the query cannot be embedded.
            RetrievalError: If the database search fails.
        """
        if not query.strip():
            return []

        embedding_result = await self._embedding_service.embed(query)
        if embedding_result.is_empty:
            logger.warning("No embedding for query; skipping search")
            return []

        return await self.rank(
            embedding_result.embedding,
            table=table,
            version=version,
            top_k=top_k,
        )
