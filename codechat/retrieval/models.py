"""Retrieval data models."""

from pydantic import BaseModel, Field

from codechat.catalog.models import ContentItem


class ScoredItem(BaseModel):
    """A search hit re-scored locally.

    Attributes:
        item: The content row returned by the nearest-neighbour query.
        similarity_score: Cosine similarity to the query, or ``None`` when
            the row had no usable embedding.
    """

    item: ContentItem = Field(description="Matched content row")
    similarity_score: float | None = Field(default=None, description="Cosine similarity")

    @property
    def sort_key(self) -> float:
        """Score used for ordering; unscored items sort last."""
        return self.similarity_score if self.similarity_score is not None else -1.0
