"""Embedding data models."""

from pydantic import BaseModel, Field, model_validator


class EmbeddingResult(BaseModel):
    """Vector generated for one piece of user text.

    Attributes:
        text: The text that was embedded.
        embedding: The embedding vector (empty when the service gave none).
        model: The model or deployment that produced it.
        dimensions: Length of ``embedding``.
    """

    text: str = Field(description="Embedded text")
    embedding: list[float] = Field(default_factory=list, description="Embedding vector")
    model: str = Field(description="Model used for embedding")
    dimensions: int = Field(description="Vector dimensions")

    @model_validator(mode="after")
    def _check_dimensions(self) -> "EmbeddingResult":
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )
        return self

    @property
    def is_empty(self) -> bool:
        """True when no vector is available for search."""
        return not self.embedding
