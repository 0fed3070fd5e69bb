"""Content catalog data models."""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from codechat.similarity import parse_embedding


class ContentTable(str, Enum):
    """Tables the catalog may read from.

    Only these identifiers are ever interpolated into SQL.
    """

    CODE_EXAMPLES = "code_examples"
    AIRFLOW_CODE_EMBEDDINGS = "airflow_code_embeddings"

    @property
    def names_fall_back_to_content(self) -> bool:
        """Rows in this table may lack a name; list them by content."""
        return self is ContentTable.AIRFLOW_CODE_EMBEDDINGS


class ContentListItem(BaseModel):
    """Summarized row shown in item listings."""

    id: int = Field(description="Primary key")
    name: str | None = Field(default=None, description="Display name")
    version: str | None = Field(default=None, description="Version tag")
    created_at: datetime | None = Field(default=None, description="Row creation time")


class ContentItem(BaseModel):
    """A full content row.

    Columns beyond the known ones are kept, since the two tables are
    interchangeable but not identical.

    Attributes:
        id: Primary key.
        version: Version tag the content belongs to.
        embedding: Stored vector, ``None`` when missing or malformed.
    """

    model_config = ConfigDict(extra="allow")

    id: int = Field(description="Primary key")
    version: str | None = Field(default=None, description="Version tag")
    release_date: date | str | None = Field(default=None, description="Release date")
    runtime_versions: str | None = Field(default=None, description="Supported runtimes")
    name: str | None = Field(default=None, description="Display name")
    file_path: str | None = Field(default=None, description="Source file path")
    content: str | None = Field(default=None, description="Free-text content")
    embedding: list[float] | None = Field(default=None, description="Embedding vector")
    created_at: datetime | None = Field(default=None, description="Row creation time")

    @field_validator("embedding", mode="before")
    @classmethod
    def _coerce_embedding(cls, value: Any) -> list[float] | None:
        return parse_embedding(value)

    @property
    def display_name(self) -> str:
        """Name, else the start of the content, else the id."""
        if self.name:
            return self.name
        if self.content:
            return self.content[:50]
        return f"Item {self.id}"

    def without_embedding(self) -> dict[str, Any]:
        """Row fields for display, minus the (large) vector."""
        return self.model_dump(exclude={"embedding"})
