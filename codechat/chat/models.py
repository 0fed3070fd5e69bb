"""Chat data models."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from codechat.catalog.models import ContentTable
from codechat.llm.models import Message, Role
from codechat.retrieval.models import ScoredItem


class Sender(str, Enum):
    """Who wrote a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class Suggestion(BaseModel):
    """A retrieved item attached to an assistant reply."""

    id: int = Field(description="Content row id")
    name: str = Field(description="Display name")
    version: str | None = Field(default=None, description="Version tag")
    file_path: str | None = Field(default=None, description="Source file path")
    created_at: datetime | None = Field(default=None, description="Row creation time")
    similarity_score: float | None = Field(default=None, description="Cosine similarity")

    @classmethod
    def from_scored(cls, scored: ScoredItem) -> "Suggestion":
        item = scored.item
        return cls(
            id=item.id,
            name=item.display_name,
            version=item.version,
            file_path=item.file_path,
            created_at=item.created_at,
            similarity_score=scored.similarity_score,
        )


class ChatMessage(BaseModel):
    """One message of the transcript. Immutable once created.

    Attributes:
        id: Unique message id.
        sender: User or assistant.
        text: Message text.
        suggestions: Retrieved items shown with an assistant reply.
        created_at: Creation time (UTC).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex, description="Message id")
    sender: Sender = Field(description="Message author")
    text: str = Field(description="Message text")
    suggestions: list[Suggestion] | None = Field(
        default=None,
        description="Suggested content items",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Creation time",
    )

    @classmethod
    def from_user(cls, text: str) -> "ChatMessage":
        return cls(sender=Sender.USER, text=text)

    @classmethod
    def from_assistant(
        cls,
        text: str,
        suggestions: list[Suggestion] | None = None,
    ) -> "ChatMessage":
        return cls(sender=Sender.ASSISTANT, text=text, suggestions=suggestions or None)

    def to_llm_message(self) -> Message:
        """Map onto a chat-completion message."""
        role = Role.USER if self.sender is Sender.USER else Role.ASSISTANT
        return Message(role=role, content=self.text)


class Preferences(BaseModel):
    """Persisted user choices that shape retrieval."""

    selected_version: str = Field(default="1.0.0", description="Version tag filter")
    selected_table: ContentTable = Field(
        default=ContentTable.CODE_EXAMPLES,
        description="Table to browse and search",
    )
    filter_by_version: bool = Field(
        default=True,
        description="Restrict search to the selected version",
    )

    @property
    def version_filter(self) -> str | None:
        """Version to filter on, or ``None`` when filtering is off."""
        return self.selected_version if self.filter_by_version else None
