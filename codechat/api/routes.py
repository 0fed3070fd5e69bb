"""API routes for browsing, search and chat."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from codechat.api.dependencies import get_catalog, get_chat_service, get_retriever
from codechat.catalog.models import ContentListItem, ContentTable
from codechat.catalog.service import CatalogService
from codechat.chat.models import ChatMessage, Preferences
from codechat.chat.service import ChatService
from codechat.exceptions import ItemNotFoundError, RetrievalError
from codechat.logging_config import get_logger
from codechat.retrieval.models import ScoredItem
from codechat.retrieval.retriever import SemanticRetriever

logger = get_logger(__name__)


router = APIRouter(prefix="/api/v1", tags=["Chat"])


class TablesResponse(BaseModel):
    """Tables available for browsing."""

    tables: list[str] = Field(description="Table names")


class SearchRequest(BaseModel):
    """Request body for semantic search."""

    query: str = Field(min_length=1, description="Free-text query")
    table: ContentTable = Field(default=ContentTable.CODE_EXAMPLES, description="Table to search")
    version: str | None = Field(default=None, description="Version tag filter")
    top_k: int = Field(default=2, ge=1, le=20, description="Results to return")


class SearchHit(BaseModel):
    """A re-ranked search result."""

    id: int = Field(description="Content row id")
    name: str = Field(description="Display name")
    version: str | None = Field(default=None, description="Version tag")
    file_path: str | None = Field(default=None, description="Source file path")
    content: str | None = Field(default=None, description="Row content")
    similarity_score: float | None = Field(default=None, description="Cosine similarity")


class SearchResponse(BaseModel):
    """Response from semantic search."""

    results: list[SearchHit] = Field(description="Results, best first")


class SendMessageRequest(BaseModel):
    """Request body for a chat turn."""

    text: str = Field(min_length=1, description="User message")


class PreferencesUpdate(BaseModel):
    """Partial preferences update."""

    selected_version: str | None = Field(default=None, description="Version tag")
    selected_table: ContentTable | None = Field(default=None, description="Table")
    filter_by_version: bool | None = Field(default=None, description="Filter toggle")


def scored_item_to_hit(scored: ScoredItem) -> SearchHit:
    """Convert an internal ScoredItem to an API SearchHit."""
    item = scored.item
    return SearchHit(
        id=item.id,
        name=item.display_name,
        version=item.version,
        file_path=item.file_path,
        content=item.content,
        similarity_score=scored.similarity_score,
    )


@router.get("/tables", response_model=TablesResponse)
async def list_tables(catalog: CatalogService = Depends(get_catalog)) -> TablesResponse:
    """List the tables that can be browsed and searched."""
    return TablesResponse(tables=[t.value for t in catalog.tables()])


@router.get("/items", response_model=list[ContentListItem])
async def list_items(
    table: ContentTable = Query(default=ContentTable.CODE_EXAMPLES),
    catalog: CatalogService = Depends(get_catalog),
) -> list[ContentListItem]:
    """List rows in summarized form. Empty when the database is unavailable."""
    return await catalog.list_items(table)


@router.get("/items/{item_id}")
async def get_item(
    item_id: int,
    table: ContentTable = Query(default=ContentTable.CODE_EXAMPLES),
    catalog: CatalogService = Depends(get_catalog),
) -> dict[str, Any]:
    """Full row without its embedding vector."""
    item = await catalog.get_item(item_id, table)
    if item is None:
        raise ItemNotFoundError(item_id, table.value)
    return item.without_embedding()


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    retriever: SemanticRetriever = Depends(get_retriever),
) -> SearchResponse:
    """Semantic search re-ranked by cosine similarity."""
    try:
        results = await retriever.retrieve(
            request.query,
            table=request.table,
            version=request.version,
            top_k=request.top_k,
        )
    except RetrievalError as e:
        logger.error(f"Search request failed: {e.message}")
        results = []
    return SearchResponse(results=[scored_item_to_hit(r) for r in results])


@router.get("/chat/messages", response_model=list[ChatMessage])
async def get_messages(chat: ChatService = Depends(get_chat_service)) -> list[ChatMessage]:
    """The chat transcript, oldest first."""
    return chat.history()


@router.post("/chat/messages", response_model=ChatMessage)
async def send_message(
    request: SendMessageRequest,
    chat: ChatService = Depends(get_chat_service),
) -> ChatMessage:
    """Run a chat turn and return the assistant's reply."""
    return await chat.send_message(request.text)


@router.delete("/chat/messages", status_code=status.HTTP_204_NO_CONTENT)
async def reset_messages(chat: ChatService = Depends(get_chat_service)) -> Response:
    """Clear the chat transcript."""
    chat.reset()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/preferences", response_model=Preferences)
async def get_preferences(chat: ChatService = Depends(get_chat_service)) -> Preferences:
    return chat.preferences()


@router.put("/preferences", response_model=Preferences)
async def update_preferences(
    update: PreferencesUpdate,
    chat: ChatService = Depends(get_chat_service),
) -> Preferences:
    """Update any subset of the stored preferences."""
    return chat.update_preferences(
        selected_version=update.selected_version,
        selected_table=update.selected_table,
        filter_by_version=update.filter_by_version,
    )
