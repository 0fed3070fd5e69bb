"""Tests for the browsing, search and chat API routes."""

from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from codechat.api.app import app, get_status_code
from codechat.api.dependencies import get_catalog, get_chat_service, get_retriever
from codechat.api.routes import SearchRequest, scored_item_to_hit
from codechat.catalog.models import ContentItem, ContentListItem, ContentTable
from codechat.catalog.repository import ContentRepository
from codechat.catalog.service import CatalogService
from codechat.chat.service import ChatService
from codechat.chat.state import ChatStateStore
from codechat.embeddings.models import EmbeddingResult
from codechat.embeddings.service import EmbeddingService
from codechat.exceptions import DatabaseError, EmbeddingError, ErrorCode, LLMError
from codechat.llm.client import LLMClient
from codechat.llm.models import GenerationResult
from codechat.retrieval.models import ScoredItem
from codechat.retrieval.retriever import SemanticRetriever


@pytest.fixture
def repository() -> AsyncMock:
    return AsyncMock(spec=ContentRepository)


@pytest.fixture
def embedding_service() -> AsyncMock:
    service = AsyncMock(spec=EmbeddingService)
    service.embed.return_value = EmbeddingResult(
        text="q", embedding=[1.0, 0.0], model="m", dimensions=2
    )
    return service


@pytest.fixture
def llm_client() -> AsyncMock:
    client = AsyncMock(spec=LLMClient)
    client.generate.return_value = GenerationResult(content="Try this.", model="gpt-4.1")
    return client


@pytest.fixture
def wired(
    repository: AsyncMock,
    embedding_service: AsyncMock,
    llm_client: AsyncMock,
    state_store: ChatStateStore,
) -> Iterator[ChatService]:
    """Route dependencies backed by mocked outer services."""
    retriever = SemanticRetriever(embedding_service, repository)
    chat = ChatService(embedding_service, retriever, llm_client, state_store)

    app.dependency_overrides[get_catalog] = lambda: CatalogService(repository)
    app.dependency_overrides[get_retriever] = lambda: retriever
    app.dependency_overrides[get_chat_service] = lambda: chat
    yield chat
    app.dependency_overrides.clear()


class TestModels:
    """Tests for request models and converters."""

    def test_search_request_defaults(self) -> None:
        request = SearchRequest(query="dags")
        assert request.table is ContentTable.CODE_EXAMPLES
        assert request.version is None
        assert request.top_k == 2

    def test_scored_item_to_hit(self, make_item: Callable[..., ContentItem]) -> None:
        hit = scored_item_to_hit(
            ScoredItem(item=make_item(3, name=None, content="body"), similarity_score=0.5)
        )
        assert hit.id == 3
        assert hit.name == "body"
        assert hit.similarity_score == 0.5

    @pytest.mark.parametrize(
        ("code", "status"),
        [
            (ErrorCode.VALIDATION_ERROR, 400),
            (ErrorCode.ITEM_NOT_FOUND, 404),
            (ErrorCode.LLM_RATE_LIMIT, 429),
            (ErrorCode.EMBEDDING_SERVICE_ERROR, 502),
            (ErrorCode.SERVICE_UNAVAILABLE, 503),
            (ErrorCode.LLM_TIMEOUT, 504),
            (ErrorCode.INTERNAL_ERROR, 500),
        ],
    )
    def test_status_codes(self, code: ErrorCode, status: int) -> None:
        assert get_status_code(code) == status


class TestWithoutServices:
    """Routes answer 503 when the app started without services."""

    async def test_tables_unavailable(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/tables")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == ErrorCode.SERVICE_UNAVAILABLE.value

    async def test_chat_unavailable(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/chat/messages", json={"text": "hi"})
        assert response.status_code == 503


@pytest.mark.usefixtures("wired")
class TestCatalogRoutes:
    """Tests for table and item routes."""

    async def test_list_tables(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/tables")

        assert response.status_code == 200
        assert response.json() == {"tables": ["code_examples", "airflow_code_embeddings"]}

    async def test_list_items(self, client: AsyncClient, repository: AsyncMock) -> None:
        repository.list_items.return_value = [ContentListItem(id=1, name="a.py", version="2.9.3")]

        response = await client.get(
            "/api/v1/items", params={"table": "airflow_code_embeddings"}
        )

        assert response.status_code == 200
        assert response.json()[0]["name"] == "a.py"
        repository.list_items.assert_awaited_once_with(ContentTable.AIRFLOW_CODE_EMBEDDINGS)

    async def test_list_items_database_down(
        self, client: AsyncClient, repository: AsyncMock
    ) -> None:
        repository.list_items.side_effect = DatabaseError("down")

        response = await client.get("/api/v1/items")

        assert response.status_code == 200
        assert response.json() == []

    async def test_unknown_table_rejected(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/items", params={"table": "users"})
        assert response.status_code == 422

    async def test_get_item_hides_embedding(
        self,
        client: AsyncClient,
        repository: AsyncMock,
        make_item: Callable[..., ContentItem],
    ) -> None:
        repository.get_item.return_value = make_item(5, embedding=[0.1, 0.2])

        response = await client.get("/api/v1/items/5")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == 5
        assert "embedding" not in data

    async def test_get_item_not_found(self, client: AsyncClient, repository: AsyncMock) -> None:
        repository.get_item.return_value = None

        response = await client.get("/api/v1/items/99")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == ErrorCode.ITEM_NOT_FOUND.value
        assert error["details"] == {"item_id": 99, "table": "code_examples"}


@pytest.mark.usefixtures("wired")
class TestSearchRoute:
    """Tests for /api/v1/search."""

    async def test_search(
        self,
        client: AsyncClient,
        repository: AsyncMock,
        make_item: Callable[..., ContentItem],
    ) -> None:
        repository.search.return_value = [
            make_item(1, embedding=[0.0, 1.0]),
            make_item(2, embedding=[1.0, 0.0]),
        ]

        response = await client.post(
            "/api/v1/search", json={"query": "operators", "version": "2.9.3"}
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["id"] for r in results] == [2, 1]
        assert results[0]["similarity_score"] == pytest.approx(1.0)
        assert repository.search.call_args.kwargs["version"] == "2.9.3"

    async def test_search_database_error_is_empty(
        self, client: AsyncClient, repository: AsyncMock
    ) -> None:
        repository.search.side_effect = DatabaseError("down")

        response = await client.post("/api/v1/search", json={"query": "operators"})

        assert response.status_code == 200
        assert response.json() == {"results": []}

    async def test_search_embedding_error(
        self, client: AsyncClient, embedding_service: AsyncMock
    ) -> None:
        embedding_service.embed.side_effect = EmbeddingError("Failed to generate embeddings: boom")

        response = await client.post("/api/v1/search", json={"query": "operators"})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == ErrorCode.EMBEDDING_SERVICE_ERROR.value

    async def test_search_empty_query_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/search", json={"query": ""})
        assert response.status_code == 422


@pytest.mark.usefixtures("wired")
class TestChatRoutes:
    """Tests for chat and preferences routes."""

    async def test_send_and_list(self, client: AsyncClient, repository: AsyncMock) -> None:
        repository.search.return_value = []

        response = await client.post("/api/v1/chat/messages", json={"text": "Hello"})

        assert response.status_code == 200
        reply = response.json()
        assert reply["sender"] == "assistant"
        assert reply["text"] == "Try this."

        history = (await client.get("/api/v1/chat/messages")).json()
        assert [m["sender"] for m in history] == ["user", "assistant"]

    async def test_service_error_is_a_reply(
        self, client: AsyncClient, llm_client: AsyncMock, repository: AsyncMock
    ) -> None:
        repository.search.return_value = []
        llm_client.generate.side_effect = LLMError("Failed to get chat completion: down")

        response = await client.post("/api/v1/chat/messages", json={"text": "Hello"})

        assert response.status_code == 200
        assert response.json()["text"] == "Error: Failed to get chat completion: down"

    async def test_empty_text_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/chat/messages", json={"text": ""})
        assert response.status_code == 422

    async def test_blank_text_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/chat/messages", json={"text": "   "})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.VALIDATION_ERROR.value

    async def test_reset(self, client: AsyncClient, repository: AsyncMock) -> None:
        repository.search.return_value = []
        await client.post("/api/v1/chat/messages", json={"text": "Hello"})

        response = await client.delete("/api/v1/chat/messages")

        assert response.status_code == 204
        assert (await client.get("/api/v1/chat/messages")).json() == []

    async def test_preferences(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/preferences")

        assert response.json() == {
            "selected_version": "1.0.0",
            "selected_table": "code_examples",
            "filter_by_version": True,
        }

    async def test_update_preferences(self, client: AsyncClient) -> None:
        response = await client.put(
            "/api/v1/preferences",
            json={"selected_version": "2.9.3", "filter_by_version": False},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["selected_version"] == "2.9.3"
        assert data["filter_by_version"] is False
        assert data["selected_table"] == "code_examples"

    async def test_blank_version_rejected(self, client: AsyncClient) -> None:
        response = await client.put("/api/v1/preferences", json={"selected_version": " "})
        assert response.status_code == 400
