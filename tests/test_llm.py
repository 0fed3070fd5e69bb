"""Tests for LLM module."""

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from codechat.catalog.models import ContentItem
from codechat.config import LLMSettings
from codechat.exceptions import ErrorCode, LLMError
from codechat.llm.client import OpenAICompatibleClient
from codechat.llm.models import GenerationResult, Message, Role
from codechat.llm.prompts import ChatPromptTemplate, SearchOutcome
from codechat.retrieval.models import ScoredItem


def _completion(content: str | None = "Generated response") -> MagicMock:
    mock_response = MagicMock()
    mock_response.json.return_value = {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "model": "gpt-4.1",
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    }
    mock_response.raise_for_status = MagicMock()
    return mock_response


def _status_error(status: int) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = status
    mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "error", request=MagicMock(), response=mock_response
    )
    return mock_response


class TestModels:
    """Tests for LLM data models."""

    def test_role_values(self) -> None:
        assert Role.SYSTEM.value == "system"
        assert Role.USER.value == "user"
        assert Role.ASSISTANT.value == "assistant"

    def test_generation_result_defaults(self) -> None:
        result = GenerationResult(model="m")
        assert result.content == ""
        assert result.total_tokens == 0
        assert result.is_empty

    def test_whitespace_content_is_empty(self) -> None:
        assert GenerationResult(content="  \n", model="m").is_empty


class TestOpenAICompatibleClient:
    """Tests for OpenAICompatibleClient."""

    def test_model_name(self) -> None:
        client = OpenAICompatibleClient(settings=LLMSettings(model="gpt-4o"))
        assert client.model_name == "gpt-4o"

    async def test_generate(self) -> None:
        settings = LLMSettings(base_url="http://test:8000/v1", model="gpt-4.1")
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.return_value = _completion()

        client = OpenAICompatibleClient(settings=settings, client=mock_http)
        messages = [
            Message(role=Role.SYSTEM, content="Be brief"),
            Message(role=Role.USER, content="Hello"),
        ]
        result = await client.generate(messages, temperature=0.0)

        assert result.content == "Generated response"
        assert result.total_tokens == 30

        args, kwargs = mock_http.post.call_args
        assert args[0] == "http://test:8000/v1/chat/completions"
        payload = kwargs["json"]
        assert payload["model"] == "gpt-4.1"
        assert payload["temperature"] == 0.0
        assert payload["max_tokens"] == settings.max_tokens
        assert payload["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hello"},
        ]

    async def test_default_temperature(self) -> None:
        settings = LLMSettings(temperature=0.7)
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.return_value = _completion()

        client = OpenAICompatibleClient(settings=settings, client=mock_http)
        await client.generate([Message(role=Role.USER, content="Hi")])

        assert mock_http.post.call_args.kwargs["json"]["temperature"] == 0.7

    async def test_azure_routing(self) -> None:
        settings = LLMSettings(
            base_url="https://example.openai.azure.com",
            model="gpt-4.1",
            api_key="azure-key",
            api_version="2024-02-01",
        )
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.return_value = _completion()

        client = OpenAICompatibleClient(settings=settings, client=mock_http)
        await client.generate([Message(role=Role.USER, content="Hi")])

        args, kwargs = mock_http.post.call_args
        assert args[0] == (
            "https://example.openai.azure.com/openai/deployments/gpt-4.1/"
            "chat/completions?api-version=2024-02-01"
        )
        assert kwargs["headers"] == {"api-key": "azure-key"}

    async def test_null_content_is_empty(self) -> None:
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.return_value = _completion(content=None)

        client = OpenAICompatibleClient(settings=LLMSettings(), client=mock_http)
        result = await client.generate([Message(role=Role.USER, content="Hi")])

        assert result.is_empty

    async def test_no_choices_is_empty(self) -> None:
        mock_response = MagicMock()
        mock_response.json.return_value = {"choices": []}
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.return_value = mock_response

        client = OpenAICompatibleClient(settings=LLMSettings(), client=mock_http)
        result = await client.generate([Message(role=Role.USER, content="Hi")])

        assert result.content == ""
        assert result.model == LLMSettings().model

    async def test_rate_limit(self) -> None:
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.return_value = _status_error(429)

        client = OpenAICompatibleClient(settings=LLMSettings(), client=mock_http)

        with pytest.raises(LLMError) as exc_info:
            await client.generate([Message(role=Role.USER, content="Hi")])

        assert exc_info.value.code == ErrorCode.LLM_RATE_LIMIT

    async def test_server_error(self) -> None:
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.return_value = _status_error(500)

        client = OpenAICompatibleClient(settings=LLMSettings(), client=mock_http)

        with pytest.raises(LLMError, match="service returned 500") as exc_info:
            await client.generate([Message(role=Role.USER, content="Hi")])

        assert exc_info.value.code == ErrorCode.LLM_SERVICE_ERROR

    async def test_timeout(self) -> None:
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.side_effect = httpx.ReadTimeout("timed out")

        client = OpenAICompatibleClient(settings=LLMSettings(), client=mock_http)

        with pytest.raises(LLMError) as exc_info:
            await client.generate([Message(role=Role.USER, content="Hi")])

        assert exc_info.value.code == ErrorCode.LLM_TIMEOUT

    async def test_connection_error(self) -> None:
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.post.side_effect = httpx.ConnectError("refused")

        client = OpenAICompatibleClient(settings=LLMSettings(), client=mock_http)

        with pytest.raises(LLMError, match="refused") as exc_info:
            await client.generate([Message(role=Role.USER, content="Hi")])

        assert exc_info.value.code == ErrorCode.LLM_SERVICE_ERROR

    async def test_close_owned_client(self) -> None:
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        client = OpenAICompatibleClient(settings=LLMSettings(), client=mock_http)
        client._owns_client = True

        await client.close()
        mock_http.aclose.assert_called_once()


class TestChatPromptTemplate:
    """Tests for ChatPromptTemplate."""

    def test_found_context(self, make_item: Callable[..., ContentItem]) -> None:
        template = ChatPromptTemplate()
        suggestions = [
            ScoredItem(item=make_item(1, name="dag.py", content="x" * 100), similarity_score=0.9123),
            ScoredItem(item=make_item(2, name="task.py", content="short"), similarity_score=0.5),
        ]

        context = template.format_context("How do I schedule a DAG?", suggestions, SearchOutcome.FOUND)

        assert context.startswith('Regarding your query about "How do I schedule a DAG?", ')
        assert "(top 2 shown as suggestions):" in context
        assert f"- dag.py (Similarity: 91.2%): {'x' * 80}..." in context
        assert "- task.py (Similarity: 50.0%): short..." in context

    def test_long_query_is_previewed(self) -> None:
        template = ChatPromptTemplate()
        question = "a" * 40

        context = template.format_context(question, [], SearchOutcome.NO_RESULTS)

        assert f'"{"a" * 30}..."' in context

    def test_unscored_item_without_content(self, make_item: Callable[..., ContentItem]) -> None:
        template = ChatPromptTemplate()
        item = make_item(3, name=None, content=None)

        context = template.format_context(
            "q", [ScoredItem(item=item)], SearchOutcome.FOUND
        )

        assert "- Item 3: No description." in context
        assert "Similarity" not in context

    @pytest.mark.parametrize(
        ("outcome", "text"),
        [
            (SearchOutcome.NO_RESULTS, "I couldn't find specific items in our database."),
            (SearchOutcome.SEARCH_FAILED, "Error searching database."),
            (
                SearchOutcome.NO_EMBEDDING,
                "Could not process query for database search (embedding generation failed).",
            ),
        ],
    )
    def test_fallback_context(self, outcome: SearchOutcome, text: str) -> None:
        context = ChatPromptTemplate().format_context("hello", [], outcome)
        assert context == f'Regarding your query about "hello", {text}'

    def test_found_without_items_reads_as_no_results(self) -> None:
        context = ChatPromptTemplate().format_context("hello", [], SearchOutcome.FOUND)
        assert context.endswith("I couldn't find specific items in our database.")

    def test_build_messages(self) -> None:
        template = ChatPromptTemplate(system_prompt="sys")
        history = [
            Message(role=Role.USER, content="earlier"),
            Message(role=Role.ASSISTANT, content="reply"),
        ]

        messages = template.build_messages(history, "now?", "ctx")

        assert [m.role for m in messages] == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER]
        assert messages[0].content == "sys"
        assert messages[-1].content == (
            "Context from knowledge base:\n---\nctx\n---\n\nUser Query: now?"
        )

    def test_custom_user_template(self) -> None:
        template = ChatPromptTemplate(user_template="{question} | {context}")
        messages = template.build_messages([], "q", "c")
        assert messages[-1].content == "q | c"
