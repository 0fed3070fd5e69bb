"""Chat-completion client interface and implementations."""

import time
from abc import ABC, abstractmethod

import httpx

from codechat.config import LLMSettings, get_settings
from codechat.exceptions import ErrorCode, LLMError
from codechat.llm.models import GenerationResult, Message
from codechat.logging_config import get_logger
from codechat.observability.metrics import track_llm_request
from codechat.openai_api import auth_headers, endpoint_url

logger = get_logger(__name__)


class LLMClient(ABC):
    """Abstract base class for chat-completion clients."""

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> GenerationResult:
        """Generate a reply to an ordered list of messages.

        Args:
            messages: Conversation messages, system preamble first.
            temperature: Sampling temperature override.
            max_tokens: Maximum tokens override.

        Returns:
            GenerationResult with generated text.

        Raises:
            LLMError: If generation fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name."""
        ...


class OpenAICompatibleClient(LLMClient):
    """Client for the chat completions API.

    Works with:
    - OpenAI and OpenAI-compatible servers
    - Azure OpenAI deployments (set ``LLM_API_VERSION``)
    """

    def __init__(
        self,
        settings: LLMSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: LLM configuration.
            client: HTTP client (for testing).
        """
        self._settings = settings or get_settings().llm
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        return self._settings.model

    async def generate(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> GenerationResult:
        """Generate text using the chat completions API."""
        client = await self._get_client()
        url = endpoint_url(
            self._settings.base_url,
            "chat/completions",
            self._settings.model,
            self._settings.api_version,
        )

        payload = {
            "model": self._settings.model,
            "messages": [
                {"role": msg.role.value, "content": msg.content} for msg in messages
            ],
            "temperature": temperature if temperature is not None else self._settings.temperature,
            "max_tokens": max_tokens or self._settings.max_tokens,
        }
        headers = auth_headers(self._settings.api_key, self._settings.api_version)

        start = time.perf_counter()
        try:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()

        except httpx.TimeoutException as e:
            self._track_failure(start)
            logger.error(f"LLM request timed out: {e}")
            raise LLMError(
                "Failed to get chat completion: request timed out",
                code=ErrorCode.LLM_TIMEOUT,
                details={"timeout": self._settings.timeout},
            ) from e

        except httpx.HTTPStatusError as e:
            self._track_failure(start)
            status = e.response.status_code
            logger.error(f"LLM request failed: {status}")

            if status == 429:
                raise LLMError(
                    "Failed to get chat completion: rate limit exceeded",
                    code=ErrorCode.LLM_RATE_LIMIT,
                    details={"status_code": status},
                ) from e

            raise LLMError(
                f"Failed to get chat completion: service returned {status}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"status_code": status},
            ) from e

        except httpx.RequestError as e:
            self._track_failure(start)
            logger.error(f"LLM connection error: {e}")
            raise LLMError(
                f"Failed to get chat completion: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
            ) from e

        try:
            data = response.json()
            choices = data.get("choices") or []
            content = ""
            if choices:
                content = (choices[0].get("message") or {}).get("content") or ""
            usage = data.get("usage") or {}

            result = GenerationResult(
                content=content,
                model=data.get("model") or self._settings.model,
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            )

        except (AttributeError, KeyError, IndexError, ValueError) as e:
            self._track_failure(start)
            raise LLMError(
                f"Invalid response from LLM: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e

        track_llm_request(
            self._settings.model,
            time.perf_counter() - start,
            result.prompt_tokens,
            result.completion_tokens,
        )
        return result

    def _track_failure(self, start: float) -> None:
        track_llm_request(self._settings.model, time.perf_counter() - start, 0, 0, success=False)
