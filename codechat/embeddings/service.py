"""Embedding service interface and implementations."""

import time
from abc import ABC, abstractmethod

import httpx

from codechat.config import EmbeddingSettings, get_settings
from codechat.embeddings.models import EmbeddingResult
from codechat.exceptions import EmbeddingError, ErrorCode
from codechat.logging_config import get_logger
from codechat.observability.metrics import track_embedding_request
from codechat.openai_api import auth_headers, endpoint_url

logger = get_logger(__name__)


class EmbeddingService(ABC):
    """Abstract base class for embedding services.

    Defines the interface for generating text embeddings.
    """

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            EmbeddingResult with vector. The vector is empty when the
            service answered without one.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts.

        Args:
            texts: List of texts to embed.

        Returns:
            List of EmbeddingResult objects.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Get the embedding dimensions."""
        ...


class HTTPEmbeddingService(EmbeddingService):
    """Embedding service speaking the OpenAI embeddings API.

    Works against OpenAI-compatible servers and Azure OpenAI deployments
    (when ``api_version`` is configured).
    """

    MODEL_DIMENSIONS = {
        "text-embedding-ada-002": 1536,
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding service.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None
        self._dimensions: int | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    @property
    def dimensions(self) -> int:
        """Get embedding dimensions."""
        if self._dimensions is not None:
            return self._dimensions
        return self.MODEL_DIMENSIONS.get(self._settings.model, 1536)

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text."""
        results = await self.embed_batch([text])
        if not results:
            logger.warning("Embedding service returned no vector")
            return EmbeddingResult(
                text=text,
                embedding=[],
                model=self._settings.model,
                dimensions=0,
            )
        return results[0]

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts, batching requests."""
        if not texts:
            return []

        client = await self._get_client()
        url = endpoint_url(
            self._settings.base_url,
            "embeddings",
            self._settings.model,
            self._settings.api_version,
        )

        all_results: list[EmbeddingResult] = []
        batch_size = self._settings.batch_size

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            batch_results = await self._embed_batch_request(client, url, batch)
            all_results.extend(batch_results)

        return all_results

    async def _embed_batch_request(
        self,
        client: httpx.AsyncClient,
        url: str,
        texts: list[str],
    ) -> list[EmbeddingResult]:
        """Make embedding request for a batch.

        Raises:
            EmbeddingError: If request fails or the body is malformed.
        """
        payload = {
            "input": texts,
            "model": self._settings.model,
        }
        headers = auth_headers(self._settings.api_key, self._settings.api_version)

        start = time.perf_counter()
        try:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            track_embedding_request(
                self._settings.model, time.perf_counter() - start, len(texts), success=False
            )
            logger.error(
                f"Embedding request failed: {e.response.status_code}",
                extra={"status": e.response.status_code},
            )
            raise EmbeddingError(
                "Failed to generate embeddings: service returned "
                f"{e.response.status_code}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            track_embedding_request(
                self._settings.model, time.perf_counter() - start, len(texts), success=False
            )
            logger.error(f"Embedding request error: {e}")
            raise EmbeddingError(
                f"Failed to generate embeddings: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
            ) from e

        track_embedding_request(self._settings.model, time.perf_counter() - start, len(texts))

        try:
            data = response.json()
            items = sorted(data.get("data", []), key=lambda d: d.get("index", 0))

            results: list[EmbeddingResult] = []
            for i, emb_data in enumerate(items):
                embedding = emb_data.get("embedding") or []

                if self._dimensions is None and embedding:
                    self._dimensions = len(embedding)

                results.append(
                    EmbeddingResult(
                        text=texts[i],
                        embedding=embedding,
                        model=self._settings.model,
                        dimensions=len(embedding),
                    )
                )

            return results

        except (AttributeError, KeyError, IndexError, ValueError) as e:
            raise EmbeddingError(
                f"Invalid response from embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e
