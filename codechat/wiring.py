"""Construction and teardown of the long-lived service objects."""

from dataclasses import dataclass

from codechat.catalog.repository import PostgresContentRepository
from codechat.catalog.service import CatalogService
from codechat.chat.service import ChatService
from codechat.chat.state import ChatStateStore
from codechat.config import Settings, get_settings
from codechat.embeddings.service import HTTPEmbeddingService
from codechat.llm.client import OpenAICompatibleClient
from codechat.logging_config import get_logger
from codechat.retrieval.retriever import SemanticRetriever

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Everything a request handler or the terminal chat needs."""

    repository: PostgresContentRepository
    embedding_service: HTTPEmbeddingService
    llm_client: OpenAICompatibleClient
    catalog: CatalogService
    retriever: SemanticRetriever
    chat: ChatService

    async def aclose(self) -> None:
        """Release HTTP clients and the connection pool."""
        await self.embedding_service.close()
        await self.llm_client.close()
        await self.repository.close()
        logger.debug("Services closed")


def build_services(settings: Settings | None = None) -> ServiceContainer:
    """Wire services from configuration.

    Nothing connects here: HTTP clients and the pool open on first use.
    """
    settings = settings or get_settings()

    repository = PostgresContentRepository(settings.database)
    embedding_service = HTTPEmbeddingService(settings.embedding)
    llm_client = OpenAICompatibleClient(settings.llm)
    retriever = SemanticRetriever(
        embedding_service=embedding_service,
        repository=repository,
        search_limit=settings.chat.search_limit,
        suggestion_count=settings.chat.suggestion_count,
    )
    state_store = ChatStateStore(
        settings.chat.state_path,
        default_version=settings.chat.default_version,
    )
    chat = ChatService(
        embedding_service=embedding_service,
        retriever=retriever,
        llm_client=llm_client,
        state_store=state_store,
    )

    return ServiceContainer(
        repository=repository,
        embedding_service=embedding_service,
        llm_client=llm_client,
        catalog=CatalogService(repository),
        retriever=retriever,
        chat=chat,
    )
