"""FastAPI dependencies resolving services from application state."""

from fastapi import Depends, Request

from codechat.catalog.service import CatalogService
from codechat.chat.service import ChatService
from codechat.exceptions import CodechatError, ErrorCode
from codechat.retrieval.retriever import SemanticRetriever
from codechat.wiring import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    """Services created by the application lifespan.

    Raises:
        CodechatError: SERVICE_UNAVAILABLE when the app started without them.
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise CodechatError(
            "Services are not configured",
            code=ErrorCode.SERVICE_UNAVAILABLE,
        )
    return services


def get_catalog(services: ServiceContainer = Depends(get_services)) -> CatalogService:
    return services.catalog


def get_retriever(services: ServiceContainer = Depends(get_services)) -> SemanticRetriever:
    return services.retriever


def get_chat_service(services: ServiceContainer = Depends(get_services)) -> ChatService:
    return services.chat
