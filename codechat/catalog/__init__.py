"""Content catalog module."""

from codechat.catalog.models import ContentItem, ContentListItem, ContentTable
from codechat.catalog.repository import ContentRepository, PostgresContentRepository
from codechat.catalog.service import CatalogService

__all__ = [
    "CatalogService",
    "ContentItem",
    "ContentListItem",
    "ContentRepository",
    "ContentTable",
    "PostgresContentRepository",
]
