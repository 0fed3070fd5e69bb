"""Catalog browsing with call-site error handling.

Browsing never fails loudly: a broken database yields an empty listing or
a missing item, and the cause is logged.
"""

from codechat.catalog.models import ContentItem, ContentListItem, ContentTable
from codechat.catalog.repository import ContentRepository
from codechat.exceptions import DatabaseError
from codechat.logging_config import get_logger

logger = get_logger(__name__)


class CatalogService:
    """Lists and fetches content rows for browsing."""

    def __init__(self, repository: ContentRepository) -> None:
        self._repository = repository

    @staticmethod
    def tables() -> list[ContentTable]:
        """Tables available for browsing and search."""
        return list(ContentTable)

    async def list_items(
        self,
        table: ContentTable = ContentTable.CODE_EXAMPLES,
    ) -> list[ContentListItem]:
        """Summarized rows of ``table``; empty when the query fails."""
        try:
            return await self._repository.list_items(table)
        except DatabaseError as e:
            logger.error(
                f"Could not list items from {table.value}: {e.message}",
                extra={"table": table.value},
            )
            return []

    async def get_item(
        self,
        item_id: int,
        table: ContentTable = ContentTable.CODE_EXAMPLES,
    ) -> ContentItem | None:
        """Full row by id; ``None`` when absent or when the query fails."""
        try:
            return await self._repository.get_item(item_id, table)
        except DatabaseError as e:
            logger.error(
                f"Could not fetch item {item_id} from {table.value}: {e.message}",
                extra={"table": table.value, "item_id": item_id},
            )
            return None
