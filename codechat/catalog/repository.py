"""Content repository interface and Postgres/pgvector implementation."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, TypeVar

import psycopg
from pgvector import Vector
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pgvector.psycopg import register_vector_async
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from codechat.catalog.models import ContentItem, ContentListItem, ContentTable
from codechat.config import DatabaseSettings, get_settings
from codechat.exceptions import DatabaseError, ErrorCode
from codechat.logging_config import get_logger
from codechat.observability.metrics import track_db_query

logger = get_logger(__name__)

RowModel = TypeVar("RowModel", bound=BaseModel)


class ContentRepository(ABC):
    """Abstract base class for read access to content tables."""

    @abstractmethod
    async def list_items(self, table: ContentTable) -> list[ContentListItem]:
        """List every row in summarized form, ordered by id.

        Raises:
            DatabaseError: If the query fails.
        """
        ...

    @abstractmethod
    async def get_item(self, item_id: int, table: ContentTable) -> ContentItem | None:
        """Fetch one full row by primary key.

        Returns:
            The row, or ``None`` when no row has that id.

        Raises:
            DatabaseError: If the query fails.
        """
        ...

    @abstractmethod
    async def search(
        self,
        embedding: list[float],
        table: ContentTable,
        limit: int = 5,
        version: str | None = None,
    ) -> list[ContentItem]:
        """Nearest neighbours of ``embedding`` by vector distance.

        Args:
            embedding: Query vector.
            table: Table to search.
            limit: Maximum rows to return.
            version: Only rows with this version tag, when not blank.

        Returns:
            Rows ordered nearest first.

        Raises:
            DatabaseError: If the query fails.
        """
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        ...


class PostgresContentRepository(ContentRepository):
    """Content repository backed by Postgres with the pgvector extension."""

    def __init__(
        self,
        settings: DatabaseSettings | None = None,
        pool: AsyncConnectionPool | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            settings: Database configuration.
            pool: Existing connection pool (for testing).
        """
        self._settings = settings or get_settings().database
        self._pool = pool
        self._owns_pool = pool is None
        self._pool_lock = asyncio.Lock()

    async def _get_pool(self) -> AsyncConnectionPool:
        """Get or open the connection pool; concurrent first callers share one."""
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                pool = AsyncConnectionPool(
                    self._settings.url.get_secret_value(),
                    min_size=self._settings.min_size,
                    max_size=self._settings.max_size,
                    timeout=self._settings.timeout,
                    kwargs={"row_factory": dict_row},
                    configure=register_vector_async,
                    open=False,
                )
                await pool.open()
                self._pool = pool
        return self._pool

    async def close(self) -> None:
        """Close the pool if we own it."""
        if self._owns_pool and self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def _fetch(
        self,
        operation: str,
        query: sql.Composable,
        params: list[Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a query and return all rows as dicts.

        Raises:
            DatabaseError: On any driver or pool error.
        """
        pool = await self._get_pool()
        start = time.perf_counter()

        try:
            async with pool.connection() as conn:
                cursor = await conn.execute(query, params)
                rows = await cursor.fetchall()
        except psycopg.Error as e:
            track_db_query(operation, time.perf_counter() - start, success=False)
            logger.error(f"Database {operation} failed: {e}")
            raise DatabaseError(
                f"Database {operation} failed: {e}",
                code=ErrorCode.DATABASE_ERROR,
                details={"operation": operation},
            ) from e

        track_db_query(operation, time.perf_counter() - start)
        return rows

    async def list_items(self, table: ContentTable) -> list[ContentListItem]:
        """List rows of ``table`` in summarized form, ordered by id."""
        name_column = (
            sql.SQL("COALESCE(name, LEFT(content, 50)) AS name")
            if table.names_fall_back_to_content
            else sql.SQL("name")
        )
        query = sql.SQL(
            "SELECT id, {name}, version, created_at FROM {table} ORDER BY id ASC"
        ).format(name=name_column, table=sql.Identifier(table.value))

        rows = await self._fetch("list", query)
        logger.info(f"Fetched {len(rows)} summarized items from {table.value}")
        return _rows_to(ContentListItem, rows, "list", table)

    async def get_item(self, item_id: int, table: ContentTable) -> ContentItem | None:
        """Fetch a full row by id."""
        query = sql.SQL("SELECT * FROM {table} WHERE id = %s").format(
            table=sql.Identifier(table.value)
        )

        rows = await self._fetch("get", query, [item_id])
        if not rows:
            logger.info(f"No item found with id {item_id} in {table.value}")
            return None
        return _rows_to(ContentItem, rows[:1], "get", table)[0]

    async def search(
        self,
        embedding: list[float],
        table: ContentTable,
        limit: int = 5,
        version: str | None = None,
    ) -> list[ContentItem]:
        """Nearest neighbours by pgvector cosine distance."""
        if not embedding:
            logger.warning(f"Semantic search in {table.value} called without an embedding")
            return []

        query = sql.SQL("SELECT * FROM {table}").format(table=sql.Identifier(table.value))
        params: list[Any] = []

        if version and version.strip():
            query += sql.SQL(" WHERE version = %s")
            params.append(version)

        query += sql.SQL(" ORDER BY embedding <=> %s::vector LIMIT %s")
        params.extend([Vector(embedding), limit])

        rows = await self._fetch("search", query, params)
        logger.info(
            f"Semantic search found {len(rows)} items in {table.value}",
            extra={"version": version or "any", "limit": limit},
        )
        return _rows_to(ContentItem, rows, "search", table)

    async def ping(self) -> bool:
        """Check that the database answers."""
        try:
            await self._fetch("ping", sql.SQL("SELECT 1"))
        except DatabaseError:
            return False
        return True


def _rows_to(
    model: type[RowModel],
    rows: list[dict[str, Any]],
    operation: str,
    table: ContentTable,
) -> list[RowModel]:
    """Validate fetched rows into ``model``.

    Raises:
        DatabaseError: If a row does not fit the model.
    """
    try:
        return [model(**row) for row in rows]
    except PydanticValidationError as e:
        logger.error(
            f"Unexpected row shape in {table.value}: {e.error_count()} errors",
            extra={"operation": operation, "table": table.value},
        )
        raise DatabaseError(
            f"Database {operation} returned an unexpected row shape in {table.value}",
            code=ErrorCode.DATABASE_ERROR,
            details={"operation": operation, "table": table.value},
        ) from e
