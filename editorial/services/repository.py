"""
Record Repository

Persistence contract the editor and list view consume, plus the
SQLAlchemy implementation backed by the ``documents`` table.

Records travel as plain dicts: ``key`` and ``slug`` plus whatever the
editor stored, with ``created_at``/``updated_at`` stamped by the
repository. Writing the ``SERVER_TIMESTAMP`` sentinel into either
timestamp asks the repository to stamp the current time.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from editorial.exceptions import StorageError
from editorial.models.document import Document, utcnow

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

# Fields kept in dedicated columns rather than in the JSON payload
COLUMN_FIELDS = ("key", "slug", "moved_from", "created_at", "updated_at")


class RecordRepository(ABC):
    """Abstract persistence contract. Every method raises StorageError on backend failure."""

    supports_transactions: bool = False

    @abstractmethod
    async def fetch_all(self, collection: str) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def fetch_by_key(self, collection: str, key: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def query_by_field(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def upsert(self, collection: str, key: str, data: dict[str, Any], merge: bool = True) -> None: ...

    @abstractmethod
    async def delete(self, collection: str, key: str) -> bool: ...

    @abstractmethod
    async def create(self, collection: str, data: dict[str, Any]) -> str: ...

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """
        Async context manager grouping writes atomically.

        Only backends with ``supports_transactions`` set override this.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support transactions")


class SQLAlchemyRepository(RecordRepository):
    """Document store over an AsyncSession.

    Each write commits on its own unless it runs inside ``transaction()``,
    in which case writes are only flushed and the block commits (or rolls
    back) as a whole.
    """

    supports_transactions = True

    def __init__(self, db: AsyncSession):
        self.db = db
        self._in_transaction = False

    @staticmethod
    def to_record(row: Document) -> dict[str, Any]:
        return {
            **(row.data or {}),
            "key": row.key,
            "slug": row.slug or "",
            "moved_from": row.moved_from,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }

    async def _get_row(self, collection: str, key: str) -> Document | None:
        try:
            result = await self.db.execute(
                select(Document).where(Document.collection == collection, Document.key == key)
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {collection}/{key}: {e}")
            raise StorageError(f"Failed to fetch record '{key}'", operation="fetch") from e
        return result.scalars().first()

    async def _commit(self, operation: str) -> None:
        try:
            if self._in_transaction:
                await self.db.flush()
            else:
                await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Storage failure during {operation}: {e}")
            raise StorageError(f"Failed to {operation} record", operation=operation) from e

    async def fetch_all(self, collection: str) -> list[dict[str, Any]]:
        try:
            result = await self.db.execute(
                select(Document).where(Document.collection == collection).order_by(Document.id)
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {collection}: {e}")
            raise StorageError(f"Failed to fetch {collection}", operation="fetch_all") from e
        return [self.to_record(row) for row in result.scalars().all()]

    async def fetch_by_key(self, collection: str, key: str) -> dict[str, Any] | None:
        row = await self._get_row(collection, key)
        return self.to_record(row) if row is not None else None

    async def query_by_field(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        if field in COLUMN_FIELDS:
            condition = getattr(Document, field) == value
        else:
            condition = Document.data[field].as_string() == value

        try:
            result = await self.db.execute(
                select(Document).where(Document.collection == collection, condition).order_by(Document.id)
            )
        except SQLAlchemyError as e:
            logger.error(f"Error querying {collection} by {field}: {e}")
            raise StorageError(f"Failed to query {collection}", operation="query") from e
        return [self.to_record(row) for row in result.scalars().all()]

    async def upsert(self, collection: str, key: str, data: dict[str, Any], merge: bool = True) -> None:
        """Write ``data`` at ``key``.

        With ``merge`` only the supplied fields change and everything else
        stored on the document survives; without it the payload replaces
        the document (``created_at`` is kept unless supplied).
        """
        payload = dict(data)
        payload.pop("key", None)
        now = utcnow()

        stamps = {}
        for column in ("created_at", "updated_at"):
            if column in payload:
                value = payload.pop(column)
                stamps[column] = now if value is SERVER_TIMESTAMP else value

        row = await self._get_row(collection, key)
        if row is None:
            row = Document(collection=collection, key=key, data={}, created_at=now, updated_at=now)
            self.db.add(row)
            merge = False

        if merge:
            if "slug" in payload:
                row.slug = payload.pop("slug") or None
            if "moved_from" in payload:
                row.moved_from = payload.pop("moved_from")
            row.data = {**(row.data or {}), **payload}
        else:
            row.slug = payload.pop("slug", None) or None
            row.moved_from = payload.pop("moved_from", None)
            row.data = payload

        for column, value in stamps.items():
            setattr(row, column, value)

        await self._commit("write")
        logger.info(f"Record written: {collection}/{key} (merge={merge})")

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        key = uuid.uuid4().hex
        await self.upsert(collection, key, data, merge=False)
        return key

    async def delete(self, collection: str, key: str) -> bool:
        row = await self._get_row(collection, key)
        if row is None:
            return False

        await self.db.delete(row)
        await self._commit("delete")
        logger.info(f"Record deleted: {collection}/{key}")
        return True

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._in_transaction:
            yield
            return

        self._in_transaction = True
        try:
            yield
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Transaction rolled back: {e}")
            raise StorageError("Transaction failed", operation="transaction") from e
        except Exception:
            await self.db.rollback()
            raise
        finally:
            self._in_transaction = False
