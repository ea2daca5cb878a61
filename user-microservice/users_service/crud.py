"""Document store operations: JSON documents grouped into named collections."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import db
from .models import Document
from .logger import logger


class StorageError(RuntimeError):
    """The document store failed in a way the caller cannot fix."""


class DocumentCollection:
    """A named collection of flat JSON documents keyed by id.

    No schema is enforced here; callers hand in already-normalized records.
    Every method opens its own session, so single-document operations are
    atomic but check-then-act sequences across calls are not.
    """

    def __init__(self, name: str):
        self.name = name

    def _key(self, doc_id: str) -> tuple[str, str]:
        return (self.name, doc_id)

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        """Open a session and turn driver failures into StorageError."""
        async with db.async_session() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to {action} in collection '{self.name}'", exc_info=True)
                raise StorageError(f"Failed to {action}") from e

    # ==================== Reads ====================

    async def exists(self, doc_id: str) -> bool:
        async with self._session(f"check document {doc_id}") as session:
            result = await session.execute(
                select(Document.id).where(
                    Document.collection == self.name, Document.id == doc_id
                )
            )
            return result.first() is not None

    async def get(self, doc_id: str) -> dict[str, Any] | None:
        """Return the stored record, or None if there is no such document."""
        async with self._session(f"get document {doc_id}") as session:
            doc = await session.get(Document, self._key(doc_id))
            return dict(doc.data) if doc else None

    async def get_all(self) -> list[dict[str, Any]]:
        """Every record in the collection, in whatever order the store returns them."""
        async with self._session("list documents") as session:
            result = await session.execute(
                select(Document.data).where(Document.collection == self.name)
            )
            docs = [dict(data) for data in result.scalars().all()]
            logger.debug(f"Collection '{self.name}' returned {len(docs)} documents")
            return docs

    # ==================== Writes ====================

    async def set(self, doc_id: str, data: dict[str, Any]) -> None:
        """Write a record at doc_id, replacing any existing document."""
        async with self._session(f"set document {doc_id}") as session:
            async with session.begin():
                await session.merge(Document(collection=self.name, id=doc_id, data=dict(data)))

    async def create(self, doc_id: str, data: dict[str, Any]) -> None:
        """Insert a new document. Raises ValueError if doc_id is already taken."""
        async with self._session(f"create document {doc_id}") as session:
            try:
                async with session.begin():
                    session.add(Document(collection=self.name, id=doc_id, data=dict(data)))
            except IntegrityError as e:
                logger.debug(f"Duplicate document rejected: {self.name}/{doc_id}")
                raise ValueError("duplicate document") from e

    async def update(self, doc_id: str, data: dict[str, Any]) -> bool:
        """Merge top-level keys of data into an existing document.

        Keys missing from data keep their stored values. Returns False if the
        document does not exist.
        """
        async with self._session(f"update document {doc_id}") as session:
            async with session.begin():
                doc = await session.get(Document, self._key(doc_id))
                if doc is None:
                    return False
                # Reassign so the JSON column is flagged dirty
                doc.data = {**doc.data, **data}
            return True

    async def delete(self, doc_id: str) -> bool:
        """Remove a document. Returns False if it did not exist."""
        async with self._session(f"delete document {doc_id}") as session:
            async with session.begin():
                doc = await session.get(Document, self._key(doc_id))
                if doc is None:
                    return False
                await session.delete(doc)
            return True
