"""Repository layer for the training catalog.

A generic, table-addressed store over profiles, courses, trainings and
completed lessons. Every call opens its own session and commits before
returning, so each operation is an independent round trip; callers re-fetch
whole collections after mutating instead of patching what they hold.
Cascading deletes are left to the database foreign keys.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.errors import StoreError
from portal.models.persisted_portal import (
    Base,
    CompletedLessonRecord,
    CourseRecord,
    ProfileRecord,
    TrainingRecord,
)

logger = logging.getLogger(__name__)

TABLES: Dict[str, Type[Base]] = {
    "profiles": ProfileRecord,
    "courses": CourseRecord,
    "trainings": TrainingRecord,
    "completed_lessons": CompletedLessonRecord,
}


class RecordNotFoundError(StoreError):
    """Raised when an update or delete targets an id that does not exist."""

    default_message = "The requested record no longer exists."
    status_code = 404


class RecordConflictError(StoreError):
    """Raised when a write violates a uniqueness or reference constraint."""

    default_message = "The change conflicts with existing data."
    status_code = 409


class CatalogStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # Helpers ----------------------------------------------------------------
    @staticmethod
    def _model(table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise StoreError(f"Unknown table '{table}'") from None

    @staticmethod
    def _column(model, name: str):
        column = model.__table__.columns.get(name)
        if column is None:
            raise StoreError(
                f"Unknown field '{name}' for {model.__tablename__}"
            )
        return getattr(model, name)

    def _check_fields(self, model, fields: Dict[str, Any]) -> None:
        for name in fields:
            self._column(model, name)

    @staticmethod
    def _insertion_order(model) -> list:
        # created_at on catalog tables, completed_at on completion facts
        stamp = model.created_at if hasattr(model, "created_at") else model.completed_at
        return [stamp, model.seq]

    # READ -------------------------------------------------------------------
    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[dict]:
        """Return every record of ``table`` matching all equality filters.

        ``order_by`` names a column, prefixed with ``-`` for descending order.
        Records come back in insertion order by default, and ties on
        ``order_by`` fall back to insertion order in the same direction.
        """
        model = self._model(table)
        stmt = select(model)
        for name, value in (filters or {}).items():
            stmt = stmt.where(self._column(model, name) == value)
        keys = self._insertion_order(model)
        if order_by:
            descending = order_by.startswith("-")
            keys.insert(0, self._column(model, order_by.lstrip("-")))
            if descending:
                keys = [key.desc() for key in keys]
        stmt = stmt.order_by(*keys)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [record.to_dict() for record in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.error("Select on %s failed: %s", table, exc)
            raise StoreError() from exc

    # CREATE -----------------------------------------------------------------
    async def insert(self, table: str, record: Dict[str, Any]) -> dict:
        model = self._model(table)
        self._check_fields(model, record)
        try:
            async with self.session_factory() as session:
                instance = model(**record)
                session.add(instance)
                await session.commit()
                await session.refresh(instance)
                return instance.to_dict()
        except IntegrityError as exc:
            logger.error("Insert into %s rejected: %s", table, exc.orig)
            raise RecordConflictError() from exc
        except SQLAlchemyError as exc:
            logger.error("Insert into %s failed: %s", table, exc)
            raise StoreError() from exc

    # UPDATE -----------------------------------------------------------------
    async def update(
        self, table: str, record_id: str, fields: Dict[str, Any]
    ) -> dict:
        model = self._model(table)
        self._check_fields(model, fields)
        if "id" in fields:
            raise StoreError("Record ids cannot be changed")
        try:
            async with self.session_factory() as session:
                instance = await session.get(model, record_id)
                if instance is None:
                    raise RecordNotFoundError()
                for name, value in fields.items():
                    setattr(instance, name, value)
                await session.commit()
                await session.refresh(instance)
                return instance.to_dict()
        except IntegrityError as exc:
            logger.error("Update of %s/%s rejected: %s", table, record_id, exc.orig)
            raise RecordConflictError() from exc
        except SQLAlchemyError as exc:
            logger.error("Update of %s/%s failed: %s", table, record_id, exc)
            raise StoreError() from exc

    # DELETE -----------------------------------------------------------------
    async def delete(self, table: str, record_id: str) -> None:
        model = self._model(table)
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(model).where(model.id == record_id)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Delete of %s/%s failed: %s", table, record_id, exc)
            raise StoreError() from exc
        if result.rowcount == 0:
            raise RecordNotFoundError()
