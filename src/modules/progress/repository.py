"""
Record Store for progress records.

Purpose
-------
`RecordStore` is the persistence port the service depends on.
`SqlAlchemyRecordStore` implements it over `DatabaseService`: reads run in
plain sessions, writes in `get_transaction()` so each call commits on its
own.

Every method returns `ProgressRecordData` (never ORM rows), with the owning
plan summary attached.

Error mapping
-------------
- Violating the active-day unique index -> `ConflictError`
- Any other SQLAlchemy failure           -> `DatabaseError`
- Updating a missing id                  -> `NotFoundError`
"""

from __future__ import annotations

from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from sqlalchemy import asc, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.base import utcnow
from src.core.database.service import DatabaseService
from src.core.exceptions import DatabaseError
from src.core.logging.logger import get_logger
from src.database.models import ACTIVE_DAY_INDEX, ProgressRecord
from src.domain.models.progress_record import ProgressRecordData
from src.modules.progress.schemas import (
    CreateProgressRecordInput,
    PaginationParams,
    ProgressRecordFilters,
)
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.exceptions import ConflictError, NotFoundError

logger = get_logger(__name__)

RESOURCE = "progress_record"


class RecordStore(Protocol):
    async def create(self, data: CreateProgressRecordInput) -> ProgressRecordData: ...

    async def find_one(
        self, record_id: str, active_only: bool = True
    ) -> Optional[ProgressRecordData]: ...

    async def find_any(self, record_id: str) -> Optional[ProgressRecordData]: ...

    async def find_by_plan_and_date(
        self,
        plan_id: str,
        day: date,
        active_only: bool = False,
        exclude_id: Optional[str] = None,
    ) -> Optional[ProgressRecordData]: ...

    async def find_all(
        self, pagination: PaginationParams, filters: ProgressRecordFilters
    ) -> Tuple[List[ProgressRecordData], int]: ...

    async def find_history(self, plan_id: str, limit: int) -> List[ProgressRecordData]: ...

    async def update(self, record_id: str, changes: Dict[str, Any]) -> ProgressRecordData: ...

    async def reactivate(
        self, record_id: str, changes: Dict[str, Any]
    ) -> ProgressRecordData: ...

    async def soft_delete(self, record_id: str) -> ProgressRecordData: ...


def _is_active_day_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    if ACTIVE_DAY_INDEX in message:
        return True
    # SQLite reports the columns instead of the index name.
    return "UNIQUE" in message and "record_date" in message


class SqlAlchemyRecordStore(BaseRepository[ProgressRecord]):
    """`RecordStore` backed by the `progress_records` table."""

    def __init__(self) -> None:
        super().__init__(ProgressRecord, logger)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def find_one(
        self, record_id: str, active_only: bool = True
    ) -> Optional[ProgressRecordData]:
        async with DatabaseService.get_session() as session:
            row = await self.get(session, record_id)
            if row is None or (active_only and row.is_deleted):
                return None
            return ProgressRecordData.from_row(row)

    async def find_any(self, record_id: str) -> Optional[ProgressRecordData]:
        return await self.find_one(record_id, active_only=False)

    async def find_by_plan_and_date(
        self,
        plan_id: str,
        day: date,
        active_only: bool = False,
        exclude_id: Optional[str] = None,
    ) -> Optional[ProgressRecordData]:
        """
        Look up the record for (plan_id, day).

        With `active_only=False`, an active row wins over soft-deleted ones,
        then the most recently updated soft-deleted row.
        """
        conditions = [ProgressRecord.plan_id == plan_id, ProgressRecord.record_date == day]
        if active_only:
            conditions.append(ProgressRecord.is_deleted.is_(False))
        if exclude_id is not None:
            conditions.append(ProgressRecord.id != exclude_id)

        async with DatabaseService.get_session() as session:
            rows = await self.find_many_where(
                session,
                *conditions,
                order_by=(asc(ProgressRecord.is_deleted), desc(ProgressRecord.updated_at)),
                limit=1,
            )
            return ProgressRecordData.from_row(rows[0]) if rows else None

    async def find_all(
        self, pagination: PaginationParams, filters: ProgressRecordFilters
    ) -> Tuple[List[ProgressRecordData], int]:
        conditions = [ProgressRecord.is_deleted.is_(False)]
        if filters.plan_id is not None:
            conditions.append(ProgressRecord.plan_id == filters.plan_id)
        if filters.start_date is not None:
            conditions.append(ProgressRecord.record_date >= filters.start_date)
        if filters.end_date is not None:
            # record_date is a DATE, so <= end_date covers the whole end day.
            conditions.append(ProgressRecord.record_date <= filters.end_date)

        column = getattr(ProgressRecord, pagination.order_by)
        direction = desc if pagination.sort_order == "desc" else asc

        async with DatabaseService.get_session() as session:
            total = await self.count(session, *conditions)
            rows = await self.find_many_where(
                session,
                *conditions,
                order_by=(direction(column), direction(ProgressRecord.id)),
                limit=pagination.limit,
                offset=pagination.offset,
            )
            return [ProgressRecordData.from_row(row) for row in rows], total

    async def find_history(self, plan_id: str, limit: int) -> List[ProgressRecordData]:
        """Most recent active records of a plan, newest day first."""
        async with DatabaseService.get_session() as session:
            rows = await self.find_many_where(
                session,
                ProgressRecord.plan_id == plan_id,
                ProgressRecord.is_deleted.is_(False),
                order_by=(desc(ProgressRecord.record_date),),
                limit=limit,
            )
            return [ProgressRecordData.from_row(row) for row in rows]

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def _load_with_plan(
        self, session: AsyncSession, row: ProgressRecord
    ) -> ProgressRecordData:
        await self.flush(session)
        await session.refresh(row, attribute_names=["plan"])
        return ProgressRecordData.from_row(row)

    async def _write(
        self,
        operation: str,
        record_id: Optional[str],
        apply: Callable[[AsyncSession], Awaitable[ProgressRecordData]],
    ) -> ProgressRecordData:
        try:
            async with DatabaseService.get_transaction() as session:
                return await apply(session)
        except IntegrityError as exc:
            if _is_active_day_violation(exc):
                logger.info(
                    "Active progress record already exists for day",
                    extra={"operation": operation, "record_id": record_id},
                )
                raise ConflictError(
                    RESOURCE,
                    "Progress record for this date already exists",
                    details={"record_id": record_id},
                ) from exc
            raise DatabaseError(operation, exc) from exc
        except SQLAlchemyError as exc:
            raise DatabaseError(operation, exc) from exc

    async def create(self, data: CreateProgressRecordInput) -> ProgressRecordData:
        async def apply(session: AsyncSession) -> ProgressRecordData:
            row = self.add(session, ProgressRecord(plan_id=data.plan_id, **data.values()))
            return await self._load_with_plan(session, row)

        return await self._write("progress_record.create", None, apply)

    async def _mutate(
        self,
        operation: str,
        record_id: str,
        changes: Dict[str, Any],
        *,
        is_deleted: Optional[bool] = None,
    ) -> ProgressRecordData:
        async def apply(session: AsyncSession) -> ProgressRecordData:
            row = await self.get(session, record_id)
            if row is None:
                raise NotFoundError(RESOURCE, record_id)
            for name, value in changes.items():
                setattr(row, name, value)
            if is_deleted is not None:
                row.is_deleted = is_deleted
                row.deleted_at = utcnow() if is_deleted else None
            # Bump explicitly so state-only transitions still move updated_at.
            row.updated_at = utcnow()
            return await self._load_with_plan(session, row)

        return await self._write(operation, record_id, apply)

    async def update(self, record_id: str, changes: Dict[str, Any]) -> ProgressRecordData:
        return await self._mutate("progress_record.update", record_id, changes)

    async def reactivate(self, record_id: str, changes: Dict[str, Any]) -> ProgressRecordData:
        return await self._mutate(
            "progress_record.reactivate", record_id, changes, is_deleted=False
        )

    async def soft_delete(self, record_id: str) -> ProgressRecordData:
        return await self._mutate(
            "progress_record.soft_delete", record_id, {}, is_deleted=True
        )
