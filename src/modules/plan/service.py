"""
Plan Ownership Service
======================

Purpose
-------
Read-only lookups of cessation plans for other modules. Progress tracking
uses it to check that a plan exists and to learn who owns it; it never
mutates plans.

Soft-deleted plans are treated as missing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from src.core.database.service import DatabaseService
from src.core.exceptions import DatabaseError
from src.core.logging.logger import get_logger
from src.database.models import CessationPlan
from src.domain.models.progress_record import PlanSummary
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus


class PlanOwnership(Protocol):
    async def get_plan(self, plan_id: str) -> Optional[PlanSummary]: ...


# ============================================================================
# Repository
# ============================================================================


class CessationPlanRepository(BaseRepository[CessationPlan]):
    async def find_active(
        self, session: AsyncSession, plan_id: str
    ) -> Optional[CessationPlan]:
        return await self.find_one_where(
            session,
            CessationPlan.id == plan_id,
            CessationPlan.is_deleted.is_(False),
        )


# ============================================================================
# PlanOwnershipService
# ============================================================================


class PlanOwnershipService(BaseService):
    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._plan_repo = CessationPlanRepository(
            model_class=CessationPlan,
            logger=get_logger(f"{__name__}.CessationPlanRepository"),
        )

    async def get_plan(self, plan_id: str) -> Optional[PlanSummary]:
        """Return `{id, user_id, status}` for an active plan, or None."""
        try:
            async with DatabaseService.get_session() as session:
                plan = await self._plan_repo.find_active(session, plan_id)
        except SQLAlchemyError as exc:
            raise DatabaseError("cessation_plan.get_plan", exc) from exc

        if plan is None:
            return None
        return PlanSummary(id=plan.id, user_id=plan.user_id, status=plan.status)
