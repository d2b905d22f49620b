"""
Plan module: cessation plan ownership lookups and plan-side cache invalidation.
"""

from src.modules.plan.cache import PlanCacheInvalidator, PlanStageCacheInvalidator
from src.modules.plan.service import PlanOwnership, PlanOwnershipService

__all__ = [
    "PlanOwnership",
    "PlanOwnershipService",
    "PlanCacheInvalidator",
    "PlanStageCacheInvalidator",
]
