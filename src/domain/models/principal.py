"""
Authenticated caller identity as seen by the service layer.

Authentication itself happens upstream; services only receive the result.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class UserRole(str, enum.Enum):
    MEMBER = "MEMBER"
    COACH = "COACH"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole = UserRole.MEMBER

    @property
    def can_view_all_plans(self) -> bool:
        """Coaches and admins may list records across plans they do not own."""
        return self.role in (UserRole.COACH, UserRole.ADMIN)
