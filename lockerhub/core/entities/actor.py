from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    CUSTOMER = "customer"
    RIDER = "rider"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class Actor:
    """
    Identity of the caller for one request, as asserted by the authentication provider.
    """
    user_id: str
    role: Role

    def may_act_for(self, customer_id: str) -> bool:
        """Admins act on any rental; everyone else only on their own."""
        return self.role is Role.ADMIN or self.user_id == customer_id


SYSTEM_ACTOR_ID = "system"
