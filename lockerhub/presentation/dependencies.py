from __future__ import annotations

from typing import Callable

from fastapi import Depends, Header, HTTPException

from lockerhub.core.entities.actor import Actor, Role
from lockerhub.core.pricing import PricingTable
from lockerhub.core.tokens import CredentialPolicy
from lockerhub.core.use_cases.rental_transition import Clock, utcnow
from lockerhub.infrastructure.database import SessionLocal
from lockerhub.services.lockerhub_service import default_credential_policy, default_pricing_table


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> Clock:
    return utcnow


def get_pricing() -> PricingTable:
    return default_pricing_table()


def get_credentials() -> CredentialPolicy:
    return default_credential_policy()


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    """
    Request-scoped identity. The authentication gateway in front of the service verifies
    the caller and forwards the stable user id and role claim as headers.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    try:
        role = Role(x_user_role)
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role!r}") from None
    return Actor(user_id=x_user_id, role=role)


def require_roles(*roles: Role) -> Callable[[Actor], Actor]:
    allowed = set(roles)

    def _check(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(status_code=403, detail="Not allowed for this role")
        return actor

    return _check
