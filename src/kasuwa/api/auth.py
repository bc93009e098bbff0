"""Caller identity for the HTTP API.

Token issuance lives outside this service; an upstream gateway is expected
to authenticate the caller and forward ``X-User-Id`` and ``X-User-Role``.
"""

from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Header, HTTPException


class Role(Enum):
    CUSTOMER = "Customer"
    VENDOR = "Vendor"
    ADMINISTRATOR = "Administrator"


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMINISTRATOR

    @property
    def is_vendor(self) -> bool:
        return self.role == Role.VENDOR

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER


def current_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        role = Role(x_user_role or Role.CUSTOMER.value)
    except ValueError as exc:
        raise HTTPException(status_code=403, detail=f"Unknown role {x_user_role}") from exc
    return Actor(user_id=x_user_id, role=role)


def require_roles(*roles: Role):
    """Dependency that only lets the given roles through."""

    def dependency(actor: Actor = Depends(current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=403, detail="You are not allowed to perform this action")
        return actor

    return dependency


def forbid() -> HTTPException:
    return HTTPException(status_code=403, detail="Access denied")
