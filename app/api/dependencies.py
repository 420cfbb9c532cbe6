from __future__ import annotations

from typing import Optional
import uuid

from fastapi import Depends, Header, HTTPException

from app.core.config import db_configured
from app.core.errors import AccessDenied, Unauthorized
from app.core.security import Principal, Role, can_access


def require_db() -> None:
    if not db_configured():
        raise HTTPException(status_code=500, detail="Database is not configured")


def current_principal(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> Principal:
    """Principal forwarded by the upstream authenticator.

    The gateway authorizer verifies the session and injects these headers;
    nothing here re-checks identity.
    """
    if not x_user_id or not x_user_role:
        raise Unauthorized("Missing authenticated user")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError as exc:
        raise Unauthorized("Invalid user id") from exc
    try:
        role = Role(x_user_role.upper())
    except ValueError as exc:
        raise Unauthorized("Invalid user role") from exc
    return Principal(id=user_id, role=role, name=x_user_name or "")


def require_admin(principal: Principal = Depends(current_principal)) -> Principal:
    if not can_access(principal, required_role=Role.ADMIN):
        raise AccessDenied("Administrator role required")
    return principal
