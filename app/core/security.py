from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import uuid


class Role(str, Enum):
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"


@dataclass(frozen=True)
class Principal:
    id: uuid.UUID
    role: Role
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def can_access(
    principal: Principal,
    resource_owner_id: Optional[uuid.UUID] = None,
    required_role: Optional[Role] = None,
) -> bool:
    """Single authorization predicate for every protected resource.

    Admins always pass. Otherwise the principal must hold ``required_role``
    when one is given, and must own the resource when an owner is given.
    """
    if principal.is_admin:
        return True
    if required_role is not None and principal.role != required_role:
        return False
    if resource_owner_id is not None:
        return str(resource_owner_id) == str(principal.id)
    return required_role is not None
