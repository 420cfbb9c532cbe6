from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException


class DomainError(HTTPException):
    """Base for failures raised by commands and queries.

    ``error_type`` is the discriminant clients branch on; ``detail`` is the
    human-readable message.
    """

    status_code = 400
    error_type = "domain_error"

    def __init__(self, detail: str, errors: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(status_code=self.status_code, detail=detail)
        self.errors = errors or []


class ValidationFailed(DomainError):
    status_code = 422
    error_type = "validation_error"


class NotFound(DomainError):
    status_code = 404
    error_type = "not_found"


class IneligibleState(DomainError):
    status_code = 409
    error_type = "ineligible_state"


class AlreadyPaid(IneligibleState):
    error_type = "already_paid"


class AccessDenied(DomainError):
    status_code = 403
    error_type = "access_denied"


class Unauthorized(DomainError):
    status_code = 401
    error_type = "unauthorized"


class NoEligibleRecipients(DomainError):
    error_type = "no_eligible_recipients"


class EmptyUpdate(DomainError):
    error_type = "empty_update"


def field_error(field: str, message: str, kind: str = "value_error") -> dict[str, Any]:
    return {"loc": ["body", field], "msg": message, "type": kind}
