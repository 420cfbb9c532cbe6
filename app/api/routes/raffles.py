import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import current_principal, require_admin, require_db
from app.core.security import Principal
from app.cqrs.commands import raffles as raffles_commands
from app.cqrs.queries import raffles as raffles_queries
from app.models.schemas import (
    MessageResponse,
    RaffleCreate,
    RaffleCreateResponse,
    RaffleDetail,
    RaffleOut,
    RaffleStatus,
    RaffleStudentsResponse,
    RaffleSummary,
    RaffleUpdate,
)

router = APIRouter(prefix="/raffles", tags=["raffles"])


@router.post("", response_model=RaffleCreateResponse, status_code=201)
def create_raffle(payload: RaffleCreate, admin: Principal = Depends(require_admin)):
    require_db()
    return raffles_commands.create_raffle(payload, organizer_id=admin.id)


@router.get("", response_model=list[RaffleOut])
def list_raffles(
    status: Optional[RaffleStatus] = Query(None, description="Filter by status"),
    _: Principal = Depends(current_principal),
):
    require_db()
    return raffles_queries.list_raffles(status)


@router.get("/summary", response_model=RaffleSummary)
def raffle_summary(_: Principal = Depends(require_admin)):
    require_db()
    return raffles_queries.get_raffle_summary()


@router.get("/{raffle_id}", response_model=RaffleDetail)
def get_raffle(raffle_id: uuid.UUID, _: Principal = Depends(current_principal)):
    require_db()
    return raffles_queries.get_raffle(raffle_id)


@router.get("/{raffle_id}/students", response_model=RaffleStudentsResponse)
def raffle_students(raffle_id: uuid.UUID, _: Principal = Depends(require_admin)):
    require_db()
    return raffles_queries.get_raffle_students(raffle_id)


@router.patch("/{raffle_id}", response_model=RaffleOut)
def update_raffle(
    raffle_id: uuid.UUID, payload: RaffleUpdate, _: Principal = Depends(require_admin)
):
    require_db()
    return raffles_commands.update_raffle(raffle_id, payload)


@router.delete("/{raffle_id}", response_model=MessageResponse)
def delete_raffle(raffle_id: uuid.UUID, _: Principal = Depends(require_admin)):
    require_db()
    return raffles_commands.delete_raffle(raffle_id)
