import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import current_principal, require_admin, require_db
from app.core.security import Principal
from app.cqrs.commands import tickets as tickets_commands
from app.cqrs.queries import tickets as tickets_queries
from app.models.schemas import (
    MyTicketsResponse,
    TicketAssignRequest,
    TicketListResponse,
    TicketOut,
    TicketStatus,
)

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.get("/my-tickets", response_model=MyTicketsResponse)
def my_tickets(
    raffle_id: Optional[uuid.UUID] = Query(None),
    principal: Principal = Depends(current_principal),
):
    require_db()
    return tickets_queries.my_tickets(principal, raffle_id)


@router.put("/{ticket_id}/assign", response_model=TicketOut)
def assign_ticket(
    ticket_id: uuid.UUID,
    payload: TicketAssignRequest,
    principal: Principal = Depends(current_principal),
):
    require_db()
    return tickets_commands.assign_ticket(ticket_id, payload, principal)


@router.get("/raffle/{raffle_id}", response_model=TicketListResponse)
def raffle_tickets(
    raffle_id: uuid.UUID,
    status: Optional[TicketStatus] = Query(None),
    _: Principal = Depends(require_admin),
):
    require_db()
    return tickets_queries.list_raffle_tickets(raffle_id, status)


@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket(ticket_id: uuid.UUID, principal: Principal = Depends(current_principal)):
    require_db()
    return tickets_queries.get_ticket(ticket_id, principal)
