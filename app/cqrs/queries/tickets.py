from __future__ import annotations

import uuid
from typing import Optional

from app.core.errors import AccessDenied, NotFound
from app.core.security import Principal, can_access
from app.db.connection import fetch_all, fetch_one
from app.models.schemas import TicketStatus

_TICKET_SELECT = """
    SELECT t.id, t.raffle_id, t.number, t.status, t.owner_id, t.owner_name,
           t.owner_phone, t.invoice_id, t.updated_at,
           r.title AS raffle_title, r.ticket_price
    FROM tickets t
    JOIN raffles r ON r.id = t.raffle_id
"""


def ticket_out(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "raffle_id": str(row["raffle_id"]),
        "number": row["number"],
        "status": row["status"],
        "owner_id": str(row["owner_id"]) if row.get("owner_id") else None,
        "owner_name": row.get("owner_name"),
        "owner_phone": row.get("owner_phone"),
        "invoice_id": str(row["invoice_id"]) if row.get("invoice_id") else None,
        "raffle_title": row.get("raffle_title"),
        "ticket_price": row.get("ticket_price"),
        "updated_at": row.get("updated_at"),
    }


def list_raffle_tickets(raffle_id: uuid.UUID, status: Optional[TicketStatus] = None) -> dict:
    sql = _TICKET_SELECT + " WHERE t.raffle_id = %s"
    params: list = [raffle_id]
    if status:
        sql += " AND t.status = %s"
        params.append(status.value)
    sql += " ORDER BY t.number ASC"
    tickets = [ticket_out(row) for row in fetch_all(sql, tuple(params))]
    return {"tickets": tickets, "count": len(tickets)}


def get_ticket(ticket_id: uuid.UUID, principal: Principal) -> dict:
    row = fetch_one(_TICKET_SELECT + " WHERE t.id = %s", (ticket_id,))
    if not row:
        raise NotFound("Ticket not found")
    if not can_access(principal, row.get("owner_id")):
        raise AccessDenied("You can only view your own tickets")
    return ticket_out(row)


def my_tickets(principal: Principal, raffle_id: Optional[uuid.UUID] = None) -> dict:
    sql = _TICKET_SELECT + " WHERE t.owner_id = %s"
    params: list = [principal.id]
    if raffle_id:
        sql += " AND t.raffle_id = %s"
        params.append(raffle_id)
    sql += " ORDER BY r.created_at DESC, t.number ASC"
    tickets = [ticket_out(row) for row in fetch_all(sql, tuple(params))]
    statuses = [ticket["status"] for ticket in tickets]
    return {
        "tickets": tickets,
        "stats": {
            "total_tickets": len(tickets),
            "total_paid": statuses.count("PAID"),
            "total_pending": statuses.count("PENDING"),
            "total_assigned": statuses.count("ASSIGNED"),
        },
    }
