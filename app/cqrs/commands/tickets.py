from __future__ import annotations

import logging
import uuid

from app.core.errors import AccessDenied, IneligibleState, NotFound
from app.core.security import Principal, can_access
from app.cqrs.commands.raffles import TERMINAL_STATUSES
from app.cqrs.queries.tickets import ticket_out
from app.db.connection import row_as_dict, run_transaction
from app.models.schemas import TicketAssignRequest

logger = logging.getLogger(__name__)


def assign_ticket(ticket_id: uuid.UUID, payload: TicketAssignRequest, principal: Principal) -> dict:
    """Record the buyer a student sold one of their tickets to."""

    def _handler(conn):
        cur = conn.cursor()
        cur.execute(
            """
            SELECT t.owner_id, t.status, r.status AS raffle_status
            FROM tickets t
            JOIN raffles r ON r.id = t.raffle_id
            WHERE t.id = %s
            FOR UPDATE OF t
            """,
            (ticket_id,),
        )
        ticket = row_as_dict(cur)
        if not ticket:
            cur.close()
            raise NotFound("Ticket not found")
        if not can_access(principal, ticket["owner_id"]):
            cur.close()
            raise AccessDenied("You can only assign your own tickets")
        if ticket["status"] == "PAID":
            cur.close()
            raise IneligibleState("Paid tickets cannot be reassigned")
        if ticket["raffle_status"] in TERMINAL_STATUSES:
            cur.close()
            raise IneligibleState("The raffle is closed")
        cur.execute(
            """
            WITH updated AS (
                UPDATE tickets
                SET status = 'ASSIGNED', owner_name = %s, owner_phone = %s, updated_at = now()
                WHERE id = %s
                RETURNING *
            )
            SELECT u.id, u.raffle_id, u.number, u.status, u.owner_id, u.owner_name,
                   u.owner_phone, u.invoice_id, u.updated_at,
                   r.title AS raffle_title, r.ticket_price
            FROM updated u
            JOIN raffles r ON r.id = u.raffle_id
            """,
            (payload.owner_name, payload.owner_phone, ticket_id),
        )
        row = row_as_dict(cur)
        cur.close()
        return row

    row = run_transaction(_handler)
    logger.info("Ticket %s assigned to buyer by %s", ticket_id, principal.id)
    return ticket_out(row)
