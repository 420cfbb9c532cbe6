from __future__ import annotations

import logging
import uuid

from app.core.errors import (
    AlreadyPaid,
    IneligibleState,
    NotFound,
    ValidationFailed,
    field_error,
)
from app.cqrs.commands.raffles import TERMINAL_STATUSES
from app.cqrs.queries.invoices import INVOICE_RETURNING, invoice_out, invoice_ticket
from app.db.connection import row_as_dict, rows_as_dicts, run_transaction
from app.models.schemas import (
    InvoiceStatus,
    MarkPaidRequest,
    PaymentSubmitRequest,
)

logger = logging.getLogger(__name__)

BSS_METHODS = ("transferencia", "pago móvil")
USD_METHODS = ("efectivo usd",)


def validate_payment(payload: PaymentSubmitRequest) -> list[dict]:
    """Field-level problems with a payment submission, empty when valid."""
    errors = []
    if not payload.ticket_ids:
        errors.append(field_error("ticket_ids", "At least one ticket is required", "missing"))
    method = payload.payment_method.strip().casefold()
    if method in BSS_METHODS and payload.amount_bss is None:
        errors.append(
            field_error(
                "amount_bss",
                f"amount_bss is required for {payload.payment_method.strip()} payments",
                "missing",
            )
        )
    if method in USD_METHODS and payload.amount_usd is None:
        errors.append(
            field_error(
                "amount_usd",
                f"amount_usd is required for {payload.payment_method.strip()} payments",
                "missing",
            )
        )
    return errors


def _link_tickets(cur, invoice_id: uuid.UUID, ticket_ids: list) -> None:
    # Survives a rejection releasing tickets.invoice_id.
    placeholders = ", ".join(["(%s, %s)"] * len(ticket_ids))
    params: list = []
    for ticket_id in ticket_ids:
        params.extend([invoice_id, ticket_id])
    cur.execute(
        f"INSERT INTO invoice_tickets (invoice_id, ticket_id) VALUES {placeholders}",
        params,
    )


def submit_payment(payload: PaymentSubmitRequest, submitting_user_id: uuid.UUID) -> dict:
    errors = validate_payment(payload)
    if errors:
        raise ValidationFailed("Invalid payment data", errors=errors)
    ticket_ids = list(dict.fromkeys(payload.ticket_ids))
    placeholders = ", ".join(["%s"] * len(ticket_ids))

    def _handler(conn):
        cur = conn.cursor()
        # Row locks held until commit; a concurrent submission over the same
        # tickets blocks here and then sees them PAID.
        cur.execute(
            f"""
            SELECT t.id, t.number, t.status, t.invoice_id, t.raffle_id,
                   r.title AS raffle_title, r.status AS raffle_status
            FROM tickets t
            JOIN raffles r ON r.id = t.raffle_id
            WHERE t.id IN ({placeholders})
            ORDER BY t.id
            FOR UPDATE OF t
            """,
            ticket_ids,
        )
        tickets = rows_as_dicts(cur)
        if len(tickets) != len(ticket_ids):
            cur.close()
            raise NotFound("One or more tickets were not found")
        taken = sorted(
            ticket["number"]
            for ticket in tickets
            if ticket["status"] == "PAID" or ticket["invoice_id"] is not None
        )
        if taken:
            cur.close()
            raise IneligibleState(
                f"Tickets already paid or under review: {', '.join(map(str, taken))}"
            )
        if any(ticket["raffle_status"] in TERMINAL_STATUSES for ticket in tickets):
            cur.close()
            raise IneligibleState("The raffle is no longer accepting payments")

        invoice_id = uuid.uuid4()
        cur.execute(
            f"""
            INSERT INTO invoices (
                id, user_id, total_amount, payment_method, reference, proof_url,
                amount_bss, amount_usd, bcv_rate, status
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, 'PENDING')
            {INVOICE_RETURNING}
            """,
            (
                invoice_id,
                submitting_user_id,
                payload.total_amount,
                payload.payment_method.strip(),
                payload.reference,
                payload.proof_url,
                payload.amount_bss,
                payload.amount_usd,
                payload.bcv_rate,
            ),
        )
        invoice = row_as_dict(cur)
        cur.execute(
            f"""
            UPDATE tickets
            SET status = 'PAID',
                invoice_id = %s,
                owner_name = %s,
                owner_phone = %s,
                updated_at = now()
            WHERE id IN ({placeholders})
              AND status <> 'PAID'
              AND invoice_id IS NULL
            """,
            [invoice_id, payload.owner_name, payload.owner_phone, *ticket_ids],
        )
        if cur.rowcount != len(ticket_ids):
            cur.close()
            raise IneligibleState("Some tickets changed state while the payment was processed")
        _link_tickets(cur, invoice_id, ticket_ids)
        cur.close()
        return invoice, tickets

    invoice, tickets = run_transaction(_handler)
    logger.info(
        "Payment submitted: invoice %s covers %s tickets (user %s)",
        invoice["id"],
        len(tickets),
        submitting_user_id,
    )
    return {
        "message": f"Payment submitted for {len(tickets)} tickets. Awaiting review.",
        "invoice": {
            **invoice_out(invoice),
            "user_name": None,
            "tickets": [
                invoice_ticket({**ticket, "status": "PAID"})
                for ticket in sorted(tickets, key=lambda ticket: ticket["number"])
            ],
        },
    }


def mark_ticket_as_paid(
    ticket_id: uuid.UUID, payload: MarkPaidRequest, acting_user_id: uuid.UUID
) -> dict:
    def _handler(conn):
        cur = conn.cursor()
        cur.execute(
            """
            SELECT t.id, t.number, t.status, t.owner_id,
                   r.ticket_price, r.status AS raffle_status
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
        if ticket["status"] == "PAID":
            cur.close()
            raise AlreadyPaid("This ticket has already been paid and invoiced")
        if ticket["raffle_status"] in TERMINAL_STATUSES:
            cur.close()
            raise IneligibleState("The raffle is no longer accepting payments")

        invoice_id = uuid.uuid4()
        cur.execute(
            f"""
            INSERT INTO invoices (id, user_id, total_amount, payment_method, reference, status)
            VALUES (%s, %s, %s, %s, %s, 'COMPLETED')
            {INVOICE_RETURNING}
            """,
            (
                invoice_id,
                ticket["owner_id"] or acting_user_id,
                ticket["ticket_price"],
                payload.payment_method,
                payload.reference,
            ),
        )
        invoice = row_as_dict(cur)
        cur.execute(
            """
            UPDATE tickets
            SET status = 'PAID', invoice_id = %s, updated_at = now()
            WHERE id = %s
            """,
            (invoice_id, ticket_id),
        )
        _link_tickets(cur, invoice_id, [ticket_id])
        cur.close()
        return ticket, invoice

    ticket, invoice = run_transaction(_handler)
    logger.info(
        "Ticket %s marked as paid by %s (invoice %s)", ticket_id, acting_user_id, invoice["id"]
    )
    return {
        "message": f"Ticket #{ticket['number']} marked as paid. Invoice created.",
        "invoice": invoice_out(invoice),
    }


def update_invoice_status(invoice_id: uuid.UUID, status: InvoiceStatus) -> dict:
    """Admin review of a submitted payment.

    Only PENDING invoices can be reviewed. Rejecting one hands its tickets
    back to PENDING so they can be paid again; the invoice keeps listing
    them through ``invoice_tickets``.
    """

    def _handler(conn):
        cur = conn.cursor()
        cur.execute("SELECT status FROM invoices WHERE id = %s FOR UPDATE", (invoice_id,))
        row = cur.fetchone()
        if not row:
            cur.close()
            raise NotFound("Invoice not found")
        current = row[0]
        if current != status.value and current != InvoiceStatus.PENDING.value:
            cur.close()
            raise IneligibleState(f"Invoice is already {current}")
        cur.execute(
            f"""
            UPDATE invoices SET status = %s, updated_at = now()
            WHERE id = %s
            {INVOICE_RETURNING}
            """,
            (status.value, invoice_id),
        )
        invoice = row_as_dict(cur)
        released = 0
        if status == InvoiceStatus.FAILED and current != status.value:
            cur.execute(
                """
                UPDATE tickets
                SET status = 'PENDING', invoice_id = NULL, updated_at = now()
                WHERE invoice_id = %s
                """,
                (invoice_id,),
            )
            released = cur.rowcount
        cur.close()
        return current, invoice, released

    previous, invoice, released = run_transaction(_handler)
    logger.info(
        "Invoice %s moved %s -> %s (%s tickets released)",
        invoice_id,
        previous,
        invoice["status"],
        released,
    )
    return invoice_out(invoice)
