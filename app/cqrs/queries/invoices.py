from __future__ import annotations

import uuid
from typing import Optional

from app.core.errors import AccessDenied, NotFound
from app.core.security import Principal, can_access
from app.db.connection import fetch_all, fetch_one
from app.models.schemas import InvoiceStatus

INVOICE_COLUMNS = """
    i.id, i.user_id, i.total_amount, i.payment_method, i.reference, i.proof_url,
    i.amount_bss, i.amount_usd, i.bcv_rate, i.status, i.created_at, i.updated_at
"""

INVOICE_RETURNING = """
    RETURNING id, user_id, total_amount, payment_method, reference, proof_url,
              amount_bss, amount_usd, bcv_rate, status, created_at, updated_at
"""


def invoice_out(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "user_id": str(row["user_id"]) if row.get("user_id") else None,
        "total_amount": row["total_amount"],
        "payment_method": row["payment_method"],
        "reference": row.get("reference"),
        "proof_url": row.get("proof_url"),
        "amount_bss": row.get("amount_bss"),
        "amount_usd": row.get("amount_usd"),
        "bcv_rate": row.get("bcv_rate"),
        "status": row["status"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def invoice_ticket(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "number": row["number"],
        "status": row["status"],
        "raffle_id": str(row["raffle_id"]),
        "raffle_title": row.get("raffle_title"),
    }


def _tickets_by_invoice(invoice_ids: list) -> dict[str, list[dict]]:
    if not invoice_ids:
        return {}
    placeholders = ", ".join(["%s"] * len(invoice_ids))
    rows = fetch_all(
        f"""
        SELECT t.id, t.number, t.status, t.raffle_id, it.invoice_id, r.title AS raffle_title
        FROM invoice_tickets it
        JOIN tickets t ON t.id = it.ticket_id
        JOIN raffles r ON r.id = t.raffle_id
        WHERE it.invoice_id IN ({placeholders})
        ORDER BY t.number ASC
        """,
        tuple(invoice_ids),
    )
    grouped: dict[str, list[dict]] = {}
    for row in rows:
        grouped.setdefault(str(row["invoice_id"]), []).append(invoice_ticket(row))
    return grouped


def get_invoice(invoice_id: uuid.UUID, principal: Principal) -> dict:
    row = fetch_one(
        f"""
        SELECT {INVOICE_COLUMNS}, u.name AS user_name
        FROM invoices i
        LEFT JOIN users u ON u.id = i.user_id
        WHERE i.id = %s
        """,
        (invoice_id,),
    )
    if not row:
        raise NotFound("Invoice not found")
    if not can_access(principal, row.get("user_id")):
        raise AccessDenied("This invoice does not belong to you")
    tickets = _tickets_by_invoice([row["id"]])
    return {
        **invoice_out(row),
        "user_name": row.get("user_name"),
        "tickets": tickets.get(str(row["id"]), []),
    }


def list_invoices(
    status: Optional[InvoiceStatus] = None, user_id: Optional[uuid.UUID] = None
) -> list[dict]:
    sql = f"""
        SELECT {INVOICE_COLUMNS}, u.name AS user_name
        FROM invoices i
        LEFT JOIN users u ON u.id = i.user_id
    """
    clauses = []
    params: list = []
    if status:
        clauses.append("i.status = %s")
        params.append(status.value)
    if user_id:
        clauses.append("i.user_id = %s")
        params.append(user_id)
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY i.created_at DESC"
    rows = fetch_all(sql, tuple(params))
    tickets = _tickets_by_invoice([row["id"] for row in rows])
    return [
        {
            **invoice_out(row),
            "user_name": row.get("user_name"),
            "tickets": tickets.get(str(row["id"]), []),
        }
        for row in rows
    ]
