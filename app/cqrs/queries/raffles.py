from __future__ import annotations

import uuid
from typing import Optional

from app.core.errors import NotFound
from app.db.connection import fetch_all, fetch_one
from app.models.schemas import RaffleStatus

RAFFLE_COLUMNS = """
    r.id, r.title, r.description, r.prize, r.ticket_price, r.total_tickets,
    r.draw_date, r.organizer_id, r.room_id, r.status, r.created_at, r.updated_at
"""

_RAFFLE_WITH_COUNTS = f"""
    SELECT {RAFFLE_COLUMNS},
           u.name AS organizer_name,
           COALESCE(t.paid, 0) AS tickets_paid,
           COALESCE(t.pending, 0) AS tickets_pending
    FROM raffles r
    LEFT JOIN users u ON u.id = r.organizer_id
    LEFT JOIN (
        SELECT raffle_id,
               COUNT(*) FILTER (WHERE status = 'PAID') AS paid,
               COUNT(*) FILTER (WHERE status = 'PENDING') AS pending
        FROM tickets
        GROUP BY raffle_id
    ) t ON t.raffle_id = r.id
"""


def _as_str(value) -> Optional[str]:
    return str(value) if value is not None else None


def raffle_out(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "title": row["title"],
        "description": row.get("description"),
        "prize": row["prize"],
        "ticket_price": row["ticket_price"],
        "total_tickets": row["total_tickets"],
        "draw_date": row.get("draw_date"),
        "organizer_id": str(row["organizer_id"]),
        "organizer_name": row.get("organizer_name"),
        "room_id": _as_str(row.get("room_id")),
        "status": row["status"],
        "tickets_paid": row.get("tickets_paid", 0) or 0,
        "tickets_pending": row.get("tickets_pending", 0) or 0,
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def list_raffles(status: Optional[RaffleStatus] = None) -> list[dict]:
    sql = _RAFFLE_WITH_COUNTS
    params: tuple = ()
    if status:
        sql += " WHERE r.status = %s"
        params = (status.value,)
    sql += " ORDER BY r.created_at DESC"
    return [raffle_out(row) for row in fetch_all(sql, params)]


def get_raffle(raffle_id: uuid.UUID) -> dict:
    row = fetch_one(_RAFFLE_WITH_COUNTS + " WHERE r.id = %s", (raffle_id,))
    if not row:
        raise NotFound("Raffle not found")
    ticket_rows = fetch_all(
        """
        SELECT t.id, t.number, t.status, t.owner_id, t.owner_name,
               u.name AS student_name, rm.name AS room_name
        FROM tickets t
        LEFT JOIN users u ON u.id = t.owner_id
        LEFT JOIN rooms rm ON rm.id = u.room_id
        WHERE t.raffle_id = %s
        ORDER BY t.number ASC
        """,
        (raffle_id,),
    )
    tickets = [
        {
            "id": str(ticket["id"]),
            "number": ticket["number"],
            "status": ticket["status"],
            "owner_id": _as_str(ticket.get("owner_id")),
            "owner_name": ticket.get("owner_name"),
            "student_name": ticket.get("student_name"),
            "room_name": ticket.get("room_name"),
        }
        for ticket in ticket_rows
    ]
    statuses = [ticket["status"] for ticket in tickets]
    return {
        "raffle": raffle_out(row),
        "tickets": tickets,
        "stats": {
            "total_tickets": len(tickets),
            "paid_tickets": statuses.count("PAID"),
            "pending_tickets": statuses.count("PENDING"),
            "assigned_tickets": statuses.count("ASSIGNED"),
        },
    }


def get_raffle_summary() -> dict:
    row = fetch_one(
        """
        SELECT (SELECT COUNT(*) FROM raffles WHERE status = 'ACTIVE') AS active_raffles,
               (SELECT COUNT(*) FROM tickets) AS total_tickets,
               (SELECT COUNT(*) FROM tickets WHERE status = 'PAID') AS paid_tickets
        """
    )
    return {
        "active_raffles": row["active_raffles"],
        "total_tickets": row["total_tickets"],
        "paid_tickets": row["paid_tickets"],
    }


def get_raffle_students(raffle_id: uuid.UUID) -> dict:
    if not fetch_one("SELECT id FROM raffles WHERE id = %s", (raffle_id,)):
        raise NotFound("Raffle not found")
    rows = fetch_all(
        """
        SELECT t.id, t.number, t.status, u.id AS student_id, u.name AS student_name,
               rm.name AS room_name
        FROM tickets t
        JOIN users u ON u.id = t.owner_id
        LEFT JOIN rooms rm ON rm.id = u.room_id
        WHERE t.raffle_id = %s
        ORDER BY t.number ASC
        """,
        (raffle_id,),
    )
    students: dict[str, dict] = {}
    for row in rows:
        student_id = str(row["student_id"])
        student = students.setdefault(
            student_id,
            {
                "id": student_id,
                "name": row.get("student_name"),
                "room": row.get("room_name"),
                "tickets": [],
            },
        )
        student["tickets"].append(
            {"id": str(row["id"]), "number": row["number"], "status": row["status"]}
        )
    ordered = sorted(students.values(), key=lambda student: (student["name"] or "").casefold())
    return {"raffle_id": str(raffle_id), "students": ordered}
