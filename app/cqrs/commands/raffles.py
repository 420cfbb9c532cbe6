from __future__ import annotations

import logging
import uuid
from typing import Sequence

from app.core.errors import (
    EmptyUpdate,
    IneligibleState,
    NotFound,
    ValidationFailed,
    field_error,
)
from app.cqrs.queries.raffles import raffle_out
from app.db.connection import fetch_all, fetch_one, row_as_dict, run_transaction
from app.models.schemas import RaffleCreate, RaffleStatus, RaffleUpdate
from app.services.allocation import TicketSeed, plan_tickets

logger = logging.getLogger(__name__)

# pg8000 caps a statement at 32767 bind parameters; four per ticket row.
TICKET_INSERT_BATCH = 1000

_RETURNING = """
    RETURNING id, title, description, prize, ticket_price, total_tickets, draw_date,
              organizer_id, room_id, status, created_at, updated_at
"""

_TICKET_COUNTS = """
    SELECT COUNT(*) FILTER (WHERE status = 'PAID') AS tickets_paid,
           COUNT(*) FILTER (WHERE status = 'PENDING') AS tickets_pending
    FROM tickets
    WHERE raffle_id = %s
"""

_UPDATABLE = ("title", "description", "prize", "ticket_price", "draw_date", "status")
_NULLABLE = ("description", "draw_date")

_TRANSITIONS = {
    RaffleStatus.DRAFT: {RaffleStatus.ACTIVE, RaffleStatus.CLOSED, RaffleStatus.CANCELLED},
    RaffleStatus.ACTIVE: {RaffleStatus.CLOSED, RaffleStatus.CANCELLED},
    RaffleStatus.CLOSED: set(),
    RaffleStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = (RaffleStatus.CLOSED.value, RaffleStatus.CANCELLED.value)


def load_room_roster(room_id: uuid.UUID) -> list[uuid.UUID]:
    """Students of a room in registration order, ties broken by id."""
    if not fetch_one("SELECT id FROM rooms WHERE id = %s", (room_id,)):
        raise NotFound("Room not found")
    rows = fetch_all(
        """
        SELECT id
        FROM users
        WHERE role = 'STUDENT' AND room_id = %s
        ORDER BY created_at ASC, id ASC
        """,
        (room_id,),
    )
    return [row["id"] for row in rows]


def _insert_tickets(cur, raffle_id: uuid.UUID, seeds: Sequence[TicketSeed]) -> int:
    for start in range(0, len(seeds), TICKET_INSERT_BATCH):
        batch = seeds[start : start + TICKET_INSERT_BATCH]
        placeholders = ", ".join(["(%s, %s, %s, %s, 'PENDING')"] * len(batch))
        params: list = []
        for seed in batch:
            params.extend([uuid.uuid4(), raffle_id, seed.number, seed.owner_id])
        cur.execute(
            f"INSERT INTO tickets (id, raffle_id, number, owner_id, status) VALUES {placeholders}",
            params,
        )
    return len(seeds)


def create_raffle(payload: RaffleCreate, organizer_id: uuid.UUID) -> dict:
    student_ids = load_room_roster(payload.room_id)
    seeds = plan_tickets(student_ids, payload.total_tickets)

    def _handler(conn):
        cur = conn.cursor()
        raffle_id = uuid.uuid4()
        cur.execute(
            f"""
            INSERT INTO raffles (
                id, title, description, prize, ticket_price, total_tickets,
                draw_date, organizer_id, room_id, status
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, 'ACTIVE')
            {_RETURNING}
            """,
            (
                raffle_id,
                payload.title,
                payload.description,
                payload.prize,
                payload.ticket_price,
                payload.total_tickets,
                payload.draw_date,
                organizer_id,
                payload.room_id,
            ),
        )
        row = row_as_dict(cur)
        created = _insert_tickets(cur, raffle_id, seeds)
        cur.close()
        return row, created

    row, created = run_transaction(_handler)
    logger.info(
        "Raffle %s created with %s tickets for %s students",
        row["id"],
        created,
        len({seed.owner_id for seed in seeds}),
    )
    return {
        "message": f"Raffle '{row['title']}' created with {created} tickets assigned.",
        "raffle": raffle_out({**row, "tickets_paid": 0, "tickets_pending": created}),
        "tickets_created": created,
    }


def _check_transition(current: str, requested: RaffleStatus) -> None:
    current_status = RaffleStatus(current)
    if requested == current_status:
        return
    if requested not in _TRANSITIONS[current_status]:
        raise IneligibleState(
            f"Raffle cannot move from {current_status.value} to {requested.value}"
        )


def update_raffle(raffle_id: uuid.UUID, payload: RaffleUpdate) -> dict:
    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise EmptyUpdate("At least one field is required to update the raffle")
    nulls = [name for name, value in data.items() if value is None and name not in _NULLABLE]
    if nulls:
        raise ValidationFailed(
            "Invalid update payload",
            errors=[field_error(name, "Field cannot be null", "none_not_allowed") for name in nulls],
        )

    def _handler(conn):
        cur = conn.cursor()
        cur.execute("SELECT status FROM raffles WHERE id = %s FOR UPDATE", (raffle_id,))
        row = cur.fetchone()
        if not row:
            cur.close()
            raise NotFound("Raffle not found")
        if "status" in data:
            _check_transition(row[0], data["status"])
        set_clauses = []
        params: list = []
        for name in _UPDATABLE:
            if name in data:
                value = data[name]
                set_clauses.append(f"{name} = %s")
                params.append(value.value if isinstance(value, RaffleStatus) else value)
        set_clauses.append("updated_at = now()")
        params.append(raffle_id)
        cur.execute(
            f"UPDATE raffles SET {', '.join(set_clauses)} WHERE id = %s {_RETURNING}",
            params,
        )
        updated = row_as_dict(cur)
        cur.execute(_TICKET_COUNTS, (raffle_id,))
        updated.update(row_as_dict(cur))
        cur.close()
        return row[0], updated

    previous_status, updated = run_transaction(_handler)
    if updated["status"] != previous_status:
        logger.info("Raffle %s moved %s -> %s", raffle_id, previous_status, updated["status"])
    return raffle_out(updated)


def delete_raffle(raffle_id: uuid.UUID) -> dict:
    def _handler(conn):
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM tickets WHERE raffle_id = %s", (raffle_id,))
        ticket_count = cur.fetchone()[0]
        cur.execute("DELETE FROM raffles WHERE id = %s RETURNING id", (raffle_id,))
        deleted = cur.fetchone()
        cur.close()
        if not deleted:
            raise NotFound("Raffle not found")
        return ticket_count

    ticket_count = run_transaction(_handler)
    logger.info("Raffle %s deleted along with %s tickets", raffle_id, ticket_count)
    return {"message": "Raffle and all of its tickets were deleted."}
