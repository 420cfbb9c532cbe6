"""Ticket allocation for raffle creation.

Splits a fixed pool of tickets across an ordered student roster and numbers
the resulting tickets. Nothing here touches the database: the same roster and
ticket count always produce the same plan.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Hashable, Sequence

from app.core.errors import NoEligibleRecipients, ValidationFailed, field_error


@dataclass(frozen=True)
class Allocation:
    owner_id: Hashable
    count: int


@dataclass(frozen=True)
class TicketSeed:
    number: int
    owner_id: Hashable


def allocate(student_ids: Sequence[Hashable], total_tickets: int) -> list[Allocation]:
    """Give every student ``total_tickets // len(student_ids)`` tickets.

    The whole remainder goes to the last student in roster order. Students
    left with zero tickets (only possible when there are fewer tickets than
    students) are dropped from the result.
    """
    if isinstance(total_tickets, bool) or not isinstance(total_tickets, int) or total_tickets < 1:
        raise ValidationFailed(
            "Invalid ticket count",
            errors=[field_error("total_tickets", "The raffle must have at least 1 ticket")],
        )
    if not student_ids:
        raise NoEligibleRecipients("There are no students registered to receive tickets")

    base, remainder = divmod(total_tickets, len(student_ids))
    last = len(student_ids) - 1
    allocations = (
        Allocation(owner_id=student_id, count=base + (remainder if index == last else 0))
        for index, student_id in enumerate(student_ids)
    )
    return [allocation for allocation in allocations if allocation.count > 0]


def number_tickets(allocations: Sequence[Allocation]) -> list[TicketSeed]:
    """Expand allocations into tickets numbered 1..N across owner boundaries."""

    def _step(state: tuple[int, tuple[range, ...]], allocation: Allocation):
        next_number, spans = state
        span = range(next_number, next_number + allocation.count)
        return span.stop, spans + (span,)

    _, spans = reduce(_step, allocations, (1, ()))
    return [
        TicketSeed(number=number, owner_id=allocation.owner_id)
        for allocation, span in zip(allocations, spans)
        for number in span
    ]


def plan_tickets(student_ids: Sequence[Hashable], total_tickets: int) -> list[TicketSeed]:
    return number_tickets(allocate(student_ids, total_tickets))
