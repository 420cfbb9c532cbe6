from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
import uuid

from pydantic import BaseModel, Field


class RaffleStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class TicketStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    PAID = "PAID"


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class HealthResponse(BaseModel):
    status: str
    time: datetime


class MigrationRunResponse(BaseModel):
    status: str
    applied_at: datetime


class MessageResponse(BaseModel):
    message: str


class RaffleCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    prize: str = Field(..., min_length=3, max_length=255)
    ticket_price: Decimal = Field(..., gt=0)
    total_tickets: int = Field(..., ge=1, le=100000)
    room_id: uuid.UUID
    draw_date: Optional[datetime] = None


class RaffleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    prize: Optional[str] = Field(None, min_length=3, max_length=255)
    ticket_price: Optional[Decimal] = Field(None, gt=0)
    draw_date: Optional[datetime] = None
    status: Optional[RaffleStatus] = None


class RaffleOut(BaseModel):
    id: str
    title: str
    description: Optional[str]
    prize: str
    ticket_price: Decimal
    total_tickets: int
    draw_date: Optional[datetime]
    organizer_id: str
    organizer_name: Optional[str] = None
    room_id: Optional[str]
    status: RaffleStatus
    tickets_paid: int = 0
    tickets_pending: int = 0
    created_at: datetime
    updated_at: datetime


class RaffleCreateResponse(BaseModel):
    message: str
    raffle: RaffleOut
    tickets_created: int


class RaffleTicket(BaseModel):
    id: str
    number: int
    status: TicketStatus
    owner_id: Optional[str]
    owner_name: Optional[str]
    student_name: Optional[str] = None
    room_name: Optional[str] = None


class RaffleStats(BaseModel):
    total_tickets: int
    paid_tickets: int
    pending_tickets: int
    assigned_tickets: int


class RaffleDetail(BaseModel):
    raffle: RaffleOut
    tickets: list[RaffleTicket]
    stats: RaffleStats


class RaffleSummary(BaseModel):
    active_raffles: int
    total_tickets: int
    paid_tickets: int


class StudentTicket(BaseModel):
    id: str
    number: int
    status: TicketStatus


class RaffleStudent(BaseModel):
    id: str
    name: Optional[str]
    room: Optional[str]
    tickets: list[StudentTicket]


class RaffleStudentsResponse(BaseModel):
    raffle_id: str
    students: list[RaffleStudent]


class TicketOut(BaseModel):
    id: str
    raffle_id: str
    number: int
    status: TicketStatus
    owner_id: Optional[str]
    owner_name: Optional[str]
    owner_phone: Optional[str]
    invoice_id: Optional[str]
    raffle_title: Optional[str] = None
    ticket_price: Optional[Decimal] = None
    updated_at: Optional[datetime] = None


class TicketListResponse(BaseModel):
    tickets: list[TicketOut]
    count: int


class TicketStats(BaseModel):
    total_tickets: int
    total_paid: int
    total_pending: int
    total_assigned: int


class MyTicketsResponse(BaseModel):
    tickets: list[TicketOut]
    stats: TicketStats


class TicketAssignRequest(BaseModel):
    owner_name: str = Field(..., min_length=1, max_length=120)
    owner_phone: Optional[str] = Field(None, max_length=30)


class PaymentSubmitRequest(BaseModel):
    ticket_ids: list[uuid.UUID] = Field(default_factory=list, max_length=500)
    owner_name: str = Field(..., min_length=1, max_length=120)
    owner_phone: Optional[str] = Field(None, max_length=30)
    total_amount: Decimal = Field(..., ge=0)
    payment_method: str = Field(..., min_length=1, max_length=40)
    reference: Optional[str] = Field(None, max_length=120)
    amount_bss: Optional[Decimal] = Field(None, gt=0)
    amount_usd: Optional[Decimal] = Field(None, gt=0)
    bcv_rate: Optional[Decimal] = Field(None, gt=0)
    proof_url: Optional[str] = Field(None, max_length=2048)


class MarkPaidRequest(BaseModel):
    payment_method: str = Field(..., min_length=1, max_length=40)
    reference: str = Field(..., min_length=1, max_length=120)


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceOut(BaseModel):
    id: str
    user_id: Optional[str]
    total_amount: Decimal
    payment_method: str
    reference: Optional[str]
    proof_url: Optional[str]
    amount_bss: Optional[Decimal]
    amount_usd: Optional[Decimal]
    bcv_rate: Optional[Decimal]
    status: InvoiceStatus
    created_at: datetime
    updated_at: datetime


class InvoiceTicket(BaseModel):
    id: str
    number: int
    status: TicketStatus
    raffle_id: str
    raffle_title: Optional[str] = None


class InvoiceDetail(InvoiceOut):
    user_name: Optional[str] = None
    tickets: list[InvoiceTicket] = Field(default_factory=list)


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceDetail]
    count: int


class PaymentSubmitResponse(BaseModel):
    message: str
    invoice: InvoiceDetail


class MarkPaidResponse(BaseModel):
    message: str
    invoice: InvoiceOut
