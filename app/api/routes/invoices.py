import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import current_principal, require_admin, require_db
from app.core.security import Principal
from app.cqrs.commands import invoices as invoices_commands
from app.cqrs.queries import invoices as invoices_queries
from app.models.schemas import (
    InvoiceDetail,
    InvoiceListResponse,
    InvoiceOut,
    InvoiceStatus,
    InvoiceStatusUpdate,
    MarkPaidRequest,
    MarkPaidResponse,
    PaymentSubmitRequest,
    PaymentSubmitResponse,
)

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("/submit-payment", response_model=PaymentSubmitResponse, status_code=201)
def submit_payment(
    payload: PaymentSubmitRequest, principal: Principal = Depends(current_principal)
):
    require_db()
    return invoices_commands.submit_payment(payload, submitting_user_id=principal.id)


@router.patch("/pay/{ticket_id}", response_model=MarkPaidResponse)
def mark_ticket_as_paid(
    ticket_id: uuid.UUID,
    payload: MarkPaidRequest,
    principal: Principal = Depends(current_principal),
):
    require_db()
    return invoices_commands.mark_ticket_as_paid(ticket_id, payload, acting_user_id=principal.id)


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    status: Optional[InvoiceStatus] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    _: Principal = Depends(require_admin),
):
    require_db()
    invoices = invoices_queries.list_invoices(status, user_id)
    return {"invoices": invoices, "count": len(invoices)}


@router.get("/{invoice_id}", response_model=InvoiceDetail)
def get_invoice(invoice_id: uuid.UUID, principal: Principal = Depends(current_principal)):
    require_db()
    return invoices_queries.get_invoice(invoice_id, principal)


@router.patch("/{invoice_id}/status", response_model=InvoiceOut)
def update_invoice_status(
    invoice_id: uuid.UUID,
    payload: InvoiceStatusUpdate,
    _: Principal = Depends(require_admin),
):
    require_db()
    return invoices_commands.update_invoice_status(invoice_id, payload.status)
