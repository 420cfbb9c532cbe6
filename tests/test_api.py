from datetime import datetime, timezone
from decimal import Decimal
import uuid

import pytest
from fastapi.testclient import TestClient

import app.api.dependencies as dependencies
import app.cqrs.commands.invoices as invoices_commands
import app.cqrs.commands.raffles as raffles_commands
import app.cqrs.queries.invoices as invoices_queries
from app.core.errors import NoEligibleRecipients
from app.main import app

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)
ADMIN_ID = uuid.uuid4()
STUDENT_ID = uuid.uuid4()


def _headers(user_id, role):
    return {"X-User-Id": str(user_id), "X-User-Role": role, "X-User-Name": "Test"}


ADMIN = _headers(ADMIN_ID, "ADMIN")
STUDENT = _headers(STUDENT_ID, "STUDENT")


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(dependencies, "db_configured", lambda: True)
    return TestClient(app, raise_server_exceptions=False)


def _raffle_out():
    return {
        "id": str(uuid.uuid4()),
        "title": "Rifa escolar",
        "description": None,
        "prize": "Tablet",
        "ticket_price": Decimal("2.50"),
        "total_tickets": 10,
        "draw_date": None,
        "organizer_id": str(ADMIN_ID),
        "room_id": str(uuid.uuid4()),
        "status": "ACTIVE",
        "created_at": NOW,
        "updated_at": NOW,
    }


RAFFLE_BODY = {
    "title": "Rifa escolar",
    "prize": "Tablet",
    "ticket_price": 2.5,
    "total_tickets": 10,
    "room_id": str(uuid.uuid4()),
}


def test_health(client):
    response = client.get("/rifaapp/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_principal_is_unauthorized(client):
    response = client.post("/rifaapp/raffles", json=RAFFLE_BODY)
    assert response.status_code == 401
    assert response.json()["type"] == "unauthorized"


def test_students_cannot_create_raffles(client):
    response = client.post("/rifaapp/raffles", json=RAFFLE_BODY, headers=STUDENT)
    assert response.status_code == 403
    assert response.json()["type"] == "access_denied"


def test_admin_creates_raffle(client, monkeypatch):
    calls = {}

    def fake_create(payload, organizer_id):
        calls["organizer_id"] = organizer_id
        return {"message": "ok", "raffle": _raffle_out(), "tickets_created": 10}

    monkeypatch.setattr(raffles_commands, "create_raffle", fake_create)

    response = client.post("/rifaapp/raffles", json=RAFFLE_BODY, headers=ADMIN)

    assert response.status_code == 201
    assert response.json()["tickets_created"] == 10
    assert calls["organizer_id"] == ADMIN_ID


def test_no_students_is_reported_with_its_own_type(client, monkeypatch):
    def fake_create(payload, organizer_id):
        raise NoEligibleRecipients("There are no students registered to receive tickets")

    monkeypatch.setattr(raffles_commands, "create_raffle", fake_create)

    response = client.post("/rifaapp/raffles", json=RAFFLE_BODY, headers=ADMIN)

    assert response.status_code == 400
    assert response.json()["type"] == "no_eligible_recipients"


def test_raffle_body_is_validated(client):
    response = client.post(
        "/rifaapp/raffles", json={**RAFFLE_BODY, "ticket_price": 0}, headers=ADMIN
    )
    assert response.status_code == 422
    body = response.json()
    assert body["type"] == "validation_error"
    assert ["body", "ticket_price"] in [error["loc"] for error in body["errors"]]


def test_empty_patch_is_rejected(client):
    response = client.patch(f"/rifaapp/raffles/{uuid.uuid4()}", json={}, headers=ADMIN)
    assert response.status_code == 400
    assert response.json()["type"] == "empty_update"


def test_transfer_without_bolivares_amount(client):
    response = client.post(
        "/rifaapp/invoices/submit-payment",
        json={
            "ticket_ids": [str(uuid.uuid4())],
            "owner_name": "María",
            "total_amount": 5,
            "payment_method": "Transferencia",
        },
        headers=STUDENT,
    )
    assert response.status_code == 422
    body = response.json()
    assert body["type"] == "validation_error"
    assert body["errors"][0]["loc"] == ["body", "amount_bss"]


def test_submit_payment_passes_submitter(client, monkeypatch):
    calls = {}

    def fake_submit(payload, submitting_user_id):
        calls["user"] = submitting_user_id
        calls["ticket_ids"] = payload.ticket_ids
        return {
            "message": "ok",
            "invoice": {
                "id": str(uuid.uuid4()),
                "user_id": str(submitting_user_id),
                "total_amount": Decimal("5.00"),
                "payment_method": "Transferencia",
                "reference": None,
                "proof_url": None,
                "amount_bss": Decimal("182.50"),
                "amount_usd": None,
                "bcv_rate": None,
                "status": "PENDING",
                "created_at": NOW,
                "updated_at": NOW,
                "tickets": [],
            },
        }

    monkeypatch.setattr(invoices_commands, "submit_payment", fake_submit)
    ticket_id = uuid.uuid4()

    response = client.post(
        "/rifaapp/invoices/submit-payment",
        json={
            "ticket_ids": [str(ticket_id)],
            "owner_name": "María",
            "total_amount": 5,
            "payment_method": "Transferencia",
            "amount_bss": 182.5,
        },
        headers=STUDENT,
    )

    assert response.status_code == 201
    assert response.json()["invoice"]["status"] == "PENDING"
    assert calls == {"user": STUDENT_ID, "ticket_ids": [ticket_id]}


def _invoice_row(user_id):
    return {
        "id": uuid.uuid4(),
        "user_id": user_id,
        "total_amount": Decimal("5.00"),
        "payment_method": "Zelle",
        "reference": "z-1",
        "proof_url": None,
        "amount_bss": None,
        "amount_usd": None,
        "bcv_rate": None,
        "status": "COMPLETED",
        "created_at": NOW,
        "updated_at": NOW,
        "user_name": "Ana",
    }


def test_invoice_owner_visibility(client, monkeypatch):
    other_student = _headers(uuid.uuid4(), "STUDENT")
    monkeypatch.setattr(invoices_queries, "fetch_one", lambda sql, params=(): _invoice_row(STUDENT_ID))
    monkeypatch.setattr(invoices_queries, "fetch_all", lambda sql, params=(): [])
    invoice_url = f"/rifaapp/invoices/{uuid.uuid4()}"

    denied = client.get(invoice_url, headers=other_student)
    assert denied.status_code == 403
    assert denied.json()["type"] == "access_denied"

    allowed = client.get(invoice_url, headers=STUDENT)
    assert allowed.status_code == 200
    assert allowed.json()["user_id"] == str(STUDENT_ID)


def test_invoice_listing_is_admin_only(client):
    response = client.get("/rifaapp/invoices", headers=STUDENT)
    assert response.status_code == 403


def test_unexpected_failures_are_not_leaked(client, monkeypatch):
    def broken(payload, organizer_id):
        raise RuntimeError("password=secret")

    monkeypatch.setattr(raffles_commands, "create_raffle", broken)

    response = client.post("/rifaapp/raffles", json=RAFFLE_BODY, headers=ADMIN)

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Server Error", "type": "server_error"}


def test_database_must_be_configured(monkeypatch):
    monkeypatch.setattr(dependencies, "db_configured", lambda: False)
    client = TestClient(app)
    response = client.get("/rifaapp/raffles", headers=STUDENT)
    assert response.status_code == 500
    assert response.json()["detail"] == "Database is not configured"
