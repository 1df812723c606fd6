"""Integration tests for API endpoints"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from sqlalchemy.orm import Session

from travel_payments.api.dependencies import get_approval_provider
from travel_payments.domain.credits import issue_credit_on_cancellation
from travel_payments.domain.models import ApprovalStatus, Credit
from travel_payments.infrastructure.database.models import TravelContract
from travel_payments.infrastructure.database.repositories import CreditRepository


@pytest.fixture
def stored_credit(db: Session) -> Credit:
    """800.00 credit issued today, redeemable by any client"""
    credit = issue_credit_on_cancellation(
        Decimal("1000.00"), 10, source_client_ref="client_cancelled", issued_at=date.today()
    )
    CreditRepository(db).add(credit)
    db.commit()
    return credit


def _contract_body(**payment) -> dict:
    body = {
        "client_ref": "client_123",
        "client_name": "Joana Lima",
        "destination": "Porto Seguro",
        "travel_date": (date.today() + timedelta(days=60)).isoformat(),
        "contract_date": "2026-01-05",
        "payment": {
            "travel_price": 1800.00,
            "companions": [700.00],
            "discount_type": "tier_5pct",
            "down_payment_amount": 500.00,
            "down_payment_method": "pix",
            "installments_count": 4,
            "installment_due_date": "10",
        },
    }
    body["payment"].update(payment)
    return body


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "travel_schedule_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_schedule_preview(client: TestClient):
    """Test POST /v1/schedule/preview prices and splits without persisting"""
    response = client.post(
        "/v1/schedule/preview",
        params={"start_date": "2026-01-05"},
        json=_contract_body()["payment"],
    )

    assert response.status_code == 200
    data = response.json()
    assert data["gross"] == 2500.00
    assert data["discount"] == 125.00
    assert data["discounted_total"] == 2375.00
    assert data["amount_to_schedule"] == 1875.00
    assert [p["amount"] for p in data["installments"]] == [468.75] * 4
    assert data["installments"][0]["due_date"] == "2026-02-10"


def test_schedule_preview_without_count_is_to_be_defined(client: TestClient):
    response = client.post("/v1/schedule/preview", json={"travel_price": 1000.00})

    assert response.status_code == 200
    installments = response.json()["installments"]
    assert len(installments) == 1
    assert installments[0]["to_be_defined"] is True
    assert installments[0]["amount"] == 1000.00


def test_schedule_preview_rejects_credit_entrada_without_reference(client: TestClient):
    response = client.post(
        "/v1/schedule/preview",
        json={"travel_price": 1000.00, "down_payment_amount": 100.00, "down_payment_method": "prior_trip_credit"},
    )
    assert response.status_code == 422


def test_create_contract_persists_installments(client: TestClient):
    """Test POST /v1/contracts"""
    response = client.post("/v1/contracts", json=_contract_body())

    assert response.status_code == 201
    data = response.json()
    installments = data["schedule"]["installments"]
    assert len(installments) == 4
    assert all(p["id"] for p in installments)

    schedule = client.get(f"/v1/contracts/{data['contract_id']}/schedule")
    assert schedule.status_code == 200
    assert [p["id"] for p in schedule.json()["schedule"]["installments"]] == [p["id"] for p in installments]


def test_create_contract_redeems_credit(client: TestClient, stored_credit: Credit, cash_book, db: Session):
    body = _contract_body(
        discount_type="none",
        travel_price=2000.00,
        companions=[],
        down_payment_amount=800.00,
        down_payment_method="prior_trip_credit",
        used_credit_id=stored_credit.credit_id,
        installments_count=2,
    )

    response = client.post("/v1/contracts", json=body)

    assert response.status_code == 201
    data = response.json()
    assert data["schedule"]["down_payment_excluded_from_owed"] is True
    assert [p["amount"] for p in data["schedule"]["installments"]] == [600.00, 600.00]

    credit = client.get(f"/v1/credits/{stored_credit.credit_id}").json()
    assert credit["status"] == "redeemed"
    assert credit["used_for_client_ref"] == "client_123"
    assert [e["event"] for e in cash_book.events] == ["CREDIT_REDEEMED"]

    balance = client.get(f"/v1/contracts/{data['contract_id']}/balance").json()
    assert balance["totalPaid"] == 0.0
    assert balance["outstandingBalance"] == 1200.00
    assert balance["entradaPaid"] is True


def test_create_contract_with_spent_credit_rolls_back(client: TestClient, stored_credit: Credit, db: Session):
    body = _contract_body(
        down_payment_amount=800.00,
        down_payment_method="prior_trip_credit",
        used_credit_id=stored_credit.credit_id,
    )

    first = client.post("/v1/contracts", json=body)
    second = client.post("/v1/contracts", json={**body, "client_ref": "client_456"})

    assert first.status_code == 201
    assert second.status_code == 409
    assert db.query(TravelContract).count() == 1


def test_create_contract_with_insufficient_credit(client: TestClient, stored_credit: Credit, db: Session):
    body = _contract_body(
        down_payment_amount=900.00,
        down_payment_method="prior_trip_credit",
        used_credit_id=stored_credit.credit_id,
    )

    response = client.post("/v1/contracts", json=body)

    assert response.status_code == 422
    assert db.query(TravelContract).count() == 0
    assert client.get(f"/v1/credits/{stored_credit.credit_id}").json()["status"] == "active"


def test_gift_contract_books_expense(client: TestClient, cash_book):
    body = _contract_body(discount_type="none", payment_method="brinde", down_payment_amount=0)

    response = client.post("/v1/contracts", json=body)

    assert response.status_code == 201
    assert response.json()["schedule"]["gift_value"] == 1800.00
    gift_events = [e for e in cash_book.events if e["event"] == "GIFT_EXPENSE"]
    assert gift_events[0]["amount_cents"] == -180000


def test_receipts_and_balance(client: TestClient):
    """Test receipts against parcelas and the camelCase balance shape"""
    contract = client.post("/v1/contracts", json=_contract_body()).json()
    contract_id = contract["contract_id"]
    first = contract["schedule"]["installments"][0]

    receipt = client.post(
        f"/v1/contracts/{contract_id}/receipts",
        json={"amount": 468.75, "payment_date": "2026-02-08", "parcela_id": first["id"], "payment_method": "pix"},
    )
    assert receipt.status_code == 201

    response = client.get(f"/v1/contracts/{contract_id}/balance", params={"as_of": "2026-03-15"})

    assert response.status_code == 200
    data = response.json()
    assert data["totalTravelAmount"] == 2375.00
    assert data["totalPaid"] == 968.75
    assert data["outstandingBalance"] == 1406.25
    assert data["downPaymentAmount"] == 500.00
    assert data["remainingInstallments"] == 3
    assert data["installmentAmount"] == 468.75
    assert [p["status"] for p in data["parcelas"]] == ["paid", "overdue", "pending", "pending"]
    assert data["parcelas"][0]["paid_date"] == "2026-02-08"


def test_receipt_for_foreign_parcela_rejected(client: TestClient):
    contract = client.post("/v1/contracts", json=_contract_body()).json()
    other = client.post("/v1/contracts", json=_contract_body()).json()

    response = client.post(
        f"/v1/contracts/{contract['contract_id']}/receipts",
        json={
            "amount": 468.75,
            "payment_date": "2026-02-08",
            "parcela_id": other["schedule"]["installments"][0]["id"],
        },
    )
    assert response.status_code == 422


def test_unknown_contract(client: TestClient):
    response = client.get("/v1/contracts/00000000-0000-0000-0000-000000000000/balance")
    assert response.status_code == 404


def test_cancel_issues_credit_and_redeem_is_single_use(client: TestClient, cash_book):
    """Cancelling converts what was paid into a credit that can be used once"""
    body = _contract_body()
    body["travel_date"] = (date.today() + timedelta(days=10)).isoformat()
    contract_id = client.post("/v1/contracts", json=body).json()["contract_id"]
    client.post(
        f"/v1/contracts/{contract_id}/receipts",
        json={"amount": 300.00, "payment_date": date.today().isoformat()},
    )

    cancel = client.post(f"/v1/contracts/{contract_id}/cancel", json={"reason": "client request"})

    assert cancel.status_code == 200
    data = cancel.json()
    assert data["total_paid"] == 800.00
    credit = data["credit"]
    assert credit["amount"] == 640.00
    assert credit["penalty_rate"] == 0.2
    assert credit["status"] == "active"
    assert credit["expires_at"] == (date.today() + timedelta(days=90)).isoformat()
    assert any(e["event"] == "CREDIT_ISSUED" for e in cash_book.events)

    again = client.post(f"/v1/contracts/{contract_id}/cancel", json={"reason": "twice"})
    assert again.status_code == 409

    late_receipt = client.post(
        f"/v1/contracts/{contract_id}/receipts",
        json={"amount": 10.00, "payment_date": date.today().isoformat()},
    )
    assert late_receipt.status_code == 409

    active = client.get("/v1/credits/active").json()
    assert [c["id"] for c in active] == [credit["id"]]

    redeem = client.post(f"/v1/credits/{credit['id']}/redeem", json={"used_for_client_ref": "client_789"})
    assert redeem.status_code == 200
    assert redeem.json()["status"] == "redeemed"

    second = client.post(f"/v1/credits/{credit['id']}/redeem", json={"used_for_client_ref": "client_999"})
    assert second.status_code == 409
    assert client.get("/v1/credits/active").json() == []


def test_cancel_far_from_departure_has_no_penalty(client: TestClient):
    contract_id = client.post("/v1/contracts", json=_contract_body()).json()["contract_id"]

    credit = client.post(f"/v1/contracts/{contract_id}/cancel", json={"reason": "moved"}).json()["credit"]

    assert credit["amount"] == 500.00
    assert credit["penalty_rate"] == 0.0


def test_credit_listing_applies_expiry(client: TestClient, db: Session):
    old = issue_credit_on_cancellation(
        Decimal("400.00"), None, source_client_ref="client_old", issued_at=date.today() - timedelta(days=91)
    )
    CreditRepository(db).add(old)
    db.commit()

    listed = client.get("/v1/credits").json()

    assert [c["status"] for c in listed] == ["expired"]
    assert client.post(f"/v1/credits/{old.credit_id}/redeem", json={"used_for_client_ref": "x"}).status_code == 410


def test_redeem_unknown_credit(client: TestClient):
    response = client.post("/v1/credits/missing/redeem", json={"used_for_client_ref": "client_1"})
    assert response.status_code == 404


class SwitchableApprovals:
    """Approval feed whose answer can change between requests"""

    def __init__(self, status: ApprovalStatus):
        self.status = status

    def get_status(self, request_ref: str) -> ApprovalStatus:
        return self.status


def test_balance_keeps_discount_priced_at_creation(client: TestClient):
    """A discount approved after the contract was finalized does not move its balance"""
    approvals = SwitchableApprovals(ApprovalStatus.PENDING)
    client.app.dependency_overrides[get_approval_provider] = lambda: approvals
    body = _contract_body(
        travel_price=1000.00,
        companions=[],
        discount_type="custom",
        discount_value=10,
        discount_approval_status="pending",
        discount_approval_request_id="approval-1",
        down_payment_amount=0,
        installments_count=2,
    )
    contract = client.post("/v1/contracts", json=body).json()
    contract_id = contract["contract_id"]
    for parcela in contract["schedule"]["installments"]:
        client.post(
            f"/v1/contracts/{contract_id}/receipts",
            json={"amount": parcela["amount"], "payment_date": "2026-02-10", "parcela_id": parcela["id"]},
        )

    approvals.status = ApprovalStatus.APPROVED
    balance = client.get(f"/v1/contracts/{contract_id}/balance").json()
    schedule = client.get(f"/v1/contracts/{contract_id}/schedule").json()["schedule"]

    assert [p["amount"] for p in balance["parcelas"]] == [500.00, 500.00]
    assert balance["totalTravelAmount"] == sum(p["amount"] for p in balance["parcelas"])
    assert balance["totalPaid"] == 1000.00
    assert balance["outstandingBalance"] == 0.0
    assert schedule["discount"] == 0.0
    assert schedule["discounted_total"] == 1000.00


def test_preview_with_incomplete_custom_discount_is_counted(client: TestClient):
    """A custom discount without a value is logged and counted, not printed as a warning"""
    before = REGISTRY.get_sample_value("travel_discount_config_warnings_total") or 0.0

    response = client.post(
        "/v1/schedule/preview",
        json={"travel_price": 1000.00, "discount_type": "custom", "installments_count": 2},
    )

    assert response.status_code == 200
    assert response.json()["discount"] == 0.0
    assert REGISTRY.get_sample_value("travel_discount_config_warnings_total") == before + 1
