"""Prior-trip credit endpoints - listing and redemption"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from travel_payments.api.v1.schemas import CreditSchema, RedeemRequest
from travel_payments.api.v1.errors import to_http_error
from travel_payments.api.dependencies import get_cash_book_client, get_request_id
from travel_payments.domain.credits import redeem_credit, with_effective_status
from travel_payments.domain.exceptions import CreditError, CreditNotFound
from travel_payments.domain.money import to_cents
from travel_payments.infrastructure.clients.cash_book import CashBookClient
from travel_payments.infrastructure.database.repositories import CreditRepository
from travel_payments.infrastructure.database.session import get_db
from travel_payments.infrastructure.observability.logging import log_credit_event
from travel_payments.infrastructure.observability.metrics import record_redemption

router = APIRouter()


@router.get("/credits", response_model=List[CreditSchema])
def list_credits(as_of: Optional[date] = None, db: Session = Depends(get_db)):
    """All credits; expiry is applied on read"""
    today = as_of or date.today()
    return [
        CreditSchema.from_credit(with_effective_status(c, today))
        for c in CreditRepository(db).list_all()
    ]


@router.get("/credits/active", response_model=List[CreditSchema])
def list_active_credits(as_of: Optional[date] = None, db: Session = Depends(get_db)):
    """Credits that can still fund a down payment"""
    today = as_of or date.today()
    return [CreditSchema.from_credit(c) for c in CreditRepository(db).list_active(today)]


@router.get("/credits/{credit_id}", response_model=CreditSchema)
def get_credit(credit_id: str, request: Request, as_of: Optional[date] = None, db: Session = Depends(get_db)):
    credit = CreditRepository(db).get(credit_id)
    if credit is None:
        raise to_http_error(CreditNotFound(credit_id), get_request_id(request))
    return CreditSchema.from_credit(with_effective_status(credit, as_of or date.today()))


@router.post("/credits/{credit_id}/redeem", response_model=CreditSchema)
def redeem(
    credit_id: str,
    body: RedeemRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    cash_book: CashBookClient = Depends(get_cash_book_client),
):
    """
    Mark a credit as used by another client's booking.

    Single use: a second attempt fails with 409 and nothing is deducted twice.
    """
    request_id = get_request_id(request)
    try:
        credit = redeem_credit(CreditRepository(db), credit_id, date.today(), body.used_for_client_ref)
        db.commit()
    except CreditError as e:
        db.rollback()
        raise to_http_error(e, request_id)

    record_redemption("redeemed")
    log_credit_event(request_id, "redeemed", credit.credit_id, str(credit.amount), used_for=body.used_for_client_ref)
    background_tasks.add_task(
        cash_book.send_event,
        {
            "event": "CREDIT_REDEEMED",
            "credit_id": credit.credit_id,
            "client_ref": body.used_for_client_ref,
            "amount_cents": to_cents(credit.amount),
        },
    )
    return CreditSchema.from_credit(credit)
