"""Prior-trip credits: issued on cancellation, redeemed as a future down payment"""

import threading
import uuid
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Protocol

from travel_payments.domain.exceptions import (
    CreditAlreadyRedeemed,
    CreditExpired,
    CreditNotFound,
    ValidationError,
)
from travel_payments.domain.models import Credit, CreditStatus
from travel_payments.domain.money import Money, non_negative, round2

CREDIT_VALIDITY_DAYS = 90
CANCELLATION_PENALTY_RATE = Decimal("0.20")
PENALTY_FREE_DAYS_BEFORE_DEPARTURE = 15


class CreditLedger(Protocol):
    """
    Storage for credits.

    mark_redeemed must be a compare-and-set: it flips an active, unexpired
    credit to redeemed and returns False when another caller got there first.
    """

    def get(self, credit_id: str) -> Optional[Credit]:
        ...

    def mark_redeemed(self, credit_id: str, today: date, used_for_client_ref: Optional[str] = None) -> bool:
        ...


def effective_status(credit: Credit, today: Optional[date] = None) -> CreditStatus:
    """Status as seen on read: an active credit past expires_at reads as expired"""
    today = today or date.today()
    if credit.status == CreditStatus.ACTIVE and today > credit.expires_at:
        return CreditStatus.EXPIRED
    return credit.status


def with_effective_status(credit: Credit, today: Optional[date] = None) -> Credit:
    status = effective_status(credit, today)
    return credit if status == credit.status else replace(credit, status=status)


def days_before_departure(travel_date: Optional[date], cancelled_on: Optional[date] = None) -> Optional[int]:
    if travel_date is None:
        return None
    return (travel_date - (cancelled_on or date.today())).days


def cancellation_penalty_rate(
    days_before: Optional[int],
    penalty_rate: Decimal = CANCELLATION_PENALTY_RATE,
    penalty_free_days: int = PENALTY_FREE_DAYS_BEFORE_DEPARTURE,
) -> Decimal:
    """
    Penalty applied to the refundable base.

    Cancelling penalty_free_days or more before departure costs nothing.
    Without a known departure date there is nothing to measure against, so no penalty.
    """
    if days_before is None or days_before >= penalty_free_days:
        return Decimal("0")
    return Decimal(str(penalty_rate))


def issue_credit_on_cancellation(
    total_paid: Money,
    days_before: Optional[int],
    source_client_ref: str,
    issued_at: Optional[date] = None,
    client_name: Optional[str] = None,
    destination: Optional[str] = None,
    credit_id: Optional[str] = None,
    penalty_rate: Decimal = CANCELLATION_PENALTY_RATE,
    penalty_free_days: int = PENALTY_FREE_DAYS_BEFORE_DEPARTURE,
    validity_days: int = CREDIT_VALIDITY_DAYS,
) -> Credit:
    """
    Convert what a client paid into a time-boxed credit.

    Example:
        1000.00 paid, cancelled 10 days out → 20% penalty → 800.00 credit
        1000.00 paid, cancelled 20 days out → no penalty → 1000.00 credit
    """
    paid = non_negative(total_paid, "total_paid")
    if validity_days <= 0:
        raise ValidationError("Credit validity must be at least one day")

    rate = cancellation_penalty_rate(days_before, penalty_rate, penalty_free_days)
    issued_at = issued_at or date.today()

    return Credit(
        credit_id=credit_id or str(uuid.uuid4()),
        amount=round2(paid * (1 - rate)),
        source_client_ref=source_client_ref,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(days=validity_days),
        status=CreditStatus.ACTIVE,
        total_paid=paid,
        penalty_rate=rate,
        client_name=client_name,
        destination=destination,
    )


def check_redeemable(credit: Optional[Credit], credit_id: str, today: date) -> Credit:
    """
    Raises:
        CreditNotFound, CreditExpired, CreditAlreadyRedeemed
    """
    if credit is None:
        raise CreditNotFound(credit_id)
    status = effective_status(credit, today)
    if status == CreditStatus.EXPIRED:
        raise CreditExpired(credit_id)
    if status == CreditStatus.REDEEMED:
        raise CreditAlreadyRedeemed(credit_id)
    return credit


def redeem_credit(
    ledger: CreditLedger,
    credit_id: str,
    today: Optional[date] = None,
    used_for_client_ref: Optional[str] = None,
) -> Credit:
    """
    Redeem a credit in full, at most once.

    The ledger's compare-and-set decides the race; when it loses, the credit is
    re-read so the caller gets the reason (redeemed meanwhile, or expired).
    """
    today = today or date.today()
    credit = check_redeemable(ledger.get(credit_id), credit_id, today)

    if not ledger.mark_redeemed(credit_id, today, used_for_client_ref):
        current = ledger.get(credit_id)
        check_redeemable(current, credit_id, today)
        raise CreditAlreadyRedeemed(credit_id)

    return replace(
        credit,
        status=CreditStatus.REDEEMED,
        used_for_client_ref=used_for_client_ref,
        used_at=today,
    )


class InMemoryCreditLedger:
    """Process-local ledger; the lock makes mark_redeemed a compare-and-set"""

    def __init__(self, credits: Optional[List[Credit]] = None):
        self._credits: Dict[str, Credit] = {c.credit_id: c for c in credits or []}
        self._lock = threading.Lock()

    def add(self, credit: Credit) -> Credit:
        with self._lock:
            self._credits[credit.credit_id] = credit
        return credit

    def get(self, credit_id: str) -> Optional[Credit]:
        with self._lock:
            return self._credits.get(credit_id)

    def mark_redeemed(self, credit_id: str, today: date, used_for_client_ref: Optional[str] = None) -> bool:
        with self._lock:
            credit = self._credits.get(credit_id)
            if credit is None or credit.status != CreditStatus.ACTIVE or today > credit.expires_at:
                return False
            self._credits[credit_id] = replace(
                credit,
                status=CreditStatus.REDEEMED,
                used_for_client_ref=used_for_client_ref,
                used_at=today,
            )
            return True

    def list_all(self, today: Optional[date] = None) -> List[Credit]:
        with self._lock:
            credits = list(self._credits.values())
        return [with_effective_status(c, today) for c in credits]

    def list_active(self, today: Optional[date] = None) -> List[Credit]:
        return [c for c in self.list_all(today) if c.status == CreditStatus.ACTIVE]
