"""Unit tests for down payment allocation"""

import pytest
from datetime import timedelta
from decimal import Decimal
from travel_payments.domain.credits import InMemoryCreditLedger
from travel_payments.domain.down_payment import (
    allocate_down_payment,
    allocate_split_down_payment,
    allocation_without_redemption,
)
from travel_payments.domain.exceptions import (
    CreditAlreadyRedeemed,
    CreditExpired,
    CreditInsufficient,
    CreditNotFound,
    ValidationError,
)
from travel_payments.domain.models import CreditStatus, DownPayment, DownPaymentSplit, PaymentMethod


def test_cash_down_payment_counts_as_paid():
    allocation = allocate_down_payment(Decimal("500.00"), PaymentMethod.CASH)

    assert allocation.effective_amount == Decimal("500.00")
    assert not allocation.excluded_from_owed
    assert allocation.cash_amount == Decimal("500.00")


def test_prior_trip_credit_down_payment(ledger, active_credit, today):
    """800 credit funding an 800 entrada: excluded from owed, credit redeemed"""
    allocation = allocate_down_payment(
        Decimal("800.00"),
        PaymentMethod.PRIOR_TRIP_CREDIT,
        ledger,
        credit_ref=active_credit.credit_id,
        today=today,
        used_for_client_ref="client_new",
    )

    assert allocation.effective_amount == Decimal("800.00")
    assert allocation.excluded_from_owed
    assert allocation.cash_amount == Decimal("0.00")

    stored = ledger.get(active_credit.credit_id)
    assert stored.status == CreditStatus.REDEEMED
    assert stored.used_for_client_ref == "client_new"


def test_credit_down_payment_unknown_credit(ledger, today):
    with pytest.raises(CreditNotFound):
        allocate_down_payment(
            Decimal("100.00"), PaymentMethod.PRIOR_TRIP_CREDIT, ledger, credit_ref="missing", today=today
        )


def test_credit_down_payment_expired(ledger, active_credit):
    after_expiry = active_credit.expires_at + timedelta(days=1)

    with pytest.raises(CreditExpired):
        allocate_down_payment(
            Decimal("100.00"),
            PaymentMethod.PRIOR_TRIP_CREDIT,
            ledger,
            credit_ref=active_credit.credit_id,
            today=after_expiry,
        )
    assert ledger.get(active_credit.credit_id).status == CreditStatus.ACTIVE


def test_credit_down_payment_on_expiry_day_still_valid(ledger, active_credit):
    allocation = allocate_down_payment(
        Decimal("100.00"),
        PaymentMethod.PRIOR_TRIP_CREDIT,
        ledger,
        credit_ref=active_credit.credit_id,
        today=active_credit.expires_at,
    )
    assert allocation.excluded_from_owed


def test_credit_down_payment_insufficient_leaves_credit_untouched(ledger, active_credit, today):
    with pytest.raises(CreditInsufficient) as exc_info:
        allocate_down_payment(
            Decimal("800.01"),
            PaymentMethod.PRIOR_TRIP_CREDIT,
            ledger,
            credit_ref=active_credit.credit_id,
            today=today,
        )

    assert exc_info.value.available == Decimal("800.00")
    assert ledger.get(active_credit.credit_id).status == CreditStatus.ACTIVE


def test_credit_down_payment_cannot_reuse_credit(ledger, active_credit, today):
    allocate_down_payment(
        Decimal("300.00"), PaymentMethod.PRIOR_TRIP_CREDIT, ledger, credit_ref=active_credit.credit_id, today=today
    )

    # Full redemption: the remaining 500 is not available to a second booking
    with pytest.raises(CreditAlreadyRedeemed):
        allocate_down_payment(
            Decimal("300.00"),
            PaymentMethod.PRIOR_TRIP_CREDIT,
            ledger,
            credit_ref=active_credit.credit_id,
            today=today,
        )


def test_credit_down_payment_requires_reference():
    with pytest.raises(ValidationError):
        allocate_down_payment(Decimal("100.00"), PaymentMethod.PRIOR_TRIP_CREDIT, InMemoryCreditLedger())


def test_negative_down_payment_rejected():
    with pytest.raises(ValidationError):
        allocate_down_payment(Decimal("-1.00"), PaymentMethod.PIX)


def test_split_down_payment_with_credit(ledger, active_credit, today):
    allocation = allocate_split_down_payment(
        [
            DownPaymentSplit(method=PaymentMethod.PRIOR_TRIP_CREDIT, amount=Decimal("800.00")),
            DownPaymentSplit(method=PaymentMethod.PIX, amount=Decimal("200.00")),
        ],
        ledger,
        credit_ref=active_credit.credit_id,
        today=today,
    )

    assert allocation.effective_amount == Decimal("1000.00")
    assert allocation.excluded_amount == Decimal("800.00")
    assert allocation.cash_amount == Decimal("200.00")
    assert allocation.method is None
    assert ledger.get(active_credit.credit_id).status == CreditStatus.REDEEMED


def test_split_down_payment_rejects_two_credit_splits(ledger, active_credit, today):
    with pytest.raises(ValidationError):
        allocate_split_down_payment(
            [
                DownPaymentSplit(method=PaymentMethod.PRIOR_TRIP_CREDIT, amount=Decimal("100.00")),
                DownPaymentSplit(method=PaymentMethod.PRIOR_TRIP_CREDIT, amount=Decimal("100.00")),
            ],
            ledger,
            credit_ref=active_credit.credit_id,
            today=today,
        )


def test_allocation_without_redemption_matches_redeemed_allocation(ledger, active_credit, today):
    down_payment = DownPayment(
        amount=Decimal("800.00"), method=PaymentMethod.PRIOR_TRIP_CREDIT, credit_ref=active_credit.credit_id
    )
    redeemed = allocate_down_payment(
        down_payment.amount, down_payment.method, ledger, credit_ref=down_payment.credit_ref, today=today
    )

    assert allocation_without_redemption(down_payment) == redeemed
