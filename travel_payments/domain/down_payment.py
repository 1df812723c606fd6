"""Down payment (entrada) allocation"""

from datetime import date
from typing import Iterable, Optional

from travel_payments.domain.credits import CreditLedger, check_redeemable, redeem_credit
from travel_payments.domain.exceptions import CreditInsufficient, ValidationError
from travel_payments.domain.models import (
    DownPayment,
    DownPaymentAllocation,
    DownPaymentSplit,
    PaymentMethod,
)
from travel_payments.domain.money import Money, ZERO, non_negative


def _draw_from_credit(
    amount: Money,
    credit_lookup: Optional[CreditLedger],
    credit_ref: Optional[str],
    today: date,
    used_for_client_ref: Optional[str],
) -> None:
    if credit_lookup is None or not credit_ref:
        raise ValidationError("A prior-trip credit down payment needs a credit reference")

    credit = check_redeemable(credit_lookup.get(credit_ref), credit_ref, today)
    if credit.amount < amount:
        raise CreditInsufficient(credit_ref, credit.amount, amount)

    # Full redemption: any unused part of the credit is forfeited
    redeem_credit(credit_lookup, credit_ref, today, used_for_client_ref)


def allocate_down_payment(
    requested: Money,
    method: Optional[PaymentMethod],
    credit_lookup: Optional[CreditLedger] = None,
    credit_ref: Optional[str] = None,
    today: Optional[date] = None,
    used_for_client_ref: Optional[str] = None,
) -> DownPaymentAllocation:
    """
    Determine the entrada amount and its funding source.

    Ordinary methods count the amount as paid. A prior_trip_credit entrada
    redeems the referenced credit and is flagged excluded_from_owed: it still
    reduces what is left to schedule but no cash changed hands.

    Raises:
        ValidationError: Negative amount or missing credit reference
        CreditNotFound, CreditExpired, CreditAlreadyRedeemed, CreditInsufficient
    """
    amount = non_negative(requested, "down_payment_amount")
    method = PaymentMethod(method) if method is not None else None

    if method != PaymentMethod.PRIOR_TRIP_CREDIT:
        return DownPaymentAllocation(effective_amount=amount, method=method)

    if amount > 0:
        _draw_from_credit(amount, credit_lookup, credit_ref, today or date.today(), used_for_client_ref)

    return DownPaymentAllocation(
        effective_amount=amount,
        excluded_from_owed=True,
        excluded_amount=amount,
        method=method,
        credit_ref=credit_ref,
    )


def allocate_split_down_payment(
    splits: Iterable[DownPaymentSplit],
    credit_lookup: Optional[CreditLedger] = None,
    credit_ref: Optional[str] = None,
    today: Optional[date] = None,
    used_for_client_ref: Optional[str] = None,
) -> DownPaymentAllocation:
    """Entrada paid through several methods; at most one split may draw on a credit"""
    splits = list(splits)
    credit_splits = [s for s in splits if s.method == PaymentMethod.PRIOR_TRIP_CREDIT]
    if len(credit_splits) > 1:
        raise ValidationError("Only one down payment split may use a prior-trip credit")

    effective = sum((non_negative(s.amount, "down payment split") for s in splits), ZERO)
    excluded = ZERO
    if credit_splits:
        excluded = non_negative(credit_splits[0].amount, "down payment split")
        if excluded > 0:
            _draw_from_credit(excluded, credit_lookup, credit_ref, today or date.today(), used_for_client_ref)

    # A single split reports its own method; mixed splits have none
    methods = {s.method for s in splits}
    return DownPaymentAllocation(
        effective_amount=effective,
        excluded_from_owed=excluded > 0,
        excluded_amount=excluded,
        method=methods.pop() if len(methods) == 1 else None,
        credit_ref=credit_ref if credit_splits else None,
    )


def allocate(
    down_payment: DownPayment,
    credit_lookup: Optional[CreditLedger] = None,
    today: Optional[date] = None,
    used_for_client_ref: Optional[str] = None,
) -> DownPaymentAllocation:
    """Allocate a DownPayment value, dispatching on whether it is split"""
    if down_payment.splits:
        return allocate_split_down_payment(
            down_payment.splits, credit_lookup, down_payment.credit_ref, today, used_for_client_ref
        )
    return allocate_down_payment(
        down_payment.amount,
        down_payment.method,
        credit_lookup,
        down_payment.credit_ref,
        today,
        used_for_client_ref,
    )


def allocation_without_redemption(down_payment: DownPayment) -> DownPaymentAllocation:
    """
    Allocation of an entrada whose credit (if any) was already redeemed.

    Used to re-derive schedules and balances for a stored contract without
    touching the ledger again.
    """
    if down_payment.splits:
        excluded = sum(
            (s.amount for s in down_payment.splits if s.method == PaymentMethod.PRIOR_TRIP_CREDIT),
            ZERO,
        )
        effective = sum((s.amount for s in down_payment.splits), ZERO)
        methods = {s.method for s in down_payment.splits}
        method = methods.pop() if len(methods) == 1 else None
    else:
        effective = down_payment.amount
        method = down_payment.method
        excluded = effective if method == PaymentMethod.PRIOR_TRIP_CREDIT else ZERO

    return DownPaymentAllocation(
        effective_amount=effective,
        excluded_from_owed=excluded > 0,
        excluded_amount=excluded,
        method=method,
        credit_ref=down_payment.credit_ref if excluded > 0 else None,
    )
