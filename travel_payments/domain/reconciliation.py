"""Balance reconciliation - schedule vs. captured receipts"""

from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from travel_payments.domain.models import (
    DownPaymentAllocation,
    InstallmentScheduleEntry,
    InstallmentStatus,
    PaymentMethod,
    Receipt,
    ReceiptRole,
    Reconciliation,
)
from travel_payments.domain.money import Money, ZERO, to_money


def unique_receipts(receipts: Iterable[Receipt]) -> List[Receipt]:
    """Drop repeated receipt ids so a receipt never counts twice"""
    seen: Set[str] = set()
    unique = []
    for receipt in receipts:
        if receipt.receipt_id is not None:
            if receipt.receipt_id in seen:
                continue
            seen.add(receipt.receipt_id)
        unique.append(receipt)
    return unique


def classify_receipts(
    receipts: List[Receipt],
    down_payment: DownPaymentAllocation,
    installment_refs: Set[str],
) -> Dict[ReceiptRole, List[Receipt]]:
    """
    Assign every receipt a role.

    An explicit role wins. Untagged receipts tied to a known installment are
    installment payments. The first untagged, unlinked receipt whose amount
    equals the entrada is taken as the entrada settlement; legacy receipts
    carry no role, so this value match is the only signal they offer.
    """
    roles: Dict[ReceiptRole, List[Receipt]] = {role: [] for role in ReceiptRole}
    entrada = to_money(down_payment.effective_amount)
    entrada_matched = any(r.role == ReceiptRole.DOWN_PAYMENT for r in receipts)

    for receipt in receipts:
        if receipt.role is not None:
            role = ReceiptRole(receipt.role)
            if role == ReceiptRole.INSTALLMENT and receipt.installment_ref not in installment_refs:
                role = ReceiptRole.GENERAL
        elif receipt.installment_ref is not None and receipt.installment_ref in installment_refs:
            role = ReceiptRole.INSTALLMENT
        elif not entrada_matched and entrada > 0 and to_money(receipt.amount) == entrada:
            role = ReceiptRole.DOWN_PAYMENT
            entrada_matched = True
        else:
            role = ReceiptRole.GENERAL
        roles[role].append(receipt)

    return roles


def _cash(receipts: Iterable[Receipt]) -> Money:
    # Credit-funded receipts move old money, not new cash
    return sum(
        (to_money(r.amount) for r in receipts if r.method != PaymentMethod.PRIOR_TRIP_CREDIT),
        ZERO,
    )


def _entry_ref(entry: InstallmentScheduleEntry) -> str:
    return entry.installment_id if entry.installment_id is not None else str(entry.index)


def reconcile(
    schedule: List[InstallmentScheduleEntry],
    receipts: Iterable[Receipt],
    down_payment: DownPaymentAllocation,
    discounted_total: Optional[Money] = None,
    today: Optional[date] = None,
) -> Reconciliation:
    """
    Reconcile a schedule against receipts.

    total_paid = entrada cash + general receipts + installment receipts
    (credit-funded entrada and credit-paid receipts excluded).
    Entry status: paid if a receipt references it or it was stored as paid,
    overdue if due before today, pending otherwise.
    outstanding_balance = max(0, discounted_total - credit-funded entrada - total_paid),
    so a credit entrada lowers what is owed without counting as cash.

    Receipts reference installments by installment_id (persisted schedules) or
    by 1-based index as text (virtual schedules). Repeated receipt ids are
    ignored, so reconciling the same data twice gives the same answer.
    """
    today = today or date.today()
    if discounted_total is None:
        discounted_total = sum((e.amount for e in schedule), ZERO) + to_money(down_payment.effective_amount)
    discounted_total = to_money(discounted_total)

    receipts = unique_receipts(receipts)
    refs = {_entry_ref(e) for e in schedule}
    roles = classify_receipts(receipts, down_payment, refs)

    paid_refs: Dict[str, date] = {}
    for receipt in roles[ReceiptRole.INSTALLMENT]:
        previous = paid_refs.get(receipt.installment_ref)
        if previous is None or receipt.payment_date > previous:
            paid_refs[receipt.installment_ref] = receipt.payment_date

    entries = []
    for entry in schedule:
        ref = _entry_ref(entry)
        if ref in paid_refs:
            entries.append(replace(entry, status=InstallmentStatus.PAID, paid_date=paid_refs[ref]))
        elif entry.status == InstallmentStatus.PAID:
            entries.append(entry)
        elif entry.due_date is not None and entry.due_date < today:
            entries.append(replace(entry, status=InstallmentStatus.OVERDUE))
        else:
            entries.append(replace(entry, status=InstallmentStatus.PENDING))

    total_paid = (
        to_money(down_payment.cash_amount)
        + _cash(roles[ReceiptRole.GENERAL])
        + _cash(roles[ReceiptRole.INSTALLMENT])
    )

    return Reconciliation(
        discounted_total=discounted_total,
        total_paid=total_paid,
        outstanding_balance=max(ZERO, discounted_total - to_money(down_payment.excluded_amount) - total_paid),
        entries=entries,
        down_payment_settled=bool(roles[ReceiptRole.DOWN_PAYMENT]),
    )
