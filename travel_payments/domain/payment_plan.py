"""Payment plan orchestration: config → price → discount → entrada → schedule → balance"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from travel_payments.domain.credits import CreditLedger
from travel_payments.domain.discounts import ApprovalStatusProvider, resolve_discount
from travel_payments.domain.down_payment import allocate, allocation_without_redemption
from travel_payments.domain.installments import generate_schedule
from travel_payments.domain.models import (
    BalanceSummary,
    ClientPaymentConfig,
    DownPaymentAllocation,
    GrossPrice,
    InstallmentScheduleEntry,
    InstallmentStatus,
    Receipt,
)
from travel_payments.domain.money import Money, ZERO, to_money
from travel_payments.domain.pricing import compute_gross_price
from travel_payments.domain.reconciliation import reconcile


@dataclass(frozen=True)
class PaymentPlan:
    """Canonical pricing and schedule for one contract"""

    gross: GrossPrice
    discount: Money
    down_payment: DownPaymentAllocation
    schedule: List[InstallmentScheduleEntry]
    upfront: bool = False

    @property
    def discounted_total(self) -> Money:
        return self.gross.billable - self.discount


def build_payment_plan(
    config: ClientPaymentConfig,
    credit_lookup: Optional[CreditLedger] = None,
    approval_provider: Optional[ApprovalStatusProvider] = None,
    approval_threshold_percent: Decimal = Decimal("0"),
    start_date: Optional[date] = None,
    redeem_credit: bool = False,
    used_for_client_ref: Optional[str] = None,
    today: Optional[date] = None,
    fixed_discount: Optional[Money] = None,
) -> PaymentPlan:
    """
    Price and schedule a client's trip.

    With redeem_credit=True a credit-funded entrada is redeemed against
    credit_lookup (contract creation). Otherwise the entrada is taken as
    already allocated, which is how previews and stored contracts are
    recomputed; both paths give the same numbers.

    fixed_discount skips discount resolution. Stored contracts pass the amount
    priced at creation so balances stay in line with their persisted parcelas.

    Upfront plans (avista, credito_banco) collapse into a single paid entry.
    """
    gross = compute_gross_price(config.travel())
    if fixed_discount is not None:
        discount = to_money(fixed_discount)
    else:
        discount = resolve_discount(
            gross.billable,
            config.discount(),
            approval_provider=approval_provider,
            approval_threshold_percent=approval_threshold_percent,
        )

    if redeem_credit:
        down_payment = allocate(config.down_payment(), credit_lookup, today, used_for_client_ref)
    else:
        down_payment = allocation_without_redemption(config.down_payment())

    if config.is_upfront:
        schedule = generate_schedule(gross.billable, discount, down_payment, 1)
        schedule = [
            replace(entry, due_date=start_date, status=InstallmentStatus.PAID, paid_date=start_date)
            for entry in schedule
        ]
    else:
        schedule = generate_schedule(
            gross.billable,
            discount,
            down_payment,
            config.installments_count,
            first_due_date=config.first_installment_due_date,
            due_day=config.installment_due_date,
            start_date=start_date,
        )

    return PaymentPlan(
        gross=gross,
        discount=discount,
        down_payment=down_payment,
        schedule=schedule,
        upfront=config.is_upfront,
    )


def build_balance_summary(
    plan: PaymentPlan,
    receipts: Iterable[Receipt],
    persisted_schedule: Optional[List[InstallmentScheduleEntry]] = None,
    today: Optional[date] = None,
) -> BalanceSummary:
    """
    Balance for the client screen and contract PDF.

    Persisted installments are reconciled when they exist; otherwise the
    plan's virtual schedule stands in. An upfront plan is fully paid.
    """
    schedule = persisted_schedule if persisted_schedule else plan.schedule
    result = reconcile(
        schedule,
        receipts,
        plan.down_payment,
        discounted_total=plan.discounted_total,
        today=today,
    )

    entries = result.entries
    if plan.upfront:
        return BalanceSummary(
            total_travel_amount=result.discounted_total,
            total_paid=result.discounted_total,
            outstanding_balance=ZERO,
            down_payment_amount=plan.down_payment.effective_amount,
            entrada_paid=True,
            remaining_installments=0,
            installment_amount=ZERO,
            parcelas=entries,
        )

    defined = [e for e in entries if not e.to_be_defined]
    return BalanceSummary(
        total_travel_amount=result.discounted_total,
        total_paid=result.total_paid,
        outstanding_balance=result.outstanding_balance,
        down_payment_amount=plan.down_payment.effective_amount,
        entrada_paid=result.down_payment_settled or plan.down_payment.excluded_from_owed,
        remaining_installments=sum(1 for e in defined if e.status != InstallmentStatus.PAID),
        installment_amount=defined[0].amount if defined else ZERO,
        parcelas=entries,
    )
