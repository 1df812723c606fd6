"""Discount resolution for the first-payment discount"""

import warnings
from decimal import Decimal
from typing import Optional, Protocol

from travel_payments.domain.exceptions import ConfigurationWarning
from travel_payments.domain.models import ApprovalStatus, DiscountKind, DiscountSpec, DiscountUnit
from travel_payments.domain.money import Money, ZERO, percent_of, to_money

TIER_PERCENT = {
    DiscountKind.TIER_3PCT: Decimal("3"),
    DiscountKind.TIER_5PCT: Decimal("5"),
}


class ApprovalStatusProvider(Protocol):
    """Read-only view of the discount approval workflow"""

    def get_status(self, request_ref: str) -> Optional[ApprovalStatus]:
        ...


def _current_approval(terms: DiscountSpec, provider: Optional[ApprovalStatusProvider]) -> ApprovalStatus:
    if provider is not None and terms.approval_request_ref:
        status = provider.get_status(terms.approval_request_ref)
        if status is not None:
            return ApprovalStatus(status)
    return terms.approval


def _custom_percent(gross: Money, terms: DiscountSpec) -> Decimal:
    """Requested custom discount expressed as a percentage of gross"""
    if terms.custom_unit == DiscountUnit.PERCENTAGE:
        return Decimal(terms.custom_value)
    if gross <= 0:
        return Decimal("0")
    return Decimal(terms.custom_value) * 100 / gross


def resolve_discount(
    gross: Money,
    terms: DiscountSpec,
    approval_provider: Optional[ApprovalStatusProvider] = None,
    approval_threshold_percent: Decimal = Decimal("0"),
) -> Money:
    """
    Convert a discount selector into a single amount off the gross price.

    Rules:
    - none → 0; tier_3pct / tier_5pct → 3% / 5% of gross
    - custom above approval_threshold_percent stays inert (0) until approved
    - custom percentage → gross * value / 100, capped at approved_max_percent
    - custom fixed → value as-is, not capped by the percent limit
    - result is clamped to [0, gross]

    A custom discount without a value resolves to 0 and emits ConfigurationWarning.
    """
    gross = to_money(gross)
    if gross <= 0 or terms.kind == DiscountKind.NONE:
        return ZERO

    if terms.kind in TIER_PERCENT:
        amount = percent_of(gross, TIER_PERCENT[terms.kind])
    else:
        if terms.custom_value is None:
            warnings.warn(
                "Custom discount selected without a value; no discount applied",
                ConfigurationWarning,
                stacklevel=2,
            )
            return ZERO

        approval = _current_approval(terms, approval_provider)
        needs_approval = _custom_percent(gross, terms) > Decimal(str(approval_threshold_percent))
        if needs_approval and approval != ApprovalStatus.APPROVED:
            return ZERO

        if terms.custom_unit == DiscountUnit.FIXED:
            amount = to_money(terms.custom_value)
        else:
            percent = Decimal(terms.custom_value)
            if terms.approved_max_percent is not None:
                percent = min(percent, Decimal(terms.approved_max_percent))
            amount = percent_of(gross, percent)

    return max(ZERO, min(amount, gross))
