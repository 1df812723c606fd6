"""Installment schedule generation"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from travel_payments.domain.models import DownPaymentAllocation, InstallmentScheduleEntry, NO_DOWN_PAYMENT
from travel_payments.domain.money import Money, ZERO, floor2, to_money
from travel_payments.utils.date_utils import add_months, monthly_due_date


def remaining_after_down_payment(
    gross: Money,
    discount: Money,
    down_payment: DownPaymentAllocation = NO_DOWN_PAYMENT,
) -> Money:
    """max(0, gross - discount - entrada)"""
    discounted_total = to_money(gross) - to_money(discount)
    return max(ZERO, discounted_total - to_money(down_payment.effective_amount))


def _due_date(
    index: int,
    first_due_date: Optional[date],
    due_day: Optional[str],
    start_date: Optional[date],
) -> Optional[date]:
    if first_due_date is not None:
        return add_months(first_due_date, index)
    if due_day is not None and start_date is not None:
        return monthly_due_date(due_day, index, start_date)
    return None


def generate_schedule(
    gross: Money,
    discount: Money,
    down_payment: DownPaymentAllocation = NO_DOWN_PAYMENT,
    count: Optional[int] = None,
    first_due_date: Optional[date] = None,
    due_day: Optional[str] = None,
    start_date: Optional[date] = None,
) -> List[InstallmentScheduleEntry]:
    """
    Split what is left after discount and entrada into equal installments.

    Requirements:
    - count == 1 → a single entry of the whole remainder
    - count > 1 → floor-to-the-cent base for entries 1..N-1, last entry absorbs the remainder
    - missing or non-positive count → one entry flagged to_be_defined (not an error)
    - sum of entries equals the remainder exactly

    Due dates follow first_due_date monthly, else the day parsed from due_day in
    the months after start_date, else stay None.

    Example:
        1000.00 over 3 → [333.33, 333.33, 333.34]
    """
    remaining = remaining_after_down_payment(gross, discount, down_payment)

    if not count or count <= 0:
        return [
            InstallmentScheduleEntry(
                index=1,
                amount=remaining,
                due_date=_due_date(0, first_due_date, due_day, start_date),
                to_be_defined=True,
            )
        ]

    base_amount = floor2(remaining / Decimal(count))

    installments = []
    for i in range(count):
        # Last installment absorbs rounding so the total is exact to the cent
        amount = remaining - base_amount * (count - 1) if i == count - 1 else base_amount

        installments.append(
            InstallmentScheduleEntry(
                index=i + 1,
                amount=amount,
                due_date=_due_date(i, first_due_date, due_day, start_date),
            )
        )

    return installments


def schedule_total(schedule: List[InstallmentScheduleEntry]) -> Money:
    return sum((entry.amount for entry in schedule), ZERO)
