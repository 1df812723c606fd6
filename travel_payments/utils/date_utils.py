"""Date manipulation utilities"""

import re
from datetime import date
from typing import Optional
from dateutil.relativedelta import relativedelta

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_NUMBER = re.compile(r"\d+")


def add_months(from_date: date, months: int, day: Optional[int] = None) -> date:
    """Shift by whole months; a day past the end of the target month lands on its last day"""
    return from_date + relativedelta(months=months, day=day)


def parse_due_day(text: Optional[str], default: int = 1) -> int:
    """
    Day of month from free-form due-date text, kept within 1..28.

    Accepts "10", "dia 10", "Todo dia 10" or a full "2024-01-10" date.
    """
    day = default
    if text:
        iso = _ISO_DATE.match(text.strip())
        if iso:
            day = int(iso.group(3)) or default
        else:
            number = _NUMBER.search(text)
            if number:
                day = int(number.group(0)) or default
    return max(1, min(28, day))


def monthly_due_date(due_day_text: Optional[str], installment_index: int, start: date) -> date:
    """Installment i (0-based) is due on the parsed day of month start.month + 1 + i"""
    return start + relativedelta(months=1 + installment_index, day=parse_due_day(due_day_text))
