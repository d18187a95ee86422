"""Service expiry arithmetic that keeps the billing anchor day stable."""
from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from .models import ValidityUnit


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # Jan 31 + 1 month lands on the last day of February.
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_expiry(
    current_expiry: Optional[datetime],
    validity_value: int,
    validity_unit: ValidityUnit,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """Return the expiry after one more validity period.

    The period is added to ``current_expiry`` even when it lies in the past so
    a late payment keeps the original due day; ``now`` is used only when the
    subscriber has no recorded expiry. Day and month arithmetic runs in ``tz``
    (UTC by default) and the result is returned in UTC.
    """

    if validity_value < 1:
        raise ValueError("validity_value must be >= 1")

    base = current_expiry or now or datetime.now(timezone.utc)
    if base.tzinfo is None:
        base = base.replace(tzinfo=timezone.utc)
    base = base.astimezone(timezone.utc)

    unit = ValidityUnit(validity_unit)
    # Minutes and hours are elapsed time; days and months follow the local calendar.
    if unit == ValidityUnit.MINUTES:
        return base + timedelta(minutes=validity_value)
    if unit == ValidityUnit.HOURS:
        return base + timedelta(hours=validity_value)

    local = base.astimezone(tz or timezone.utc)
    if unit == ValidityUnit.DAYS:
        result = local + timedelta(days=validity_value)
    else:
        result = _add_months(local, validity_value)
    return result.astimezone(timezone.utc)


__all__ = ["next_expiry"]
