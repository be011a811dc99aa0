"""
Period Resolution

Turns a reference date and a granularity into an inclusive calendar window,
and moves between adjacent windows.

Weeks start on Monday. Month ends are derived from the first day of the
following month, so leap years need no special casing.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Union

from shared_ledger.engine.errors import ConfigurationError
from shared_ledger.models.ledger import Granularity, Period


def coerce_granularity(value: Union[Granularity, str]) -> Granularity:
    """
    Convert user/config input to a Granularity.

    Raises:
        ConfigurationError: for anything other than weekly/monthly/yearly.
    """
    if isinstance(value, Granularity):
        return value
    try:
        return Granularity(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(g.value for g in Granularity)
        raise ConfigurationError(
            f"Unknown granularity {value!r}. Expected one of: {allowed}"
        )


def _as_date(value: date) -> date:
    # datetime is a date subclass; drop the time of day
    if isinstance(value, datetime):
        return value.date()
    return value


def add_months(d: date, n: int) -> date:
    """Add n months to date d, clamping day to month end."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def add_years(d: date, n: int) -> date:
    """Add n years to date d; Feb 29 becomes Feb 28 in non-leap years."""
    return add_months(d, 12 * n)


class PeriodResolver:
    """
    Resolves reporting periods.

    Stateless: every method is a pure function of its arguments.
    """

    def resolve(
        self,
        reference_date: date,
        granularity: Union[Granularity, str],
    ) -> Period:
        """
        Compute the period containing `reference_date`.

        Args:
            reference_date: Any day inside the wanted period
            granularity: weekly, monthly or yearly

        Returns:
            Period with inclusive start/end dates

        Raises:
            ConfigurationError: if the granularity is unknown
        """
        granularity = coerce_granularity(granularity)
        day = _as_date(reference_date)

        if granularity == Granularity.WEEKLY:
            start = day - timedelta(days=day.isoweekday() - 1)
            end = start + timedelta(days=6)
        elif granularity == Granularity.MONTHLY:
            start = day.replace(day=1)
            end = add_months(start, 1) - timedelta(days=1)
        else:
            start = date(day.year, 1, 1)
            end = date(day.year, 12, 31)

        return Period(
            start=start,
            end=end,
            reference_date=day,
            granularity=granularity,
        )

    def navigate(self, period: Period, direction: int) -> Period:
        """
        Move to the previous (-1) or next (+1) period.

        The reference date moves by one unit (7 days, one calendar month or
        one calendar year) and the period is resolved again.
        """
        if direction not in (-1, 1):
            raise ValueError(f"Direction must be -1 or 1, got {direction}")

        reference = period.reference_date
        if period.granularity == Granularity.WEEKLY:
            shifted = reference + timedelta(days=7 * direction)
        elif period.granularity == Granularity.MONTHLY:
            shifted = add_months(reference, direction)
        else:
            shifted = add_years(reference, direction)

        return self.resolve(shifted, period.granularity)

    def previous(self, period: Period) -> Period:
        return self.navigate(period, -1)

    def next(self, period: Period) -> Period:
        return self.navigate(period, 1)

    def switch_granularity(
        self,
        granularity: Union[Granularity, str],
        today: Optional[date] = None,
    ) -> Period:
        """
        Resolve the current period for a newly chosen granularity.

        Switching views always snaps back to the period containing today.
        """
        return self.resolve(today or date.today(), granularity)
