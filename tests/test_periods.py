"""Tests for period resolution and navigation."""

import pytest
from datetime import date

from shared_ledger.engine import (
    ConfigurationError,
    PeriodResolver,
    add_months,
    add_years,
)
from shared_ledger.models.ledger import Granularity


@pytest.fixture
def resolver():
    return PeriodResolver()


class TestResolve:
    """Tests for PeriodResolver.resolve."""

    def test_week_starts_monday(self, resolver):
        """Test a mid-week reference date."""
        period = resolver.resolve(date(2024, 1, 3), Granularity.WEEKLY)
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 1, 7)

    def test_sunday_belongs_to_preceding_week(self, resolver):
        """Test that Sunday closes the Monday-based week."""
        period = resolver.resolve(date(2024, 1, 7), "weekly")
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 1, 7)

    def test_week_spanning_new_year(self, resolver):
        """Test a week crossing the year boundary."""
        period = resolver.resolve(date(2024, 12, 31), Granularity.WEEKLY)
        assert period.start == date(2024, 12, 30)
        assert period.end == date(2025, 1, 5)

    def test_leap_february(self, resolver):
        """Test February in a leap year."""
        period = resolver.resolve(date(2024, 2, 15), Granularity.MONTHLY)
        assert period.start == date(2024, 2, 1)
        assert period.end == date(2024, 2, 29)

    def test_common_february(self, resolver):
        """Test February in a non-leap year."""
        period = resolver.resolve(date(2023, 2, 15), Granularity.MONTHLY)
        assert period.end == date(2023, 2, 28)

    def test_december(self, resolver):
        """Test month end at the year boundary."""
        period = resolver.resolve(date(2024, 12, 5), Granularity.MONTHLY)
        assert period.end == date(2024, 12, 31)

    def test_year(self, resolver):
        """Test yearly period."""
        period = resolver.resolve(date(2024, 6, 30), Granularity.YEARLY)
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 12, 31)
        assert period.reference_date == date(2024, 6, 30)

    def test_unknown_granularity(self, resolver):
        """Test that an unknown granularity is a configuration error."""
        with pytest.raises(ConfigurationError):
            resolver.resolve(date(2024, 1, 1), "daily")

    def test_configuration_error_is_value_error(self, resolver):
        """Test that callers can catch a plain ValueError."""
        with pytest.raises(ValueError):
            resolver.resolve(date(2024, 1, 1), "fortnightly")


class TestNavigate:
    """Tests for moving between periods."""

    def test_next_week(self, resolver):
        """Test moving forward by a week."""
        period = resolver.resolve(date(2024, 1, 3), Granularity.WEEKLY)
        following = resolver.next(period)
        assert following.start == date(2024, 1, 8)
        assert following.end == date(2024, 1, 14)

    def test_previous_week_crosses_year(self, resolver):
        """Test moving back into the previous year."""
        period = resolver.resolve(date(2024, 1, 3), Granularity.WEEKLY)
        previous = resolver.previous(period)
        assert previous.start == date(2023, 12, 25)
        assert previous.end == date(2023, 12, 31)

    def test_month_end_clamps(self, resolver):
        """Test that Jan 31 moves to the end of February."""
        period = resolver.resolve(date(2024, 1, 31), Granularity.MONTHLY)
        following = resolver.navigate(period, 1)
        assert following.reference_date == date(2024, 2, 29)
        assert following.start == date(2024, 2, 1)
        assert following.end == date(2024, 2, 29)

    def test_month_round_trip_stays_in_month(self, resolver):
        """Test that next then previous returns to the same month."""
        period = resolver.resolve(date(2024, 3, 31), Granularity.MONTHLY)
        back = resolver.next(resolver.previous(period))
        assert back.start == period.start
        assert back.end == period.end

    def test_leap_day_next_year(self, resolver):
        """Test that Feb 29 moves to Feb 28 in a common year."""
        period = resolver.resolve(date(2024, 2, 29), Granularity.YEARLY)
        following = resolver.next(period)
        assert following.reference_date == date(2025, 2, 28)
        assert following.start == date(2025, 1, 1)

    def test_invalid_direction(self, resolver):
        """Test that only single steps are allowed."""
        period = resolver.resolve(date(2024, 1, 3), Granularity.WEEKLY)
        with pytest.raises(ValueError):
            resolver.navigate(period, 2)

    def test_switch_granularity_snaps_to_today(self, resolver):
        """Test that a view change resets to the period containing today."""
        period = resolver.switch_granularity("weekly", today=date(2024, 5, 15))
        assert period.start == date(2024, 5, 13)
        assert period.end == date(2024, 5, 19)
        assert period.granularity == Granularity.WEEKLY


class TestDateArithmetic:
    """Tests for month/year helpers."""

    def test_add_months_across_year(self):
        """Test month addition wrapping the year."""
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 15), -1) == date(2023, 12, 15)

    def test_add_years(self):
        """Test year addition."""
        assert add_years(date(2023, 3, 1), 1) == date(2024, 3, 1)
        assert add_years(date(2024, 2, 29), -1) == date(2023, 2, 28)
