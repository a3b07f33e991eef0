"""Tests for rate profile resolution."""

from decimal import Decimal

import pytest

from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.calculators.types import HourThresholds, RateProfile
from crew_payroll.exceptions import MissingRateProfile


def _profile(rate: str, employee_id=None, project_id=None, priority=0) -> RateProfile:
    return RateProfile.from_base_rate(
        Decimal(rate),
        employee_id=employee_id,
        project_id=project_id,
        priority=priority,
    )


class TestRateBook:
    """Test profile matching and tie-breaking."""

    def test_employee_and_project_beats_project_only(self):
        book = RateBook(
            [
                _profile("20", project_id="proj-1"),
                _profile("25", employee_id="emp-1", project_id="proj-1"),
            ]
        )

        assert book.resolve("emp-1", "proj-1").regular_rate == Decimal("25")
        assert book.resolve("emp-2", "proj-1").regular_rate == Decimal("20")

    def test_employee_beats_project(self):
        book = RateBook(
            [
                _profile("20", project_id="proj-1"),
                _profile("22", employee_id="emp-1"),
            ]
        )

        assert book.resolve("emp-1", "proj-1").regular_rate == Decimal("22")

    def test_wildcard_profile_is_fallback(self):
        book = RateBook([_profile("18"), _profile("20", project_id="proj-1")])

        assert book.resolve("emp-1", "proj-2").regular_rate == Decimal("18")

    def test_priority_breaks_ties(self):
        book = RateBook(
            [
                _profile("20", project_id="proj-1", priority=1),
                _profile("21", project_id="proj-1", priority=5),
            ]
        )

        assert book.resolve("emp-1", "proj-1").regular_rate == Decimal("21")

    def test_missing_profile_raises(self):
        book = RateBook([_profile("20", project_id="proj-1")])

        with pytest.raises(MissingRateProfile) as exc_info:
            book.resolve("emp-1", "proj-2")

        assert exc_info.value.employee_id == "emp-1"
        assert exc_info.value.project_id == "proj-2"
        assert book.find("emp-1", "proj-2") is None

    def test_from_base_rate_multipliers(self):
        profile = RateProfile.from_base_rate(Decimal("30"))

        assert profile.overtime_rate == Decimal("45.0")
        assert profile.double_time_rate == Decimal("60")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            RateProfile(regular_rate=Decimal("-1"), overtime_rate=Decimal("0"), double_time_rate=Decimal("0"))


class TestRateBookFromDicts:
    """Test loading rate books from plain rows."""

    def test_base_rate_rows(self):
        book = RateBook.from_dicts([{"project_id": "proj-1", "base_rate": "20"}])
        profile = book.resolve("emp-1", "proj-1")

        assert profile.overtime_rate == Decimal("30")
        assert profile.double_time_rate == Decimal("40")
        assert profile.thresholds == HourThresholds()

    def test_explicit_rates_and_ceilings(self):
        book = RateBook.from_dicts(
            [
                {
                    "employee_id": "emp-1",
                    "regular_rate": 20,
                    "overtime_rate": 35,
                    "double_time_rate": 50,
                    "regular_ceiling": 10,
                    "overtime_ceiling": 14,
                }
            ]
        )
        profile = book.resolve("emp-1", "any")

        assert profile.overtime_rate == Decimal("35")
        assert profile.thresholds.regular_ceiling == Decimal("10")
        assert profile.thresholds.overtime_ceiling == Decimal("14")
        assert profile.thresholds.daily_ceiling == Decimal("24")

    def test_default_thresholds_apply(self):
        defaults = HourThresholds(regular_ceiling=Decimal("6"), overtime_ceiling=Decimal("10"))
        book = RateBook.from_dicts([{"base_rate": 20}], default_thresholds=defaults)

        assert book.resolve("emp-1", "proj-1").thresholds == defaults
        assert book.default_thresholds == defaults
        assert len(book) == 1
