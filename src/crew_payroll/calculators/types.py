"""Type definitions for the hours classification pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from decimal import Decimal

from crew_payroll.calculators.rounding import ZERO, to_decimal
from crew_payroll.services.state_machine import ReviewState

# Raw timestamps arrive as "HH:MM" strings, ISO strings, or time/datetime values
Timestamp = str | time | datetime

DEFAULT_REGULAR_CEILING = Decimal("8")
DEFAULT_OVERTIME_CEILING = Decimal("12")
DEFAULT_DAILY_CEILING = Decimal("24")


@dataclass(frozen=True)
class HourThresholds:
    """Hour ceilings separating regular, overtime and double-time.

    Double-time is unbounded above ``overtime_ceiling``. ``daily_ceiling``
    is a sanity limit only; exceeding it flags the entry for review.
    """

    regular_ceiling: Decimal = DEFAULT_REGULAR_CEILING
    overtime_ceiling: Decimal = DEFAULT_OVERTIME_CEILING
    daily_ceiling: Decimal = DEFAULT_DAILY_CEILING

    def __post_init__(self) -> None:
        for name in ("regular_ceiling", "overtime_ceiling", "daily_ceiling"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        if self.regular_ceiling < 0:
            raise ValueError("regular_ceiling must be non-negative")
        if self.overtime_ceiling < self.regular_ceiling:
            raise ValueError("overtime_ceiling must be >= regular_ceiling")


@dataclass(frozen=True)
class RateProfile:
    """Wage rates and thresholds for an employee and/or project.

    ``employee_id`` and ``project_id`` of None act as wildcards, so a
    profile with only ``project_id`` set is the project's default rate.
    """

    regular_rate: Decimal
    overtime_rate: Decimal
    double_time_rate: Decimal
    employee_id: str | None = None
    project_id: str | None = None
    thresholds: HourThresholds = field(default_factory=HourThresholds)
    priority: int = 0
    profile_id: str | None = None

    def __post_init__(self) -> None:
        for name in ("regular_rate", "overtime_rate", "double_time_rate"):
            value = to_decimal(getattr(self, name))
            if value < 0:
                raise ValueError(f"{name} must be non-negative")
            object.__setattr__(self, name, value)

    @classmethod
    def from_base_rate(
        cls,
        base_rate: Decimal | str | int,
        employee_id: str | None = None,
        project_id: str | None = None,
        thresholds: HourThresholds | None = None,
        overtime_multiplier: Decimal = Decimal("1.5"),
        double_time_multiplier: Decimal = Decimal("2"),
        priority: int = 0,
    ) -> RateProfile:
        """Build the usual 1x / 1.5x / 2x profile from one hourly rate."""
        base = to_decimal(base_rate)
        return cls(
            regular_rate=base,
            overtime_rate=base * overtime_multiplier,
            double_time_rate=base * double_time_multiplier,
            employee_id=employee_id,
            project_id=project_id,
            thresholds=thresholds or HourThresholds(),
            priority=priority,
        )

    def matches(self, employee_id: str, project_id: str) -> int:
        """Calculate match score (higher = more specific), -1 on mismatch."""
        score = 0
        if self.employee_id is not None:
            if self.employee_id == employee_id:
                score += 2
            else:
                return -1
        if self.project_id is not None:
            if self.project_id == project_id:
                score += 1
            else:
                return -1
        return score


@dataclass(frozen=True)
class RawTimeRecord:
    """One employee's reported time for one day on one project.

    Either ``total_hours`` or both timestamps should be present.
    """

    record_id: str
    employee_id: str
    employee_name: str
    project_id: str
    project_name: str
    work_date: date
    employee_number: str = ""
    report_id: str | None = None
    total_hours: Decimal | None = None
    arrival_time: Timestamp | None = None
    departure_time: Timestamp | None = None
    activities: str | None = None
    employee_specific_issues: str | None = None
    work_location: str = "on-site"


@dataclass(frozen=True)
class HourTiers:
    """Worked hours split into pay tiers."""

    regular: Decimal = ZERO
    overtime: Decimal = ZERO
    double_time: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.regular + self.overtime + self.double_time


@dataclass(frozen=True)
class Classification:
    """Classifier output: total hours, tiers, applied rates and cost."""

    total_hours: Decimal
    tiers: HourTiers
    regular_rate: Decimal
    overtime_rate: Decimal
    double_time_rate: Decimal
    total_cost: Decimal


@dataclass(frozen=True)
class ReviewDecision:
    """Review evaluator output."""

    state: ReviewState
    reasons: tuple[str, ...] = ()

    @property
    def needs_review(self) -> bool:
        return self.state == ReviewState.NEEDS_REVIEW


@dataclass(frozen=True)
class PayrollEntry:
    """A classified, costed time entry.

    Numeric fields are fixed at creation. A correction supersedes the
    entry with a new one; only ``review_state`` moves, and only forward.
    """

    entry_id: str
    report_id: str | None
    employee_id: str
    employee_name: str
    employee_number: str
    project_id: str
    project_name: str
    work_date: date
    regular_hours: Decimal
    overtime_hours: Decimal
    double_time_hours: Decimal
    total_hours: Decimal
    regular_rate: Decimal
    overtime_rate: Decimal
    double_time_rate: Decimal
    total_cost: Decimal
    review_state: ReviewState
    created_at: datetime
    arrival_time: str | None = None
    departure_time: str | None = None
    activities: str | None = None
    employee_specific_issues: str | None = None
    work_location: str = "on-site"
    review_reasons: tuple[str, ...] = ()
    source_record_id: str | None = None
    supersedes_entry_id: str | None = None

    @property
    def needs_review(self) -> bool:
        return self.review_state == ReviewState.NEEDS_REVIEW

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        """Report ordering: project name, employee name, then tie-breakers."""
        return (self.project_name, self.employee_name, self.employee_number, self.entry_id)

    def with_review_state(self, state: ReviewState) -> PayrollEntry:
        """Return a snapshot of this entry in a new review state."""
        return replace(self, review_state=state)


@dataclass(frozen=True)
class DailyReport:
    """Totals and ordered entries for one date.

    A materialized view over entries; always re-derivable by aggregating
    the entries for the date again.
    """

    report_date: date
    total_entries: int = 0
    total_employees: int = 0
    total_regular_hours: Decimal = ZERO
    total_overtime_hours: Decimal = ZERO
    total_double_time_hours: Decimal = ZERO
    total_hours: Decimal = ZERO
    total_cost: Decimal = ZERO
    entries: tuple[PayrollEntry, ...] = ()
    project_id: str | None = None


@dataclass(frozen=True)
class EmployeeTimesheet:
    """One employee's entries and totals over a date range."""

    employee_id: str
    employee_name: str
    employee_number: str
    start_date: date
    end_date: date
    total_regular_hours: Decimal = ZERO
    total_overtime_hours: Decimal = ZERO
    total_double_time_hours: Decimal = ZERO
    total_hours: Decimal = ZERO
    total_cost: Decimal = ZERO
    entries: tuple[PayrollEntry, ...] = ()


@dataclass(frozen=True)
class DailyLaborBreakdown:
    """One date's labor totals within a project."""

    work_date: date
    employee_count: int
    regular_hours: Decimal
    overtime_hours: Decimal
    double_time_hours: Decimal
    total_hours: Decimal
    total_cost: Decimal


@dataclass(frozen=True)
class ProjectLaborCosts:
    """A project's labor totals over a date range."""

    project_id: str
    project_name: str
    start_date: date
    end_date: date
    unique_employees: int = 0
    total_regular_hours: Decimal = ZERO
    total_overtime_hours: Decimal = ZERO
    total_double_time_hours: Decimal = ZERO
    total_hours: Decimal = ZERO
    total_cost: Decimal = ZERO
    daily_breakdown: tuple[DailyLaborBreakdown, ...] = ()
