"""Aggregation of payroll entries into daily, employee and project views."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from crew_payroll.calculators.rounding import ZERO
from crew_payroll.calculators.types import (
    DailyLaborBreakdown,
    DailyReport,
    EmployeeTimesheet,
    PayrollEntry,
    ProjectLaborCosts,
)
from crew_payroll.exceptions import DuplicateEntryError, NotFound


def _total(entries: Iterable[PayrollEntry], attr: str) -> Decimal:
    return sum((getattr(entry, attr) for entry in entries), ZERO)


def current_entries(entries: Iterable[PayrollEntry]) -> list[PayrollEntry]:
    """Reject duplicate ids and drop entries replaced by a correction.

    Raises:
        DuplicateEntryError: If the same entry id is given twice
    """
    seen: set[str] = set()
    unique: list[PayrollEntry] = []
    for entry in entries:
        if entry.entry_id in seen:
            raise DuplicateEntryError(entry.entry_id, entry.work_date)
        seen.add(entry.entry_id)
        unique.append(entry)

    superseded = {e.supersedes_entry_id for e in unique if e.supersedes_entry_id}
    return [e for e in unique if e.entry_id not in superseded]


def aggregate_daily(
    entries: Iterable[PayrollEntry],
    report_date: date,
    project_id: str | None = None,
) -> DailyReport:
    """Fold the entries for one date into a DailyReport.

    Input order does not matter; output entries are sorted by project
    name, then employee name (entry id as the final tie-breaker), so the
    same entries always give an identical report. Entries for other
    dates or projects are ignored. No entries gives a zero report.
    """
    selected = [
        entry
        for entry in current_entries(entries)
        if entry.work_date == report_date
        and (project_id is None or entry.project_id == project_id)
    ]
    selected.sort(key=lambda e: e.sort_key)

    return DailyReport(
        report_date=report_date,
        total_entries=len(selected),
        total_employees=len({e.employee_id for e in selected}),
        total_regular_hours=_total(selected, "regular_hours"),
        total_overtime_hours=_total(selected, "overtime_hours"),
        total_double_time_hours=_total(selected, "double_time_hours"),
        total_hours=_total(selected, "total_hours"),
        total_cost=_total(selected, "total_cost"),
        entries=tuple(selected),
        project_id=project_id,
    )


def build_employee_timesheet(
    entries: Iterable[PayrollEntry],
    employee_id: str,
    start_date: date,
    end_date: date,
) -> EmployeeTimesheet:
    """Totals for one employee over an inclusive date range.

    Raises:
        NotFound: If the employee has no entries in the range
    """
    selected = [
        entry
        for entry in current_entries(entries)
        if entry.employee_id == employee_id and start_date <= entry.work_date <= end_date
    ]
    if not selected:
        raise NotFound("Timesheet for employee", employee_id)
    selected.sort(key=lambda e: (e.work_date, *e.sort_key))

    first = selected[0]
    return EmployeeTimesheet(
        employee_id=employee_id,
        employee_name=first.employee_name,
        employee_number=first.employee_number,
        start_date=start_date,
        end_date=end_date,
        total_regular_hours=_total(selected, "regular_hours"),
        total_overtime_hours=_total(selected, "overtime_hours"),
        total_double_time_hours=_total(selected, "double_time_hours"),
        total_hours=_total(selected, "total_hours"),
        total_cost=_total(selected, "total_cost"),
        entries=tuple(selected),
    )


def build_project_labor_costs(
    entries: Iterable[PayrollEntry],
    project_id: str,
    start_date: date,
    end_date: date,
) -> ProjectLaborCosts:
    """Labor totals for one project with a per-date breakdown.

    Raises:
        NotFound: If the project has no entries in the range
    """
    selected = [
        entry
        for entry in current_entries(entries)
        if entry.project_id == project_id and start_date <= entry.work_date <= end_date
    ]
    if not selected:
        raise NotFound("Labor costs for project", project_id)
    selected.sort(key=lambda e: (e.work_date, *e.sort_key))

    by_date: dict[date, list[PayrollEntry]] = defaultdict(list)
    for entry in selected:
        by_date[entry.work_date].append(entry)

    breakdown = tuple(
        DailyLaborBreakdown(
            work_date=work_date,
            employee_count=len({e.employee_id for e in day}),
            regular_hours=_total(day, "regular_hours"),
            overtime_hours=_total(day, "overtime_hours"),
            double_time_hours=_total(day, "double_time_hours"),
            total_hours=_total(day, "total_hours"),
            total_cost=_total(day, "total_cost"),
        )
        for work_date, day in sorted(by_date.items())
    )

    return ProjectLaborCosts(
        project_id=project_id,
        project_name=selected[0].project_name,
        start_date=start_date,
        end_date=end_date,
        unique_employees=len({e.employee_id for e in selected}),
        total_regular_hours=_total(selected, "regular_hours"),
        total_overtime_hours=_total(selected, "overtime_hours"),
        total_double_time_hours=_total(selected, "double_time_hours"),
        total_hours=_total(selected, "total_hours"),
        total_cost=_total(selected, "total_cost"),
        daily_breakdown=breakdown,
    )
