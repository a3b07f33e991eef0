"""CSV export of payroll reports.

Exports are pure functions of their report: the same report always
renders to byte-identical text, so payroll systems can diff reruns.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence

from crew_payroll.calculators.rounding import format_hours, format_money
from crew_payroll.calculators.types import DailyReport, EmployeeTimesheet, ProjectLaborCosts

CSV_MEDIA_TYPE = "text/csv"

DAILY_COLUMNS: tuple[str, ...] = (
    "Employee Name",
    "Employee #",
    "Project",
    "Regular Hrs",
    "OT Hrs",
    "DT Hrs",
    "Total Hrs",
    "Total Cost",
    "Issues",
)

TIMESHEET_COLUMNS: tuple[str, ...] = (
    "Date",
    "Project",
    "Regular Hrs",
    "OT Hrs",
    "DT Hrs",
    "Total Hrs",
    "Total Cost",
    "Issues",
)

PROJECT_COST_COLUMNS: tuple[str, ...] = (
    "Date",
    "Employee Count",
    "Regular Hrs",
    "OT Hrs",
    "DT Hrs",
    "Total Hrs",
    "Total Cost",
)


def _render(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(header)
    writer.writerows(rows)
    return output.getvalue()


def export_daily_csv(report: DailyReport) -> str:
    """Render a DailyReport in its entry order, header row first.

    Hours use one decimal place, cost two. Free text is quoted per
    RFC 4180 so a CSV reader returns it unchanged.
    """
    rows = [
        (
            entry.employee_name,
            entry.employee_number,
            entry.project_name,
            format_hours(entry.regular_hours),
            format_hours(entry.overtime_hours),
            format_hours(entry.double_time_hours),
            format_hours(entry.total_hours),
            format_money(entry.total_cost),
            entry.employee_specific_issues or "",
        )
        for entry in report.entries
    ]
    return _render(DAILY_COLUMNS, rows)


def export_timesheet_csv(timesheet: EmployeeTimesheet) -> str:
    """Render an employee timesheet with a closing TOTAL row."""
    rows: list[tuple[str, ...]] = [
        (
            entry.work_date.isoformat(),
            entry.project_name,
            format_hours(entry.regular_hours),
            format_hours(entry.overtime_hours),
            format_hours(entry.double_time_hours),
            format_hours(entry.total_hours),
            format_money(entry.total_cost),
            entry.employee_specific_issues or "",
        )
        for entry in timesheet.entries
    ]
    rows.append(
        (
            "TOTAL",
            f"{timesheet.start_date.isoformat()} to {timesheet.end_date.isoformat()}",
            format_hours(timesheet.total_regular_hours),
            format_hours(timesheet.total_overtime_hours),
            format_hours(timesheet.total_double_time_hours),
            format_hours(timesheet.total_hours),
            format_money(timesheet.total_cost),
            "",
        )
    )
    return _render(TIMESHEET_COLUMNS, rows)


def export_project_costs_csv(costs: ProjectLaborCosts) -> str:
    """Render a project's daily labor breakdown with a closing TOTAL row."""
    rows: list[tuple[str, ...]] = [
        (
            day.work_date.isoformat(),
            str(day.employee_count),
            format_hours(day.regular_hours),
            format_hours(day.overtime_hours),
            format_hours(day.double_time_hours),
            format_hours(day.total_hours),
            format_money(day.total_cost),
        )
        for day in costs.daily_breakdown
    ]
    rows.append(
        (
            "TOTAL",
            str(costs.unique_employees),
            format_hours(costs.total_regular_hours),
            format_hours(costs.total_overtime_hours),
            format_hours(costs.total_double_time_hours),
            format_hours(costs.total_hours),
            format_money(costs.total_cost),
        )
    )
    return _render(PROJECT_COST_COLUMNS, rows)
