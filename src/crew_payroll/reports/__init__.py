"""Daily, employee and project reports plus their CSV exports."""

from crew_payroll.reports.aggregator import (
    aggregate_daily,
    build_employee_timesheet,
    build_project_labor_costs,
)
from crew_payroll.reports.exporter import (
    export_daily_csv,
    export_project_costs_csv,
    export_timesheet_csv,
)

__all__ = [
    "aggregate_daily",
    "build_employee_timesheet",
    "build_project_labor_costs",
    "export_daily_csv",
    "export_project_costs_csv",
    "export_timesheet_csv",
]
