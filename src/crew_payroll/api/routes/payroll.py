"""Payroll API endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Path, Query, Response, status

from crew_payroll.api.dependencies import Payroll
from crew_payroll.api.schemas import (
    DailyReportResponse,
    EmployeeTimesheetResponse,
    ErrorResponse,
    FlagRequest,
    IngestFailure,
    IngestRequest,
    IngestResponse,
    PayrollEntryResponse,
    ProjectLaborCostsResponse,
    RawTimeRecordIn,
    ReportEntriesResponse,
    ReviewListResponse,
)
from crew_payroll.reports.exporter import CSV_MEDIA_TYPE

router = APIRouter(prefix="/payroll", tags=["payroll"])


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# Entries
# ============================================================================


@router.post(
    "/entries",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={503: {"model": ErrorResponse}},
)
async def ingest_entries(service: Payroll, payload: IngestRequest) -> IngestResponse:
    """Classify, cost and store a batch of raw time records.

    Anomalous records are stored flagged for review, not rejected.
    """
    result = await service.ingest(r.to_record() for r in payload.records)
    return IngestResponse(
        created=result.created,
        flagged=result.flagged,
        failed=len(result.failures),
        entries=[PayrollEntryResponse.model_validate(e) for e in result.entries],
        failures=[IngestFailure.model_validate(f) for f in result.failures],
    )


@router.get(
    "/entries/{entry_id}",
    response_model=PayrollEntryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_entry(service: Payroll, entry_id: Annotated[str, Path()]) -> PayrollEntryResponse:
    """Get a specific payroll entry by ID."""
    return PayrollEntryResponse.model_validate(await service.get_entry(entry_id))


@router.post(
    "/entries/{entry_id}/supersede",
    response_model=PayrollEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def supersede_entry(
    service: Payroll,
    entry_id: Annotated[str, Path()],
    payload: RawTimeRecordIn,
) -> PayrollEntryResponse:
    """Replace an entry with a corrected record."""
    entry = await service.supersede(entry_id, payload.to_record())
    return PayrollEntryResponse.model_validate(entry)


# ============================================================================
# Review
# ============================================================================


@router.get("/review", response_model=ReviewListResponse)
async def list_needs_review(
    service: Payroll,
    project_id: Annotated[str | None, Query()] = None,
) -> ReviewListResponse:
    """List all entries that have not been reviewed yet."""
    entries = await service.list_needs_review(project_id)
    return ReviewListResponse(
        items=[PayrollEntryResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.put(
    "/entries/{entry_id}/review",
    response_model=PayrollEntryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def mark_reviewed(service: Payroll, entry_id: Annotated[str, Path()]) -> PayrollEntryResponse:
    """Mark an entry reviewed. Safe to repeat."""
    return PayrollEntryResponse.model_validate(await service.mark_reviewed(entry_id))


@router.put(
    "/entries/{entry_id}/flag",
    response_model=PayrollEntryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def flag_for_review(
    service: Payroll,
    entry_id: Annotated[str, Path()],
    payload: FlagRequest | None = None,
) -> PayrollEntryResponse:
    """Promote a pending entry to needs_review."""
    reason = payload.reason if payload else None
    return PayrollEntryResponse.model_validate(await service.flag_for_review(entry_id, reason))


# ============================================================================
# Reports
# ============================================================================


@router.get("/reports/daily/{report_date}", response_model=DailyReportResponse)
async def get_daily_report(
    service: Payroll,
    report_date: Annotated[date, Path()],
    project_id: Annotated[str | None, Query()] = None,
) -> DailyReportResponse:
    """Aggregate the entries for a date. Empty dates give a zero report."""
    report = await service.get_daily_report(report_date, project_id)
    return DailyReportResponse.model_validate(report)


@router.get(
    "/reports/source/{report_id}",
    response_model=ReportEntriesResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_report_entries(
    service: Payroll,
    report_id: Annotated[str, Path()],
) -> ReportEntriesResponse:
    """List the current entries created from a source report."""
    entries = await service.get_report_entries(report_id)
    return ReportEntriesResponse(
        report_id=report_id,
        items=[PayrollEntryResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get("/export/daily/{report_date}")
async def export_daily(service: Payroll, report_date: Annotated[date, Path()]) -> Response:
    """Export the daily report as CSV."""
    body = await service.export_daily(report_date)
    return _csv_response(body, f"payroll-{report_date.isoformat()}.csv")


@router.get(
    "/employees/{employee_id}/timesheet",
    response_model=EmployeeTimesheetResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_employee_timesheet(
    service: Payroll,
    employee_id: Annotated[str, Path()],
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
) -> EmployeeTimesheetResponse:
    """Get an employee's entries and totals for a date range."""
    timesheet = await service.get_employee_timesheet(employee_id, start_date, end_date)
    return EmployeeTimesheetResponse.model_validate(timesheet)


@router.get(
    "/employees/{employee_id}/timesheet/csv",
    responses={404: {"model": ErrorResponse}},
)
async def export_employee_timesheet(
    service: Payroll,
    employee_id: Annotated[str, Path()],
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
) -> Response:
    """Export an employee timesheet as CSV."""
    body = await service.export_employee_timesheet(employee_id, start_date, end_date)
    return _csv_response(body, f"timesheet-{employee_id}-{start_date.isoformat()}-{end_date.isoformat()}.csv")


@router.get(
    "/projects/{project_id}/costs",
    response_model=ProjectLaborCostsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_project_labor_costs(
    service: Payroll,
    project_id: Annotated[str, Path()],
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
) -> ProjectLaborCostsResponse:
    """Get a project's labor costs with a per-date breakdown."""
    costs = await service.get_project_labor_costs(project_id, start_date, end_date)
    return ProjectLaborCostsResponse.model_validate(costs)


@router.get(
    "/projects/{project_id}/costs/csv",
    responses={404: {"model": ErrorResponse}},
)
async def export_project_labor_costs(
    service: Payroll,
    project_id: Annotated[str, Path()],
    start_date: Annotated[date, Query()],
    end_date: Annotated[date, Query()],
) -> Response:
    """Export a project's labor costs as CSV."""
    body = await service.export_project_labor_costs(project_id, start_date, end_date)
    return _csv_response(body, f"labor-costs-{project_id}-{start_date.isoformat()}-{end_date.isoformat()}.csv")
