"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from crew_payroll.calculators.types import RawTimeRecord
from crew_payroll.services.state_machine import ReviewState


# ============================================================================
# Common
# ============================================================================


class ErrorResponse(BaseModel):
    """Error response body."""

    detail: str
    code: str


# ============================================================================
# Ingestion schemas
# ============================================================================


class RawTimeRecordIn(BaseModel):
    """One reported day of work for one employee on one project."""

    record_id: str = Field(default_factory=lambda: uuid4().hex)
    report_id: str | None = None
    employee_id: str = Field(min_length=1)
    employee_name: str = Field(min_length=1)
    employee_number: str = ""
    project_id: str = Field(min_length=1)
    project_name: str = Field(min_length=1)
    work_date: date
    total_hours: Decimal | None = None
    arrival_time: str | None = None
    departure_time: str | None = None
    activities: str | None = None
    employee_specific_issues: str | None = None
    work_location: Literal["on-site", "off-site"] = "on-site"

    def to_record(self) -> RawTimeRecord:
        return RawTimeRecord(
            record_id=self.record_id,
            report_id=self.report_id,
            employee_id=self.employee_id,
            employee_name=self.employee_name,
            employee_number=self.employee_number,
            project_id=self.project_id,
            project_name=self.project_name,
            work_date=self.work_date,
            total_hours=self.total_hours,
            arrival_time=self.arrival_time,
            departure_time=self.departure_time,
            activities=self.activities,
            employee_specific_issues=self.employee_specific_issues,
            work_location=self.work_location,
        )


class IngestRequest(BaseModel):
    """Batch of raw time records."""

    records: list[RawTimeRecordIn] = Field(min_length=1)


class FlagRequest(BaseModel):
    """Reason for promoting an entry to needs_review."""

    reason: str | None = None


# ============================================================================
# Entry schemas
# ============================================================================


class PayrollEntryResponse(BaseModel):
    """Schema for a payroll entry."""

    model_config = ConfigDict(from_attributes=True)

    entry_id: str
    report_id: str | None = None
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
    review_reasons: list[str] = []
    arrival_time: str | None = None
    departure_time: str | None = None
    activities: str | None = None
    employee_specific_issues: str | None = None
    work_location: str
    source_record_id: str | None = None
    supersedes_entry_id: str | None = None
    created_at: datetime


class IngestFailure(BaseModel):
    """A record that produced no stored entry."""

    model_config = ConfigDict(from_attributes=True)

    record_id: str
    error: str


class IngestResponse(BaseModel):
    """Schema for ingestion results."""

    created: int
    flagged: int
    failed: int
    entries: list[PayrollEntryResponse]
    failures: list[IngestFailure]


class ReviewListResponse(BaseModel):
    """Entries that have not been reviewed yet."""

    items: list[PayrollEntryResponse]
    total: int


class ReportEntriesResponse(BaseModel):
    """Current entries created from one source report."""

    report_id: str
    items: list[PayrollEntryResponse]
    total: int


# ============================================================================
# Report schemas
# ============================================================================


class DailyReportResponse(BaseModel):
    """Schema for a daily payroll report."""

    model_config = ConfigDict(from_attributes=True)

    report_date: date
    project_id: str | None = None
    total_entries: int
    total_employees: int
    total_regular_hours: Decimal
    total_overtime_hours: Decimal
    total_double_time_hours: Decimal
    total_hours: Decimal
    total_cost: Decimal
    entries: list[PayrollEntryResponse]


class EmployeeTimesheetResponse(BaseModel):
    """Schema for an employee timesheet."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    employee_name: str
    employee_number: str
    start_date: date
    end_date: date
    total_regular_hours: Decimal
    total_overtime_hours: Decimal
    total_double_time_hours: Decimal
    total_hours: Decimal
    total_cost: Decimal
    entries: list[PayrollEntryResponse]


class DailyLaborBreakdownResponse(BaseModel):
    """One date within a project's labor costs."""

    model_config = ConfigDict(from_attributes=True)

    work_date: date
    employee_count: int
    regular_hours: Decimal
    overtime_hours: Decimal
    double_time_hours: Decimal
    total_hours: Decimal
    total_cost: Decimal


class ProjectLaborCostsResponse(BaseModel):
    """Schema for project labor costs."""

    model_config = ConfigDict(from_attributes=True)

    project_id: str
    project_name: str
    start_date: date
    end_date: date
    unique_employees: int
    total_regular_hours: Decimal
    total_overtime_hours: Decimal
    total_double_time_hours: Decimal
    total_hours: Decimal
    total_cost: Decimal
    daily_breakdown: list[DailyLaborBreakdownResponse]
