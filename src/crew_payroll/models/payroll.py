"""Payroll entry and rate profile models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crew_payroll.calculators.types import HourThresholds, PayrollEntry, RateProfile
from crew_payroll.models.base import Base, TimestampMixin
from crew_payroll.services.state_machine import ReviewState

HOURS_TYPE = Numeric(12, 6)
RATE_TYPE = Numeric(12, 4)
MONEY_TYPE = Numeric(14, 2)


class PayrollEntryRecord(Base):
    """Persisted payroll entry.

    Numeric columns are written once; only review_state and reviewed_at
    change after insert.
    """

    __tablename__ = "payroll_entry"

    entry_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    report_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    employee_number: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    project_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_name: Mapped[str] = mapped_column(String, nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)

    regular_hours: Mapped[Decimal] = mapped_column(HOURS_TYPE, nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(HOURS_TYPE, nullable=False)
    double_time_hours: Mapped[Decimal] = mapped_column(HOURS_TYPE, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(HOURS_TYPE, nullable=False)
    regular_rate: Mapped[Decimal] = mapped_column(RATE_TYPE, nullable=False)
    overtime_rate: Mapped[Decimal] = mapped_column(RATE_TYPE, nullable=False)
    double_time_rate: Mapped[Decimal] = mapped_column(RATE_TYPE, nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(MONEY_TYPE, nullable=False)

    review_state: Mapped[str] = mapped_column(String(16), nullable=False)
    review_reasons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    arrival_time: Mapped[str | None] = mapped_column(String(64), nullable=True)
    departure_time: Mapped[str | None] = mapped_column(String(64), nullable=True)
    activities: Mapped[str | None] = mapped_column(Text, nullable=True)
    employee_specific_issues: Mapped[str | None] = mapped_column(Text, nullable=True)
    work_location: Mapped[str] = mapped_column(String(16), nullable=False, default="on-site")
    source_record_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    supersedes_entry_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "review_state IN ('pending', 'needs_review', 'reviewed')",
            name="payroll_entry_review_state_check",
        ),
        CheckConstraint(
            "regular_hours >= 0 AND overtime_hours >= 0 AND double_time_hours >= 0",
            name="payroll_entry_hours_non_negative",
        ),
        Index("payroll_entry_work_date_idx", "work_date", "project_id"),
        Index("payroll_entry_employee_idx", "employee_id", "work_date"),
        Index("payroll_entry_review_state_idx", "review_state"),
        Index("payroll_entry_report_idx", "report_id"),
    )

    @classmethod
    def from_entry(cls, entry: PayrollEntry) -> PayrollEntryRecord:
        return cls(
            entry_id=entry.entry_id,
            report_id=entry.report_id,
            employee_id=entry.employee_id,
            employee_name=entry.employee_name,
            employee_number=entry.employee_number,
            project_id=entry.project_id,
            project_name=entry.project_name,
            work_date=entry.work_date,
            regular_hours=entry.regular_hours,
            overtime_hours=entry.overtime_hours,
            double_time_hours=entry.double_time_hours,
            total_hours=entry.total_hours,
            regular_rate=entry.regular_rate,
            overtime_rate=entry.overtime_rate,
            double_time_rate=entry.double_time_rate,
            total_cost=entry.total_cost,
            review_state=entry.review_state.value,
            review_reasons=list(entry.review_reasons),
            arrival_time=entry.arrival_time,
            departure_time=entry.departure_time,
            activities=entry.activities,
            employee_specific_issues=entry.employee_specific_issues,
            work_location=entry.work_location,
            source_record_id=entry.source_record_id,
            supersedes_entry_id=entry.supersedes_entry_id,
            created_at=entry.created_at,
        )

    def to_entry(self) -> PayrollEntry:
        """Materialize one complete, immutable entry snapshot."""
        return PayrollEntry(
            entry_id=self.entry_id,
            report_id=self.report_id,
            employee_id=self.employee_id,
            employee_name=self.employee_name,
            employee_number=self.employee_number,
            project_id=self.project_id,
            project_name=self.project_name,
            work_date=self.work_date,
            regular_hours=Decimal(self.regular_hours),
            overtime_hours=Decimal(self.overtime_hours),
            double_time_hours=Decimal(self.double_time_hours),
            total_hours=Decimal(self.total_hours),
            regular_rate=Decimal(self.regular_rate),
            overtime_rate=Decimal(self.overtime_rate),
            double_time_rate=Decimal(self.double_time_rate),
            total_cost=Decimal(self.total_cost),
            review_state=ReviewState(self.review_state),
            created_at=self.created_at,
            arrival_time=self.arrival_time,
            departure_time=self.departure_time,
            activities=self.activities,
            employee_specific_issues=self.employee_specific_issues,
            work_location=self.work_location,
            review_reasons=tuple(self.review_reasons or ()),
            source_record_id=self.source_record_id,
            supersedes_entry_id=self.supersedes_entry_id,
        )


class RateProfileRecord(Base, TimestampMixin):
    """Wage rates for an employee and/or project."""

    __tablename__ = "rate_profile"

    profile_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    employee_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    regular_rate: Mapped[Decimal] = mapped_column(RATE_TYPE, nullable=False)
    overtime_rate: Mapped[Decimal] = mapped_column(RATE_TYPE, nullable=False)
    double_time_rate: Mapped[Decimal] = mapped_column(RATE_TYPE, nullable=False)
    regular_ceiling: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    overtime_ceiling: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    daily_ceiling: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    metadata_json: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        CheckConstraint(
            "regular_rate >= 0 AND overtime_rate >= 0 AND double_time_rate >= 0",
            name="rate_profile_rates_non_negative",
        ),
        CheckConstraint(
            "regular_ceiling IS NULL OR overtime_ceiling IS NULL OR overtime_ceiling >= regular_ceiling",
            name="rate_profile_ceilings_check",
        ),
    )

    def to_profile(self, defaults: HourThresholds) -> RateProfile:
        """Build the engine's RateProfile; unset ceilings use ``defaults``."""
        thresholds = HourThresholds(
            regular_ceiling=self.regular_ceiling if self.regular_ceiling is not None else defaults.regular_ceiling,
            overtime_ceiling=self.overtime_ceiling if self.overtime_ceiling is not None else defaults.overtime_ceiling,
            daily_ceiling=self.daily_ceiling if self.daily_ceiling is not None else defaults.daily_ceiling,
        )
        return RateProfile(
            regular_rate=Decimal(self.regular_rate),
            overtime_rate=Decimal(self.overtime_rate),
            double_time_rate=Decimal(self.double_time_rate),
            employee_id=self.employee_id,
            project_id=self.project_id,
            thresholds=thresholds,
            priority=self.priority,
            profile_id=self.profile_id,
        )
