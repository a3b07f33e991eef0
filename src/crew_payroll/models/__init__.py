"""ORM models for payroll entries and rate profiles."""

from crew_payroll.models.base import Base, TimestampMixin
from crew_payroll.models.payroll import PayrollEntryRecord, RateProfileRecord

__all__ = [
    "Base",
    "PayrollEntryRecord",
    "RateProfileRecord",
    "TimestampMixin",
]
