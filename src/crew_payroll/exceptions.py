"""Typed exceptions for the payroll hours engine.

Every error carries a machine-readable ``code`` so the API layer can map
it to a response without parsing messages.

    PayrollError
    +-- InvalidDuration
    +-- MissingRateProfile
    +-- NotFound
    +-- PersistenceUnavailable
    +-- InvalidTransitionError
    +-- DuplicateEntryError
    +-- InvalidCorrection
"""

from __future__ import annotations

from datetime import date
from typing import Any


class PayrollError(Exception):
    """Base class for all engine errors."""

    code: str = "PAYROLL_ERROR"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": str(self)}


class InvalidDuration(PayrollError):
    """Raised when a worked duration cannot be derived from a record."""

    code = "INVALID_DURATION"

    def __init__(self, record_id: str | None, reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Invalid duration for record {record_id}: {reason}")


class MissingRateProfile(PayrollError):
    """Raised when no rate profile matches an employee/project pair."""

    code = "MISSING_RATE_PROFILE"

    def __init__(self, employee_id: str, project_id: str):
        self.employee_id = employee_id
        self.project_id = project_id
        super().__init__(
            f"No rate profile found for employee {employee_id} on project {project_id}"
        )


class NotFound(PayrollError):
    """Raised when an entry (or other resource) does not exist."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class PersistenceUnavailable(PayrollError):
    """Raised when the entry store cannot be reached.

    Retryable from the caller's side; the engine never retries itself.
    """

    code = "PERSISTENCE_UNAVAILABLE"

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        msg = f"Entry store unavailable during '{operation}'"
        if cause is not None:
            msg += f": {cause.__class__.__name__}"
        super().__init__(msg)


class InvalidTransitionError(PayrollError):
    """Raised when a review state transition is not allowed."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_state: str, to_state: str, reason: str | None = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        msg = f"Invalid transition from '{from_state}' to '{to_state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DuplicateEntryError(PayrollError):
    """Raised when the same entry would be counted twice in one report."""

    code = "DUPLICATE_ENTRY"

    def __init__(self, entry_id: Any, report_date: date | None = None):
        self.entry_id = entry_id
        self.report_date = report_date
        msg = f"Entry {entry_id} appears more than once"
        if report_date is not None:
            msg += f" in the report for {report_date.isoformat()}"
        super().__init__(msg)


class CostOutOfRange(PayrollError):
    """Raised when an entry's cost is too large to record."""

    code = "COST_OUT_OF_RANGE"

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(f"Cost {amount} is out of range")


class InvalidCorrection(PayrollError):
    """Raised when a correction does not match the entry it replaces."""

    code = "INVALID_CORRECTION"

    def __init__(self, entry_id: str, reason: str):
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Cannot supersede entry {entry_id}: {reason}")
