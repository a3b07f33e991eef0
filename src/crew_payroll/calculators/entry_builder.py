"""Entry builder: composes classification and review into payroll entries."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from decimal import Decimal
from uuid import uuid4

from crew_payroll.calculators.classifier import HoursClassifier
from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.calculators.review import ReviewEvaluator
from crew_payroll.calculators.rounding import ZERO
from crew_payroll.calculators.types import (
    Classification,
    HourTiers,
    PayrollEntry,
    RateProfile,
    RawTimeRecord,
    Timestamp,
)
from crew_payroll.exceptions import CostOutOfRange, InvalidDuration, MissingRateProfile, PayrollError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_entry_id() -> str:
    return f"PAY-{uuid4().hex}"


def format_timestamp(value: Timestamp | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, (datetime, time)):
        return value.isoformat()
    return str(value).strip() or None


@dataclass
class BuildFailure:
    """A record that could not be turned into an entry at all."""

    record_id: str
    error: str


@dataclass
class BatchResult:
    """Result of building entries for a batch of records."""

    entries: list[PayrollEntry] = field(default_factory=list)
    failures: list[BuildFailure] = field(default_factory=list)

    @property
    def flagged_count(self) -> int:
        return sum(1 for entry in self.entries if entry.needs_review)


class EntryBuilder:
    """Builds one PayrollEntry from one RawTimeRecord.

    Pipeline (stable order per record):
    1) Resolve the rate profile (missing profile: zero rates, flagged)
    2) Derive worked hours (invalid duration: zero hours, flagged)
    3) Split into tiers and cost them (cost out of range: zero rates, flagged)
    4) Evaluate review triggers and assign the initial review state

    Anomalies never prevent the entry from being produced.
    """

    def __init__(
        self,
        rate_book: RateBook,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_entry_id,
    ):
        self.rate_book = rate_book
        self.clock = clock
        self.id_factory = id_factory

    def build(
        self,
        record: RawTimeRecord,
        supersedes_entry_id: str | None = None,
    ) -> PayrollEntry:
        """Build an entry for a record, flagging rather than failing."""
        errors: list[PayrollError] = []

        profile: RateProfile | None
        try:
            profile = self.rate_book.resolve(record.employee_id, record.project_id)
        except MissingRateProfile as e:
            errors.append(e)
            profile = None

        thresholds = profile.thresholds if profile is not None else self.rate_book.default_thresholds

        total: Decimal | None
        try:
            total = HoursClassifier.derive_total_hours(record)
        except InvalidDuration as e:
            errors.append(e)
            total = None

        classification: Classification | None = None
        if total is not None:
            if profile is not None:
                try:
                    classification = HoursClassifier.classify_hours(total, profile)
                except CostOutOfRange as e:
                    errors.append(e)
            if classification is None:
                classification = Classification(
                    total_hours=total,
                    tiers=HoursClassifier.split_hours(total, thresholds),
                    regular_rate=ZERO,
                    overtime_rate=ZERO,
                    double_time_rate=ZERO,
                    total_cost=ZERO,
                )

        decision = ReviewEvaluator.evaluate(record, classification, thresholds, errors)

        tiers = classification.tiers if classification is not None else HourTiers()
        entry = PayrollEntry(
            entry_id=self.id_factory(),
            report_id=record.report_id,
            employee_id=record.employee_id,
            employee_name=record.employee_name,
            employee_number=record.employee_number,
            project_id=record.project_id,
            project_name=record.project_name,
            work_date=record.work_date,
            regular_hours=tiers.regular,
            overtime_hours=tiers.overtime,
            double_time_hours=tiers.double_time,
            total_hours=tiers.total,
            regular_rate=classification.regular_rate if classification else ZERO,
            overtime_rate=classification.overtime_rate if classification else ZERO,
            double_time_rate=classification.double_time_rate if classification else ZERO,
            total_cost=classification.total_cost if classification else ZERO,
            review_state=decision.state,
            created_at=self.clock(),
            arrival_time=format_timestamp(record.arrival_time),
            departure_time=format_timestamp(record.departure_time),
            activities=record.activities,
            employee_specific_issues=record.employee_specific_issues,
            work_location=record.work_location,
            review_reasons=decision.reasons,
            source_record_id=record.record_id,
            supersedes_entry_id=supersedes_entry_id,
        )

        if decision.needs_review:
            logger.warning(
                "Entry %s for %s on %s flagged for review: %s",
                entry.entry_id,
                record.employee_name,
                record.work_date.isoformat(),
                "; ".join(decision.reasons),
            )
        return entry

    def build_batch(self, records: Iterable[RawTimeRecord]) -> BatchResult:
        """Build entries for many records, isolating per-record failures."""
        result = BatchResult()
        for record in records:
            try:
                result.entries.append(self.build(record))
            except Exception as e:
                logger.exception("Could not build entry for record %s", record.record_id)
                result.failures.append(BuildFailure(record_id=record.record_id, error=str(e)))
        logger.info(
            "Built %d entries (%d flagged, %d failed)",
            len(result.entries),
            result.flagged_count,
            len(result.failures),
        )
        return result
