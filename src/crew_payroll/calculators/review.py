"""Review evaluation: decides whether an entry needs a human look."""

from __future__ import annotations

from collections.abc import Iterable

from crew_payroll.calculators.classifier import parse_timestamp
from crew_payroll.calculators.rounding import HOURS_TOLERANCE, ZERO, within_tolerance
from crew_payroll.calculators.types import (
    Classification,
    HourThresholds,
    RawTimeRecord,
    ReviewDecision,
)
from crew_payroll.exceptions import InvalidDuration, MissingRateProfile, PayrollError
from crew_payroll.services.state_machine import ReviewStateMachine


class ReviewEvaluator:
    """Inspects a record and its classification for anomalies.

    Any one trigger sets needs_review:
    - Timestamps present but inconsistent, or no usable duration at all
    - Non-blank employee_specific_issues text
    - Total hours outside [0, daily ceiling]
    - Tier sum deviating from total hours beyond tolerance
    - No matching rate profile

    The decision is made once, at ingestion.
    """

    @staticmethod
    def check_timestamps(record: RawTimeRecord) -> list[str]:
        """Inconsistencies in arrival/departure, independent of total_hours."""
        reasons: list[str] = []
        if record.arrival_time is None or record.departure_time is None:
            return reasons
        try:
            arrival = parse_timestamp(record.arrival_time, record.work_date)
            departure = parse_timestamp(record.departure_time, record.work_date)
        except (TypeError, ValueError):
            reasons.append("Arrival or departure time is malformed")
            return reasons
        try:
            if departure <= arrival:
                reasons.append("Departure time is not after arrival time")
        except TypeError:
            reasons.append("Arrival and departure times are not comparable")
        return reasons

    @staticmethod
    def check_hours(classification: Classification, thresholds: HourThresholds) -> list[str]:
        reasons: list[str] = []
        total = classification.total_hours
        if total < ZERO or total > thresholds.daily_ceiling:
            reasons.append(
                f"Total hours {total} outside 0-{thresholds.daily_ceiling}"
            )
        tiers = classification.tiers
        if min(tiers.regular, tiers.overtime, tiers.double_time) < ZERO:
            reasons.append("Negative hours in a pay tier")
        if not within_tolerance(tiers.total, total, HOURS_TOLERANCE):
            reasons.append(
                f"Tier hours {tiers.total} do not add up to total hours {total}"
            )
        return reasons

    @classmethod
    def evaluate(
        cls,
        record: RawTimeRecord,
        classification: Classification | None,
        thresholds: HourThresholds,
        errors: Iterable[PayrollError] = (),
    ) -> ReviewDecision:
        """Decide the initial review state for an entry built from ``record``.

        ``errors`` are the classification failures the entry builder caught
        (InvalidDuration, MissingRateProfile); each one is a trigger.
        """
        reasons: list[str] = []
        errors = list(errors)

        for error in errors:
            if isinstance(error, InvalidDuration):
                reasons.append(f"Invalid duration: {error.reason}")
            elif isinstance(error, MissingRateProfile):
                reasons.append("No rate profile for this employee and project")
            else:
                reasons.append(str(error))

        if not any(isinstance(error, InvalidDuration) for error in errors):
            reasons.extend(cls.check_timestamps(record))

        if record.employee_specific_issues and record.employee_specific_issues.strip():
            reasons.append("Employee-specific issues reported")

        if classification is not None:
            reasons.extend(cls.check_hours(classification, thresholds))

        return ReviewDecision(
            state=ReviewStateMachine.initial_state(bool(reasons)),
            reasons=tuple(reasons),
        )
