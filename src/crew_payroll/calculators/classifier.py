"""Hours classification into regular / overtime / double-time tiers."""

from __future__ import annotations

import re
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from crew_payroll.calculators.rounding import (
    HOURS_PRECISION,
    MAX_COST,
    MAX_HOURS,
    ZERO,
    round_to_cents,
    to_decimal,
)
from crew_payroll.calculators.types import (
    Classification,
    HourThresholds,
    HourTiers,
    RateProfile,
    RawTimeRecord,
    Timestamp,
)
from crew_payroll.exceptions import CostOutOfRange, InvalidDuration

SECONDS_PER_HOUR = Decimal("3600")

# "8:00", "08:00:30", "5:30 pm", "5pm"
_CLOCK_RE = re.compile(
    r"^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?(?::(?P<second>\d{2}))?\s*(?P<ampm>[ap]\.?m\.?)?$",
    re.IGNORECASE,
)


def parse_timestamp(value: Timestamp, work_date: date) -> datetime:
    """Parse an arrival/departure value into a datetime on ``work_date``.

    Raises:
        ValueError: If the value is not a recognizable clock time
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, time):
        return datetime.combine(work_date, value)

    text = str(value).strip()
    match = _CLOCK_RE.match(text)
    if match is None:
        # ISO datetime, e.g. "2025-01-10T07:00:00"
        return datetime.fromisoformat(text)

    hour = int(match.group("hour"))
    minute = int(match.group("minute") or 0)
    second = int(match.group("second") or 0)
    ampm = match.group("ampm")
    if ampm:
        if not 1 <= hour <= 12:
            raise ValueError(f"Invalid 12-hour clock value: {text!r}")
        is_pm = ampm.lower().startswith("p")
        hour = hour % 12 + (12 if is_pm else 0)
    return datetime.combine(work_date, time(hour, minute, second))


class HoursClassifier:
    """Turns a raw time record plus a rate profile into tiers and cost.

    Tier split against ceilings r (regular) and o (overtime):
        regular     = min(total, r)
        overtime    = clamp(min(total, o) - r, 0, o - r)
        double_time = max(total - o, 0)

    The three tiers always sum to total. Tier hours are never rounded
    (clock-derived durations are kept to 6 decimal places); cost is
    rounded half-up to cents once, after all three multiplications.
    """

    @staticmethod
    def derive_total_hours(record: RawTimeRecord) -> Decimal:
        """Worked hours: the explicit duration, else departure - arrival.

        Raises:
            InvalidDuration: On negative or oversized duration, missing or
                malformed timestamps, or departure not after arrival
        """
        if record.total_hours is not None:
            try:
                total = to_decimal(record.total_hours)
            except (TypeError, ValueError) as e:
                raise InvalidDuration(record.record_id, f"malformed total_hours {record.total_hours!r}") from e
            if not total.is_finite():
                raise InvalidDuration(record.record_id, "total_hours is not finite")
            if total < 0:
                raise InvalidDuration(record.record_id, f"negative total_hours {total}")
            if total > MAX_HOURS:
                raise InvalidDuration(record.record_id, f"total_hours {total} exceeds {MAX_HOURS}")
            # Decimal("-0") passes the sign check
            return total.copy_abs()

        if record.arrival_time is None and record.departure_time is None:
            raise InvalidDuration(record.record_id, "no duration and no arrival/departure times")
        if record.arrival_time is None:
            raise InvalidDuration(record.record_id, "missing arrival time")
        if record.departure_time is None:
            raise InvalidDuration(record.record_id, "missing departure time")

        try:
            arrival = parse_timestamp(record.arrival_time, record.work_date)
            departure = parse_timestamp(record.departure_time, record.work_date)
        except (TypeError, ValueError) as e:
            raise InvalidDuration(record.record_id, f"malformed timestamp: {e}") from e

        if (arrival.tzinfo is None) != (departure.tzinfo is None):
            raise InvalidDuration(record.record_id, "mixed naive and timezone-aware timestamps")
        if departure <= arrival:
            raise InvalidDuration(
                record.record_id,
                f"departure {departure.isoformat()} is not after arrival {arrival.isoformat()}",
            )

        delta = departure - arrival
        seconds = Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal(1_000_000)
        total = (seconds / SECONDS_PER_HOUR).quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)
        if total > MAX_HOURS:
            raise InvalidDuration(record.record_id, f"duration {total} exceeds {MAX_HOURS} hours")
        return total

    @staticmethod
    def split_hours(total: Decimal, thresholds: HourThresholds) -> HourTiers:
        """Split non-negative total hours into the three tiers."""
        r = thresholds.regular_ceiling
        o = thresholds.overtime_ceiling
        regular = min(total, r)
        overtime = min(max(min(total, o) - r, ZERO), o - r)
        double_time = max(total - o, ZERO)
        return HourTiers(regular=regular, overtime=overtime, double_time=double_time)

    @staticmethod
    def compute_cost(tiers: HourTiers, profile: RateProfile) -> Decimal:
        """Cost of the tiers at the profile's rates, rounded to cents.

        Raises:
            CostOutOfRange: If the cost does not fit in a money column
        """
        raw = (
            tiers.regular * profile.regular_rate
            + tiers.overtime * profile.overtime_rate
            + tiers.double_time * profile.double_time_rate
        )
        try:
            cost = round_to_cents(raw)
        except InvalidOperation as e:
            raise CostOutOfRange(raw) from e
        if cost > MAX_COST:
            raise CostOutOfRange(cost)
        return cost

    @classmethod
    def classify_hours(cls, total: Decimal, profile: RateProfile) -> Classification:
        """Classify an already-known duration."""
        tiers = cls.split_hours(total, profile.thresholds)
        return Classification(
            total_hours=total,
            tiers=tiers,
            regular_rate=profile.regular_rate,
            overtime_rate=profile.overtime_rate,
            double_time_rate=profile.double_time_rate,
            total_cost=cls.compute_cost(tiers, profile),
        )

    @classmethod
    def classify(cls, record: RawTimeRecord, profile: RateProfile) -> Classification:
        """Classify a raw record.

        Raises:
            InvalidDuration: If no duration can be derived
            CostOutOfRange: If the cost does not fit in a money column
        """
        return cls.classify_hours(cls.derive_total_hours(record), profile)
