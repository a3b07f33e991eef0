"""Rate profile resolution with employee/project matching."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from crew_payroll.calculators.types import HourThresholds, RateProfile
from crew_payroll.exceptions import MissingRateProfile


class RateBook:
    """Immutable set of rate profiles, passed explicitly into classification.

    Profile selection:
    1. Profiles naming a different employee or project are skipped
    2. Most specific match wins (employee beats project, both beats either)
    3. Priority breaks ties between equally specific profiles
    """

    def __init__(
        self,
        profiles: Iterable[RateProfile] = (),
        default_thresholds: HourThresholds | None = None,
    ):
        self._profiles: tuple[RateProfile, ...] = tuple(profiles)
        self.default_thresholds = default_thresholds or HourThresholds()

    def __len__(self) -> int:
        return len(self._profiles)

    @property
    def profiles(self) -> tuple[RateProfile, ...]:
        return self._profiles

    def resolve(self, employee_id: str, project_id: str) -> RateProfile:
        """Resolve the rate profile for an employee working on a project.

        Raises:
            MissingRateProfile: If no profile matches
        """
        best: RateProfile | None = None
        best_score = -1
        best_priority = 0

        for profile in self._profiles:
            score = profile.matches(employee_id, project_id)
            if score < 0:
                continue
            if best is None or score > best_score or (
                score == best_score and profile.priority > best_priority
            ):
                best = profile
                best_score = score
                best_priority = profile.priority

        if best is None:
            raise MissingRateProfile(employee_id, project_id)
        return best

    def find(self, employee_id: str, project_id: str) -> RateProfile | None:
        """Like resolve(), returning None instead of raising."""
        try:
            return self.resolve(employee_id, project_id)
        except MissingRateProfile:
            return None

    @classmethod
    def from_dicts(
        cls,
        rows: Iterable[Mapping[str, Any]],
        default_thresholds: HourThresholds | None = None,
    ) -> RateBook:
        """Build a rate book from plain mappings (JSON files, DB rows).

        Each row gives either ``base_rate`` (1x/1.5x/2x) or all three of
        ``regular_rate``, ``overtime_rate`` and ``double_time_rate``.
        Threshold keys are optional and fall back to ``default_thresholds``.
        """
        defaults = default_thresholds or HourThresholds()
        profiles = []
        for row in rows:
            thresholds = HourThresholds(
                regular_ceiling=row.get("regular_ceiling", defaults.regular_ceiling),
                overtime_ceiling=row.get("overtime_ceiling", defaults.overtime_ceiling),
                daily_ceiling=row.get("daily_ceiling", defaults.daily_ceiling),
            )
            if "base_rate" in row:
                profile = RateProfile.from_base_rate(
                    row["base_rate"],
                    employee_id=row.get("employee_id"),
                    project_id=row.get("project_id"),
                    thresholds=thresholds,
                    priority=int(row.get("priority", 0)),
                )
            else:
                profile = RateProfile(
                    regular_rate=row["regular_rate"],
                    overtime_rate=row["overtime_rate"],
                    double_time_rate=row["double_time_rate"],
                    employee_id=row.get("employee_id"),
                    project_id=row.get("project_id"),
                    thresholds=thresholds,
                    priority=int(row.get("priority", 0)),
                    profile_id=row.get("profile_id"),
                )
            profiles.append(profile)
        return cls(profiles, default_thresholds=defaults)
