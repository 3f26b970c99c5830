"""Partition qualifying intake records into (staff, location, period) cohorts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.cleaning import period_sort_key
from studio_metrics.config import UNKNOWN_STAFF
from studio_metrics.stages.exclusion import EXCLUDED

logger = logging.getLogger(__name__)


@dataclass
class Cohort:
    """Qualifying new clients sharing one (staff member, location, period) key.

    Attributes:
        staff_member: Staff member who taught the first visit.
        location: First-visit location.
        period: Month of the first visit, e.g. "January 2024".
        members: Intake rows of the cohort, in intake order.
    """

    staff_member: str
    location: str
    period: str
    members: pd.DataFrame

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.staff_member, self.location, self.period)

    @property
    def emails(self) -> List[str]:
        return self.members[s.INTAKE_EMAIL].tolist()


def _unique(values: pd.Series) -> List[str]:
    return [v for v in pd.unique(values) if isinstance(v, str) and v != ""]


def staff_members_of(attendance: pd.DataFrame, unknown_staff: str = UNKNOWN_STAFF) -> List[str]:
    """Distinct staff members seen in attendance, sorted, without the unknown sentinel."""
    return sorted(v for v in _unique(attendance[s.ATT_STAFF]) if v != unknown_staff)


def locations_of(intake: pd.DataFrame) -> List[str]:
    """Distinct first-visit locations, in first-seen order."""
    return _unique(intake[s.INTAKE_LOCATION])


def periods_of(intake: pd.DataFrame) -> List[str]:
    """Distinct first-visit periods, most recent first; the unknown period sorts last."""
    return sorted(_unique(intake[s.PERIOD]), key=period_sort_key, reverse=True)


def cohort_attendance(attendance: pd.DataFrame, cohort: Cohort) -> pd.DataFrame:
    """Attendance rows taught by the cohort's staff member at its location in its period."""
    mask = (
        (attendance[s.ATT_STAFF] == cohort.staff_member)
        & (attendance[s.ATT_LOCATION] == cohort.location)
        & (attendance[s.PERIOD] == cohort.period)
    )
    return attendance[mask]


def build_cohorts(
    intake: pd.DataFrame,
    staff_members: List[str],
    locations: List[str],
    periods: List[str],
) -> List[Cohort]:
    """Select the non-excluded intake records of every (staff, location, period).

    Only staff members from ``staff_members`` are considered, so records
    linked to the unknown sentinel never form a cohort. Keys with no
    qualifying record are skipped.

    Args:
        intake: Linked intake rows with the ``excluded`` flag.
        staff_members: Staff members to enumerate.
        locations: Locations to enumerate.
        periods: Periods to enumerate.

    Returns:
        Cohorts ordered by period (as given), location (as given), then staff.
    """
    qualifying = intake[~intake[EXCLUDED]]
    groups: Dict[Tuple[str, str, str], pd.DataFrame] = {
        key: rows
        for key, rows in qualifying.groupby(
            [s.STAFF, s.INTAKE_LOCATION, s.PERIOD], sort=False
        )
    }

    cohorts = []
    for period in periods:
        for location in locations:
            for staff in staff_members:
                members = groups.get((staff, location, period))
                if members is None or members.empty:
                    continue
                cohorts.append(
                    Cohort(
                        staff_member=staff,
                        location=location,
                        period=period,
                        members=members.sort_values(s.ROW_ORDER).reset_index(drop=True),
                    )
                )
                logger.debug(
                    "Cohort %s / %s / %s: %d new client(s)", staff, location, period, len(members)
                )

    logger.info("Built %d cohort(s)", len(cohorts))
    return cohorts
