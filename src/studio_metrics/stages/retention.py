"""Evaluate whether each cohort member came back after the first visit.

A return visit is an attendance row of the cohort (same staff member,
location and class-date period) for the member's email, dated strictly after
the first visit, and neither cancelled, late-cancelled nor a no-show.

Members whose first visit was a "2 for 1" intro need two return visits to
count as retained; everyone else needs one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.cleaning import matches_any_keyword
from studio_metrics.config import TWO_FOR_ONE_MARKER
from studio_metrics.stages.cohorts import Cohort

logger = logging.getLogger(__name__)


@dataclass
class RetentionResult:
    """Retention outcome of one cohort.

    Attributes:
        return_visits: Qualifying return-visit attendance rows, in attendance order.
        members: One row per cohort member (same order as the cohort) with
            columns ``email``, ``visit_count``, ``required_visits``,
            ``retained``, ``reason`` and ``first_return_date``.
    """

    return_visits: pd.DataFrame
    members: pd.DataFrame

    @property
    def retained_count(self) -> int:
        return int(self.members["retained"].sum())


def find_return_visits(cohort: Cohort, cohort_attendance: pd.DataFrame) -> pd.DataFrame:
    """Attendance rows that count as return visits for some cohort member."""
    first_visits = (
        cohort.members[[s.INTAKE_EMAIL, s.INTAKE_FIRST_VISIT_AT]]
        .drop_duplicates(subset=[s.INTAKE_EMAIL], keep="first")
        .rename(columns={s.INTAKE_EMAIL: s.ATT_EMAIL, s.INTAKE_FIRST_VISIT_AT: "_first_visit"})
    )
    visits = cohort_attendance.merge(first_visits, on=s.ATT_EMAIL, how="inner", sort=False)
    qualifies = (
        (visits[s.ATT_CLASS_DATE] > visits["_first_visit"])
        & ~visits[s.ATT_CANCELLED]
        & ~visits[s.ATT_LATE_CANCELLED]
        & ~visits[s.ATT_NO_SHOW]
    )
    visits = visits[qualifies].drop(columns=["_first_visit"])
    return visits.sort_values(s.ROW_ORDER, kind="stable").reset_index(drop=True)


def _retention_reason(visit_count: int, required: int, two_for_one: bool) -> str:
    offer = "'2 For 1' trial" if two_for_one else "initial trial"
    lead = "Had" if visit_count >= required else "Only"
    return f"{lead} {visit_count} return visits after {offer} (required: {required})"


def evaluate_retention(
    cohort: Cohort,
    cohort_attendance: pd.DataFrame,
    two_for_one_marker: str = TWO_FOR_ONE_MARKER,
) -> RetentionResult:
    """Apply the channel-dependent retention threshold to every cohort member.

    Args:
        cohort: Cohort to evaluate.
        cohort_attendance: Attendance rows of the cohort's staff, location and period.
        two_for_one_marker: First-visit class marker requiring two return visits.

    Returns:
        RetentionResult with the qualifying visits and the per-member outcome.
    """
    visits = find_return_visits(cohort, cohort_attendance)
    counts = visits.groupby(s.ATT_EMAIL, sort=False).size()
    first_dates = visits.groupby(s.ATT_EMAIL, sort=False)[s.ATT_CLASS_DATE].min()

    rows = []
    for _, member in cohort.members.iterrows():
        email = member[s.INTAKE_EMAIL]
        two_for_one = matches_any_keyword(member[s.INTAKE_FIRST_VISIT], two_for_one_marker)
        required = 2 if two_for_one else 1
        visit_count = int(counts.get(email, 0))
        rows.append(
            {
                "email": email,
                "visit_count": visit_count,
                "required_visits": required,
                "retained": visit_count >= required,
                "reason": _retention_reason(visit_count, required, two_for_one),
                "first_return_date": first_dates.get(email, pd.NaT),
            }
        )

    members = pd.DataFrame(
        rows,
        columns=[
            "email",
            "visit_count",
            "required_visits",
            "retained",
            "reason",
            "first_return_date",
        ],
    )
    result = RetentionResult(return_visits=visits, members=members)
    logger.debug(
        "Retention for %s / %s / %s: %d of %d retained (%d return visits)",
        cohort.staff_member,
        cohort.location,
        cohort.period,
        result.retained_count,
        len(members),
        len(visits),
    )
    return result
