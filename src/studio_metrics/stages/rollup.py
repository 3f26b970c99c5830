"""Roll per-staff cohorts up into per-location totals.

Counts, revenue and attendance figures are summed across every cohort that
shares a (location, period); rates are then recomputed from the sums. A
rollup rate is never an average of cohort rates.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.config import ALL_STAFF, CHANNELS
from studio_metrics.stages.metrics import apply_rates, excluded_client_details
from studio_metrics.types import CohortMetrics

logger = logging.getLogger(__name__)

# Fields summed across cohorts
SUMMED_FIELDS = [
    "new_clients",
    "trials",
    "referrals",
    "hosted",
    "influencer_signups",
    "others",
    "retained_clients",
    "converted_clients",
    "trial_converted",
    "referral_converted",
    "influencer_converted",
    "total_revenue",
    "bookings",
    "total_visits",
    "cancellations",
    "late_cancellations",
    "no_shows",
    "total_classes",
    "unique_clients",
]


def _merge_weeks(target: Dict[str, float], weeks: Dict[str, float]) -> None:
    for week, revenue in weeks.items():
        target[week] = target.get(week, 0.0) + revenue


def rollup_location(
    cohorts: List[CohortMetrics],
    location: str,
    period: str,
    excluded: pd.DataFrame,
    all_staff: str = ALL_STAFF,
) -> CohortMetrics:
    """Sum the cohorts of one (location, period) into a rollup.

    Args:
        cohorts: Per-staff cohorts sharing location and period.
        location: Location of the rollup.
        period: Period of the rollup.
        excluded: Flagged intake rows that were excluded at this location and
            period, whatever staff member they were linked to.
        all_staff: Staff label of the rollup.

    Returns:
        CohortMetrics with ``is_rollup`` set and rates recomputed from sums.
    """
    rollup = CohortMetrics(
        staff_member=all_staff,
        location=location,
        period=period,
        clients_by_source={name: 0 for name in CHANNELS},
        is_rollup=True,
    )
    weeks: Dict[str, float] = {}
    for cohort in cohorts:
        for name in SUMMED_FIELDS:
            setattr(rollup, name, getattr(rollup, name) + getattr(cohort, name))
        rollup.new_client_details.extend(cohort.new_client_details)
        rollup.retained_client_details.extend(cohort.retained_client_details)
        rollup.converted_client_details.extend(cohort.converted_client_details)
        _merge_weeks(weeks, cohort.revenue_by_week)
        for name, count in cohort.clients_by_source.items():
            rollup.clients_by_source[name] = rollup.clients_by_source.get(name, 0) + count

    rollup.revenue_by_week = dict(sorted(weeks.items()))
    rollup.excluded_client_details = excluded_client_details(excluded)
    return apply_rates(rollup)


def build_rollups(
    cohorts: List[CohortMetrics],
    excluded: pd.DataFrame,
    all_staff: str = ALL_STAFF,
) -> List[CohortMetrics]:
    """One rollup per (location, period) that has at least one cohort.

    Rollups follow the order in which their (location, period) first appears
    in ``cohorts``.
    """
    grouped: Dict[Tuple[str, str], List[CohortMetrics]] = {}
    for cohort in cohorts:
        grouped.setdefault((cohort.location, cohort.period), []).append(cohort)

    rollups = []
    for (location, period), members in grouped.items():
        mask = (excluded[s.INTAKE_LOCATION] == location) & (excluded[s.PERIOD] == period)
        rollups.append(rollup_location(members, location, period, excluded[mask], all_staff))

    logger.info("Built %d location rollup(s)", len(rollups))
    return rollups
