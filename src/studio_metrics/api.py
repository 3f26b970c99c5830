"""Public API for the cohort metrics pipeline.

This module provides a clean, in-memory API that turns the three studio
exports (intake, attendance, sales) into per-staff cohort metrics and
per-location rollups, plus a monthly summary of the sales export.

This function:
- does NOT read or write any files,
- does NOT parse CLI arguments or read environment variables,
- does NOT print (logging only),
- reports progress through an optional callback.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, Callable, List, Optional, TypeVar

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.config import MetricsConfig
from studio_metrics.exceptions import PipelineError
from studio_metrics.stages.cohorts import (
    build_cohorts,
    cohort_attendance,
    locations_of,
    periods_of,
    staff_members_of,
)
from studio_metrics.stages.conversion import evaluate_conversion
from studio_metrics.stages.exclusion import (
    EXCLUDED,
    EXCLUSION_REASON,
    excluded_records,
    flag_exclusions,
)
from studio_metrics.stages.linking import link_staff
from studio_metrics.stages.metrics import compute_cohort_metrics
from studio_metrics.stages.normalize import (
    normalize_attendance,
    normalize_intake,
    normalize_sales,
)
from studio_metrics.stages.retention import evaluate_retention
from studio_metrics.stages.rollup import build_rollups
from studio_metrics.stages.sales_summary import summarize_sales
from studio_metrics.types import (
    ClientDetail,
    CohortMetrics,
    PipelineResult,
    ProgressCallback,
    ProgressUpdate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

INCLUDED_REASON = "Matched staff member, location, and period criteria"
UNLINKED_REASON = "No attendance record matches the first visit"

_INTERNAL_COLUMNS = [s.ROW_ORDER, EXCLUDED, EXCLUSION_REASON]


def _notify(on_progress: Optional[ProgressCallback], progress: int, step: str) -> None:
    logger.info("[%d%%] %s", progress, step)
    if on_progress is None:
        return
    try:
        on_progress(ProgressUpdate(progress=progress, current_step=step))
    except Exception as e:
        # Best-effort: a failing progress display must not stop the run
        logger.warning("Progress callback failed at %d%%: %s", progress, e)


def _stage(name: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return func(*args, **kwargs)
    except Exception as e:
        logger.error("Stage '%s' failed: %s", name, e)
        raise PipelineError(name, str(e)) from e


def _details_frame(details: List[ClientDetail]) -> pd.DataFrame:
    columns = [f.name for f in fields(ClientDetail)]
    return pd.DataFrame([d.to_dict() for d in details], columns=columns)


def _audit_rows(rows: pd.DataFrame, reason: str) -> pd.DataFrame:
    out = rows.drop(columns=[c for c in _INTERNAL_COLUMNS if c in rows.columns])
    out = out.assign(**{s.REASON: reason})
    return out.reset_index(drop=True)


def _evaluate_cohorts(
    cohorts: list,
    attendance: pd.DataFrame,
    sales: pd.DataFrame,
    excluded: pd.DataFrame,
    config: MetricsConfig,
) -> List[CohortMetrics]:
    results = []
    for cohort in cohorts:
        att = cohort_attendance(attendance, cohort)
        retention = evaluate_retention(cohort, att, config.two_for_one_marker)
        conversion = evaluate_conversion(cohort, sales, config)
        cohort_excluded = excluded[
            (excluded[s.STAFF] == cohort.staff_member)
            & (excluded[s.INTAKE_LOCATION] == cohort.location)
            & (excluded[s.PERIOD] == cohort.period)
        ]
        results.append(
            compute_cohort_metrics(cohort, att, retention, conversion, cohort_excluded, config)
        )
    return results


def run_pipeline(
    intake_df: pd.DataFrame,
    attendance_df: pd.DataFrame,
    sales_df: Optional[pd.DataFrame] = None,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[MetricsConfig] = None,
) -> PipelineResult:
    """Compute cohort metrics and location rollups from the three exports.

    Stages run strictly in sequence: normalize, link staff, flag exclusions,
    build cohorts, evaluate retention and conversion per cohort, compute
    metrics, roll up per location, assemble the result.

    Args:
        intake_df: Intake ("first visit") export, one row per new client.
        attendance_df: Attendance / bookings export.
        sales_df: Sales export. None or empty is valid and yields zero
            conversions and revenue.
        on_progress: Optional callback receiving ProgressUpdate checkpoints
            at 5, 20, 40, 60, 80 and 100 percent. Exceptions it raises are
            logged and ignored.
        config: Rules to apply. Defaults to MetricsConfig().

    Returns:
        PipelineResult with cohorts, rollups and audit lists.

    Raises:
        ConfigError: If config is invalid.
        PipelineError: If any stage fails. No partial result is returned.

    Examples:
        >>> result = run_pipeline(intake_df, attendance_df, sales_df)
        >>> result.to_frame()[["staff_member", "location", "retention_rate"]]
    """
    config = config or MetricsConfig()
    config.validate()

    _notify(on_progress, 5, "Cleaning and validating data...")
    intake = _stage("normalize", normalize_intake, intake_df)
    attendance = _stage("normalize", normalize_attendance, attendance_df)
    sales = _stage("normalize", normalize_sales, sales_df)

    _notify(on_progress, 20, "Matching records and extracting staff data...")
    linked = _stage("link", link_staff, intake, attendance, config.unknown_staff)

    _notify(on_progress, 40, "Grouping new clients by location, staff member, and period...")
    flagged = _stage("exclude", flag_exclusions, linked, config.exclusion_keywords)
    excluded = flagged[flagged[EXCLUDED]]
    staff_members = _stage("cohorts", staff_members_of, attendance, config.unknown_staff)
    locations = _stage("cohorts", locations_of, linked)
    periods = _stage("cohorts", periods_of, linked)
    cohorts = _stage("cohorts", build_cohorts, flagged, staff_members, locations, periods)

    _notify(on_progress, 60, "Calculating retention and conversion metrics...")
    cohort_metrics = _stage(
        "evaluate", _evaluate_cohorts, cohorts, attendance, sales, excluded, config
    )

    _notify(on_progress, 80, "Rolling up location totals...")
    rollups = _stage("rollup", build_rollups, cohort_metrics, excluded, config.all_staff)
    sales_summary = _stage("sales_summary", summarize_sales, sales, config)

    included = (
        pd.concat([c.members for c in cohorts], ignore_index=True)
        if cohorts
        else flagged.iloc[0:0]
    )
    unlinked = flagged[(flagged[s.STAFF] == config.unknown_staff) & ~flagged[EXCLUDED]]

    result = PipelineResult(
        cohorts=cohort_metrics + rollups,
        staff_members=staff_members,
        locations=locations,
        periods=periods,
        included_records=_audit_rows(included, INCLUDED_REASON),
        excluded_records=excluded_records(flagged),
        new_client_records=_details_frame(
            [d for c in cohort_metrics for d in c.new_client_details]
        ),
        converted_client_records=_details_frame(
            [d for c in cohort_metrics for d in c.converted_client_details]
        ),
        retained_client_records=_details_frame(
            [d for c in cohort_metrics for d in c.retained_client_details]
        ),
        unlinked_records=_audit_rows(unlinked, UNLINKED_REASON),
        sales_summary=sales_summary,
    )

    logger.info(
        "Pipeline complete: %d cohort(s), %d rollup(s), %d included, %d excluded, %d unlinked",
        len(cohort_metrics),
        len(rollups),
        len(result.included_records),
        len(result.excluded_records),
        len(result.unlinked_records),
    )
    _notify(on_progress, 100, "Processing complete!")
    return result
