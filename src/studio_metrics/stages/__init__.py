"""Pipeline stages, in execution order.

Each stage is a plain function over pandas DataFrames. The public entry
point that chains them is studio_metrics.api.run_pipeline.
"""

from studio_metrics.stages.cohorts import Cohort, build_cohorts
from studio_metrics.stages.conversion import ConversionResult, evaluate_conversion
from studio_metrics.stages.exclusion import excluded_records, flag_exclusions
from studio_metrics.stages.linking import link_staff
from studio_metrics.stages.metrics import classify_channel, compute_cohort_metrics
from studio_metrics.stages.normalize import (
    normalize_attendance,
    normalize_intake,
    normalize_sales,
)
from studio_metrics.stages.retention import RetentionResult, evaluate_retention
from studio_metrics.stages.rollup import build_rollups
from studio_metrics.stages.sales_summary import summarize_sales

__all__ = [
    "Cohort",
    "ConversionResult",
    "RetentionResult",
    "build_cohorts",
    "build_rollups",
    "classify_channel",
    "compute_cohort_metrics",
    "evaluate_conversion",
    "evaluate_retention",
    "excluded_records",
    "flag_exclusions",
    "link_staff",
    "normalize_attendance",
    "normalize_intake",
    "normalize_sales",
    "summarize_sales",
]
