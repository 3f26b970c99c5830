"""Studio Metrics - new-client cohort metrics for multi-location studios.

This package reconciles three studio exports and reports, per staff member,
location and month, how many new clients came in, how many came back and how
many bought a membership:

- **Intake**: one row per client's first visit
- **Attendance**: bookings, with the staff member who taught each class
- **Sales**: purchases, used to decide conversion and revenue

Module Structure:
    studio_metrics.api: run_pipeline entry point
    studio_metrics.loaders: CSV loaders for the three exports
    studio_metrics.config: MetricsConfig rule configuration
    studio_metrics.stages: individual pipeline stages
    studio_metrics.formatters: console output
    studio_metrics.cli: `studio-metrics` command line

Quick Start:
    >>> from studio_metrics import load_intake, load_attendance, load_sales, run_pipeline
    >>>
    >>> intake = load_intake("exports/first_visits.csv")
    >>> attendance = load_attendance("exports/attendance.csv")
    >>> sales = load_sales("exports/sales.csv")
    >>>
    >>> result = run_pipeline(intake, attendance, sales)
    >>> print(result.to_frame()[["staff_member", "location", "period", "conversion_rate"]])

Grain Reference:
    - cohort: staff member x first-visit location x first-visit month
    - rollup: first-visit location x first-visit month (staff = "All Staff")
"""

__version__ = "0.1.0"

from studio_metrics.api import run_pipeline
from studio_metrics.config import MetricsConfig
from studio_metrics.exceptions import (
    ConfigError,
    IngestionError,
    PipelineError,
    StudioMetricsError,
)
from studio_metrics.loaders import load_attendance, load_intake, load_sales
from studio_metrics.types import (
    ClientDetail,
    CohortMetrics,
    PipelineResult,
    ProgressUpdate,
    SalesSummary,
)

__all__ = [
    "ClientDetail",
    "CohortMetrics",
    "ConfigError",
    "IngestionError",
    "MetricsConfig",
    "PipelineError",
    "PipelineResult",
    "ProgressUpdate",
    "SalesSummary",
    "StudioMetricsError",
    "__version__",
    "load_attendance",
    "load_intake",
    "load_sales",
    "run_pipeline",
]
