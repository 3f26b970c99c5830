"""CLI wrapper for the cohort metrics pipeline.

This module provides a command-line interface for running the pipeline on
three CSV exports. All core logic is in studio_metrics.api.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from studio_metrics.api import run_pipeline
from studio_metrics.formatters.console import format_results_for_console
from studio_metrics.loaders import load_attendance, load_intake, load_sales
from studio_metrics.types import PipelineResult, ProgressUpdate

logger = logging.getLogger(__name__)


def _print_progress(update: ProgressUpdate) -> None:
    print(f"  [{update.progress:>3}%] {update.current_step}")


def write_outputs(result: PipelineResult, output_dir: Path, location: Optional[str] = None) -> List[Path]:
    """Write the cohort table, the audit lists and the sales tables as CSV files.

    Args:
        result: PipelineResult from run_pipeline
        output_dir: Directory to write into (created if missing)
        location: If given, the cohort table only holds this location

    Returns:
        Paths of the files written
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    cohorts = result.to_frame()
    if location is not None and not cohorts.empty:
        cohorts = cohorts[cohorts["location"] == location]

    frames = {
        "cohorts.csv": cohorts,
        "included_records.csv": result.included_records,
        "excluded_records.csv": result.excluded_records,
        "new_clients.csv": result.new_client_records,
        "converted_clients.csv": result.converted_client_records,
        "retained_clients.csv": result.retained_client_records,
        "unlinked_records.csv": result.unlinked_records,
        "sales_by_month.csv": result.sales_summary.monthly_trends,
        "sales_by_product.csv": result.sales_summary.by_product,
        "sales_by_category.csv": result.sales_summary.by_category,
        "sales_by_location.csv": result.sales_summary.by_location,
    }
    written = []
    for name, df in frames.items():
        path = output_dir / name
        df.to_csv(path, index=False)
        logger.debug("Wrote %d row(s) to %s", len(df), path)
        written.append(path)
    return written


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point for the cohort metrics pipeline.

    Parses command-line arguments, loads the exports, runs the pipeline,
    prints a summary and optionally writes the results as CSV.
    """
    parser = argparse.ArgumentParser(description="Compute new-client cohort metrics.")
    parser.add_argument("--intake", type=str, required=True, help="Path to the first-visit (intake) CSV export")
    parser.add_argument("--attendance", type=str, required=True, help="Path to the attendance CSV export")
    parser.add_argument(
        "--sales",
        type=str,
        help="Path to the sales CSV export. If not provided, no client converts.",
    )
    parser.add_argument("--output-dir", type=str, help="Directory for cohorts.csv and the audit CSVs")
    parser.add_argument("--location", type=str, help="Only show this location")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("New Client Cohort Metrics")
    print("=" * 60)

    try:
        print("\n[1/3] Loading exports...")
        intake_df = load_intake(args.intake)
        attendance_df = load_attendance(args.attendance)
        sales_df = load_sales(args.sales) if args.sales else None
        print(
            f"[OK] Loaded {len(intake_df)} intake, {len(attendance_df)} attendance and "
            f"{0 if sales_df is None else len(sales_df)} sales rows"
        )

        print("\n[2/3] Running pipeline...")
        result = run_pipeline(intake_df, attendance_df, sales_df, on_progress=_print_progress)
        print(f"[OK] Built {len(result.staff_cohorts)} cohorts and {len(result.rollups)} location rollups")

        print("\n[3/3] Formatting results...")
        print("\n" + "=" * 60)
        print(format_results_for_console(result, location=args.location))
        print("=" * 60)

        if args.output_dir:
            written = write_outputs(result, Path(args.output_dir), location=args.location)
            print(f"\n[OK] Wrote {len(written)} files to {args.output_dir}")

        print("\n[OK] Pipeline completed successfully")

    except Exception as e:
        print(f"\n[ERROR] Pipeline failed: {e}")
        raise


if __name__ == "__main__":
    main()
