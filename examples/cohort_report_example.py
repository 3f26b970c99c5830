"""Example: New-client cohort report from the three studio exports

This example loads the intake, attendance and sales exports, runs the
cohort pipeline with a custom minimum sale value and prints the location
rollups together with the clients that converted.

Prerequisites:
- CSV exports of first visits, attendance and sales from the booking system
"""

from pathlib import Path

from studio_metrics import MetricsConfig, load_attendance, load_intake, load_sales, run_pipeline
from studio_metrics.formatters import format_results_for_console

# Modify these paths to point to your exports
export_dir = Path("data/exports")
intake_file = export_dir / "first_visits.csv"
attendance_file = export_dir / "attendance.csv"
sales_file = export_dir / "sales.csv"

print("=" * 80)
print("Example: Cohort report with a lower conversion threshold")
print("=" * 80)

if intake_file.exists() and attendance_file.exists():
    intake_df = load_intake(intake_file)
    attendance_df = load_attendance(attendance_file)
    sales_df = load_sales(sales_file) if sales_file.exists() else None

    print(f"\nLoaded {len(intake_df)} first visits and {len(attendance_df)} bookings")

    config = MetricsConfig(
        min_conversion_value=800.0,  # Count cheaper intro packs as conversions
    )
    result = run_pipeline(
        intake_df,
        attendance_df,
        sales_df,
        on_progress=lambda update: print(f"  [{update.progress:>3}%] {update.current_step}"),
        config=config,
    )

    print("\n" + format_results_for_console(result))

    print("\nLocation rollups:")
    rollups = result.to_frame()
    print(rollups[rollups["is_rollup"]][["location", "period", "new_clients", "retention_rate", "conversion_rate"]])

    print("\nConverted clients (first 20 rows):")
    print(result.converted_client_records.head(20))
else:
    print(f"\nExports not found in {export_dir}")
    print("Export first visits and attendance from the booking system first.")
