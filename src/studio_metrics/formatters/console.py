"""Console output formatting utilities."""

from __future__ import annotations

from typing import List, Optional

from studio_metrics.types import CohortMetrics, PipelineResult, SalesSummary


def _money(value: float) -> str:
    return f"{value:,.2f}"


def _cohort_line(metrics: CohortMetrics) -> str:
    return (
        f"{metrics.staff_member:<24} new {metrics.new_clients:>4}  "
        f"retained {metrics.retained_clients:>4} ({metrics.retention_rate:5.1f}%)  "
        f"converted {metrics.converted_clients:>4} ({metrics.conversion_rate:5.1f}%)  "
        f"revenue {_money(metrics.total_revenue):>12}"
    )


def _sales_lines(summary: SalesSummary) -> List[str]:
    lines = ["", "Sales by Month", "-" * 60]
    for _, row in summary.monthly_trends.iterrows():
        lines.append(
            f"  {row['period']:<16} revenue {_money(row['revenue']):>12}  "
            f"transactions {int(row['transactions']):>4}  "
            f"avg {_money(row['average_transaction_value']):>10}  "
            f"growth {row['growth']:6.1f}%"
        )
    lines.append(
        f"  {'Total':<16} revenue {_money(summary.total_revenue):>12}  "
        f"transactions {summary.total_transactions:>4}  "
        f"avg {_money(summary.average_transaction_value):>10}"
    )
    return lines


def format_results_for_console(result: PipelineResult, location: Optional[str] = None) -> str:
    """Build a human-readable summary of the cohort metrics for console output.

    One block per (location, period) rollup, most recent period first, with
    the location total followed by one line per staff member, then the
    monthly sales totals when the sales export had any.

    Args:
        result: PipelineResult from run_pipeline
        location: If given, only this location is shown

    Returns:
        Human-readable text string for console output
    """
    rollups = [r for r in result.rollups if location is None or r.location == location]
    if not rollups:
        return "No cohorts available."

    lines = []
    lines.append("New Client Cohorts")
    lines.append("=" * 60)

    for rollup in rollups:
        lines.append("")
        lines.append(f"{rollup.location} - {rollup.period}:")
        lines.append(f"  {_cohort_line(rollup)}")
        lines.append(
            f"  {'':<24} trials {rollup.trials}, referrals {rollup.referrals}, "
            f"hosted {rollup.hosted}, influencer {rollup.influencer_signups}, "
            f"others {rollup.others}"
        )
        lines.append(
            f"  {'':<24} no-show {rollup.no_show_rate:.1f}%, "
            f"late cancel {rollup.late_cancellation_rate:.1f}%, "
            f"avg revenue {_money(rollup.average_revenue_per_client)}"
        )
        for cohort in result.staff_cohorts:
            if cohort.location != rollup.location or cohort.period != rollup.period:
                continue
            lines.append(f"    {_cohort_line(cohort)}")

    if not result.sales_summary.monthly_trends.empty:
        lines.extend(_sales_lines(result.sales_summary))

    lines.append("")
    lines.append("-" * 60)
    lines.append(
        f"Included: {len(result.included_records)}  "
        f"Excluded: {len(result.excluded_records)}  "
        f"Unlinked: {len(result.unlinked_records)}"
    )
    return "\n".join(lines)
