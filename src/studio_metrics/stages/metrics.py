"""Derive cohort metrics from retention and conversion outcomes.

Counts come from the cohort and its evaluations; every rate is derived from
counts by ``apply_rates`` so per-location rollups can recompute rates from
summed counts with exactly the same arithmetic.
"""

from __future__ import annotations

import logging
from typing import Dict, List

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.cleaning import clean_label, full_name, matches_any_keyword, week_start
from studio_metrics.config import CHANNELS, MetricsConfig
from studio_metrics.stages.cohorts import Cohort
from studio_metrics.stages.conversion import ConversionResult
from studio_metrics.stages.exclusion import excluded_records
from studio_metrics.stages.retention import RetentionResult
from studio_metrics.types import CONVERTED, NOT_CONVERTED, ClientDetail, CohortMetrics

logger = logging.getLogger(__name__)

TRIALS, REFERRALS, HOSTED, INFLUENCER, OTHERS = CHANNELS


def classify_channel(member: pd.Series, config: MetricsConfig) -> str:
    """Acquisition channel of one intake record.

    Channels are mutually exclusive and tested in priority order: trial,
    referral, hosted event, influencer sign-up, then other.
    """
    membership = member[s.INTAKE_MEMBERSHIP]
    if matches_any_keyword(membership, config.trial_keywords):
        return TRIALS
    if clean_label(membership).lower() == clean_label(config.referral_label).lower():
        return REFERRALS
    if matches_any_keyword(member[s.INTAKE_FIRST_VISIT], config.hosted_keywords):
        return HOSTED
    if matches_any_keyword(membership, config.influencer_keywords):
        return INFLUENCER
    return OTHERS


def percentage(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0.0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator * 100.0


def apply_rates(metrics: CohortMetrics) -> CohortMetrics:
    """Derive every rate and average of ``metrics`` from its counts, in place."""
    metrics.retention_rate = percentage(metrics.retained_clients, metrics.new_clients)
    metrics.conversion_rate = percentage(metrics.converted_clients, metrics.new_clients)
    metrics.first_time_buyer_rate = percentage(metrics.converted_clients, metrics.new_clients)
    metrics.no_show_rate = percentage(metrics.no_shows, metrics.bookings)
    metrics.late_cancellation_rate = percentage(metrics.late_cancellations, metrics.bookings)
    metrics.influencer_conversion_rate = percentage(
        metrics.influencer_converted, metrics.influencer_signups
    )
    metrics.referral_conversion_rate = percentage(metrics.referral_converted, metrics.referrals)
    metrics.trial_to_membership_conversion = percentage(metrics.trial_converted, metrics.trials)
    metrics.average_revenue_per_client = (
        metrics.total_revenue / metrics.converted_clients if metrics.converted_clients else 0.0
    )
    return metrics


def revenue_by_week(qualifying_sales: pd.DataFrame) -> Dict[str, float]:
    """Qualifying revenue bucketed by the Sunday that starts each sale's week."""
    if qualifying_sales.empty:
        return {}
    weeks = qualifying_sales[s.SALE_DATE].map(week_start)
    totals = qualifying_sales[s.SALE_VALUE].groupby(weeks).sum()
    return {week: float(value) for week, value in sorted(totals.items())}


def _iso(value: object) -> str | None:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).strftime("%Y-%m-%d")


def _new_client_details(cohort: Cohort, conversion: ConversionResult) -> List[ClientDetail]:
    details = []
    for _, member in cohort.members.iterrows():
        status = conversion.statuses[member[s.INTAKE_EMAIL]]
        details.append(
            ClientDetail(
                email=member[s.INTAKE_EMAIL],
                name=full_name(member[s.INTAKE_FIRST_NAME], member[s.INTAKE_LAST_NAME]),
                date=_iso(member[s.INTAKE_FIRST_VISIT_AT]),
                first_visit=_iso(member[s.INTAKE_FIRST_VISIT_AT]),
                membership_type=member[s.INTAKE_MEMBERSHIP],
                conversion_status=CONVERTED if status.is_converted else NOT_CONVERTED,
                conversion_reason=status.reason,
                first_purchase_date=_iso(status.first_purchase_date),
                first_purchase_item=status.first_purchase_item,
                purchase_value=status.purchase_value,
                reason="First time visitor",
            )
        )
    return details


def _retained_client_details(cohort: Cohort, retention: RetentionResult) -> List[ClientDetail]:
    details = []
    for (_, member), (_, outcome) in zip(
        cohort.members.iterrows(), retention.members.iterrows()
    ):
        if not outcome["retained"]:
            continue
        details.append(
            ClientDetail(
                email=member[s.INTAKE_EMAIL],
                name=full_name(member[s.INTAKE_FIRST_NAME], member[s.INTAKE_LAST_NAME]),
                date=_iso(outcome["first_return_date"]),
                visit_count=int(outcome["visit_count"]),
                membership_type=member[s.INTAKE_MEMBERSHIP],
                first_visit=_iso(member[s.INTAKE_FIRST_VISIT_AT]),
                first_visit_post_trial=_iso(outcome["first_return_date"]),
                reason=outcome["reason"],
            )
        )
    return details


def _converted_client_details(cohort: Cohort, conversion: ConversionResult) -> List[ClientDetail]:
    first_members = cohort.members.drop_duplicates(subset=[s.INTAKE_EMAIL], keep="first")
    by_email = {row[s.INTAKE_EMAIL]: row for _, row in first_members.iterrows()}

    details = []
    for email in conversion.converted_emails:
        member = by_email[email]
        status = conversion.statuses[email]
        details.append(
            ClientDetail(
                email=email,
                name=full_name(member[s.INTAKE_FIRST_NAME], member[s.INTAKE_LAST_NAME]),
                date=_iso(status.first_purchase_date),
                value=conversion.revenue_of(email),
                membership_type=status.first_purchase_item or "",
                conversion_status=CONVERTED,
                conversion_reason=status.reason,
                first_purchase_date=_iso(status.first_purchase_date),
                first_purchase_item=status.first_purchase_item,
                purchase_value=status.purchase_value,
                first_visit=_iso(member[s.INTAKE_FIRST_VISIT_AT]),
                reason="Made qualifying purchase after initial visit",
            )
        )
    return details


def excluded_client_details(excluded: pd.DataFrame) -> List[ClientDetail]:
    """ClientDetail view of flagged intake rows that were excluded."""
    audit = excluded_records(excluded)
    return [
        ClientDetail(
            email=row["email"],
            name=row["name"],
            date=_iso(row["first_visit"]),
            first_visit=_iso(row["first_visit"]),
            membership_type=row[s.INTAKE_MEMBERSHIP],
            reason=row[s.REASON],
        )
        for _, row in audit.iterrows()
    ]


def compute_cohort_metrics(
    cohort: Cohort,
    cohort_attendance: pd.DataFrame,
    retention: RetentionResult,
    conversion: ConversionResult,
    excluded: pd.DataFrame,
    config: MetricsConfig,
) -> CohortMetrics:
    """Assemble the metrics of one cohort.

    Args:
        cohort: The cohort.
        cohort_attendance: Attendance rows of the cohort's staff, location and period.
        retention: Retention outcome of the cohort.
        conversion: Conversion outcome of the cohort.
        excluded: Excluded intake rows sharing the cohort key.
        config: Rules for channel classification.

    Returns:
        CohortMetrics with counts, rates, revenue and audit lists.
    """
    members = cohort.members
    channels = members.apply(classify_channel, axis=1, config=config)
    channel_counts = {name: int((channels == name).sum()) for name in CHANNELS}

    channel_by_email: Dict[str, str] = {}
    for email, channel in zip(members[s.INTAKE_EMAIL], channels):
        channel_by_email.setdefault(email, channel)
    converted_channels = [channel_by_email[e] for e in conversion.converted_emails]

    att = cohort_attendance
    flags_clear = ~att[s.ATT_CANCELLED] & ~att[s.ATT_LATE_CANCELLED] & ~att[s.ATT_NO_SHOW]

    metrics = CohortMetrics(
        staff_member=cohort.staff_member,
        location=cohort.location,
        period=cohort.period,
        new_clients=len(members),
        trials=channel_counts[TRIALS],
        referrals=channel_counts[REFERRALS],
        hosted=channel_counts[HOSTED],
        influencer_signups=channel_counts[INFLUENCER],
        others=channel_counts[OTHERS],
        retained_clients=retention.retained_count,
        converted_clients=conversion.converted_count,
        trial_converted=converted_channels.count(TRIALS),
        referral_converted=converted_channels.count(REFERRALS),
        influencer_converted=converted_channels.count(INFLUENCER),
        total_revenue=conversion.total_revenue,
        bookings=len(att),
        total_visits=int(flags_clear.sum()),
        cancellations=int(att[s.ATT_CANCELLED].sum()),
        late_cancellations=int(att[s.ATT_LATE_CANCELLED].sum()),
        no_shows=int(att[s.ATT_NO_SHOW].sum()),
        total_classes=int(att[s.ATT_CLASS_NAME].nunique()),
        unique_clients=int(att[s.ATT_EMAIL].nunique()),
        new_client_details=_new_client_details(cohort, conversion),
        retained_client_details=_retained_client_details(cohort, retention),
        converted_client_details=_converted_client_details(cohort, conversion),
        excluded_client_details=excluded_client_details(excluded),
        revenue_by_week=revenue_by_week(conversion.qualifying_sales),
        clients_by_source=channel_counts,
    )
    apply_rates(metrics)

    logger.debug(
        "Metrics for %s / %s / %s: retention %.1f%%, conversion %.1f%%, revenue %.2f",
        metrics.staff_member,
        metrics.location,
        metrics.period,
        metrics.retention_rate,
        metrics.conversion_rate,
        metrics.total_revenue,
    )
    return metrics
