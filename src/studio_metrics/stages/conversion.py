"""Evaluate whether each cohort member made a qualifying purchase.

A sale qualifies for the cohort member whose email matches the sale's
customer email (or, failing that, its paying-customer email) when all of
the following hold:

1. the sale date is on or after the member's first visit;
2. the category contains none of the excluded categories;
3. the item is not a "2 for 1" intro offer;
4. the value is at least the minimum conversion value;
5. the sale was not refunded.

Sales are scanned in export order. The first qualifying sale of a member
converts them and fixes the attributed date, item and value; later sales
never replace that attribution. Cohort revenue, on the other hand, is the
sum of every qualifying sale, so a member with two qualifying purchases
contributes both amounts to revenue but only the first to their own
attribution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.cleaning import contains_any, is_on_or_after, matches_any_keyword
from studio_metrics.config import MetricsConfig
from studio_metrics.stages.cohorts import Cohort

logger = logging.getLogger(__name__)

NO_QUALIFYING_PURCHASE = "No qualifying purchase found"

MEMBER_EMAIL = "member_email"


@dataclass
class ClientConversion:
    """Conversion status of one cohort member."""

    is_converted: bool = False
    reason: str = NO_QUALIFYING_PURCHASE
    first_purchase_date: Optional[pd.Timestamp] = None
    first_purchase_item: Optional[str] = None
    purchase_value: Optional[float] = None


@dataclass
class ConversionResult:
    """Conversion outcome of one cohort.

    Attributes:
        statuses: Conversion status per member email.
        qualifying_sales: Every qualifying sale, in export order, with the
            matched member in ``member_email``.
        converted_emails: Converted member emails, in order of conversion.
    """

    statuses: Dict[str, ClientConversion] = field(default_factory=dict)
    qualifying_sales: pd.DataFrame = field(default_factory=pd.DataFrame)
    converted_emails: List[str] = field(default_factory=list)

    @property
    def converted_count(self) -> int:
        return len(self.converted_emails)

    @property
    def total_revenue(self) -> float:
        if self.qualifying_sales.empty:
            return 0.0
        return float(self.qualifying_sales[s.SALE_VALUE].sum())

    def revenue_of(self, email: str) -> float:
        """Sum of every qualifying sale matched to one member."""
        if self.qualifying_sales.empty:
            return 0.0
        rows = self.qualifying_sales[self.qualifying_sales[MEMBER_EMAIL] == email]
        return float(rows[s.SALE_VALUE].sum())


def _fmt_amount(value: float) -> str:
    return f"{value:,.2f}"


def _fmt_date(value: object) -> str:
    if value is None or pd.isna(value):
        return "unknown date"
    return pd.Timestamp(value).strftime("%Y-%m-%d")


def check_sale(
    sale: Dict[str, object],
    first_visit: object,
    config: MetricsConfig,
) -> Optional[str]:
    """Return why a sale does not qualify, or None if it does.

    Conditions are checked in a fixed order and the first failing one is
    reported.
    """
    if not is_on_or_after(sale[s.SALE_DATE], first_visit):
        return (
            f"Purchase date ({_fmt_date(sale[s.SALE_DATE])}) is before first visit date "
            f"({_fmt_date(first_visit)})"
        )
    if contains_any(sale[s.SALE_CATEGORY], config.excluded_sale_categories):
        return (
            f'Excluded category: "{sale[s.SALE_CATEGORY]}" '
            f"(contains {'/'.join(config.excluded_sale_categories)})"
        )
    if matches_any_keyword(sale[s.SALE_ITEM], config.two_for_one_marker):
        return f'Excluded item: "{sale[s.SALE_ITEM]}" (contains "{config.two_for_one_marker}")'
    value = float(sale[s.SALE_VALUE])
    if value < config.min_conversion_value:
        return (
            f"Sale value {_fmt_amount(value)} is below minimum "
            f"{_fmt_amount(config.min_conversion_value)}"
        )
    if sale[s.SALE_REFUNDED]:
        return f'Purchase was refunded: "{sale[s.SALE_ITEM]}"'
    return None


def evaluate_conversion(
    cohort: Cohort,
    sales: pd.DataFrame,
    config: MetricsConfig,
) -> ConversionResult:
    """Scan the sales export for each member's first qualifying purchase.

    Args:
        cohort: Cohort to evaluate.
        sales: Normalized sales rows (may be empty).
        config: Rules for qualification.

    Returns:
        ConversionResult for the cohort.
    """
    members: Dict[str, pd.Series] = {}
    for _, member in cohort.members.iterrows():
        members.setdefault(member[s.INTAKE_EMAIL], member)

    result = ConversionResult(statuses={email: ClientConversion() for email in members})
    if sales.empty:
        result.qualifying_sales = sales.assign(**{MEMBER_EMAIL: pd.Series(dtype=object)})
        return result

    emails = set(members)
    candidates = sales[
        sales[s.SALE_CUSTOMER_EMAIL].isin(emails) | sales[s.SALE_PAYER_EMAIL].isin(emails)
    ].sort_values(s.ROW_ORDER, kind="stable")

    qualifying = []
    for sale in candidates.to_dict("records"):
        email = sale[s.SALE_CUSTOMER_EMAIL]
        if email not in members:
            email = sale[s.SALE_PAYER_EMAIL]
        member = members[email]
        status = result.statuses[email]

        failure = check_sale(sale, member[s.INTAKE_FIRST_VISIT_AT], config)
        if failure is not None:
            if not status.is_converted:
                status.reason = failure
            continue

        qualifying.append({**sale, MEMBER_EMAIL: email})
        if not status.is_converted:
            value = float(sale[s.SALE_VALUE])
            status.is_converted = True
            status.reason = (
                f'Converted with "{sale[s.SALE_ITEM]}" for {_fmt_amount(value)} '
                f"on {_fmt_date(sale[s.SALE_DATE])}"
            )
            status.first_purchase_date = sale[s.SALE_DATE]
            status.first_purchase_item = sale[s.SALE_ITEM]
            status.purchase_value = value
            result.converted_emails.append(email)

    result.qualifying_sales = pd.DataFrame(
        qualifying, columns=list(sales.columns) + [MEMBER_EMAIL]
    )
    logger.debug(
        "Conversion for %s / %s / %s: %d of %d converted, %d qualifying sale(s)",
        cohort.staff_member,
        cohort.location,
        cohort.period,
        result.converted_count,
        len(members),
        len(qualifying),
    )
    return result
