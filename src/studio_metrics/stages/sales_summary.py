"""Monthly sales analytics: revenue by product, category and location.

Unlike the conversion evaluator, which only looks at a cohort's qualifying
purchases, this summary covers every sale in the export with a parseable
date and a positive value, refunded or not.

Per-key growth compares a month with the preceding month present in the
export, so a gap month does not reset growth to zero.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.cleaning import clean_label, matches_any_keyword, period_key_of, period_sort_key
from studio_metrics.config import OTHER_CATEGORY, PRODUCT_CATEGORIES, TOP_PERFORMERS_LIMIT, MetricsConfig
from studio_metrics.types import SalesSummary

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

PRODUCT = "product"
CATEGORY = "category"
LOCATION = "location"

MONTHLY_COLUMNS = ["revenue", "transactions", "average_transaction_value", "previous_revenue", "growth"]
TOP_COLUMNS = ["revenue", "transactions", "average_transaction_value", "average_growth"]
SORT_KEYS = ("revenue", "transactions", "average_growth")

# Everything except word characters, whitespace and hyphens
_PUNCTUATION_RE = re.compile(r"[^\w\s-]")


def product_name(item: Any) -> str:
    """Canonical product name: punctuation removed, each word capitalized.

    Examples:
        >>> product_name("  monthly   UNLIMITED! ")
        'Monthly Unlimited'
        >>> product_name(None)
        'Unknown'
    """
    text = _PUNCTUATION_RE.sub("", clean_label(item))
    words = [w[:1].upper() + w[1:].lower() for w in text.split(" ") if w]
    return " ".join(words) or UNKNOWN


def product_category(
    product: str, categories: Sequence[Tuple[str, str]] = PRODUCT_CATEGORIES
) -> str:
    """First category whose alternatives occur in the product name.

    Examples:
        >>> product_category("10 Class Pack")
        'Classes'
        >>> product_category("Grip Socks")
        'Other'
    """
    for name, alternatives in categories:
        if matches_any_keyword(product, alternatives):
            return name
    return OTHER_CATEGORY


def _sale_rows(sales: pd.DataFrame, categories: Sequence[Tuple[str, str]]) -> pd.DataFrame:
    rows = sales[sales[s.SALE_DATE].notna() & (sales[s.SALE_VALUE] > 0)]
    skipped = len(sales) - len(rows)
    if skipped:
        logger.debug("Sales summary skipped %d row(s) without a date or a positive value", skipped)

    out = pd.DataFrame(
        {
            s.PERIOD: rows[s.SALE_DATE].map(period_key_of).astype(object),
            PRODUCT: rows[s.SALE_ITEM].map(product_name).astype(object),
            LOCATION: rows[s.SALE_LOCATION].map(lambda x: clean_label(x) or UNKNOWN).astype(object),
            "revenue": rows[s.SALE_VALUE].astype(float),
        }
    )
    out[CATEGORY] = out[PRODUCT].map(lambda p: product_category(p, categories)).astype(object)
    return out.reset_index(drop=True)


def monthly_totals(rows: pd.DataFrame, keys: List[str], months: List[str]) -> pd.DataFrame:
    """Revenue and transactions per (period, *keys), with growth against the previous month.

    Args:
        rows: One row per sale with ``period``, ``revenue`` and the key columns.
        keys: Grouping columns besides the period; empty for overall totals.
        months: Periods present in rows, oldest first.

    Returns:
        DataFrame ordered by month, then by revenue (highest first).
    """
    table = (
        rows.groupby([s.PERIOD] + keys, sort=False)
        .agg(revenue=("revenue", "sum"), transactions=("revenue", "size"))
        .reset_index()
    )
    table["average_transaction_value"] = table["revenue"] / table["transactions"]

    # Shift each month's revenue onto the month that follows it
    next_month = {m: months[i + 1] for i, m in enumerate(months[:-1])}
    previous = table[[s.PERIOD] + keys + ["revenue"]].rename(columns={"revenue": "previous_revenue"})
    previous[s.PERIOD] = previous[s.PERIOD].map(next_month)
    previous = previous[previous[s.PERIOD].notna()]
    table = table.merge(previous, on=[s.PERIOD] + keys, how="left")

    prev = table["previous_revenue"]
    growth = (table["revenue"] - prev) / prev * 100.0
    table["growth"] = growth.where(prev > 0, 0.0).where(prev.notna())

    order = {m: i for i, m in enumerate(months)}
    table["_month"] = table[s.PERIOD].map(order)
    table = table.sort_values(["_month", "revenue"], ascending=[True, False], kind="stable")
    return table[[s.PERIOD] + keys + MONTHLY_COLUMNS].reset_index(drop=True)


def top_performers(
    monthly: pd.DataFrame,
    keys: List[str],
    limit: int = TOP_PERFORMERS_LIMIT,
    by: str = "revenue",
) -> pd.DataFrame:
    """Aggregate a monthly table across months and keep the best rows.

    ``average_growth`` is the mean of the monthly growth figures that exist
    for the key, or 0.0 when there are none.

    Args:
        monthly: Output of monthly_totals.
        keys: Key columns of the monthly table.
        limit: Maximum number of rows returned.
        by: Sort column: ``"revenue"``, ``"transactions"`` or ``"average_growth"``.

    Returns:
        DataFrame sorted by ``by``, highest first.

    Raises:
        ValueError: If ``by`` is not a supported sort column.
    """
    if by not in SORT_KEYS:
        raise ValueError(f"Invalid sort column '{by}'. Must be one of {', '.join(SORT_KEYS)}.")
    if monthly.empty:
        return pd.DataFrame(columns=keys + TOP_COLUMNS)

    top = (
        monthly.groupby(keys, sort=False)
        .agg(
            revenue=("revenue", "sum"),
            transactions=("transactions", "sum"),
            average_growth=("growth", "mean"),
        )
        .reset_index()
    )
    top["average_growth"] = top["average_growth"].fillna(0.0)
    top["average_transaction_value"] = top["revenue"] / top["transactions"]
    top = top.sort_values(by, ascending=False, kind="stable").head(limit)
    return top[keys + TOP_COLUMNS].reset_index(drop=True)


def summarize_sales(sales: pd.DataFrame, config: Optional[MetricsConfig] = None) -> SalesSummary:
    """Build the monthly sales summary of a normalized sales export.

    Args:
        sales: Output of normalize_sales.
        config: Product categories and the top-performers limit.

    Returns:
        SalesSummary; every table is empty (with its columns) when no sale
        has a date and a positive value.
    """
    config = config or MetricsConfig()
    rows = _sale_rows(sales, config.product_categories)

    groupings: Dict[str, List[str]] = {
        "monthly_trends": [],
        "by_product": [PRODUCT, CATEGORY],
        "by_category": [CATEGORY],
        "by_location": [LOCATION],
    }
    if rows.empty:
        logger.info("No sales to summarize")
        tables = {
            name: pd.DataFrame(columns=[s.PERIOD] + keys + MONTHLY_COLUMNS)
            for name, keys in groupings.items()
        }
    else:
        months = sorted(rows[s.PERIOD].unique(), key=period_sort_key)
        tables = {name: monthly_totals(rows, keys, months) for name, keys in groupings.items()}
        trends = tables["monthly_trends"]
        trends[["previous_revenue", "growth"]] = trends[["previous_revenue", "growth"]].fillna(0.0)

    limit = config.top_performers_limit
    total_revenue = float(rows["revenue"].sum())
    total_transactions = len(rows)

    summary = SalesSummary(
        monthly_trends=tables["monthly_trends"],
        by_product=tables["by_product"],
        by_category=tables["by_category"],
        by_location=tables["by_location"],
        top_products=top_performers(tables["by_product"], [PRODUCT, CATEGORY], limit),
        top_categories=top_performers(tables["by_category"], [CATEGORY], limit),
        top_locations=top_performers(tables["by_location"], [LOCATION], limit),
        total_revenue=total_revenue,
        total_transactions=total_transactions,
        average_transaction_value=(
            total_revenue / total_transactions if total_transactions else 0.0
        ),
    )
    logger.info(
        "Summarized %d sale(s) over %d month(s), revenue %.2f",
        total_transactions,
        len(summary.monthly_trends),
        total_revenue,
    )
    return summary
