"""Normalize the three raw exports into canonical frames.

Dates become day-granularity Timestamps (NaT when unparseable), currency-like
values become floats (0.0 when unparseable), YES/NO flags become booleans and
free-text labels are trimmed and whitespace-collapsed. Emails are lowercased
so they can serve as the join key across exports.

No row is ever dropped. Degraded fields are counted and logged.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.cleaning import (
    clean_label,
    format_date,
    period_key_of,
    to_amount,
    to_flag,
)

logger = logging.getLogger(__name__)


def _ensure_columns(df: Optional[pd.DataFrame], columns: List[str]) -> pd.DataFrame:
    """Copy df, adding any missing expected column as empty text."""
    if df is None:
        return pd.DataFrame(columns=columns, dtype=object)
    out = df.reset_index(drop=True).copy()
    for col in columns:
        if col not in out.columns:
            out[col] = ""
    return out


def _is_blank(x: object) -> bool:
    return clean_label(x) == ""


def _apply(
    df: pd.DataFrame,
    columns: Iterable[str],
    func: Callable[[object], object],
) -> None:
    for col in columns:
        df[col] = df[col].map(func).astype(object)


def _parse_dates(df: pd.DataFrame, columns: Iterable[str], dataset: str) -> None:
    for col in columns:
        raw = df[col]
        parsed = pd.to_datetime(raw.map(format_date), errors="coerce").astype("datetime64[ns]")
        failed = int((parsed.isna() & ~raw.map(_is_blank).astype(bool)).sum())
        if failed:
            logger.warning(
                "%s: %d value(s) in '%s' could not be parsed as dates", dataset, failed, col
            )
        df[col] = parsed


def _parse_amounts(df: pd.DataFrame, columns: Iterable[str], dataset: str) -> None:
    for col in columns:
        raw = df[col]
        parsed = raw.map(to_amount).astype(float)
        degraded = int(((parsed == 0.0) & raw.map(_has_no_digits).astype(bool)).sum())
        if degraded:
            logger.debug(
                "%s: %d non-numeric value(s) in '%s' defaulted to 0", dataset, degraded, col
            )
        df[col] = parsed


def _has_no_digits(x: object) -> bool:
    text = clean_label(x)
    return bool(text) and not any(ch.isdigit() for ch in text)


def normalize_intake(intake_df: Optional[pd.DataFrame]) -> pd.DataFrame:
    """Normalize the intake ("first visit") export.

    Adds the ``period`` column (month of the first visit) and ``row_order``.

    Args:
        intake_df: Raw intake rows with the export's column names.

    Returns:
        Normalized copy of the intake rows.
    """
    df = _ensure_columns(intake_df, s.INTAKE_COLUMNS)
    _apply(
        df,
        [
            s.INTAKE_FIRST_NAME,
            s.INTAKE_LAST_NAME,
            s.INTAKE_PHONE,
            s.INTAKE_PAYMENT_METHOD,
            s.INTAKE_MEMBERSHIP,
            s.INTAKE_FIRST_VISIT,
            s.INTAKE_LOCATION,
            s.INTAKE_VISIT_TYPE,
            s.INTAKE_HOME_LOCATION,
        ],
        clean_label,
    )
    _apply(df, [s.INTAKE_EMAIL], lambda x: clean_label(x).lower())
    _parse_dates(df, [s.INTAKE_FIRST_VISIT_AT], "intake")
    df[s.PERIOD] = df[s.INTAKE_FIRST_VISIT_AT].map(period_key_of)
    df[s.ROW_ORDER] = range(len(df))

    logger.info("Normalized %d intake record(s)", len(df))
    return df


def normalize_attendance(attendance_df: Optional[pd.DataFrame]) -> pd.DataFrame:
    """Normalize the attendance / bookings export.

    Adds the ``period`` column (month of the class date) and ``row_order``.
    """
    df = _ensure_columns(attendance_df, s.ATTENDANCE_COLUMNS)
    _apply(
        df,
        [
            s.ATT_CLASS_NAME,
            s.ATT_LOCATION,
            s.ATT_STAFF,
            s.ATT_PAYMENT_METHOD,
            s.ATT_MEMBERSHIP,
            s.ATT_SOLD_BY,
            s.ATT_HOME_LOCATION,
        ],
        clean_label,
    )
    _apply(df, [s.ATT_EMAIL], lambda x: clean_label(x).lower())
    _apply(df, s.ATTENDANCE_FLAGS, to_flag)
    df[s.ATTENDANCE_FLAGS] = df[s.ATTENDANCE_FLAGS].astype(bool)
    _parse_dates(df, [s.ATT_CLASS_DATE, s.ATT_SALE_DATE], "attendance")
    _parse_amounts(df, [s.ATT_SALE_VALUE, s.ATT_TAX], "attendance")
    df[s.PERIOD] = df[s.ATT_CLASS_DATE].map(period_key_of)
    df[s.ROW_ORDER] = range(len(df))

    logger.info("Normalized %d attendance record(s)", len(df))
    return df


def normalize_sales(sales_df: Optional[pd.DataFrame]) -> pd.DataFrame:
    """Normalize the sales export. A missing or empty export is valid.

    Row order is preserved and recorded in ``row_order``; conversion
    attribution depends on it.
    """
    df = _ensure_columns(sales_df, s.SALES_COLUMNS)
    _apply(
        df,
        [
            s.SALE_CATEGORY,
            s.SALE_ITEM,
            s.SALE_PAYMENT_METHOD,
            s.SALE_PAYMENT_STATUS,
            s.SALE_SOLD_BY,
            s.SALE_PAYER_NAME,
            s.SALE_CUSTOMER_NAME,
            s.SALE_LOCATION,
            s.SALE_NOTE,
        ],
        clean_label,
    )
    _apply(df, [s.SALE_CUSTOMER_EMAIL, s.SALE_PAYER_EMAIL], lambda x: clean_label(x).lower())
    _apply(df, [s.SALE_REFUNDED], to_flag)
    df[s.SALE_REFUNDED] = df[s.SALE_REFUNDED].astype(bool)
    _parse_dates(df, [s.SALE_DATE], "sales")
    _parse_amounts(df, [s.SALE_VALUE, s.SALE_TAX], "sales")
    df[s.ROW_ORDER] = range(len(df))

    if df.empty:
        logger.info("No sales records supplied; conversions will be zero")
    else:
        logger.info("Normalized %d sales record(s)", len(df))
    return df
