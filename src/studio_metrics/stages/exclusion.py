"""Flag intake records that are internal or non-paying visits."""

from __future__ import annotations

import logging

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.cleaning import matches_any_keyword
from studio_metrics.config import EXCLUSION_KEYWORDS

logger = logging.getLogger(__name__)

EXCLUDED = "excluded"
EXCLUSION_REASON = "exclusion_reason"


def _reason(row: pd.Series, keywords: str) -> str:
    if matches_any_keyword(row[s.INTAKE_MEMBERSHIP], keywords):
        return f'Friends, family, or staff membership: "{row[s.INTAKE_MEMBERSHIP]}"'
    if matches_any_keyword(row[s.INTAKE_FIRST_VISIT], keywords):
        return f'Friends, family, or staff class type: "{row[s.INTAKE_FIRST_VISIT]}"'
    return ""


def flag_exclusions(
    intake: pd.DataFrame,
    keywords: str = EXCLUSION_KEYWORDS,
) -> pd.DataFrame:
    """Mark intake records whose membership or first-visit class is internal.

    The membership label is checked before the class label, and the reason
    names whichever field triggered. Each record is evaluated exactly once.

    Args:
        intake: Linked intake rows.
        keywords: Pipe-delimited alternatives, matched case-insensitively.

    Returns:
        Copy of intake with ``excluded`` (bool) and ``exclusion_reason`` columns.
    """
    out = intake.copy()
    if out.empty:
        out[EXCLUDED] = pd.Series(dtype=bool)
        out[EXCLUSION_REASON] = pd.Series(dtype=object)
        return out

    out[EXCLUSION_REASON] = out.apply(_reason, axis=1, keywords=keywords)
    out[EXCLUDED] = out[EXCLUSION_REASON] != ""

    logger.info("Excluded %d internal intake record(s)", int(out[EXCLUDED].sum()))
    return out


def excluded_records(flagged: pd.DataFrame) -> pd.DataFrame:
    """Audit view of excluded records, with ``name``, ``email``, ``first_visit`` and ``reason``."""
    rows = flagged[flagged[EXCLUDED]].copy()
    rows["name"] = (
        rows[s.INTAKE_FIRST_NAME].astype(str) + " " + rows[s.INTAKE_LAST_NAME].astype(str)
    ).str.strip()
    rows["email"] = rows[s.INTAKE_EMAIL]
    rows["first_visit"] = rows[s.INTAKE_FIRST_VISIT_AT]
    rows[s.REASON] = rows[EXCLUSION_REASON]
    return rows.drop(columns=[EXCLUDED, EXCLUSION_REASON]).reset_index(drop=True)
