"""Link intake records to the staff member who taught the first visit."""

from __future__ import annotations

import logging

import pandas as pd

from studio_metrics import schema as s
from studio_metrics.config import UNKNOWN_STAFF

logger = logging.getLogger(__name__)

# Composite key: (intake column, attendance column)
LINK_KEY = [
    (s.INTAKE_EMAIL, s.ATT_EMAIL),
    (s.INTAKE_FIRST_VISIT, s.ATT_CLASS_NAME),
    (s.INTAKE_FIRST_VISIT_AT, s.ATT_CLASS_DATE),
    (s.INTAKE_LOCATION, s.ATT_LOCATION),
]

_KEY_COLS = ["_k_email", "_k_class", "_k_date", "_k_location"]


def link_staff(
    intake: pd.DataFrame,
    attendance: pd.DataFrame,
    unknown_staff: str = UNKNOWN_STAFF,
) -> pd.DataFrame:
    """Enrich intake records with the staff member of their first visit.

    An attendance row matches when its customer email, class name, class date
    and location all equal the intake record's email, first-visit class,
    first-visit date and first-visit location. The first matching row in
    attendance order wins. Unmatched records get ``unknown_staff``.

    Rows whose first-visit date is missing never match.

    Args:
        intake: Normalized intake rows.
        attendance: Normalized attendance rows.
        unknown_staff: Sentinel for records without a match.

    Returns:
        Copy of intake with the staff column filled in, same row order.
    """
    left = intake.copy()
    right = attendance[[att for _, att in LINK_KEY] + [s.ATT_STAFF]].copy()

    left_keys = left[[col for col, _ in LINK_KEY]].copy()
    left_keys.columns = _KEY_COLS
    right_keys = right[[att for _, att in LINK_KEY]].copy()
    right_keys.columns = _KEY_COLS
    right_keys["_staff"] = right[s.ATT_STAFF].values

    # First match wins: keep the earliest attendance row per key
    right_keys = right_keys.dropna(subset=["_k_date"])
    right_keys = right_keys[right_keys["_k_email"] != ""]
    right_keys = right_keys.drop_duplicates(subset=_KEY_COLS, keep="first")

    merged = left_keys.merge(right_keys, on=_KEY_COLS, how="left", sort=False)
    staff = merged["_staff"].where(merged["_staff"].notna() & (merged["_staff"] != ""), None)

    left[s.STAFF] = staff.fillna(unknown_staff).astype(str).values

    matched = int((left[s.STAFF] != unknown_staff).sum())
    logger.info(
        "Linked %d of %d intake record(s) to a staff member (%d unmatched)",
        matched,
        len(left),
        len(left) - matched,
    )
    return left
