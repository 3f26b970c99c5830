"""Shared fixtures: builders for raw intake, attendance and sales exports.

The builders take short keyword arguments and emit rows keyed by the real
export column names, with every value as a string (as the CSV loaders
return them).
"""

from typing import Callable, Dict, List

import pandas as pd
import pytest

from studio_metrics import schema as s


def _intake_row(
    email: str,
    date: str = "2024-01-05",
    first_visit: str = "Studio Open Barre Class",
    membership: str = "Studio Open Barre Class",
    location: str = "Studio A",
    first: str = "Ann",
    last: str = "Lee",
) -> Dict[str, str]:
    return {
        s.INTAKE_FIRST_NAME: first,
        s.INTAKE_LAST_NAME: last,
        s.INTAKE_EMAIL: email,
        s.INTAKE_MEMBERSHIP: membership,
        s.INTAKE_FIRST_VISIT_AT: date,
        s.INTAKE_FIRST_VISIT: first_visit,
        s.INTAKE_LOCATION: location,
    }


def _attendance_row(
    email: str,
    date: str,
    class_name: str = "Barre",
    location: str = "Studio A",
    staff: str = "T1",
    cancelled: str = "NO",
    late_cancelled: str = "NO",
    no_show: str = "NO",
) -> Dict[str, str]:
    return {
        s.ATT_EMAIL: email,
        s.ATT_CLASS_DATE: date,
        s.ATT_CLASS_NAME: class_name,
        s.ATT_LOCATION: location,
        s.ATT_STAFF: staff,
        s.ATT_CANCELLED: cancelled,
        s.ATT_LATE_CANCELLED: late_cancelled,
        s.ATT_NO_SHOW: no_show,
    }


def _sale_row(
    email: str,
    date: str = "2024-01-10",
    value: str = "1200",
    item: str = "Monthly Unlimited",
    category: str = "Memberships",
    refunded: str = "",
    payer: str = "",
    location: str = "Studio A",
) -> Dict[str, str]:
    return {
        s.SALE_CUSTOMER_EMAIL: email,
        s.SALE_PAYER_EMAIL: payer,
        s.SALE_DATE: date,
        s.SALE_VALUE: value,
        s.SALE_ITEM: item,
        s.SALE_CATEGORY: category,
        s.SALE_REFUNDED: refunded,
        s.SALE_LOCATION: location,
    }


def _builder(row_factory: Callable[..., Dict[str, str]]) -> Callable[[List[dict]], pd.DataFrame]:
    def build(rows: List[dict]) -> pd.DataFrame:
        return pd.DataFrame([row_factory(**row) for row in rows])

    return build


@pytest.fixture
def make_intake() -> Callable[[List[dict]], pd.DataFrame]:
    return _builder(_intake_row)


@pytest.fixture
def make_attendance() -> Callable[[List[dict]], pd.DataFrame]:
    return _builder(_attendance_row)


@pytest.fixture
def make_sales() -> Callable[[List[dict]], pd.DataFrame]:
    return _builder(_sale_row)


@pytest.fixture
def scenario_intake(make_intake) -> pd.DataFrame:
    """Two new clients at Studio A in January 2024, both taught by T1."""
    return make_intake(
        [
            {"email": "a@x.com", "date": "2024-01-05", "first": "Ann", "last": "Able"},
            {
                "email": "b@x.com",
                "date": "2024-01-06",
                "first_visit": "2 For 1 Intro",
                "membership": "Newcomers 2 For 1",
                "first": "Bea",
                "last": "Bell",
            },
        ]
    )


@pytest.fixture
def scenario_attendance(make_attendance) -> pd.DataFrame:
    """First visits of both clients plus one return visit each."""
    return make_attendance(
        [
            {"email": "a@x.com", "date": "2024-01-05", "class_name": "Studio Open Barre Class"},
            {"email": "b@x.com", "date": "2024-01-06", "class_name": "2 For 1 Intro"},
            {"email": "a@x.com", "date": "2024-01-12"},
            {"email": "b@x.com", "date": "2024-01-13"},
        ]
    )


@pytest.fixture
def scenario_sales(make_sales) -> pd.DataFrame:
    """One qualifying membership purchase by a@x.com."""
    return make_sales([{"email": "a@x.com", "date": "2024-01-10", "value": "1200"}])
