"""Tests for per-location rollups."""

import pandas as pd
import pytest

from studio_metrics.stages.exclusion import EXCLUDED, flag_exclusions
from studio_metrics.stages.normalize import normalize_intake
from studio_metrics.stages.rollup import build_rollups, rollup_location
from studio_metrics.types import ClientDetail, CohortMetrics


def _cohort(staff: str, location: str = "Studio A", period: str = "January 2024", **counts) -> CohortMetrics:
    m = CohortMetrics(staff_member=staff, location=location, period=period, **counts)
    m.new_client_details = [ClientDetail(email=f"{staff}@x.com", name=staff)]
    return m


@pytest.fixture
def no_exclusions() -> pd.DataFrame:
    flagged = flag_exclusions(normalize_intake(None))
    return flagged[flagged[EXCLUDED]]


class TestRollupLocation:
    def test_sums_counts_and_recomputes_rates(self, no_exclusions: pd.DataFrame) -> None:
        cohorts = [
            _cohort("T1", new_clients=1, retained_clients=1, converted_clients=1, total_revenue=1200.0,
                    revenue_by_week={"2024-01-07": 1200.0}, retention_rate=100.0),
            _cohort("T2", new_clients=3, retained_clients=0, converted_clients=0,
                    revenue_by_week={}, retention_rate=0.0),
        ]
        rollup = rollup_location(cohorts, "Studio A", "January 2024", no_exclusions)

        assert rollup.is_rollup
        assert rollup.staff_member == "All Staff"
        assert rollup.new_clients == 4
        assert rollup.retained_clients == 1
        # Recomputed from sums, not the mean of 100% and 0%
        assert rollup.retention_rate == 25.0
        assert rollup.conversion_rate == 25.0
        assert rollup.total_revenue == 1200.0
        assert rollup.average_revenue_per_client == 1200.0
        assert rollup.revenue_by_week == {"2024-01-07": 1200.0}
        assert [d.email for d in rollup.new_client_details] == ["T1@x.com", "T2@x.com"]

    def test_merges_weekly_revenue(self, no_exclusions: pd.DataFrame) -> None:
        cohorts = [
            _cohort("T1", revenue_by_week={"2024-01-14": 1000.0, "2024-01-07": 1200.0}),
            _cohort("T2", revenue_by_week={"2024-01-07": 1500.0}),
        ]
        rollup = rollup_location(cohorts, "Studio A", "January 2024", no_exclusions)

        assert list(rollup.revenue_by_week) == ["2024-01-07", "2024-01-14"]
        assert rollup.revenue_by_week["2024-01-07"] == 2700.0

    def test_excluded_details_cover_every_staff(self, make_intake) -> None:
        flagged = flag_exclusions(
            normalize_intake(
                make_intake(
                    [
                        {"email": "f@x.com", "membership": "Staff Comp"},
                        {"email": "g@x.com", "membership": "Family Pass", "location": "Studio B"},
                    ]
                )
            )
        )
        excluded = flagged[flagged[EXCLUDED]]
        rollups = build_rollups([_cohort("T1")], excluded)

        assert [d.email for d in rollups[0].excluded_client_details] == ["f@x.com"]


class TestBuildRollups:
    def test_one_rollup_per_location_period(self, no_exclusions: pd.DataFrame) -> None:
        cohorts = [
            _cohort("T1", "Studio A", "February 2024", new_clients=2),
            _cohort("T1", "Studio A", "January 2024", new_clients=1),
            _cohort("T2", "Studio A", "January 2024", new_clients=5),
            _cohort("T2", "Studio B", "January 2024", new_clients=3),
        ]
        rollups = build_rollups(cohorts, no_exclusions)

        assert [(r.location, r.period) for r in rollups] == [
            ("Studio A", "February 2024"),
            ("Studio A", "January 2024"),
            ("Studio B", "January 2024"),
        ]
        assert [r.new_clients for r in rollups] == [2, 6, 3]

    def test_no_cohorts_no_rollups(self, no_exclusions: pd.DataFrame) -> None:
        assert build_rollups([], no_exclusions) == []

    def test_custom_all_staff_label(self, no_exclusions: pd.DataFrame) -> None:
        rollups = build_rollups([_cohort("T1")], no_exclusions, all_staff="Everyone")
        assert rollups[0].staff_member == "Everyone"
