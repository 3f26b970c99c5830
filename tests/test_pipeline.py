"""End-to-end tests for run_pipeline.

These tests run the full pipeline on small exports and check the
behavior a caller relies on: the reference scenarios, empty sales,
determinism, rollup sums, progress reporting and error wrapping.
"""

from typing import List

import pandas as pd
import pytest

from studio_metrics import (
    ConfigError,
    MetricsConfig,
    PipelineError,
    ProgressUpdate,
    run_pipeline,
)
from studio_metrics import schema as s


def test_pipeline_imports() -> None:
    """Test that the pipeline API can be imported."""
    assert callable(run_pipeline)


class TestScenarios:
    def test_reference_scenario(self, scenario_intake, scenario_attendance, scenario_sales) -> None:
        result = run_pipeline(scenario_intake, scenario_attendance, scenario_sales)

        cohort = result.get("T1", "Studio A", "January 2024")
        assert cohort is not None
        assert cohort.new_clients == 2
        assert cohort.retained_clients == 1, "b@x.com needs two return visits after a 2 for 1"
        assert cohort.converted_clients == 1
        assert cohort.total_revenue == 1200.0

        details = {d.email: d for d in cohort.new_client_details}
        assert details["a@x.com"].conversion_status == "converted"
        assert details["b@x.com"].conversion_status == "not_converted"

    def test_sale_below_minimum_does_not_convert(self, scenario_intake, scenario_attendance, make_sales) -> None:
        sales = make_sales([{"email": "a@x.com", "value": "500"}])
        result = run_pipeline(scenario_intake, scenario_attendance, sales)

        cohort = result.get("T1", "Studio A", "January 2024")
        assert cohort.converted_clients == 0
        reason = {d.email: d.conversion_reason for d in cohort.new_client_details}["a@x.com"]
        assert reason == "Sale value 500.00 is below minimum 1,000.00"

    def test_sale_before_first_visit_does_not_convert(
        self, scenario_intake, scenario_attendance, make_sales
    ) -> None:
        sales = make_sales([{"email": "a@x.com", "date": "2024-01-04", "value": "5000"}])
        result = run_pipeline(scenario_intake, scenario_attendance, sales)

        assert result.get("T1", "Studio A", "January 2024").converted_clients == 0

    def test_two_for_one_with_two_return_visits(
        self, scenario_intake, scenario_attendance, make_attendance, scenario_sales
    ) -> None:
        extra = make_attendance([{"email": "b@x.com", "date": "2024-01-20"}])
        attendance = pd.concat([scenario_attendance, extra], ignore_index=True)
        result = run_pipeline(scenario_intake, attendance, scenario_sales)

        assert result.get("T1", "Studio A", "January 2024").retained_clients == 2

    def test_day_first_timestamp_links_to_attendance(self, make_intake, make_attendance) -> None:
        intake = make_intake([{"email": "a@x.com", "date": "05/01/2024 10:00:00"}])
        attendance = make_attendance(
            [{"email": "a@x.com", "date": "05/01/2024", "class_name": "Studio Open Barre Class"}]
        )
        result = run_pipeline(intake, attendance)

        assert result.periods == ["January 2024"]
        assert result.unlinked_records.empty
        assert result.get("T1", "Studio A", "January 2024").new_clients == 1

    def test_timezone_aware_first_visit(self, scenario_intake, scenario_attendance, scenario_sales) -> None:
        intake = scenario_intake.copy()
        intake[s.INTAKE_FIRST_VISIT_AT] = pd.to_datetime(["2024-01-05 09:00", "2024-01-06 09:00"]).tz_localize("UTC")
        result = run_pipeline(intake, scenario_attendance, scenario_sales)

        cohort = result.get("T1", "Studio A", "January 2024")
        assert cohort.new_clients == 2
        assert cohort.converted_clients == 1

    def test_empty_sales(self, scenario_intake, scenario_attendance) -> None:
        for sales in (None, pd.DataFrame()):
            result = run_pipeline(scenario_intake, scenario_attendance, sales)
            for cohort in result.cohorts:
                assert cohort.converted_clients == 0
                assert cohort.total_revenue == 0.0
            assert result.converted_client_records.empty


class TestResultShape:
    @pytest.fixture
    def result(self, make_intake, make_attendance, make_sales):
        intake = make_intake(
            [
                {"email": "a@x.com", "date": "2024-01-05"},
                {"email": "c@x.com", "date": "2024-01-07"},
                {"email": "d@x.com", "date": "2024-02-02"},
                {"email": "f@x.com", "date": "2024-01-08", "membership": "Staff Comp"},
                {"email": "u@x.com", "date": "2024-01-09"},
            ]
        )
        attendance = make_attendance(
            [
                {"email": "a@x.com", "date": "2024-01-05", "class_name": "Studio Open Barre Class"},
                {"email": "c@x.com", "date": "2024-01-07", "class_name": "Studio Open Barre Class", "staff": "T2"},
                {"email": "d@x.com", "date": "2024-02-02", "class_name": "Studio Open Barre Class"},
                {"email": "f@x.com", "date": "2024-01-08", "class_name": "Studio Open Barre Class"},
                {"email": "c@x.com", "date": "2024-01-15", "staff": "T2", "no_show": "YES"},
            ]
        )
        sales = make_sales([{"email": "c@x.com", "date": "2024-01-08", "value": "1500"}])
        return run_pipeline(intake, attendance, sales)

    def test_dimensions(self, result) -> None:
        assert result.staff_members == ["T1", "T2"]
        assert result.locations == ["Studio A"]
        assert result.periods == ["February 2024", "January 2024"]

    def test_cohorts_then_rollups(self, result) -> None:
        keys = [c.key for c in result.cohorts]
        assert keys == [
            ("T1", "Studio A", "February 2024"),
            ("T1", "Studio A", "January 2024"),
            ("T2", "Studio A", "January 2024"),
            ("All Staff", "Studio A", "February 2024"),
            ("All Staff", "Studio A", "January 2024"),
        ]

    def test_rollup_new_clients_equal_staff_sum(self, result) -> None:
        for rollup in result.rollups:
            staff_total = sum(
                c.new_clients
                for c in result.staff_cohorts
                if c.location == rollup.location and c.period == rollup.period
            )
            assert rollup.new_clients == staff_total, f"Rollup mismatch for {rollup.key}"

    def test_rollup_rates_from_sums(self, result) -> None:
        january = result.get("All Staff", "Studio A", "January 2024")
        assert january.new_clients == 2
        assert january.converted_clients == 1
        assert january.conversion_rate == 50.0
        assert january.bookings == 4
        assert january.no_show_rate == 25.0

    def test_audit_lists(self, result) -> None:
        assert sorted(result.included_records[s.INTAKE_EMAIL]) == ["a@x.com", "c@x.com", "d@x.com"]
        assert (result.included_records[s.REASON] == "Matched staff member, location, and period criteria").all()
        assert result.excluded_records["email"].tolist() == ["f@x.com"]
        assert result.unlinked_records[s.INTAKE_EMAIL].tolist() == ["u@x.com"]
        assert result.converted_client_records["email"].tolist() == ["c@x.com"]
        assert len(result.new_client_records) == 3
        assert result.retained_client_records.empty

    def test_excluded_records_reach_their_cohort(self, result) -> None:
        cohort = result.get("T1", "Studio A", "January 2024")
        assert [d.email for d in cohort.excluded_client_details] == ["f@x.com"]
        rollup = result.get("All Staff", "Studio A", "January 2024")
        assert [d.email for d in rollup.excluded_client_details] == ["f@x.com"]

    def test_to_frame(self, result) -> None:
        frame = result.to_frame()
        assert len(frame) == len(result.cohorts)
        assert {"staff_member", "location", "period", "retention_rate", "is_rollup"} <= set(frame.columns)
        assert "new_client_details" not in frame.columns


class TestDeterminism:
    def test_repeated_runs_are_identical(self, scenario_intake, scenario_attendance, scenario_sales) -> None:
        first = run_pipeline(scenario_intake, scenario_attendance, scenario_sales)
        second = run_pipeline(scenario_intake, scenario_attendance, scenario_sales)

        pd.testing.assert_frame_equal(first.to_frame(), second.to_frame())
        pd.testing.assert_frame_equal(first.new_client_records, second.new_client_records)
        assert first.cohorts == second.cohorts

    def test_inputs_are_not_modified(self, scenario_intake, scenario_attendance, scenario_sales) -> None:
        before = scenario_intake.copy()
        run_pipeline(scenario_intake, scenario_attendance, scenario_sales)
        pd.testing.assert_frame_equal(scenario_intake, before)


class TestProgress:
    def test_checkpoints(self, scenario_intake, scenario_attendance) -> None:
        updates: List[ProgressUpdate] = []
        run_pipeline(scenario_intake, scenario_attendance, on_progress=updates.append)

        assert [u.progress for u in updates] == [5, 20, 40, 60, 80, 100]
        assert all(u.current_step for u in updates)
        assert updates[-1].current_step == "Processing complete!"

    def test_failing_callback_does_not_stop_the_run(self, scenario_intake, scenario_attendance) -> None:
        def broken(update: ProgressUpdate) -> None:
            raise RuntimeError("display went away")

        result = run_pipeline(scenario_intake, scenario_attendance, on_progress=broken)
        assert result.get("T1", "Studio A", "January 2024") is not None


class TestErrors:
    def test_invalid_config(self, scenario_intake, scenario_attendance) -> None:
        with pytest.raises(ConfigError):
            run_pipeline(
                scenario_intake,
                scenario_attendance,
                config=MetricsConfig(min_conversion_value=-1),
            )

    def test_stage_failure_is_wrapped(self, scenario_attendance) -> None:
        with pytest.raises(PipelineError) as exc_info:
            run_pipeline("not a dataframe", scenario_attendance)

        assert exc_info.value.stage == "normalize"
        assert exc_info.value.__cause__ is not None

    def test_empty_inputs(self) -> None:
        result = run_pipeline(pd.DataFrame(), pd.DataFrame())

        assert result.cohorts == []
        assert result.staff_members == []
        assert result.included_records.empty
