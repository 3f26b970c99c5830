"""Tests for the CSV loaders, the console formatter and the CLI."""

from pathlib import Path

import pandas as pd
import pytest

from studio_metrics import IngestionError, run_pipeline
from studio_metrics import schema as s
from studio_metrics.cli import main
from studio_metrics.formatters import format_results_for_console
from studio_metrics.loaders import load_attendance, load_intake, load_sales


@pytest.fixture
def export_dir(tmp_path: Path, scenario_intake, scenario_attendance, scenario_sales) -> Path:
    scenario_intake.to_csv(tmp_path / "intake.csv", index=False)
    scenario_attendance.to_csv(tmp_path / "attendance.csv", index=False)
    scenario_sales.to_csv(tmp_path / "sales.csv", index=False)
    return tmp_path


class TestLoaders:
    def test_columns_are_strings(self, export_dir: Path) -> None:
        df = load_sales(export_dir / "sales.csv")

        assert df.loc[0, s.SALE_VALUE] == "1200"
        # Blank cells stay blank instead of becoming NaN
        assert df.loc[0, s.SALE_REFUNDED] == ""

    def test_loads_all_three(self, export_dir: Path) -> None:
        assert len(load_intake(export_dir / "intake.csv")) == 2
        assert len(load_attendance(str(export_dir / "attendance.csv"))) == 4

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(IngestionError, match="not found"):
            load_intake(tmp_path / "nope.csv")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(IngestionError, match="empty"):
            load_sales(path)

    def test_loaded_exports_run_through_the_pipeline(self, export_dir: Path) -> None:
        result = run_pipeline(
            load_intake(export_dir / "intake.csv"),
            load_attendance(export_dir / "attendance.csv"),
            load_sales(export_dir / "sales.csv"),
        )
        cohort = result.get("T1", "Studio A", "January 2024")
        assert cohort.converted_clients == 1
        assert cohort.retained_clients == 1


class TestConsoleFormatter:
    def test_summary_lists_rollup_and_staff(self, scenario_intake, scenario_attendance, scenario_sales) -> None:
        text = format_results_for_console(run_pipeline(scenario_intake, scenario_attendance, scenario_sales))

        assert "Studio A - January 2024:" in text
        assert "All Staff" in text
        assert "T1" in text
        assert "Included: 2" in text
        assert "Sales by Month" in text

    def test_location_filter(self, scenario_intake, scenario_attendance) -> None:
        result = run_pipeline(scenario_intake, scenario_attendance)
        assert format_results_for_console(result, location="Studio Z") == "No cohorts available."


class TestCli:
    def test_end_to_end(self, export_dir: Path, capsys) -> None:
        out_dir = export_dir / "out"
        main(
            [
                "--intake", str(export_dir / "intake.csv"),
                "--attendance", str(export_dir / "attendance.csv"),
                "--sales", str(export_dir / "sales.csv"),
                "--output-dir", str(out_dir),
            ]
        )
        printed = capsys.readouterr().out

        assert "[OK] Pipeline completed successfully" in printed
        assert "[100%] Processing complete!" in printed

        cohorts = pd.read_csv(out_dir / "cohorts.csv")
        assert len(cohorts) == 2
        assert cohorts["new_clients"].tolist() == [2, 2]
        for name in ("included_records.csv", "excluded_records.csv", "new_clients.csv", "unlinked_records.csv"):
            assert (out_dir / name).exists(), f"Expected {name}"

        by_month = pd.read_csv(out_dir / "sales_by_month.csv")
        assert by_month["period"].tolist() == ["January 2024"]
        assert by_month["revenue"].tolist() == [1200.0]

    def test_without_sales(self, export_dir: Path, capsys) -> None:
        main(["--intake", str(export_dir / "intake.csv"), "--attendance", str(export_dir / "attendance.csv")])
        assert "[OK] Pipeline completed successfully" in capsys.readouterr().out

    def test_missing_file_reports_error(self, tmp_path: Path, capsys) -> None:
        with pytest.raises(IngestionError):
            main(["--intake", str(tmp_path / "x.csv"), "--attendance", str(tmp_path / "y.csv")])
        assert "[ERROR]" in capsys.readouterr().out
