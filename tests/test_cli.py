"""Tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from pilotreports.cli.main import app

runner = CliRunner()


def write_report(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "report.yaml"
    path.write_text(text)
    return path


class TestCLIList:
    def test_list_sources(self):
        """Can list data sources via CLI."""
        result = runner.invoke(app, ["list", "sources"])
        assert result.exit_code == 0
        assert "Data Sources" in result.stdout
        assert "sites" in result.stdout

    def test_list_dimensions(self):
        """Can list dimensions for a source."""
        result = runner.invoke(app, ["list", "dimensions", "--source", "petri_observations"])
        assert result.exit_code == 0
        assert "Dimensions" in result.stdout
        assert "Placement" in result.stdout

    def test_list_measures(self):
        """Can list measures for a source."""
        result = runner.invoke(app, ["list", "measures", "-s", "sites"])
        assert result.exit_code == 0
        assert "Measures" in result.stdout
        assert "sum" in result.stdout

    def test_list_invalid_type(self):
        """Reports error for invalid list type."""
        result = runner.invoke(app, ["list", "invalid"])
        assert result.exit_code == 1
        assert "unknown type" in result.stdout.lower()

    def test_list_unknown_source(self):
        result = runner.invoke(app, ["list", "dimensions", "--source", "weather"])
        assert result.exit_code == 1
        assert "error" in result.stdout.lower()

    def test_list_custom_catalog(self, tmp_path: Path):
        catalog = tmp_path / "catalog.yaml"
        catalog.write_text("data_sources:\n  - {id: barns, name: Barns, table: barns}\n")
        result = runner.invoke(app, ["list", "sources", "--catalog", str(catalog)])
        assert result.exit_code == 0
        assert "barns" in result.stdout


class TestCLIFilterFields:
    def test_filter_fields(self):
        """Related fields are listed alongside the source's own."""
        result = runner.invoke(app, ["filter-fields", "petri_observations"])
        assert result.exit_code == 0
        assert "Filter Fields" in result.stdout
        assert "Related" in result.stdout

    def test_filter_fields_live(self, db_file: str):
        result = runner.invoke(app, ["filter-fields", "submissions", "--db", db_file])
        assert result.exit_code == 0
        assert "Global" in result.stdout


class TestCLIShowSQL:
    def test_show_sql(self, report_file: Path):
        """Can show SQL for a report."""
        result = runner.invoke(app, ["show-sql", str(report_file)])
        assert result.exit_code == 0
        assert "SELECT" in result.stdout
        assert "BETWEEN" in result.stdout

    def test_show_sql_postgres(self, report_file: Path):
        result = runner.invoke(app, ["show-sql", str(report_file), "--dialect", "postgres"])
        assert result.exit_code == 0
        assert "SELECT" in result.stdout

    def test_show_sql_bad_report(self, tmp_path: Path):
        report = write_report(tmp_path, "data_sources: [petri_observations]\ndimensions: [nope]\n")
        result = runner.invoke(app, ["show-sql", str(report)])
        assert result.exit_code == 1
        assert "error loading report" in result.stdout.lower()


class TestCLIRun:
    def test_run_sample_json(self, report_file: Path):
        """Sample runs are labelled as such in the json."""
        result = runner.invoke(app, ["run", str(report_file), "--sample", "--seed", "1", "-o", "json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert data["origin"] == "sample"
        assert len(data["data"]) == 20

    def test_run_sample_table(self, report_file: Path):
        result = runner.invoke(app, ["run", str(report_file), "--sample", "--seed", "1"])
        assert result.exit_code == 0
        assert "sample data" in result.stdout

    def test_run_against_duckdb(self, report_file: Path, db_file: str):
        """Runs the report against a database file."""
        result = runner.invoke(app, ["run", str(report_file), "--db", db_file])
        assert result.exit_code == 0
        assert "21.00" in result.stdout
        assert "45.00" in result.stdout
        assert "sample data" not in result.stdout

    def test_run_json_against_duckdb(self, report_file: Path, db_file: str):
        result = runner.invoke(app, ["run", str(report_file), "--db", db_file, "-o", "json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert data["origin"] == "live"
        assert [r["dimensions"]["placement"] for r in data["data"]] == ["P1", "P2"]

    def test_run_missing_tables(self, report_file: Path, tmp_path: Path):
        """A database without the tables is an error, not sample data."""
        result = runner.invoke(app, ["run", str(report_file), "--db", str(tmp_path / "empty.duckdb")])
        assert result.exit_code == 1
        assert "report error" in result.stdout.lower()


class TestCLIValidate:
    def test_validate_success(self, report_file: Path):
        result = runner.invoke(app, ["validate", str(report_file)])
        assert result.exit_code == 0
        assert "is valid" in result.stdout

    def test_validate_no_measures(self, tmp_path: Path):
        """Reports that can't compile fail validation."""
        report = write_report(tmp_path, "data_sources: [petri_observations]\n")
        result = runner.invoke(app, ["validate", str(report)])
        assert result.exit_code == 1
        assert "Validation failed" in result.stdout

    def test_validate_missing_file(self, tmp_path: Path):
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
