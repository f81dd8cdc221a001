"""Pytest fixtures for pilotreports tests."""

from collections.abc import Generator
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pytest

from pilotreports.catalog.builtin import DEFAULT_CATALOG
from pilotreports.catalog.derive import get_available_dimensions, get_available_measures
from pilotreports.executor.duckdb_backend import DuckDBBackend
from pilotreports.models.catalog import Catalog, DataSource, FieldType
from pilotreports.models.report import AggregationType, Dimension, Measure, ReportConfig
from pilotreports.settings import Settings

SQL_TYPES = {
    FieldType.TEXT: "VARCHAR",
    FieldType.ENUM: "VARCHAR",
    FieldType.UUID: "VARCHAR",
    FieldType.JSON: "VARCHAR",
    FieldType.NUMERIC: "DOUBLE",
    FieldType.INTEGER: "INTEGER",
    FieldType.BOOLEAN: "BOOLEAN",
    FieldType.DATE: "DATE",
    FieldType.TIMESTAMP: "TIMESTAMP",
}

# columns the database has that the static catalog doesn't list
EXTRA_COLUMNS = {"submissions": [("global_submission_id", "INTEGER")]}

PROGRAMS = [
    {
        "program_id": "prog-1",
        "name": "Alpha Program",
        "phase_type": "control",
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 3, 1),
    },
    {
        "program_id": "prog-2",
        "name": "Beta Program",
        "phase_type": "experimental",
        "start_date": date(2025, 2, 1),
        "end_date": date(2025, 2, 15),
    },
]

SITES = [
    {"site_id": "site-1", "program_id": "prog-1", "name": "North Barn", "site_code": "S1"},
    {"site_id": "site-2", "program_id": "prog-1", "name": "South Barn", "site_code": "S2"},
    {"site_id": "site-3", "program_id": "prog-2", "name": "East Field", "site_code": "S3"},
]

SUBMISSIONS = [
    {
        "submission_id": "sub-1",
        "site_id": "site-1",
        "program_id": "prog-1",
        "temperature": 70.0,
        "humidity": 50.0,
        "weather": "Clear",
        "created_at": datetime(2025, 1, 10, 8, 0),
        "global_submission_id": 1100001,
    },
    {
        "submission_id": "sub-2",
        "site_id": "site-2",
        "program_id": "prog-1",
        "temperature": 72.0,
        "humidity": 55.0,
        "weather": "Cloudy",
        "created_at": datetime(2025, 1, 11, 8, 0),
        "global_submission_id": 1100002,
    },
    {
        "submission_id": "sub-3",
        "site_id": "site-3",
        "program_id": "prog-2",
        "temperature": 65.0,
        "humidity": 70.0,
        "weather": "Rain",
        "created_at": datetime(2025, 2, 5, 8, 0),
        "global_submission_id": 1100003,
    },
]


def _petri(obs: str, sub: str, code: str, placement: str, growth: float | None, **extra: Any) -> dict:
    submission = next(s for s in SUBMISSIONS if s["submission_id"] == sub)
    return {
        "observation_id": obs,
        "submission_id": sub,
        "site_id": submission["site_id"],
        "program_id": submission["program_id"],
        "petri_code": code,
        "placement": placement,
        "growth_index": growth,
        "created_at": submission["created_at"],
        **extra,
    }


PETRI_OBSERVATIONS = [
    _petri("obs-1", "sub-1", "P1-A", "P1", 12.0, growth_progression=1.5, fungicide_used="Yes"),
    _petri("obs-2", "sub-1", "P2-A", "P2", 45.0, growth_progression=2.0, fungicide_used="No"),
    _petri("obs-3", "sub-2", "P1-B", "P1", 60.0, growth_progression=3.0, fungicide_used="Yes"),
    _petri("obs-4", "sub-2", "X9-B", "P3", 8.0, growth_progression=0.5, fungicide_used="No"),
    _petri("obs-5", "sub-3", "P1-C", "P1", 30.0, fungicide_used="Yes"),
    _petri("obs-6", "sub-3", "P4-C", "P4", None, fungicide_used="No"),
]


def create_tables(backend: DuckDBBackend, catalog: Catalog = DEFAULT_CATALOG) -> None:
    """One table per catalog source, typed from the catalog fields."""
    for source in catalog.data_sources:
        columns = [f"{f.name} {SQL_TYPES[f.type]}" for f in source.fields]
        columns += [f"{name} {sql_type}" for name, sql_type in EXTRA_COLUMNS.get(source.id, [])]
        backend.execute(f"CREATE TABLE {source.table} ({', '.join(columns)})")


def insert(backend: DuckDBBackend, table: str, rows: list[dict]) -> None:
    for row in rows:
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        backend.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", list(row.values()))


def seed(backend: DuckDBBackend) -> None:
    create_tables(backend)
    insert(backend, "pilot_programs", PROGRAMS)
    insert(backend, "sites", SITES)
    insert(backend, "submissions", SUBMISSIONS)
    insert(backend, "petri_observations_partitioned", PETRI_OBSERVATIONS)


@pytest.fixture
def catalog() -> Catalog:
    return DEFAULT_CATALOG


@pytest.fixture
def petri(catalog: Catalog) -> DataSource:
    return catalog.get_data_source("petri_observations")


@pytest.fixture
def gasifier(catalog: Catalog) -> DataSource:
    return catalog.get_data_source("gasifier_observations")


@pytest.fixture
def sites(catalog: Catalog) -> DataSource:
    return catalog.get_data_source("sites")


@pytest.fixture
def submissions(catalog: Catalog) -> DataSource:
    return catalog.get_data_source("submissions")


@pytest.fixture
def programs(catalog: Catalog) -> DataSource:
    return catalog.get_data_source("pilot_programs")


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore the environment's .env file."""
    return Settings(_env_file=None, mode="live", query_strategy="sql", sample_fallback=False)


@pytest.fixture
def backend() -> Generator[DuckDBBackend, None, None]:
    """In-memory DuckDB with the pilot tables and a few rows each."""
    db = DuckDBBackend()
    seed(db)
    yield db
    db.close()


@pytest.fixture
def db_file(tmp_path: Path) -> str:
    """Same data as `backend`, but in a file the CLI can open."""
    path = str(tmp_path / "pilot.duckdb")
    with DuckDBBackend(path) as db:
        seed(db)
    return path


def pick(items: list, item_id: str):
    return next(i for i in items if i.id == item_id)


@pytest.fixture
def placement_dim(petri: DataSource) -> Dimension:
    return pick(get_available_dimensions([petri]), "petri_observations.placement")


@pytest.fixture
def avg_growth(petri: DataSource) -> Measure:
    return pick(get_available_measures([petri]), "petri_observations.growth_index.avg")


@pytest.fixture
def total_records(petri: DataSource) -> Measure:
    return pick(get_available_measures([petri]), "total_records")


@pytest.fixture
def raw_growth(avg_growth: Measure) -> Measure:
    return avg_growth.model_copy(update={"aggregation": AggregationType.NONE})


@pytest.fixture
def growth_by_placement(petri: DataSource, placement_dim: Dimension, avg_growth: Measure) -> ReportConfig:
    return ReportConfig(
        name="Growth by placement",
        data_sources=[petri],
        dimensions=[placement_dim],
        measures=[avg_growth],
    )


@pytest.fixture
def report_yaml() -> str:
    return """
name: Growth by placement
data_sources: [petri_observations]
dimensions:
  - petri_observations.placement
measures:
  - petri_observations.growth_index.avg
filters:
  - field: growth_index
    operator: between
    value: "10,50"
chart_type: bar
"""


@pytest.fixture
def report_file(tmp_path: Path, report_yaml: str) -> Path:
    path = tmp_path / "report.yaml"
    path.write_text(report_yaml)
    return path
