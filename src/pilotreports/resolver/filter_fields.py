"""Filter field discovery.

asks the backend what columns each table really has (so new columns show up
without a catalog change) and adds a handful of fields from related tables,
each carrying the join path the compiler needs to reach it.

when introspection isn't available we fall back to the static catalog
fields, so this never stops the report builder from working.
"""

import logging

from pilotreports.errors import BackendError
from pilotreports.executor.base import MIGRATIONS, ReportBackend
from pilotreports.models.catalog import DataSource, FieldType
from pilotreports.models.report import RelationshipStep
from pilotreports.models.result import ColumnInfo, FilterField

logger = logging.getLogger(__name__)

# postgres names first, then the duckdb spellings of the same things
TYPE_MAP = {
    "character varying": FieldType.TEXT,
    "character": FieldType.TEXT,
    "text": FieldType.TEXT,
    "varchar": FieldType.TEXT,
    "integer": FieldType.INTEGER,
    "bigint": FieldType.INTEGER,
    "smallint": FieldType.INTEGER,
    "hugeint": FieldType.INTEGER,
    "tinyint": FieldType.INTEGER,
    "numeric": FieldType.NUMERIC,
    "real": FieldType.NUMERIC,
    "double precision": FieldType.NUMERIC,
    "double": FieldType.NUMERIC,
    "float": FieldType.NUMERIC,
    "decimal": FieldType.NUMERIC,
    "boolean": FieldType.BOOLEAN,
    "timestamp with time zone": FieldType.TIMESTAMP,
    "timestamp without time zone": FieldType.TIMESTAMP,
    "timestamp": FieldType.TIMESTAMP,
    "date": FieldType.DATE,
    "uuid": FieldType.UUID,
    "jsonb": FieldType.JSON,
    "json": FieldType.JSON,
}

PROGRAMS = "pilot_programs"
SITES = "sites"
SUBMISSIONS = "submissions"

# (field, display name, type) offered from related tables
OBSERVATION_PROGRAM_FIELDS = [
    ("start_date", "Program Start Date", FieldType.DATE),
    ("end_date", "Program End Date", FieldType.DATE),
    ("name", "Program Name", FieldType.TEXT),
    ("phase_type", "Program Phase Type", FieldType.TEXT),
]
OBSERVATION_SITE_FIELDS = [
    ("name", "Site Name", FieldType.TEXT),
    ("gasifier_deployment_date", "Site Gasifier Deployment Date", FieldType.DATE),
]
OBSERVATION_SUBMISSION_FIELDS = [
    ("created_at", "Submission Date", FieldType.TIMESTAMP),
    ("temperature", "Submission Temperature", FieldType.NUMERIC),
    ("humidity", "Submission Humidity", FieldType.NUMERIC),
    ("weather", "Submission Weather", FieldType.TEXT),
]
SUBMISSION_PROGRAM_FIELDS = OBSERVATION_PROGRAM_FIELDS[:3]
SUBMISSION_SITE_FIELDS = OBSERVATION_SITE_FIELDS[:1]

RELATED_LABELS = {PROGRAMS: "Programs", SITES: "Sites", SUBMISSIONS: "Submissions"}


def map_column_type(db_type: str | None) -> FieldType:
    """Map a database type name onto our FieldType. Unknown types become text."""
    if not db_type:
        return FieldType.TEXT
    name = db_type.strip().lower()
    if name in TYPE_MAP:
        return TYPE_MAP[name]
    # parameterised types: varchar(255), decimal(10,2), timestamp(6) ...
    base = name.split("(")[0].strip()
    if base in TYPE_MAP:
        return TYPE_MAP[base]
    if base.startswith("timestamp"):
        return FieldType.TIMESTAMP
    return FieldType.TEXT


def format_display_name(column_name: str) -> str:
    """snake_case -> Snake Case"""
    return " ".join(word[:1].upper() + word[1:] for word in column_name.split("_"))


def _step(from_table: str, to_table: str, key: str) -> RelationshipStep:
    return RelationshipStep(from_table=from_table, to_table=to_table, join_field=key, foreign_field=key)


def _static_columns(source: DataSource) -> list[ColumnInfo]:
    return [ColumnInfo(name=f.name, type=f.type, display_name=f.display_name) for f in source.fields]


class FilterFieldResolver:
    """Works out which fields a report can filter on.

    backend is optional; without one everything comes from the catalog.
    """

    def __init__(self, backend: ReportBackend | None = None) -> None:
        self.backend = backend

    async def get_table_columns(self, sources: list[DataSource]) -> dict[str, list[ColumnInfo]]:
        """Columns per physical table, live where possible."""
        columns: dict[str, list[ColumnInfo]] = {}

        for source in sources:
            if self.backend is None:
                columns[source.table] = _static_columns(source)
                continue

            try:
                rows = await self.backend.get_table_columns(source.table)
            except BackendError as e:
                logger.warning("Error fetching columns for %s: %s", source.table, e)
                if e.is_missing_function:
                    logger.warning(
                        "get_table_columns rpc function not found, run migrations/%s",
                        MIGRATIONS["get_table_columns"],
                    )
                columns[source.table] = _static_columns(source)
                continue

            if not rows:
                logger.warning("No columns returned for %s, using catalog fields", source.table)
                columns[source.table] = _static_columns(source)
                continue

            columns[source.table] = [
                ColumnInfo(
                    name=row["column_name"],
                    type=map_column_type(row.get("data_type")),
                    display_name=format_display_name(row["column_name"]),
                )
                for row in rows
            ]

        return columns

    async def get_available_filter_fields(self, sources: list[DataSource]) -> list[FilterField]:
        try:
            table_columns = await self.get_table_columns(sources)

            fields: list[FilterField] = []
            for source in sources:
                for column in table_columns.get(source.table, []):
                    definition = source.get_field(column.name)
                    fields.append(
                        FilterField(
                            id=f"{source.id}.{column.name}",
                            name=column.name,
                            display_name=f"{column.display_name} ({source.name})",
                            data_type=column.type,
                            source=source.id,
                            field=column.name,
                            enum_values=definition.enum_values if definition else None,
                        )
                    )

            if sources:
                fields.extend(self._related_fields(sources[0]))
            return fields
        except Exception:
            logger.exception("Error getting filter fields, falling back to catalog fields")
            return [
                FilterField(
                    id=f"{source.id}.{f.name}",
                    name=f.name,
                    display_name=f"{f.display_name} ({source.name})",
                    data_type=f.type,
                    source=source.id,
                    field=f.name,
                )
                for source in sources
                for f in source.fields
            ]

    def _related_fields(self, main: DataSource) -> list[FilterField]:
        """Fields from tables joined onto the main source."""
        table = main.table
        related: list[tuple[str, list, list[RelationshipStep]]] = []

        if main.is_observation:
            to_submissions = [_step(table, SUBMISSIONS, "submission_id")]
            if main.is_partitioned:
                program_path = [_step(table, PROGRAMS, "program_id")]
                site_path = [_step(table, SITES, "site_id")]
            else:
                site_path = to_submissions + [_step(SUBMISSIONS, SITES, "site_id")]
                program_path = site_path + [_step(SITES, PROGRAMS, "program_id")]
            related = [
                (PROGRAMS, OBSERVATION_PROGRAM_FIELDS, program_path),
                (SITES, OBSERVATION_SITE_FIELDS, site_path),
                (SUBMISSIONS, OBSERVATION_SUBMISSION_FIELDS, to_submissions),
            ]
        elif table == SUBMISSIONS:
            site_path = [_step(SUBMISSIONS, SITES, "site_id")]
            related = [
                (PROGRAMS, SUBMISSION_PROGRAM_FIELDS, site_path + [_step(SITES, PROGRAMS, "program_id")]),
                (SITES, SUBMISSION_SITE_FIELDS, site_path),
            ]

        fields = []
        for target, specs, path in related:
            for name, display, data_type in specs:
                fields.append(
                    FilterField(
                        id=f"{target}.{name}",
                        name=name,
                        display_name=f"{display} (Related: {RELATED_LABELS[target]})",
                        data_type=data_type,
                        source=main.id,
                        field=name,
                        target_table=target,
                        relationship_path=list(path),
                    )
                )
        return fields
