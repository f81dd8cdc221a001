"""Derive selectable dimensions and measures from data sources.

both functions are pure - same sources in, same lists out - and never
fail. the computed entries at the end are always offered, even for an
empty selection, so the builder has something to show.
"""

from pilotreports.models.catalog import DataSource, FieldType
from pilotreports.models.report import AggregationType, Dimension, Measure, TimeGranularity

# free text makes for useless groupings
DIMENSION_DENYLIST = frozenset({"notes", "description", "comments"})

DIMENSION_TYPES = frozenset(
    {FieldType.TEXT, FieldType.ENUM, FieldType.DATE, FieldType.TIMESTAMP, FieldType.BOOLEAN}
)
MEASURE_TYPES = frozenset({FieldType.NUMERIC, FieldType.INTEGER})

MEASURE_AGGREGATIONS = [
    AggregationType.SUM,
    AggregationType.AVG,
    AggregationType.MIN,
    AggregationType.MAX,
    AggregationType.COUNT,
]


def _find_observation_source(sources: list[DataSource]) -> DataSource | None:
    return next((s for s in sources if s.is_observation), None)


def _has_table(sources: list[DataSource], table: str) -> bool:
    return any(s.table == table for s in sources)


def get_available_dimensions(sources: list[DataSource]) -> list[Dimension]:
    """Dimensions the user can group by for the selected sources."""
    dimensions: list[Dimension] = []

    for source in sources:
        for field in source.active_fields:
            if field.type not in DIMENSION_TYPES or field.name in DIMENSION_DENYLIST:
                continue
            dimensions.append(
                Dimension(
                    id=f"{source.id}.{field.name}",
                    name=field.name,
                    display_name=field.display_name,
                    data_type=field.type,
                    source=source.id,
                    field=field.name,
                    granularity=TimeGranularity.DAY if field.type == FieldType.TIMESTAMP else None,
                    enum_values=field.enum_values,
                )
            )

    # joined dimensions are attributed to the observation source so the
    # compiler knows which side of the join they hang off
    main = _find_observation_source(sources)
    if main is not None:
        if _has_table(sources, "sites"):
            dimensions.append(
                Dimension(
                    id="sites.name",
                    name="site_name",
                    display_name="Site Name",
                    data_type=FieldType.TEXT,
                    source=main.id,
                    field="name",
                    data_source="sites",
                )
            )
        if _has_table(sources, "pilot_programs"):
            dimensions.append(
                Dimension(
                    id="pilot_programs.name",
                    name="program_name",
                    display_name="Program Name",
                    data_type=FieldType.TEXT,
                    source=main.id,
                    field="name",
                    data_source="pilot_programs",
                )
            )
        if _has_table(sources, "submissions"):
            dimensions.append(
                Dimension(
                    id="submissions.created_at",
                    name="submission_date",
                    display_name="Submission Date",
                    data_type=FieldType.TIMESTAMP,
                    source=main.id,
                    field="created_at",
                    data_source="submissions",
                    granularity=TimeGranularity.DAY,
                )
            )
            dimensions.append(
                Dimension(
                    id="submissions.weather",
                    name="weather",
                    display_name="Weather",
                    data_type=FieldType.TEXT,
                    source=main.id,
                    field="weather",
                    data_source="submissions",
                )
            )

    dimensions.extend(_computed_dimensions())
    return dimensions


def _computed_dimensions() -> list[Dimension]:
    return [
        Dimension(
            id=f"date_created_{grain}",
            name=f"created_{grain}",
            display_name=f"{grain.title()} Created",
            data_type=FieldType.DATE,
            source="computed",
            field="created_at",
            granularity=TimeGranularity(grain),
            expression=f"DATE_TRUNC('{grain}', {{main}}.created_at)",
        )
        for grain in ("week", "month")
    ]


def get_available_measures(sources: list[DataSource]) -> list[Measure]:
    """Measures for the selected sources.

    every numeric field gets five variants (sum/avg/min/max/count), then the
    computed ones are tacked on.
    """
    measures: list[Measure] = []

    for source in sources:
        for field in source.active_fields:
            if field.type not in MEASURE_TYPES:
                continue
            for agg in MEASURE_AGGREGATIONS:
                measures.append(
                    Measure(
                        id=f"{source.id}.{field.name}.{agg.value}",
                        name=f"{field.name}_{agg.value}",
                        display_name=f"{field.display_name} ({agg.value.upper()})",
                        data_type=FieldType.NUMERIC,
                        source=source.id,
                        field=field.name,
                        aggregation=agg,
                        expression=f"{agg.value.upper()}({field.name})",
                    )
                )

    measures.append(
        Measure(
            id="total_records",
            name="total_records",
            display_name="Total Records",
            source="computed",
            field="*",
            aggregation=AggregationType.COUNT,
            expression="COUNT(*)",
        )
    )
    measures.append(
        Measure(
            id="avg_growth_rate",
            name="avg_growth_rate",
            display_name="Average Growth Rate",
            source="computed",
            field="growth_progression",
            aggregation=AggregationType.AVG,
            expression="AVG({main}.growth_progression)",
        )
    )

    if _find_observation_source(sources) is not None:
        measures.append(
            Measure(
                id="days_in_program_phase",
                name="days_in_program_phase",
                display_name="Days in Program Phase",
                source="computed",
                field="end_date",
                aggregation=AggregationType.MAX,
                expression="MAX(pilot_programs.end_date - pilot_programs.start_date)",
                requires_join=True,
                required_table="pilot_programs",
            )
        )

    return measures
