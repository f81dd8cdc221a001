"""SQL compiler for report configs.

turns a ReportConfig into a SelectQuery tree and renders it. the basic flow:
  1. pick the path - raw records if every measure is aggregation "none",
     aggregated otherwise
  2. build select items for dimensions, segments and measures, pulling in
     joins as they're needed (each related table is joined once)
  3. compile filters and filter groups into the WHERE tree
  4. GROUP BY the non-aggregate positions, ORDER BY 1, LIMIT
  5. render with placeholders for execution and inline for display

the join topology is hardcoded for the pilot program schema. it's small and
fixed so walking a schema graph would be overkill.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import sqlglot
from sqlglot.errors import SqlglotError

from pilotreports.compiler.ast import (
    IDENTIFIER_RE,
    Expr,
    Join,
    ParamStyle,
    SelectItem,
    SelectQuery,
    render,
)
from pilotreports.compiler.filters import compile_where
from pilotreports.errors import QueryBuildError
from pilotreports.models.catalog import Catalog, DataSource, FieldType
from pilotreports.models.report import (
    AggregationType,
    Dimension,
    Filter,
    Measure,
    RelationshipStep,
    ReportConfig,
)
from pilotreports.models.result import ResultShape

logger = logging.getLogger(__name__)

PROGRAMS = "pilot_programs"
SITES = "sites"
SUBMISSIONS = "submissions"

# foreign keys that get swapped for a readable label
FK_FIELDS = ("program_id", "site_id", "submission_id")

# extra columns pulled on the raw path so the ui can drill into a point
DRILLDOWN_COLUMNS = [
    "observation_id",
    "submission_id",
    "site_id",
    "program_id",
    "created_at",
    "image_url",
    "placement",
    "petri_growth_stage",
    "petri_code",
    "gasifier_code",
    "fungicide_used",
    "x_position",
    "y_position",
    "todays_day_of_phase",
]

DIALECTS = {"duckdb": ParamStyle.QMARK, "postgres": ParamStyle.NUMERIC}

AGG_FUNCS = {
    AggregationType.SUM: "SUM",
    AggregationType.AVG: "AVG",
    AggregationType.COUNT: "COUNT",
    AggregationType.MIN: "MIN",
    AggregationType.MAX: "MAX",
    AggregationType.STDDEV: "STDDEV_SAMP",
}


def ident(name: str) -> str:
    """Validate an identifier before it goes into sql text."""
    if not isinstance(name, str) or not IDENTIFIER_RE.match(name):
        raise QueryBuildError(f"Invalid identifier: {name!r}")
    return name


@dataclass
class CompiledQuery:
    """Compiler output: what to run, and a readable copy of it."""

    sql: str
    params: list[Any]
    inline_sql: str
    shape: ResultShape
    dialect: str
    joined_tables: list[str] = field(default_factory=list)


class JoinPlanner:
    """Keeps track of which tables are joined, and how to reach the rest.

    aliases are data source ids. ensure() pulls in whatever intermediate
    tables a route needs (submissions before sites, etc) and never joins
    the same alias twice.
    """

    def __init__(self, catalog: Catalog, main: DataSource) -> None:
        self.catalog = catalog
        self.main = main
        self.joins: list[Join] = []
        self.joined: list[str] = [main.id]

    def table_for(self, alias: str) -> str:
        source = self.catalog.get_by_table(alias)
        return source.table if source else alias

    def alias_for(self, name: str) -> str:
        """Map a source id or physical table name to its alias."""
        source = self.catalog.get_by_table(name)
        return source.id if source else ident(name)

    def is_joined(self, alias: str) -> bool:
        return alias in self.joined

    def ensure(self, alias: str) -> None:
        if alias in self.joined:
            return
        for step_alias, on in self._route(alias):
            self._add(step_alias, on)

    def ensure_path(self, steps: list[RelationshipStep]) -> None:
        """Join along an explicit relationship path."""
        for step in steps:
            from_alias = self.alias_for(step.from_table)
            to_alias = self.alias_for(step.to_table)
            if to_alias in self.joined:
                continue
            if from_alias not in self.joined:
                raise QueryBuildError(
                    f"Relationship path joins from {step.from_table} which isn't part of the query"
                )
            on = f"{from_alias}.{ident(step.join_field)} = {to_alias}.{ident(step.foreign_field)}"
            self._add(to_alias, on, kind=step.join_type)

    def _add(self, alias: str, on: str, kind: str = "LEFT") -> None:
        if alias in self.joined:
            return
        self.joins.append(Join(table=self.table_for(alias), alias=alias, on=Expr.raw(on), kind=kind))
        self.joined.append(alias)

    def _is_observation(self, alias: str) -> bool:
        source = self.catalog.get_by_table(alias)
        return source is not None and source.is_observation

    def _route(self, alias: str) -> list[tuple[str, str]]:
        m = self.main.id

        if self.main.is_observation:
            if self.main.is_partitioned:
                # partitioned tables carry all three keys, one hop each
                direct = {
                    PROGRAMS: f"{m}.program_id = {PROGRAMS}.program_id",
                    SITES: f"{m}.site_id = {SITES}.site_id",
                    SUBMISSIONS: f"{m}.submission_id = {SUBMISSIONS}.submission_id",
                }
                if alias in direct:
                    return [(alias, direct[alias])]
            else:
                if alias == SUBMISSIONS:
                    return [(SUBMISSIONS, f"{m}.submission_id = {SUBMISSIONS}.submission_id")]
                if alias == SITES:
                    return self._route(SUBMISSIONS) + [
                        (SITES, f"{SUBMISSIONS}.site_id = {SITES}.site_id")
                    ]
                if alias == PROGRAMS:
                    return self._route(SITES) + [
                        (PROGRAMS, f"{SITES}.program_id = {PROGRAMS}.program_id")
                    ]
            if self._is_observation(alias):
                return [(alias, f"{m}.submission_id = {alias}.submission_id")]

        elif m == SUBMISSIONS:
            if alias == SITES:
                return [(SITES, f"{m}.site_id = {SITES}.site_id")]
            if alias == PROGRAMS:
                return self._route(SITES) + [
                    (PROGRAMS, f"{SITES}.program_id = {PROGRAMS}.program_id")
                ]
            if self._is_observation(alias):
                return [(alias, f"{m}.submission_id = {alias}.submission_id")]

        elif m == SITES:
            if alias == PROGRAMS:
                return [(PROGRAMS, f"{m}.program_id = {PROGRAMS}.program_id")]
            if alias == SUBMISSIONS:
                return [(SUBMISSIONS, f"{m}.site_id = {SUBMISSIONS}.site_id")]
            if self._is_observation(alias):
                return [(alias, f"{m}.site_id = {alias}.site_id")]

        elif m == PROGRAMS:
            if alias in (SITES, SUBMISSIONS) or self._is_observation(alias):
                return [(alias, f"{m}.program_id = {alias}.program_id")]

        raise QueryBuildError(f"Don't know how to join {alias} onto {m}")


class ReportQueryCompiler:
    """Compiles report configs into SQL.

    stateless between calls - a fresh JoinPlanner is made per compile.
    """

    def __init__(
        self,
        catalog: Catalog,
        dialect: str = "duckdb",
        default_raw_limit: int | None = 500,
    ) -> None:
        if dialect not in DIALECTS:
            raise ValueError(f"Unsupported dialect: {dialect}")
        self.catalog = catalog
        self.dialect = dialect
        self.default_raw_limit = default_raw_limit

    def compile(self, config: ReportConfig) -> CompiledQuery:
        query = self.build(config)
        shape = ResultShape.RAW_RECORDS if config.is_raw else ResultShape.AGGREGATED

        sql_text, params = render(query, DIALECTS[self.dialect])
        inline, _ = render(query, ParamStyle.INLINE)
        logger.debug("compiled %s query: %s", shape.value, inline)

        return CompiledQuery(
            sql=sql_text,
            params=params,
            inline_sql=self.format_sql(inline),
            shape=shape,
            dialect=self.dialect,
            joined_tables=[j.alias for j in query.joins],
        )

    def build(self, config: ReportConfig) -> SelectQuery:
        """Build the query tree without rendering it."""
        main = config.main_source
        if main is None:
            raise QueryBuildError("Report needs at least one data source")
        if not config.measures:
            raise QueryBuildError("Report needs at least one measure")

        planner = JoinPlanner(self.catalog, main)
        raw = config.is_raw

        dim_items = [
            SelectItem(self._dimension_expr(dim, planner), ident(key))
            for dim, key in zip(config.dimensions, config.dimension_keys())
        ]
        measure_items = [
            self._measure_item(measure, ident(key), planner)
            for measure, key in zip(config.measures, config.measure_keys())
        ]
        segment_items = [
            item for seg in config.segment_by for item in self._segment_items(seg, raw, planner)
        ]

        if raw:
            items = dim_items + measure_items + segment_items
        else:
            items = dim_items + segment_items + measure_items

        seen: set[str] = set()
        for item in items:
            if item.alias in seen:
                raise QueryBuildError(f"Duplicate output column: {item.alias}")
            seen.add(item.alias)

        where = compile_where(config, lambda f: self._filter_column(f, planner))

        if raw:
            items += self._drilldown_items(main, planner, seen)
            group_by: list[int] = []
            limit = config.limit or self.default_raw_limit
        else:
            group_by = [i + 1 for i, item in enumerate(items) if not item.aggregate]
            limit = config.limit

        return SelectQuery(
            items=items,
            from_table=ident(main.table),
            from_alias=ident(main.id),
            joins=planner.joins,
            where=where,
            group_by=group_by,
            order_by=[1],
            limit=limit,
        )

    # --- select items ---

    def _source_alias(self, source_id: str, planner: JoinPlanner) -> str:
        alias = planner.alias_for(source_id)
        planner.ensure(alias)
        return alias

    def _fk_column(self, fk: str, planner: JoinPlanner, alias: str | None = None) -> str:
        """Where to read a foreign key from - the given alias, main, or the related table."""
        if alias is not None:
            return f"{alias}.{fk}"
        main = planner.main
        if main.has_field(fk) or not main.fields:
            return f"{main.id}.{fk}"
        related = {"program_id": PROGRAMS, "site_id": SITES, "submission_id": SUBMISSIONS}[fk]
        planner.ensure(related)
        return f"{related}.{fk}"

    def _submission_label(self) -> str:
        if self.dialect == "postgres":
            date_part = f"TO_CHAR({SUBMISSIONS}.created_at, 'MM/DD/YY')"
        else:
            date_part = f"strftime({SUBMISSIONS}.created_at, '%m/%d/%y')"
        return f"{SUBMISSIONS}.global_submission_id::text || ' (' || {date_part} || ')'"

    def _fk_label(self, fk: str, key_col: str, planner: JoinPlanner) -> str:
        """COALESCE a foreign key to something a human can read."""
        if fk == "program_id":
            planner.ensure(PROGRAMS)
            return f"COALESCE({PROGRAMS}.name, {key_col}::text)"
        if fk == "site_id":
            planner.ensure(SITES)
            return f"COALESCE({SITES}.name, {key_col}::text)"
        planner.ensure(SUBMISSIONS)
        return f"COALESCE({self._submission_label()}, {key_col}::text)"

    def _dimension_expr(self, dim: Dimension, planner: JoinPlanner) -> Expr:
        if dim.is_computed:
            return Expr.raw(dim.expression.format(main=planner.main.id))

        field_name = ident(dim.field)
        if dim.data_source:
            alias = self._source_alias(dim.data_source, planner)
            col = f"{alias}.{field_name}"
        elif field_name in FK_FIELDS:
            alias = None
            if dim.source not in ("computed", planner.main.id):
                alias = self._source_alias(dim.source, planner)
            return Expr.raw(self._fk_label(field_name, self._fk_column(field_name, planner, alias), planner))
        else:
            source_id = planner.main.id if dim.source == "computed" else dim.source
            col = f"{self._source_alias(source_id, planner)}.{field_name}"

        if dim.granularity and dim.data_type == FieldType.TIMESTAMP:
            return Expr.raw(f"DATE_TRUNC('{dim.granularity.value}', {col})")
        if dim.granularity and dim.data_type == FieldType.DATE and dim.granularity.value != "day":
            return Expr.raw(f"DATE_TRUNC('{dim.granularity.value}', {col})")
        return Expr.raw(col)

    def _aggregate(self, agg: AggregationType, col: str) -> str:
        if agg == AggregationType.MEDIAN:
            if self.dialect == "postgres":
                return f"PERCENTILE_CONT(0.5) WITHIN GROUP (ORDER BY {col})"
            return f"MEDIAN({col})"
        return f"{AGG_FUNCS[agg]}({col})"

    def _measure_item(self, measure: Measure, key: str, planner: JoinPlanner) -> SelectItem:
        is_agg = measure.aggregation != AggregationType.NONE
        main = planner.main

        if measure.is_computed:
            if measure.requires_join and measure.required_table:
                planner.ensure(planner.alias_for(measure.required_table))
            elif measure.field != "*" and main.fields and not main.has_field(measure.field):
                raise QueryBuildError(
                    f"Measure {measure.name} needs {measure.field} which {main.id} doesn't have"
                )
            return SelectItem(Expr.raw(measure.expression.format(main=main.id)), key, is_agg)

        if measure.field == "*":
            col = "*"
        else:
            col = f"{self._source_alias(measure.source, planner)}.{ident(measure.field)}"

        if not is_agg:
            return SelectItem(Expr.raw(col), key, False)
        return SelectItem(Expr.raw(self._aggregate(measure.aggregation, col)), key, True)

    def _segment_items(self, segment: str, raw: bool, planner: JoinPlanner) -> list[SelectItem]:
        segment = ident(segment)

        if segment == "site_id":
            key_col = self._fk_column("site_id", planner)
            planner.ensure(SITES)
            # group on site code so sites sharing a code end up in one series
            return [
                SelectItem(
                    Expr.raw(f"COALESCE({SITES}.site_code::text, {key_col}::text)"),
                    "segment_site_id",
                ),
                SelectItem(
                    Expr.raw(f"COALESCE({SITES}.name, 'Unknown Site')"), "segment_site_name"
                ),
            ]

        if segment == "program_id":
            key_col = self._fk_column("program_id", planner)
            planner.ensure(PROGRAMS)
            if raw:
                return [
                    SelectItem(Expr.raw(f"{PROGRAMS}.name"), "segment_program_name"),
                    SelectItem(Expr.raw(f"{PROGRAMS}.start_date"), "segment_program_start_date"),
                    SelectItem(Expr.raw(f"{PROGRAMS}.end_date"), "segment_program_end_date"),
                    SelectItem(Expr.raw(key_col), "segment_program_id"),
                ]
            return [
                SelectItem(Expr.raw(self._fk_label("program_id", key_col, planner)), "segment_program_id")
            ]

        if segment == "submission_id":
            key_col = self._fk_column("submission_id", planner)
            return [
                SelectItem(
                    Expr.raw(self._fk_label("submission_id", key_col, planner)),
                    "segment_submission_id",
                )
            ]

        main = planner.main
        if main.fields and not main.has_field(segment):
            raise QueryBuildError(f"Can't segment by {segment}: not a field on {main.id}")
        return [SelectItem(Expr.raw(f"{main.id}.{segment}"), f"segment_{segment}")]

    def _drilldown_items(
        self, main: DataSource, planner: JoinPlanner, used: set[str]
    ) -> list[SelectItem]:
        """Identifier and context columns for the raw path.

        only touches tables that are already joined - drill-down info is
        nice to have, not worth extra joins.
        """
        candidates = [
            (name, f"{main.id}.{name}") for name in DRILLDOWN_COLUMNS if main.has_field(name)
        ]
        if planner.is_joined(PROGRAMS):
            candidates.append(("program_name", f"{PROGRAMS}.name"))
        if planner.is_joined(SITES):
            candidates.append(("site_name", f"{SITES}.name"))
            candidates.append(("site_code", f"{SITES}.site_code"))
        if planner.is_joined(SUBMISSIONS):
            candidates.append(("global_submission_id", f"{SUBMISSIONS}.global_submission_id"))
            candidates.append(("submission_display", self._submission_label()))

        items = []
        for alias, col in candidates:
            if alias in used:
                continue
            used.add(alias)
            items.append(SelectItem(Expr.raw(col), alias))
        return items

    # --- filters ---

    def _filter_column(self, filt: Filter, planner: JoinPlanner) -> str:
        if filt.relationship_path:
            planner.ensure_path(filt.relationship_path)

        if filt.target_table:
            alias = planner.alias_for(filt.target_table)
        elif filt.data_source:
            alias = planner.alias_for(filt.data_source)
        else:
            alias = planner.main.id

        planner.ensure(alias)
        return f"{alias}.{ident(filt.field)}"

    # --- helpers ---

    def requires_sql(self, config: ReportConfig) -> bool:
        """True when the structured rpc can't express this report.

        that's anything spanning several tables or needing a join: relationship
        path filters, joined or foreign key dimensions, segments, computed
        measures that need another table.
        """
        if len({s.table for s in config.data_sources}) > 1:
            return True
        if any(f.relationship_path or f.target_table for f in config.all_filters()):
            return True
        if any(d.data_source or d.field in FK_FIELDS for d in config.dimensions):
            return True
        if config.segment_by:
            return True
        return any(m.requires_join for m in config.measures)

    def format_sql(self, sql_text: str) -> str:
        """Pretty print with sqlglot.

        falls back to the unformatted text if sqlglot can't parse it.
        """
        try:
            parsed = sqlglot.parse_one(sql_text, dialect=self.dialect)
            return parsed.sql(dialect=self.dialect, pretty=True)
        except SqlglotError:
            return sql_text
