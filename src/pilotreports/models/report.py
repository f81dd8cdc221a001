"""Pydantic models for report configurations.

a ReportConfig is what the report builder hands us: which sources, which
dimensions to group by, which measures to compute, filters, segments and
a chart type. it's transient - built per report run, never persisted here.
"""

from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from pilotreports.models.catalog import DataSource, FieldType


class AggregationType(str, Enum):
    """Aggregations a measure can ask for.

    NONE means "give me the raw values" and flips the compiler onto the
    raw record path when every measure uses it.
    """

    NONE = "none"
    SUM = "sum"
    AVG = "avg"
    COUNT = "count"
    MIN = "min"
    MAX = "max"
    MEDIAN = "median"
    STDDEV = "stddev"


class TimeGranularity(str, Enum):
    """Granularities for date/timestamp dimensions, fed to DATE_TRUNC."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class FilterOperator(str, Enum):
    """Filter operators.

    the string values are shared with the report builder ui and saved
    reports, don't rename them.
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IN = "in"
    NOT_IN = "not_in"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    BETWEEN = "between"
    RANGE = "range"


class ChartType(str, Enum):
    """Chart types. only some of them change the sample data shape."""

    BAR = "bar"
    LINE = "line"
    AREA = "area"
    PIE = "pie"
    TABLE = "table"
    HEATMAP = "heatmap"
    BOX_PLOT = "box_plot"
    SCATTER = "scatter"
    HISTOGRAM = "histogram"
    TREEMAP = "treemap"
    SPATIAL_EFFECTIVENESS = "spatial_effectiveness"


class RelationshipStep(BaseModel):
    """One hop of a join path: from_table.join_field = to_table.foreign_field."""

    from_table: str
    to_table: str
    join_field: str
    foreign_field: str
    join_type: Literal["INNER", "LEFT"] = "INNER"


class Dimension(BaseModel):
    """A grouping axis.

    plain dimensions are just a column on `source`. cross-table ones set
    `data_source` to the joined table (sites, pilot_programs, ...) and
    computed ones carry an `expression` template where {main} is replaced
    by the main source alias.
    """

    id: str
    name: str
    display_name: str
    data_type: FieldType
    source: str
    field: str
    granularity: TimeGranularity | None = None
    enum_values: list[str] | None = None
    data_source: str | None = None
    expression: str | None = None

    @property
    def is_computed(self) -> bool:
        return self.expression is not None

    @property
    def output_key(self) -> str:
        # joined/computed dims would all collide on field names like "name"
        if self.data_source or self.is_computed:
            return self.name
        return self.field


class Measure(BaseModel):
    """A numeric value to chart, optionally aggregated."""

    id: str
    name: str
    display_name: str
    data_type: FieldType = FieldType.NUMERIC
    source: str
    field: str
    aggregation: AggregationType = AggregationType.NONE
    expression: str | None = None  # sql template, {main} -> main alias
    requires_join: bool = False
    required_table: str | None = None

    @property
    def is_computed(self) -> bool:
        return self.expression is not None and self.source == "computed"


class Filter(BaseModel):
    """A single predicate."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    field: str
    operator: FilterOperator
    value: Any = None
    data_type: FieldType | None = None
    data_source: str | None = None
    target_table: str | None = None
    relationship_path: list[RelationshipStep] = Field(default_factory=list)


class FilterGroup(BaseModel):
    """Filters combined with a single AND/OR."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    logic: Literal["and", "or"] = "and"
    filters: list[Filter] = Field(default_factory=list)

    @field_validator("logic", mode="before")
    @classmethod
    def lower_logic(cls, v: Any) -> Any:
        # the ui has sent both "OR" and "or" over the years
        return v.lower() if isinstance(v, str) else v


class ReportConfig(BaseModel):
    """Everything needed to run one report."""

    name: str = "Untitled report"
    data_sources: list[DataSource] = Field(default_factory=list)
    dimensions: list[Dimension] = Field(default_factory=list)
    measures: list[Measure] = Field(default_factory=list)
    filters: list[Filter] = Field(default_factory=list)
    filter_groups: list[FilterGroup] = Field(default_factory=list)
    segment_by: list[str] = Field(default_factory=list)
    chart_type: ChartType = ChartType.BAR
    limit: int | None = Field(default=None, gt=0)

    @property
    def main_source(self) -> DataSource | None:
        return self.data_sources[0] if self.data_sources else None

    @property
    def is_raw(self) -> bool:
        """True when every measure asks for raw values."""
        return bool(self.measures) and all(
            m.aggregation == AggregationType.NONE for m in self.measures
        )

    def dimension_keys(self) -> list[str]:
        """Output keys for the dimensions, in order.

        plain dimensions are keyed by field, unless another dimension
        wants the same key (sites.name next to pilot_programs.name). those
        get "{source}_{field}".
        """
        counts: dict[str, int] = {}
        for d in self.dimensions:
            counts[d.output_key] = counts.get(d.output_key, 0) + 1

        keys = []
        for d in self.dimensions:
            key = d.output_key
            if counts[key] > 1 and not (d.data_source or d.is_computed):
                key = f"{d.source}_{d.field}"
            keys.append(key)
        return keys

    def measure_keys(self) -> list[str]:
        """Output keys for the measures, in order.

        keyed by field so charts can find "growth_index", unless two measures
        share a field (sum and avg of the same column) or the measure is
        computed - then the measure name is used instead.
        """
        counts: dict[str, int] = {}
        for m in self.measures:
            counts[m.field] = counts.get(m.field, 0) + 1

        keys = []
        for m in self.measures:
            if m.is_computed or counts[m.field] > 1:
                keys.append(m.name)
            else:
                keys.append(m.field)
        return keys

    def grouped_filter_ids(self) -> set[str]:
        return {f.id for group in self.filter_groups for f in group.filters}

    def ungrouped_filters(self) -> list[Filter]:
        grouped = self.grouped_filter_ids()
        return [f for f in self.filters if f.id not in grouped]

    def all_filters(self) -> list[Filter]:
        return [f for group in self.filter_groups for f in group.filters] + self.ungrouped_filters()
