"""Pydantic models for report results and filter field descriptors."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from pilotreports.models.catalog import FieldType
from pilotreports.models.report import (
    Dimension,
    Filter,
    FilterOperator,
    Measure,
    RelationshipStep,
)


class ResultShape(str, Enum):
    """Which path produced a set of rows.

    set by whoever produced the rows, the normalizer just reads it.
    """

    RAW_RECORDS = "raw_records"
    AGGREGATED = "aggregated"
    SAMPLE = "sample"


class DataOrigin(str, Enum):
    LIVE = "live"
    SAMPLE = "sample"


class ReportRecord(BaseModel):
    """One chart-ready row."""

    dimensions: dict[str, Any] = Field(default_factory=dict)
    measures: dict[str, float | None] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResultMetadata(BaseModel):
    last_updated: datetime = Field(default_factory=_utcnow)
    dimensions: list[Dimension] = Field(default_factory=list)
    measures: list[Measure] = Field(default_factory=list)
    filters: list[Filter] = Field(default_factory=list)
    sql: str | None = None  # inline rendering of what ran, for debugging
    fallback_reason: str | None = None


class AggregatedData(BaseModel):
    """Result envelope for a report run.

    `origin` is the important bit - it's how the ui tells live data from
    synthetic data. they used to be indistinguishable which was... bad.
    """

    data: list[ReportRecord] = Field(default_factory=list)
    total_count: int = 0
    filtered_count: int = 0
    execution_time_ms: float = 0.0
    cache_hit: bool = False
    origin: DataOrigin = DataOrigin.LIVE
    shape: ResultShape = ResultShape.AGGREGATED
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)

    @property
    def is_sample(self) -> bool:
        return self.origin == DataOrigin.SAMPLE


class ColumnInfo(BaseModel):
    """A column as reported by schema introspection (or the static fallback)."""

    name: str
    type: FieldType
    display_name: str


class FilterField(BaseModel):
    """Something the user can filter on, possibly on a related table."""

    id: str
    name: str
    display_name: str
    data_type: FieldType
    source: str
    field: str
    target_table: str | None = None
    relationship_path: list[RelationshipStep] | None = None
    enum_values: list[str] | None = None

    def to_filter(self, operator: FilterOperator | str, value: Any = None) -> Filter:
        """Build a Filter for this field carrying the join info along."""
        return Filter(
            field=self.field,
            operator=FilterOperator(operator),
            value=value,
            data_type=self.data_type,
            data_source=None if self.target_table else self.source,
            target_table=self.target_table,
            relationship_path=list(self.relationship_path or []),
        )
