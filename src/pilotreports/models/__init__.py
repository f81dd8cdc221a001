"""Pydantic models for pilotreports."""

from pilotreports.models.catalog import Catalog, DataSource, FieldType, SourceField
from pilotreports.models.report import (
    AggregationType,
    ChartType,
    Dimension,
    Filter,
    FilterGroup,
    FilterOperator,
    Measure,
    RelationshipStep,
    ReportConfig,
    TimeGranularity,
)
from pilotreports.models.result import (
    AggregatedData,
    ColumnInfo,
    DataOrigin,
    FilterField,
    ReportRecord,
    ResultMetadata,
    ResultShape,
)

__all__ = [
    "AggregatedData",
    "AggregationType",
    "Catalog",
    "ChartType",
    "ColumnInfo",
    "DataOrigin",
    "DataSource",
    "Dimension",
    "FieldType",
    "Filter",
    "FilterField",
    "FilterGroup",
    "FilterOperator",
    "Measure",
    "RelationshipStep",
    "ReportConfig",
    "ReportRecord",
    "ResultMetadata",
    "ResultShape",
    "SourceField",
    "TimeGranularity",
]
