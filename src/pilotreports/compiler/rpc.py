"""Payload for the execute_custom_report_query rpc.

the rpc only understands single-table reports, so callers check
ReportQueryCompiler.requires_sql() before using this. keys are camelCase
because that's what the database function was written against.
"""

from typing import Any

from pilotreports.errors import QueryBuildError
from pilotreports.models.report import ReportConfig


def build_rpc_payload(config: ReportConfig) -> dict[str, Any]:
    main = config.main_source
    if main is None:
        raise QueryBuildError("Report needs at least one data source")

    def filter_payload(f) -> dict[str, Any]:
        return {"id": f.id, "field": f.field, "operator": f.operator.value, "value": f.value}

    return {
        "dataSources": [{"id": s.id, "table": s.table, "schema": s.db_schema} for s in config.data_sources],
        "dimensions": [
            {
                "id": d.id,
                "name": key,
                "field": d.field,
                "source": d.source,
                "dataType": d.data_type.value,
                "granularity": d.granularity.value if d.granularity else None,
            }
            for d, key in zip(config.dimensions, config.dimension_keys())
        ],
        "measures": [
            {
                "id": m.id,
                "name": key,
                "field": m.field,
                "source": m.source,
                "aggregation": m.aggregation.value,
            }
            for m, key in zip(config.measures, config.measure_keys())
        ],
        "filters": [filter_payload(f) for f in config.ungrouped_filters()],
        "filterGroups": [
            {"id": g.id, "logic": g.logic, "filters": [filter_payload(f) for f in g.filters]}
            for g in config.filter_groups
        ],
        "chartType": config.chart_type.value,
    }
