"""YAML loaders for catalogs and saved reports.

a report file names its sources, dimensions and measures by id - the same
ids get_available_dimensions/get_available_measures hand out - so saved
reports stay short:

    name: Growth by placement
    data_sources: [petri_observations]
    dimensions: [petri_observations.placement]
    measures: [petri_observations.growth_index.avg]
    filters:
      - field: growth_index
        operator: between
        value: "10,50"

a dimension or measure can also be a mapping. with just an `id` plus a few
keys it overrides the derived definition (handy for granularity or
aggregation), with a `name` it's taken as a complete inline definition.
"""

from pathlib import Path
from typing import Any

import yaml

from pilotreports.catalog.derive import get_available_dimensions, get_available_measures
from pilotreports.models.catalog import Catalog
from pilotreports.models.report import Dimension, Filter, FilterGroup, Measure, ReportConfig


def _read_yaml(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}  # empty file
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}")
    return data


def load_catalog(path: str | Path) -> Catalog:
    """Load data source definitions. Duplicate ids are rejected."""
    data = _read_yaml(path)
    return Catalog.model_validate({"data_sources": data.get("data_sources", [])})


def _resolve(entries: list[Any], available: dict[str, Any], model: type, kind: str) -> list[Any]:
    resolved = []
    for entry in entries:
        if isinstance(entry, str):
            if entry not in available:
                raise ValueError(f"Unknown {kind}: {entry}")
            resolved.append(available[entry])
        elif isinstance(entry, dict) and "name" not in entry:
            ref = entry.get("id")
            if ref not in available:
                raise ValueError(f"Unknown {kind}: {ref}")
            overrides = {k: v for k, v in entry.items() if k != "id"}
            # re-validate so overrides like "week" become enums
            resolved.append(model.model_validate({**available[ref].model_dump(), **overrides}))
        elif isinstance(entry, dict):
            resolved.append(model.model_validate(entry))
        else:
            raise ValueError(f"Can't read {kind} entry: {entry!r}")
    return resolved


def parse_report_config(data: dict[str, Any], catalog: Catalog) -> ReportConfig:
    """Build a ReportConfig from already-parsed yaml/json."""
    source_ids = data.get("data_sources") or []
    if not source_ids:
        raise ValueError("Report must list at least one data source")
    try:
        sources = catalog.select(source_ids)
    except KeyError as e:
        raise ValueError(str(e)) from e

    dimensions = {d.id: d for d in get_available_dimensions(sources)}
    measures = {m.id: m for m in get_available_measures(sources)}

    filters = [Filter.model_validate(f) for f in data.get("filters") or []]
    groups = [FilterGroup.model_validate(g) for g in data.get("filter_groups") or []]

    config = {
        "data_sources": sources,
        "dimensions": _resolve(data.get("dimensions") or [], dimensions, Dimension, "dimension"),
        "measures": _resolve(data.get("measures") or [], measures, Measure, "measure"),
        "filters": filters,
        "filter_groups": groups,
        "segment_by": data.get("segment_by") or [],
    }
    for key in ("name", "chart_type", "limit"):
        if data.get(key) is not None:
            config[key] = data[key]

    return ReportConfig.model_validate(config)


def load_report_config(path: str | Path, catalog: Catalog) -> ReportConfig:
    return parse_report_config(_read_yaml(path), catalog)
