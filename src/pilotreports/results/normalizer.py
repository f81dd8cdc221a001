"""Turn backend rows into chart-ready ReportRecords.

rows come back in a few flavours: flat rows from our own sql (raw or
aggregated), rows from the structured rpc which use its own key names, and
occasionally postgrest-style nested rows (submissions -> sites ->
pilot_programs). the lookups below try each spelling in turn.

the shape is always passed in by whoever produced the rows. guessing it from
the presence of observation_id used to misfire on submission reports.
"""

import logging
import math
from datetime import date, datetime, timezone
from typing import Any

from pilotreports.models.catalog import FieldType
from pilotreports.models.report import Dimension, Measure, ReportConfig
from pilotreports.models.result import ReportRecord, ResultShape

logger = logging.getLogger(__name__)

# copied into metadata on the raw path when present
DRILLDOWN_FIELDS = [
    "observation_id",
    "submission_id",
    "site_id",
    "program_id",
    "petri_code",
    "gasifier_code",
    "created_at",
    "image_url",
    "placement",
    "fungicide_used",
    "petri_growth_stage",
    "x_position",
    "y_position",
    "growth_index",
    "todays_day_of_phase",
    "program_name",
    "site_name",
    "site_code",
    "submission_display",
    "global_submission_id",
]

UNKNOWN_SITE = "Unknown Site"


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _nested(row: dict[str, Any], *path: str) -> Any:
    """row["a"]["b"]["c"], or None if any level is missing."""
    value: Any = row
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _to_datetime(value: Any) -> datetime | date | None:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def format_date(value: Any) -> Any:
    """YYYY-MM-DD for anything date-like, everything else untouched."""
    parsed = _to_datetime(value)
    if parsed is None:
        return value
    if isinstance(parsed, datetime):
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date().isoformat()
    return parsed.isoformat()


def submission_label(global_id: Any, created_at: Any) -> str | None:
    """"{global id} (MM/DD/YY)", the way submissions are shown everywhere else."""
    parsed = _to_datetime(created_at)
    if global_id is None or parsed is None:
        return None
    return f"{global_id} ({parsed.strftime('%m/%d/%y')})"


def to_number(value: Any) -> float | None:
    """float() that gives None for missing, non-numeric and non-finite values."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _dimension_value(row: dict[str, Any], dim: Dimension, key: str, shape: ResultShape) -> Any:
    field = dim.field
    if shape == ResultShape.RAW_RECORDS:
        value = _first(row.get(key), row.get(field))
        # prefer the readable label over the foreign key
        if field == "program_id":
            value = _first(
                row.get("program_name"), _nested(row, "submissions", "sites", "pilot_programs", "name"), value
            )
        elif field == "site_id":
            value = _first(row.get("site_name"), _nested(row, "submissions", "sites", "name"), value)
        elif field == "submission_id":
            value = _first(
                row.get("submission_display"),
                submission_label(
                    _nested(row, "submissions", "global_submission_id"),
                    _nested(row, "submissions", "created_at"),
                ),
                value,
            )
    else:
        value = _first(row.get(key), row.get(field), row.get(dim.id), row.get("dimension"))

    if dim.data_type in (FieldType.DATE, FieldType.TIMESTAMP) and value is not None:
        value = format_date(value)
    return value


def _measure_value(row: dict[str, Any], measure: Measure, key: str) -> float | None:
    value = _first(
        row.get(key),
        row.get(measure.field),
        row.get(measure.name),
        row.get(measure.id),
        row.get(f"{measure.aggregation.value}_{measure.field}"),
    )
    return to_number(value)


def _segment_metadata(row: dict[str, Any], segment: str) -> dict[str, Any]:
    meta: dict[str, Any] = {}

    if segment == "site_id":
        # sites are grouped on their code, the name is only for display
        site_code = _first(
            _nested(row, "submissions", "sites", "site_code"), row.get("site_code"), row.get("segment_site_id")
        )
        site_code = _first(site_code, row.get("site_id"))
        meta["segment_site_id"] = str(site_code) if site_code is not None else None
        meta["segment_site_name"] = _first(
            row.get("segment_site_name"),
            row.get("site_name"),
            _nested(row, "submissions", "sites", "name"),
            UNKNOWN_SITE,
        )
    elif segment == "program_id":
        programs = ("submissions", "sites", "pilot_programs")
        meta["segment_program_name"] = _first(
            row.get("segment_program_name"), row.get("program_name"), _nested(row, *programs, "name")
        )
        meta["segment_program_start_date"] = _first(
            row.get("segment_program_start_date"), _nested(row, *programs, "start_date")
        )
        meta["segment_program_end_date"] = _first(
            row.get("segment_program_end_date"), _nested(row, *programs, "end_date")
        )
        meta["segment_program_id"] = _first(row.get("segment_program_id"), row.get("program_id"))
    elif segment == "submission_id":
        label = submission_label(
            _nested(row, "submissions", "global_submission_id"), _nested(row, "submissions", "created_at")
        )
        value = _first(label, row.get("segment_submission_id"), row.get("submission_id"))
        meta["segment_submission_id"] = str(value) if value is not None else None
    else:
        value = _first(row.get(f"segment_{segment}"), row.get(segment))
        meta[f"segment_{segment}"] = str(value) if value is not None else None

    return meta


def normalize_row(row: dict[str, Any], config: ReportConfig, shape: ResultShape) -> ReportRecord:
    dimensions = {
        key: _dimension_value(row, dim, key, shape)
        for dim, key in zip(config.dimensions, config.dimension_keys())
    }
    measures = {
        key: _measure_value(row, measure, key)
        for measure, key in zip(config.measures, config.measure_keys())
    }

    metadata: dict[str, Any] = {}
    site_code = _first(row.get("site_code"), _nested(row, "submissions", "sites", "site_code"))
    if site_code is not None:
        metadata["site_code"] = site_code
    global_id = _first(row.get("global_submission_id"), _nested(row, "submissions", "global_submission_id"))
    if global_id is not None:
        metadata["global_submission_id"] = global_id

    # segments live in metadata only, they must never clobber a dimension
    for segment in config.segment_by:
        metadata.update(_segment_metadata(row, segment))

    if shape == ResultShape.RAW_RECORDS:
        for name in DRILLDOWN_FIELDS:
            if row.get(name) is not None:
                metadata.setdefault(name, row[name])
        nested_site = _nested(row, "submissions", "sites", "name")
        if nested_site is not None:
            metadata["site_name"] = nested_site
        nested_program = _nested(row, "submissions", "sites", "pilot_programs", "name")
        if nested_program is not None:
            metadata["program_name"] = nested_program

    return ReportRecord(dimensions=dimensions, measures=measures, metadata=metadata)


def normalize_rows(
    rows: list[dict[str, Any]], config: ReportConfig, shape: ResultShape
) -> list[ReportRecord]:
    """Normalize every row. Shape comes from the producer, never guessed."""
    if not rows:
        return []
    logger.debug("normalizing %d %s rows", len(rows), shape.value)
    return [normalize_row(row, config, shape) for row in rows]
