"""Tests for row normalization."""

from datetime import date, datetime, timedelta, timezone

import pytest

from pilotreports.models import DataSource, Dimension, FieldType, Measure, ReportConfig, ResultShape
from pilotreports.results.normalizer import (
    format_date,
    normalize_row,
    normalize_rows,
    submission_label,
    to_number,
)

AGG = ResultShape.AGGREGATED
RAW = ResultShape.RAW_RECORDS


def dim(field: str, data_type: FieldType = FieldType.TEXT, **kwargs) -> Dimension:
    return Dimension(
        id=f"petri_observations.{field}",
        name=kwargs.pop("name", field),
        display_name=field,
        data_type=data_type,
        source="petri_observations",
        field=field,
        **kwargs,
    )


@pytest.fixture
def config(petri: DataSource, placement_dim: Dimension, avg_growth: Measure) -> ReportConfig:
    return ReportConfig(data_sources=[petri], dimensions=[placement_dim], measures=[avg_growth])


class TestHelpers:
    def test_format_date(self):
        assert format_date(datetime(2025, 1, 10, 8, 30)) == "2025-01-10"
        assert format_date(date(2025, 1, 10)) == "2025-01-10"
        assert format_date("2025-01-10T08:30:00Z") == "2025-01-10"
        assert format_date("next tuesday") == "next tuesday"

    def test_format_date_converts_to_utc(self):
        late = datetime(2025, 1, 10, 23, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert format_date(late) == "2025-01-11"

    def test_submission_label(self):
        assert submission_label(1100001, datetime(2025, 1, 10)) == "1100001 (01/10/25)"
        assert submission_label(None, datetime(2025, 1, 10)) is None
        assert submission_label(1, None) is None

    @pytest.mark.parametrize(
        "value,expected",
        [(12, 12.0), ("3.5", 3.5), (None, None), ("n/a", None), (float("nan"), None), (float("inf"), None)],
    )
    def test_to_number(self, value, expected):
        assert to_number(value) == expected


class TestAggregatedRows:
    def test_keys_follow_config(self, config: ReportConfig):
        record = normalize_row({"placement": "P1", "growth_index": 34.0}, config, AGG)
        assert record.dimensions == {"placement": "P1"}
        assert record.measures == {"growth_index": 34.0}
        assert record.metadata == {}

    def test_rpc_spellings(self, config: ReportConfig):
        """The rpc names columns its own way."""
        record = normalize_row({"dimension": "P2", "avg_growth_index": "45"}, config, AGG)
        assert record.dimensions == {"placement": "P2"}
        assert record.measures == {"growth_index": 45.0}

    def test_null_measures_stay_null(self, config: ReportConfig):
        """A group with no values is None, not zero."""
        record = normalize_row({"placement": "P4", "growth_index": None}, config, AGG)
        assert record.measures["growth_index"] is None

    def test_dates_formatted(self, petri: DataSource, avg_growth: Measure):
        config = ReportConfig(
            data_sources=[petri], dimensions=[dim("created_at", FieldType.TIMESTAMP)], measures=[avg_growth]
        )
        record = normalize_row({"created_at": datetime(2025, 2, 5, 8, 0), "growth_index": 1}, config, AGG)
        assert record.dimensions["created_at"] == "2025-02-05"

    def test_site_segment(self, config: ReportConfig):
        """Sites are keyed by code, with a fallback name."""
        seg = config.model_copy(update={"segment_by": ["site_id"]})
        record = normalize_row(
            {"placement": "P1", "growth_index": 1.0, "segment_site_id": "S1"}, seg, AGG
        )
        assert record.metadata == {"segment_site_id": "S1", "segment_site_name": "Unknown Site"}

    def test_nested_site_code_wins(self, config: ReportConfig):
        seg = config.model_copy(update={"segment_by": ["site_id"]})
        row = {
            "placement": "P1",
            "growth_index": 1.0,
            "site_id": "site-1",
            "submissions": {"sites": {"site_code": 7, "name": "North Barn"}},
        }
        record = normalize_row(row, seg, AGG)
        assert record.metadata["segment_site_id"] == "7"
        assert record.metadata["segment_site_name"] == "North Barn"
        assert record.metadata["site_code"] == 7

    def test_segments_never_touch_dimensions(self, petri: DataSource, avg_growth: Measure):
        """Segmenting by the dimension's own field keeps the dimension value."""
        config = ReportConfig(
            data_sources=[petri],
            dimensions=[dim("placement")],
            measures=[avg_growth],
            segment_by=["placement"],
        )
        record = normalize_row(
            {"placement": "P1", "segment_placement": "segment", "growth_index": 2}, config, AGG
        )
        assert record.dimensions == {"placement": "P1"}
        assert record.metadata["segment_placement"] == "segment"

    def test_program_segment(self, config: ReportConfig):
        seg = config.model_copy(update={"segment_by": ["program_id"]})
        record = normalize_row(
            {"placement": "P1", "growth_index": 1.0, "segment_program_id": "Alpha Program"}, seg, AGG
        )
        assert record.metadata["segment_program_id"] == "Alpha Program"
        assert record.metadata["segment_program_name"] is None

    def test_no_drilldown_on_aggregates(self, config: ReportConfig):
        record = normalize_row(
            {"placement": "P1", "growth_index": 1.0, "observation_id": "obs-1"}, config, AGG
        )
        assert "observation_id" not in record.metadata


class TestRawRows:
    def test_foreign_keys_get_labels(self, petri: DataSource, raw_growth: Measure):
        """program, site and submission ids are swapped for readable labels."""
        config = ReportConfig(
            data_sources=[petri],
            dimensions=[
                dim("program_id", FieldType.UUID),
                dim("site_id", FieldType.UUID),
                dim("submission_id", FieldType.UUID),
            ],
            measures=[raw_growth],
        )
        row = {
            "program_id": "prog-1",
            "site_id": "site-1",
            "submission_id": "sub-1",
            "growth_index": 12.0,
            "submissions": {
                "global_submission_id": 1100001,
                "created_at": "2025-01-10T08:00:00",
                "sites": {"name": "North Barn", "pilot_programs": {"name": "Alpha Program"}},
            },
        }
        record = normalize_row(row, config, RAW)

        assert record.dimensions == {
            "program_id": "Alpha Program",
            "site_id": "North Barn",
            "submission_id": "1100001 (01/10/25)",
        }
        assert record.metadata["site_name"] == "North Barn"
        assert record.metadata["program_name"] == "Alpha Program"
        assert record.metadata["global_submission_id"] == 1100001

    def test_flat_labels_from_sql(self, petri: DataSource, avg_growth: Measure):
        config = ReportConfig(
            data_sources=[petri],
            dimensions=[dim("site_id", FieldType.UUID)],
            measures=[avg_growth],
        )
        record = normalize_row({"site_id": "site-1", "site_name": "North Barn", "growth_index": 1}, config, RAW)
        assert record.dimensions["site_id"] == "North Barn"

    def test_unlabelled_key_kept(self, petri: DataSource, avg_growth: Measure):
        config = ReportConfig(
            data_sources=[petri], dimensions=[dim("site_id", FieldType.UUID)], measures=[avg_growth]
        )
        record = normalize_row({"site_id": "site-9", "growth_index": 1}, config, RAW)
        assert record.dimensions["site_id"] == "site-9"

    def test_drilldown_metadata(self, config: ReportConfig):
        row = {
            "placement": "P1",
            "growth_index": 12.0,
            "observation_id": "obs-1",
            "petri_code": "P1-A",
            "image_url": None,
        }
        record = normalize_row(row, config, RAW)
        assert record.metadata["observation_id"] == "obs-1"
        assert record.metadata["petri_code"] == "P1-A"
        assert record.metadata["growth_index"] == 12.0
        assert "image_url" not in record.metadata


class TestNormalizeRows:
    def test_empty(self, config: ReportConfig):
        assert normalize_rows([], config, AGG) == []

    def test_order_kept(self, config: ReportConfig):
        rows = [{"placement": p, "growth_index": i} for i, p in enumerate(["P1", "P2", "P3"])]
        records = normalize_rows(rows, config, AGG)
        assert [r.dimensions["placement"] for r in records] == ["P1", "P2", "P3"]
        assert [r.measures["growth_index"] for r in records] == [0.0, 1.0, 2.0]
