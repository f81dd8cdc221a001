"""Tests for dimension and measure derivation."""

from pilotreports.catalog.derive import (
    MEASURE_AGGREGATIONS,
    get_available_dimensions,
    get_available_measures,
)
from pilotreports.models import AggregationType, DataSource, FieldType, TimeGranularity


def ids(items) -> list[str]:
    return [i.id for i in items]


class TestDimensions:
    def test_empty_selection_still_has_computed(self):
        """No sources still gives the two computed date dimensions."""
        dims = get_available_dimensions([])
        assert ids(dims) == ["date_created_week", "date_created_month"]
        assert all(d.source == "computed" for d in dims)

    def test_denylisted_fields_excluded(self, gasifier: DataSource):
        """Free text like notes never becomes a dimension."""
        assert gasifier.has_field("notes")
        assert "gasifier_observations.notes" not in ids(get_available_dimensions([gasifier]))

    def test_only_groupable_types(self, petri: DataSource):
        """Numeric and uuid fields aren't offered as dimensions."""
        dim_ids = ids(get_available_dimensions([petri]))
        assert "petri_observations.placement" in dim_ids
        assert "petri_observations.growth_index" not in dim_ids
        assert "petri_observations.observation_id" not in dim_ids

    def test_timestamps_default_to_day(self, petri: DataSource):
        dims = {d.id: d for d in get_available_dimensions([petri])}
        assert dims["petri_observations.created_at"].granularity == TimeGranularity.DAY
        assert dims["petri_observations.placement"].granularity is None

    def test_enum_values_carried(self, petri: DataSource):
        dims = {d.id: d for d in get_available_dimensions([petri])}
        assert dims["petri_observations.fungicide_used"].enum_values == ["Yes", "No"]

    def test_cross_table_dimensions(self, petri: DataSource, sites: DataSource, submissions: DataSource):
        """Observation reports get joined dimensions for selected related tables."""
        dims = {d.id: d for d in get_available_dimensions([petri, sites, submissions])}

        site_name = dims["sites.name"]
        assert site_name.name == "site_name"
        assert site_name.field == "name"
        assert site_name.data_source == "sites"
        assert site_name.source == "petri_observations"

        assert dims["submissions.created_at"].name == "submission_date"
        assert dims["submissions.created_at"].data_type == FieldType.TIMESTAMP
        assert dims["submissions.weather"].data_source == "submissions"
        assert "pilot_programs.name" not in dims

    def test_no_cross_table_without_observations(self, sites: DataSource, programs: DataSource):
        """Without an observation source the tables' own columns are plain dimensions."""
        dims = {d.id: d for d in get_available_dimensions([sites, programs])}
        assert dims["sites.name"].name == "name"
        assert dims["sites.name"].data_source is None
        assert all(d.name not in ("site_name", "program_name") for d in dims.values())

    def test_pure(self, petri: DataSource):
        """Same input, same output."""
        assert get_available_dimensions([petri]) == get_available_dimensions([petri])


class TestMeasures:
    def test_five_variants_per_numeric_field(self, petri: DataSource):
        """Every numeric field gets sum, avg, min, max and count."""
        measures = get_available_measures([petri])
        growth = [m for m in measures if m.field == "growth_index" and m.source == "petri_observations"]

        assert [m.aggregation for m in growth] == MEASURE_AGGREGATIONS
        assert growth[1].id == "petri_observations.growth_index.avg"
        assert growth[1].name == "growth_index_avg"
        assert growth[1].display_name == "Growth Index (AVG)"
        assert growth[1].expression == "AVG(growth_index)"

    def test_count_per_source(self, petri: DataSource):
        numeric = [f for f in petri.fields if f.type in (FieldType.NUMERIC, FieldType.INTEGER)]
        measures = get_available_measures([petri])
        per_field = [m for m in measures if m.source == "petri_observations"]
        assert len(per_field) == 5 * len(numeric)

    def test_sites_only_gets_the_two_computed_measures(self, sites: DataSource):
        """A sites report without numeric fields only has the always-on measures."""
        no_numbers = sites.model_copy(update={"selected_fields": ["site_id", "name", "site_code"]})
        assert ids(get_available_measures([no_numbers])) == ["total_records", "avg_growth_rate"]

    def test_program_phase_measure_needs_observations(self, petri: DataSource, sites: DataSource):
        """days_in_program_phase shows up only for observation reports."""
        assert "days_in_program_phase" not in ids(get_available_measures([sites]))

        phase = next(m for m in get_available_measures([petri]) if m.id == "days_in_program_phase")
        assert phase.requires_join
        assert phase.required_table == "pilot_programs"
        assert phase.aggregation == AggregationType.MAX

    def test_computed_measures_last(self, petri: DataSource):
        measures = get_available_measures([petri])
        assert ids(measures)[-3:] == ["total_records", "avg_growth_rate", "days_in_program_phase"]
