"""Tests for pydantic models."""

import pytest
from pydantic import ValidationError

from pilotreports.errors import CatalogError
from pilotreports.models import (
    AggregatedData,
    AggregationType,
    Catalog,
    DataOrigin,
    DataSource,
    Dimension,
    FieldType,
    Filter,
    FilterField,
    FilterGroup,
    FilterOperator,
    Measure,
    RelationshipStep,
    ReportConfig,
)


class TestDataSource:
    def test_observation_detected_from_table(self, petri: DataSource, sites: DataSource):
        """Partitioned observation tables still count as observations."""
        assert petri.table == "petri_observations_partitioned"
        assert petri.is_observation
        assert not sites.is_observation

    def test_schema_alias(self):
        """The yaml key is `schema`."""
        source = DataSource.model_validate({"id": "x", "name": "X", "table": "x", "schema": "audit"})
        assert source.db_schema == "audit"

    def test_active_fields_respects_selection(self, sites: DataSource):
        """selected_fields narrows the fields, empty means all."""
        narrowed = sites.model_copy(update={"selected_fields": ["name", "site_code"]})
        assert [f.name for f in narrowed.active_fields] == ["name", "site_code"]
        assert len(sites.active_fields) == len(sites.fields)

    def test_get_field(self, petri: DataSource):
        """Fields can be looked up by name."""
        assert petri.get_field("placement").type == FieldType.ENUM
        assert petri.get_field("nope") is None

    def test_frozen(self, petri: DataSource):
        """Sources are immutable."""
        with pytest.raises(ValidationError):
            petri.name = "changed"


class TestCatalog:
    def test_unknown_source_raises_keyerror(self, catalog: Catalog):
        """Unknown ids raise a KeyError subclass with a readable message."""
        with pytest.raises(KeyError) as exc_info:
            catalog.get_data_source("nope")
        assert isinstance(exc_info.value, CatalogError)
        assert str(exc_info.value) == "Unknown data source: nope"

    def test_get_by_table(self, catalog: Catalog):
        """Physical table names resolve, and so do ids."""
        assert catalog.get_by_table("petri_observations_partitioned").id == "petri_observations"
        assert catalog.get_by_table("petri_observations").id == "petri_observations"
        assert catalog.get_by_table("nope") is None

    def test_duplicate_ids_rejected(self, sites: DataSource):
        """Two sources can't share an id."""
        with pytest.raises(ValueError, match="Duplicate data source"):
            Catalog(data_sources=[sites, sites])

    def test_builtin_sources(self, catalog: Catalog):
        """The five pilot program sources ship built in."""
        assert catalog.ids == [
            "petri_observations",
            "gasifier_observations",
            "submissions",
            "sites",
            "pilot_programs",
        ]


class TestFilterOperator:
    def test_wire_values(self):
        """Operator strings are shared with saved reports."""
        assert [op.value for op in FilterOperator] == [
            "equals",
            "not_equals",
            "greater_than",
            "less_than",
            "greater_than_or_equal",
            "less_than_or_equal",
            "contains",
            "not_contains",
            "starts_with",
            "ends_with",
            "in",
            "not_in",
            "is_null",
            "is_not_null",
            "is_empty",
            "is_not_empty",
            "between",
            "range",
        ]

    def test_unknown_operator_rejected(self):
        """Filters validate their operator."""
        with pytest.raises(ValidationError):
            Filter(field="x", operator="roughly")


class TestFilterGroup:
    def test_logic_is_case_insensitive(self):
        """OR and or both work."""
        assert FilterGroup(logic="OR").logic == "or"

    def test_bad_logic(self):
        with pytest.raises(ValidationError):
            FilterGroup(logic="xor")


class TestReportConfig:
    def _measure(self, field: str, agg: AggregationType, **kwargs) -> Measure:
        return Measure(
            id=f"t.{field}.{agg.value}",
            name=f"{field}_{agg.value}",
            display_name=field,
            source="t",
            field=field,
            aggregation=agg,
            **kwargs,
        )

    def test_is_raw(self):
        """Raw only when every measure has aggregation none."""
        raw = ReportConfig(measures=[self._measure("a", AggregationType.NONE)])
        mixed = ReportConfig(
            measures=[self._measure("a", AggregationType.NONE), self._measure("b", AggregationType.SUM)]
        )
        assert raw.is_raw
        assert not mixed.is_raw
        assert not ReportConfig().is_raw

    def test_measure_keys_use_field(self):
        """Measures are keyed by field name."""
        config = ReportConfig(measures=[self._measure("growth_index", AggregationType.AVG)])
        assert config.measure_keys() == ["growth_index"]

    def test_measure_keys_disambiguate_shared_fields(self):
        """Two measures on one field fall back to their names."""
        config = ReportConfig(
            measures=[
                self._measure("growth_index", AggregationType.AVG),
                self._measure("growth_index", AggregationType.MAX),
            ]
        )
        assert config.measure_keys() == ["growth_index_avg", "growth_index_max"]

    def test_computed_measure_keyed_by_name(self):
        config = ReportConfig(
            measures=[
                Measure(
                    id="total_records",
                    name="total_records",
                    display_name="Total Records",
                    source="computed",
                    field="*",
                    aggregation=AggregationType.COUNT,
                    expression="COUNT(*)",
                )
            ]
        )
        assert config.measure_keys() == ["total_records"]

    def test_joined_dimension_keyed_by_name(self):
        """site_name and program_name both have field `name`, so use the name."""
        dim = Dimension(
            id="sites.name",
            name="site_name",
            display_name="Site Name",
            data_type=FieldType.TEXT,
            source="petri_observations",
            field="name",
            data_source="sites",
        )
        assert ReportConfig(dimensions=[dim]).dimension_keys() == ["site_name"]

    def test_dimension_keys_disambiguate_shared_fields(self):
        """Plain dims from two sources with the same field get prefixed."""

        def name_dim(source: str) -> Dimension:
            return Dimension(
                id=f"{source}.name",
                name="name",
                display_name="Name",
                data_type=FieldType.TEXT,
                source=source,
                field="name",
            )

        status = Dimension(
            id="pilot_programs.status",
            name="status",
            display_name="Status",
            data_type=FieldType.TEXT,
            source="pilot_programs",
            field="status",
        )
        config = ReportConfig(dimensions=[name_dim("pilot_programs"), name_dim("sites"), status])
        assert config.dimension_keys() == ["pilot_programs_name", "sites_name", "status"]

    def test_ungrouped_filters(self):
        """Filters that belong to a group aren't repeated at the top level."""
        grouped = Filter(id="g", field="a", operator="equals", value=1)
        loose = Filter(id="l", field="b", operator="equals", value=2)
        config = ReportConfig(
            filters=[grouped, loose],
            filter_groups=[FilterGroup(logic="or", filters=[grouped])],
        )
        assert [f.id for f in config.ungrouped_filters()] == ["l"]
        assert [f.id for f in config.all_filters()] == ["g", "l"]

    def test_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            ReportConfig(limit=0)


class TestFilterField:
    def test_to_filter_carries_join_info(self):
        """A related field's filter targets the related table."""
        step = RelationshipStep(
            from_table="petri_observations_partitioned",
            to_table="sites",
            join_field="site_id",
            foreign_field="site_id",
        )
        field = FilterField(
            id="sites.name",
            name="name",
            display_name="Site Name (Related: Sites)",
            data_type=FieldType.TEXT,
            source="petri_observations",
            field="name",
            target_table="sites",
            relationship_path=[step],
        )
        f = field.to_filter("equals", "North Barn")

        assert f.operator == FilterOperator.EQUALS
        assert f.target_table == "sites"
        assert f.data_source is None
        assert f.relationship_path == [step]
        assert step.join_type == "INNER"

    def test_to_filter_plain_field(self):
        field = FilterField(
            id="petri_observations.placement",
            name="placement",
            display_name="Placement (Petri Observations)",
            data_type=FieldType.ENUM,
            source="petri_observations",
            field="placement",
        )
        f = field.to_filter(FilterOperator.IN, ["P1", "P2"])
        assert f.data_source == "petri_observations"
        assert f.relationship_path == []


class TestAggregatedData:
    def test_defaults_to_live(self):
        """Results are live unless something says otherwise."""
        result = AggregatedData()
        assert result.origin == DataOrigin.LIVE
        assert not result.is_sample
        assert not result.cache_hit
