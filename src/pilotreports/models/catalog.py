"""Pydantic models for the data source catalog.

a data source is one queryable table plus the typed fields we know about.
the catalog is just an immutable bag of them that gets passed around
explicitly - no module level registry to mutate behind anyone's back.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pilotreports.errors import CatalogError

# physical table names that mark a source as observation data
OBSERVATION_TABLES = ("petri_observations", "gasifier_observations")


class FieldType(str, Enum):
    """Semantic field types.

    deliberately coarser than the database's own type names - the resolver
    maps postgres/duckdb vocabularies down onto this set.
    """

    TEXT = "text"
    ENUM = "enum"
    NUMERIC = "numeric"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    TIMESTAMP = "timestamp"
    UUID = "uuid"
    JSON = "json"


class SourceField(BaseModel):
    """A typed column on a data source."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType
    display_name: str
    enum_values: list[str] | None = None


class DataSource(BaseModel):
    """A queryable table.

    `id` doubles as the sql alias so it has to stay stable. `table` is the
    physical name and can differ - petri_observations really lives in
    petri_observations_partitioned.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    description: str | None = None
    # "schema" shadows a BaseModel attribute, hence the alias
    db_schema: str = Field(default="public", alias="schema")
    table: str
    joinable: bool = True
    is_partitioned: bool = False
    partition_keys: list[str] = Field(default_factory=list)
    fields: list[SourceField] = Field(default_factory=list)
    # empty means "all fields"
    selected_fields: list[str] = Field(default_factory=list)

    @property
    def is_observation(self) -> bool:
        return any(name in self.table for name in OBSERVATION_TABLES)

    @property
    def active_fields(self) -> list[SourceField]:
        """Fields narrowed down to selected_fields, if any were picked."""
        if not self.selected_fields:
            return list(self.fields)
        return [f for f in self.fields if f.name in self.selected_fields]

    def get_field(self, name: str) -> SourceField | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def has_field(self, name: str) -> bool:
        return self.get_field(name) is not None


class Catalog(BaseModel):
    """The set of data sources a report can be built from."""

    model_config = ConfigDict(frozen=True)

    data_sources: list[DataSource] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_ids(self) -> "Catalog":
        seen: set[str] = set()
        for source in self.data_sources:
            if source.id in seen:
                raise ValueError(f"Duplicate data source: {source.id}")
            seen.add(source.id)
        return self

    @property
    def ids(self) -> list[str]:
        return [s.id for s in self.data_sources]

    def get_data_source(self, source_id: str) -> DataSource:
        for source in self.data_sources:
            if source.id == source_id:
                return source
        raise CatalogError(f"Unknown data source: {source_id}")

    def get_by_table(self, table: str) -> DataSource | None:
        """Find a source by physical table name (or by id as a fallback)."""
        for source in self.data_sources:
            if source.table == table:
                return source
        for source in self.data_sources:
            if source.id == table:
                return source
        return None

    def select(self, source_ids: list[str]) -> list[DataSource]:
        """Resolve a list of ids, keeping the caller's order."""
        return [self.get_data_source(source_id) for source_id in source_ids]
