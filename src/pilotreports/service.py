"""Main ReportingService interface for pilotreports."""

import logging
import time
from typing import Literal

from pilotreports.cache import ResultCache
from pilotreports.catalog.builtin import DEFAULT_CATALOG
from pilotreports.catalog.derive import get_available_dimensions, get_available_measures
from pilotreports.compiler.rpc import build_rpc_payload
from pilotreports.compiler.sql_builder import CompiledQuery, ReportQueryCompiler
from pilotreports.errors import BackendError, BackendFunctionMissing, ReportingError
from pilotreports.executor.base import ReportBackend
from pilotreports.executor.duckdb_backend import DuckDBBackend
from pilotreports.executor.supabase_backend import SupabaseBackend
from pilotreports.models.catalog import Catalog, DataSource
from pilotreports.models.report import Dimension, Measure, ReportConfig
from pilotreports.models.result import (
    AggregatedData,
    DataOrigin,
    FilterField,
    ResultMetadata,
    ResultShape,
)
from pilotreports.resolver.filter_fields import FilterFieldResolver
from pilotreports.results.normalizer import normalize_rows
from pilotreports.sample.generator import SampleDataGenerator
from pilotreports.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def backend_from_settings(settings: Settings) -> ReportBackend | None:
    """Supabase if it's configured, else a duckdb file if there is one, else nothing."""
    if settings.supabase_configured:
        return SupabaseBackend(
            settings.supabase_url,
            settings.supabase_key,
            timeout=settings.request_timeout,
        )
    if settings.duckdb_path:
        return DuckDBBackend(settings.duckdb_path)
    return None


class ReportingService:
    """Main interface for pilotreports.

    everything it needs is passed in - catalog, backend, settings, the
    sample generator and the cache - so tests can swap any of them.
    """

    def __init__(
        self,
        catalog: Catalog = DEFAULT_CATALOG,
        backend: ReportBackend | None = None,
        settings: Settings | None = None,
        generator: SampleDataGenerator | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        """Set up the service.

        Args:
            catalog: Data sources reports can use.
            backend: Where live queries go. None means sample data only.
            settings: Runtime settings, read from the environment if omitted.
            generator: Sample data generator (seed it for reproducible output).
            cache: Result cache. Built from settings when omitted.
        """
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.backend = backend
        self.compiler = ReportQueryCompiler(
            catalog,
            dialect=backend.dialect if backend else "duckdb",
            default_raw_limit=self.settings.raw_limit,
        )
        self.resolver = FilterFieldResolver(backend)
        self.generator = generator or SampleDataGenerator()

        if cache is None and self.settings.cache_enabled:
            cache = ResultCache(ttl_seconds=self.settings.cache_ttl)
        self.cache = cache

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, catalog: Catalog = DEFAULT_CATALOG
    ) -> "ReportingService":
        settings = settings or get_settings()
        return cls(catalog=catalog, backend=backend_from_settings(settings), settings=settings)

    # --- catalog ---

    def get_data_sources(self) -> list[DataSource]:
        return list(self.catalog.data_sources)

    def get_available_dimensions(self, sources: list[DataSource]) -> list[Dimension]:
        return get_available_dimensions(sources)

    def get_available_measures(self, sources: list[DataSource]) -> list[Measure]:
        return get_available_measures(sources)

    async def get_available_filter_fields(self, sources: list[DataSource]) -> list[FilterField]:
        return await self.resolver.get_available_filter_fields(sources)

    # --- queries ---

    def get_sql(self, config: ReportConfig) -> CompiledQuery:
        """Compile a report without running it."""
        return self.compiler.compile(config)

    def validate(self, config: ReportConfig) -> list[str]:
        """Check a report compiles. Returns a list of errors, empty if fine."""
        try:
            self.compiler.compile(config)
        except ReportingError as e:
            return [str(e)]
        return []

    async def execute_report(
        self, config: ReportConfig, mode: Literal["live", "sample"] | None = None
    ) -> AggregatedData:
        """Run a report.

        sample mode (or no backend at all) goes straight to the generator.
        live mode goes to the backend and only falls back to sample data if
        sample_fallback is on - and then says so in metadata.fallback_reason.
        """
        mode = mode or self.settings.mode
        if mode == "sample" or self.backend is None:
            if mode == "live":
                logger.warning("No backend configured, returning sample data")
            return self.generator.generate(config)

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.key_for(
                config, dialect=self.compiler.dialect, strategy=self.settings.query_strategy
            )
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        start = time.perf_counter()
        try:
            result = await self._execute_live(config)
        except BackendError as e:
            if not self.settings.sample_fallback:
                raise
            logger.warning("Backend query failed, returning sample data instead: %s", e)
            result = self.generator.generate(config)
            result.metadata.fallback_reason = str(e)
            return result

        result.execution_time_ms = round((time.perf_counter() - start) * 1000, 2)
        if cache_key is not None:
            self.cache.set(cache_key, result)
        return result

    async def _execute_live(self, config: ReportConfig) -> AggregatedData:
        # the structured rpc only handles aggregated single-table reports
        use_rpc = (
            self.settings.query_strategy == "rpc"
            and not config.is_raw
            and not self.compiler.requires_sql(config)
        )
        if use_rpc:
            try:
                return await self._execute_rpc(config)
            except BackendFunctionMissing as e:
                logger.warning("%s, falling back to sql", e)

        return await self._execute_sql(config)

    async def _execute_sql(self, config: ReportConfig) -> AggregatedData:
        compiled = self.compiler.compile(config)
        rows = await self.backend.execute_raw_sql(compiled.sql, compiled.params)
        records = normalize_rows(rows, config, compiled.shape)

        # an empty result is a real answer, it stays live
        return AggregatedData(
            data=records,
            total_count=len(records),
            filtered_count=len(records),
            origin=DataOrigin.LIVE,
            shape=compiled.shape,
            metadata=ResultMetadata(
                dimensions=config.dimensions,
                measures=config.measures,
                filters=config.all_filters(),
                sql=compiled.inline_sql,
            ),
        )

    async def _execute_rpc(self, config: ReportConfig) -> AggregatedData:
        response = await self.backend.execute_custom_report_query(
            build_rpc_payload(config), limit=self.settings.rpc_limit, offset=0
        )
        if not response.get("success"):
            raise BackendError(response.get("message") or "Report query failed")

        rows = response.get("data") or []
        records = normalize_rows(rows, config, ResultShape.AGGREGATED)
        return AggregatedData(
            data=records,
            total_count=len(records),
            filtered_count=len(records),
            origin=DataOrigin.LIVE,
            shape=ResultShape.AGGREGATED,
            metadata=ResultMetadata(
                dimensions=config.dimensions,
                measures=config.measures,
                filters=config.all_filters(),
            ),
        )

    # --- housekeeping ---

    def clear_caches(self) -> int:
        """Drop cached report results. Returns how many were removed."""
        if self.cache is None:
            return 0
        return self.cache.clear()

    async def aclose(self) -> None:
        if self.backend is not None:
            await self.backend.aclose()

    async def __aenter__(self) -> "ReportingService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
