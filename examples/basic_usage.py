"""Basic usage example for pilotreports."""

import asyncio
import random
from pathlib import Path

from pilotreports import DEFAULT_CATALOG, ReportingService
from pilotreports.parser.loader import load_report_config
from pilotreports.sample.generator import SampleDataGenerator
from pilotreports.settings import Settings

REPORT = Path(__file__).parent / "growth_by_placement.yaml"


async def main():
    """Walk through the catalog, the generated SQL and a sample run."""
    settings = Settings(mode="sample")
    service = ReportingService(settings=settings, generator=SampleDataGenerator(random.Random(1)))

    print("=" * 60)
    print("pilotreports demo")
    print("=" * 60)

    # 1. What can be reported on
    print("\n1. Data sources:")
    for source in service.get_data_sources():
        print(f"   {source.id} ({source.table}, {len(source.fields)} fields)")

    petri = DEFAULT_CATALOG.get_data_source("petri_observations")
    print(f"\n2. Petri dimensions: {len(service.get_available_dimensions([petri]))}")
    print(f"   Petri measures: {len(service.get_available_measures([petri]))}")

    # 3. Filter fields, including ones on related tables
    fields = await service.get_available_filter_fields([petri])
    related = [f for f in fields if f.target_table]
    print(f"\n3. Filter fields: {len(fields)} ({len(related)} from related tables)")
    for f in related[:3]:
        print(f"   {f.display_name}")

    # 4. The SQL a saved report compiles to
    config = load_report_config(REPORT, DEFAULT_CATALOG)
    print(f"\n4. SQL for '{config.name}':")
    print(service.get_sql(config).inline_sql)

    # 5. Run it on sample data
    result = await service.execute_report(config)
    print(f"\n5. {result.total_count} {result.origin.value} records, first three:")
    for record in result.data[:3]:
        print(f"   {record.dimensions} -> {record.measures}")

    print("\n" + "=" * 60)
    await service.aclose()


if __name__ == "__main__":
    asyncio.run(main())
