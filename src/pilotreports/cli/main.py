"""CLI for pilotreports."""

import asyncio
import json
import logging
import random
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from pilotreports.catalog.builtin import DEFAULT_CATALOG
from pilotreports.compiler.sql_builder import ReportQueryCompiler
from pilotreports.executor.duckdb_backend import DuckDBBackend
from pilotreports.models.catalog import Catalog, DataSource
from pilotreports.models.report import ReportConfig
from pilotreports.models.result import AggregatedData
from pilotreports.parser.loader import load_catalog, load_report_config
from pilotreports.resolver.filter_fields import FilterFieldResolver
from pilotreports.sample.generator import SampleDataGenerator
from pilotreports.service import ReportingService, backend_from_settings
from pilotreports.settings import get_settings

app = typer.Typer(
    name="pilot-reports",
    help="pilotreports - pilot program reporting CLI",
    no_args_is_help=True,
)
console = Console()

CatalogOption = Annotated[
    Path | None, typer.Option("--catalog", "-c", help="Catalog YAML (defaults to the built-in one)")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    level = "DEBUG" if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def get_catalog(path: Path | None) -> Catalog:
    return load_catalog(path) if path else DEFAULT_CATALOG


def _load(report: Path, catalog_path: Path | None) -> tuple[Catalog, ReportConfig]:
    try:
        catalog = get_catalog(catalog_path)
        config = load_report_config(report, catalog)
    except Exception as e:
        console.print(f"[red]Error loading report: {e}[/red]")
        raise typer.Exit(1)
    return catalog, config


def _split(value: str | None) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else []


@app.command("list")
def list_items(
    item_type: Annotated[str, typer.Argument(help="Type: sources, dimensions, or measures")],
    sources: Annotated[
        str | None, typer.Option("--source", "-s", help="Comma-separated source ids")
    ] = None,
    catalog_path: CatalogOption = None,
) -> None:
    """List data sources, dimensions, or measures."""
    try:
        catalog = get_catalog(catalog_path)
        selected = catalog.select(_split(sources)) if sources else list(catalog.data_sources)
    except Exception as e:
        console.print(f"[red]Error loading catalog: {e}[/red]")
        raise typer.Exit(1)

    service = ReportingService(catalog=catalog, settings=get_settings())

    if item_type == "sources":
        _list_sources(selected)
    elif item_type == "dimensions":
        _list_dimensions(service, selected)
    elif item_type == "measures":
        _list_measures(service, selected)
    else:
        console.print(f"[red]Unknown type: {item_type}. Use: sources, dimensions, measures[/red]")
        raise typer.Exit(1)


def _list_sources(sources: list[DataSource]) -> None:
    if not sources:
        console.print("[yellow]No data sources defined[/yellow]")
        return

    table = Table(title="Data Sources")
    table.add_column("ID", style="cyan")
    table.add_column("Table", style="green")
    table.add_column("Fields", justify="right")
    table.add_column("Description")

    for source in sources:
        table.add_row(source.id, source.table, str(len(source.fields)), source.description or "-")

    console.print(table)


def _list_dimensions(service: ReportingService, sources: list[DataSource]) -> None:
    table = Table(title="Dimensions")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type", style="green")
    table.add_column("Source", style="yellow")

    for dim in service.get_available_dimensions(sources):
        table.add_row(dim.id, dim.display_name, dim.data_type.value, dim.data_source or dim.source)

    console.print(table)


def _list_measures(service: ReportingService, sources: list[DataSource]) -> None:
    table = Table(title="Measures")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Aggregation", style="green")
    table.add_column("Source", style="yellow")

    for measure in service.get_available_measures(sources):
        table.add_row(measure.id, measure.display_name, measure.aggregation.value, measure.source)

    console.print(table)


@app.command("filter-fields")
def filter_fields(
    sources: Annotated[str, typer.Argument(help="Comma-separated source ids, main source first")],
    db_path: Annotated[str | None, typer.Option("--db", help="DuckDB database to introspect")] = None,
    catalog_path: CatalogOption = None,
) -> None:
    """Show the fields a report on these sources can filter on."""
    try:
        selected = get_catalog(catalog_path).select(_split(sources))
    except Exception as e:
        console.print(f"[red]Error loading catalog: {e}[/red]")
        raise typer.Exit(1)

    async def resolve():
        backend = DuckDBBackend(db_path) if db_path else None
        try:
            return await FilterFieldResolver(backend).get_available_filter_fields(selected)
        finally:
            if backend is not None:
                await backend.aclose()

    fields = asyncio.run(resolve())

    table = Table(title=f"Filter Fields ({len(fields)})")
    table.add_column("ID", style="cyan")
    table.add_column("Display Name")
    table.add_column("Type", style="green")
    table.add_column("Joins", style="yellow")

    for f in fields:
        joins = " -> ".join(step.to_table for step in f.relationship_path or []) or "-"
        table.add_row(f.id, f.display_name, f.data_type.value, joins)

    console.print(table)


@app.command("show-sql")
def show_sql(
    report: Annotated[Path, typer.Argument(help="Report YAML file")],
    dialect: Annotated[
        str, typer.Option("--dialect", help="SQL dialect: duckdb or postgres")
    ] = "duckdb",
    catalog_path: CatalogOption = None,
) -> None:
    """Show generated SQL without executing."""
    catalog, config = _load(report, catalog_path)

    try:
        compiled = ReportQueryCompiler(catalog, dialect=dialect).compile(config)
    except Exception as e:
        console.print(f"[red]Error generating SQL: {e}[/red]")
        raise typer.Exit(1)

    syntax = Syntax(compiled.inline_sql, "sql", theme="monokai", line_numbers=True)
    console.print(syntax)


@app.command()
def run(
    report: Annotated[Path, typer.Argument(help="Report YAML file")],
    db_path: Annotated[str | None, typer.Option("--db", help="DuckDB database path")] = None,
    sample: Annotated[bool, typer.Option("--sample", help="Use generated sample data")] = False,
    seed: Annotated[int | None, typer.Option("--seed", help="Seed for sample data")] = None,
    output: Annotated[str, typer.Option("--output", "-o", help="Output format: table, json")] = "table",
    catalog_path: CatalogOption = None,
) -> None:
    """Run a report and print the results."""
    catalog, config = _load(report, catalog_path)
    settings = get_settings()

    backend = DuckDBBackend(db_path) if db_path else backend_from_settings(settings)
    generator = SampleDataGenerator(random.Random(seed)) if seed is not None else None
    service = ReportingService(catalog=catalog, backend=backend, settings=settings, generator=generator)

    async def execute() -> AggregatedData:
        async with service:
            return await service.execute_report(config, mode="sample" if sample else None)

    try:
        result = asyncio.run(execute())
    except Exception as e:
        console.print(f"[red]Report error: {e}[/red]")
        raise typer.Exit(1)

    _output_result(config, result, output)


def _output_result(config: ReportConfig, result: AggregatedData, output_format: str) -> None:
    """Output a report result in the specified format."""
    if output_format == "json":
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2, default=str))
        return

    if result.is_sample:
        console.print("[yellow]Showing sample data, not live results[/yellow]")
    if result.metadata.fallback_reason:
        console.print(f"[yellow]Backend failed: {result.metadata.fallback_reason}[/yellow]")

    dim_keys = list(result.data[0].dimensions) if result.data else config.dimension_keys()
    measure_keys = config.measure_keys()

    table = Table(
        title=f"{config.name} ({result.total_count} rows, {result.execution_time_ms:.1f}ms)"
    )
    for col in dim_keys + measure_keys:
        table.add_column(col)

    for record in result.data:
        values = [str(record.dimensions.get(k, "")) for k in dim_keys]
        values += [
            "-" if record.measures.get(k) is None else f"{record.measures[k]:.2f}" for k in measure_keys
        ]
        table.add_row(*values)

    console.print(table)


@app.command()
def validate(
    report: Annotated[Path, typer.Argument(help="Report YAML file")],
    catalog_path: CatalogOption = None,
) -> None:
    """Check that a report loads and compiles."""
    catalog, config = _load(report, catalog_path)

    errors = ReportingService(catalog=catalog, settings=get_settings()).validate(config)

    if errors:
        console.print("[red]Validation failed:[/red]")
        for error in errors:
            console.print(f"  - {error}")
        raise typer.Exit(1)
    else:
        console.print(
            f"[green]Report '{config.name}' is valid "
            f"({len(config.dimensions)} dimensions, {len(config.measures)} measures)[/green]"
        )


if __name__ == "__main__":
    app()
