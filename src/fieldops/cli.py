"""Management commands for the fieldops service."""

import asyncio
from datetime import datetime
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from .application.context import RequestContext
from .application.services import AddFieldMeasurementRequest
from .bootstrap import Container
from .config.settings import get_settings
from .domain.exceptions import FieldOpsDomainException
from .domain.types import HealthStatus, utc_now
from .infrastructure.database.connection import (
    close_database_engine,
    create_all_tables,
    drop_all_tables,
)

app = typer.Typer(help="Management utility for the fieldops service")
console = Console()

STATUS_STYLES = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.DEGRADED: "yellow",
    HealthStatus.UNHEALTHY: "red",
    HealthStatus.UNKNOWN: "white",
}


@app.command()
def create_tables():
    """Create all database tables."""
    async def _create():
        try:
            await create_all_tables(get_settings())
        finally:
            await close_database_engine()

    asyncio.run(_create())
    console.print("[green]✓ Tables created[/green]")


@app.command()
def drop_tables(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt")
):
    """Drop all database tables."""
    if not yes and not typer.confirm("This deletes all data. Continue?"):
        raise typer.Abort()

    async def _drop():
        try:
            await drop_all_tables(get_settings())
        finally:
            await close_database_engine()

    asyncio.run(_drop())
    console.print("[yellow]Tables dropped[/yellow]")


@app.command()
def health():
    """Check every dependency and print a status table."""
    async def _check():
        container = Container(get_settings())
        try:
            return await container.health_service().check_health()
        finally:
            await container.close()

    report = asyncio.run(_check())

    table = Table(title=f"Health: {report.status.value} (v{report.version})")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Response (ms)", justify="right")
    table.add_column("Description")

    for name, component in report.components.items():
        style = STATUS_STYLES[component.status]
        table.add_row(
            name,
            f"[{style}]{component.status.value}[/{style}]",
            "" if component.response_time_ms is None else str(component.response_time_ms),
            component.description or "",
        )

    console.print(table)
    if report.status is HealthStatus.UNHEALTHY:
        raise typer.Exit(1)


@app.command()
def ingest(
    field_id: UUID = typer.Argument(..., help="Field identifier"),
    soil_moisture: float = typer.Option(..., help="Soil moisture (%)"),
    air_temperature: float = typer.Option(..., help="Air temperature (°C)"),
    precipitation: float = typer.Option(0.0, help="Precipitation (mm)"),
    collected_at: Optional[datetime] = typer.Option(None, help="Collection time, defaults to now (UTC)"),
    alert_recipient: Optional[str] = typer.Option(None, help="Email that receives field alerts"),
    correlation_id: Optional[str] = typer.Option(None, help="Correlation id stamped on notifications"),
):
    """Record a field measurement and run the alert pipeline."""
    request = AddFieldMeasurementRequest(
        field_id=field_id,
        soil_moisture=soil_moisture,
        air_temperature=air_temperature,
        precipitation=precipitation,
        collected_at=collected_at or utc_now(),
        alert_recipient=alert_recipient,
    )
    settings = get_settings()
    context = RequestContext(correlation_id=correlation_id, service_name=settings.service_name)

    async def _ingest():
        container = Container(settings)
        try:
            async with container.session() as session:
                return await container.measurement_service(session).add_measurement(request, context)
        finally:
            await container.close()

    try:
        measurement = asyncio.run(_ingest())
    except FieldOpsDomainException as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Measurement {measurement.id} recorded for field {measurement.field_id}[/green]")


if __name__ == "__main__":
    app()
