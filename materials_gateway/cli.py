"""
Materials gateway CLI.

This module provides a Typer-based CLI around MaterialsGateway: run the HTTP
service, or query the catalog directly from a terminal.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from materials_gateway.datasets import DATASETS
from materials_gateway.errors import MaterialsAPIError
from materials_gateway.normalizer import normalize_detail_request, normalize_search_params
from materials_gateway.schemas import MaterialsPage
from materials_gateway.service import MaterialsGateway
from materials_gateway.settings import GatewaySettings

app = typer.Typer(
    name="materials-gateway",
    help="Materials Project search and detail gateway",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging to stderr with timestamp."""
    settings = GatewaySettings.get_instance()
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.INFO)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.getLogger("materials_gateway").setLevel(level)
    logging.getLogger("materials_gateway").addHandler(handler)


def _fmt(value: Optional[float], digits: int = 3) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


def _render_page(page: MaterialsPage) -> None:
    table = Table(title=f"Materials (showing {len(page.data)} of {page.meta.total_doc})")
    table.add_column("ID", style="cyan")
    table.add_column("Formula", style="bold")
    table.add_column("Crystal system")
    table.add_column("E hull (eV/atom)", justify="right")
    table.add_column("Band gap (eV)", justify="right")
    table.add_column("Density", justify="right")
    table.add_column("Stable", justify="center")

    for summary in page.data:
        symmetry = summary.symmetry
        table.add_row(
            summary.material_id,
            summary.formula_pretty or "",
            (symmetry.crystal_system if symmetry else None) or "-",
            _fmt(summary.energy_above_hull),
            _fmt(summary.band_gap),
            _fmt(summary.density),
            "✓" if summary.is_stable else "",
        )

    console.print(table)
    if page.meta.message:
        console.print(f"[yellow]{page.meta.message}[/yellow]")


async def _search(raw: dict[str, Any]) -> MaterialsPage:
    async with MaterialsGateway() as gateway:
        return await gateway.search_materials(normalize_search_params(raw))


async def _detail(material_id: str, raw: dict[str, Any]) -> dict[str, Any]:
    request = normalize_detail_request(material_id, raw)
    async with MaterialsGateway() as gateway:
        response = await gateway.get_material_detail(request)
    return response.to_dict()


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Run the HTTP gateway."""
    import uvicorn

    _setup_logging(verbose)
    uvicorn.run(
        "materials_gateway.api:create_app",
        factory=True,
        host=host,
        port=port,
        log_level="debug" if verbose else "info",
    )


@app.command()
def search(
    formula: Optional[str] = typer.Option(None, help="Formula, e.g. LiFePO4"),
    chemsys: Optional[str] = typer.Option(None, help="Chemical system, e.g. Li-Fe-O"),
    elements: Optional[str] = typer.Option(None, help="Required elements (comma separated)"),
    exclude: Optional[str] = typer.Option(None, help="Excluded elements (comma separated)"),
    band_gap_min: Optional[float] = typer.Option(None, help="Minimum band gap (eV)"),
    band_gap_max: Optional[float] = typer.Option(None, help="Maximum band gap (eV)"),
    include_unstable: bool = typer.Option(
        False, "--include-unstable", help="Also return materials above the hull"
    ),
    sort: str = typer.Option("energy_above_hull", help="Sort field"),
    desc: bool = typer.Option(False, "--desc", help="Sort descending"),
    page: int = typer.Option(1, help="Page number"),
    page_size: int = typer.Option(18, help="Results per page (6-60)"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """
    Search the catalog.

    Examples:
        materials-gateway search --formula LiFePO4
        materials-gateway search --elements Li,O --band-gap-min 1 --sort band_gap --desc
    """
    _setup_logging(verbose)
    raw: dict[str, Any] = {
        "formula": formula,
        "chemsys": chemsys,
        "elements": elements,
        "excludeElements": exclude,
        "bandGapMin": band_gap_min,
        "bandGapMax": band_gap_max,
        "sortField": sort,
        "sortOrder": "desc" if desc else "asc",
        "page": page,
        "pageSize": page_size,
    }
    if include_unstable:
        raw["isStable"] = False

    try:
        result = asyncio.run(_search(raw))
    except MaterialsAPIError as e:
        console.print(f"[red]Search failed ({e.status_code}):[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(result.to_dict()))
    else:
        _render_page(result)


@app.command()
def detail(
    material_id: str = typer.Argument(..., help="Material id, e.g. mp-149"),
    datasets: Optional[str] = typer.Option(None, help="Datasets (comma separated)"),
    task_ids: Optional[str] = typer.Option(None, "--task-ids", help="Task ids (comma separated)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Fetch datasets for one material and print them as JSON."""
    _setup_logging(verbose)
    try:
        result = asyncio.run(_detail(material_id, {"datasets": datasets, "taskIds": task_ids}))
    except MaterialsAPIError as e:
        console.print(f"[red]Detail request failed ({e.status_code}):[/red] {e}")
        raise typer.Exit(1)

    console.print_json(json.dumps(result))


@app.command(name="datasets")
def list_datasets() -> None:
    """List the available datasets."""
    table = Table(title="Datasets")
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Endpoint")
    table.add_column("Cardinality")
    table.add_column("Limit", justify="right")

    for descriptor in DATASETS.values():
        table.add_row(
            descriptor.key,
            descriptor.label,
            descriptor.path,
            descriptor.cardinality.value,
            str(descriptor.result_limit),
        )

    console.print(table)


if __name__ == "__main__":
    app()
