"""Command-line interface for the map renderer."""

from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import configure_logging, get_config
from .models.analyse import AnalyseRequest, MessageLevel
from .models.render_request import RenderRequest, RenderType
from .models.topology import Topology
from .services.analyse_service import AnalyseError, analyse
from .services.html_service import render_html
from .services.png_service import PNGConverter
from .services.svg_service import MapRenderer
from .services.topology_service import TopologyService

console = Console()

LEVEL_STYLES = {
    MessageLevel.INFO: "dim",
    MessageLevel.WARN: "yellow",
    MessageLevel.ERROR: "red",
}


def _load(model, path: str):
    """Parse a json file into a model, exiting with an error message if it is invalid."""
    try:
        return model.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid {model.__name__} in {path}")
        for err in e.errors():
            location = ".".join(str(part) for part in err["loc"]) or "(root)"
            console.print(f"  {escape(location)}: {escape(err['msg'])}")
        raise SystemExit(1)


@click.group()
@click.version_option(version="0.1.0")
def main():
    """maprender - choropleth maps and natural breaks."""
    configure_logging(get_config().log_level)


@main.command()
@click.argument("request_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--type", "-t", "render_type",
    type=click.Choice([t.value for t in RenderType]),
    default=RenderType.SVG.value,
    help="Image format used in the figure",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Output html file (default: stdout)")
def render(request_path: str, render_type: str, output: Optional[str]):
    """Render the map described by a json render request."""
    request = _load(RenderRequest, request_path)

    config = get_config()
    converter = PNGConverter.from_config(config)
    if render_type == RenderType.PNG.value and converter is None:
        console.print("[yellow]Warning:[/yellow] No png command configured, rendering svg instead")

    renderer = MapRenderer(converter, config.default_width)
    html = render_html(request, renderer, RenderType(render_type))

    if output:
        Path(output).write_text(html, encoding="utf-8")
        console.print(f"[green]Saved:[/green] {output}")
    else:
        click.echo(html)


@main.command(name="analyse")
@click.argument("request_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the json response to a file")
def analyse_command(request_path: str, output: Optional[str]):
    """Check csv data against a topology and suggest natural breaks."""
    request = _load(AnalyseRequest, request_path)

    try:
        response = analyse(request)
    except AnalyseError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    for message in response.messages:
        style = LEVEL_STYLES[message.level]
        console.print(f"[{style}]{message.level.value.upper()}:[/{style}] {escape(message.text)}")

    if response.data:
        console.print(
            f"\n[bold]Rows:[/bold] {len(response.data)}  "
            f"[bold]Range:[/bold] {response.min_value:g} to {response.max_value:g}"
        )

    table = Table(title="Natural breaks")
    table.add_column("Classes", justify="right")
    table.add_column("Breaks")
    table.add_column("Best fit", justify="center")
    for class_count, breaks in enumerate(response.breaks, start=2):
        text = ", ".join(f"{b:g}" for b in breaks) if breaks else "[dim]not enough distinct values[/dim]"
        marker = "[green]*[/green]" if class_count == response.best_fit_class_count else ""
        table.add_row(str(class_count), text, marker)
    console.print(table)

    if output:
        Path(output).write_text(response.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[green]Saved:[/green] {output}")


@main.command()
@click.argument("topojson_path", type=click.Path(exists=True, dir_okay=False))
def info(topojson_path: str):
    """Show the objects and extent of a topojson file."""
    topology = _load(Topology, topojson_path)

    table = Table(title=f"Topology: {Path(topojson_path).name}")
    table.add_column("Object")
    table.add_column("Type")
    table.add_column("Geometries", justify="right")
    for name, geometry in topology.objects.items():
        count = len(geometry.geometries) if geometry.geometries is not None else 1
        table.add_row(name, geometry.type.value if geometry.type else "-", str(count))
    console.print(table)

    service = TopologyService()
    features = service.decode(topology)
    console.print(f"\n[bold]Arcs:[/bold] {len(topology.arcs)}")
    console.print(f"[bold]Regions:[/bold] {len(features)}")
    bounds = service.bounds(features)
    if bounds is not None:
        min_x, min_y, max_x, max_y = bounds
        console.print(f"[bold]Bounds:[/bold] {min_y:.4f}N to {max_y:.4f}N, {min_x:.4f}E to {max_x:.4f}E")
    else:
        console.print("[yellow]Warning:[/yellow] Topology has no drawable geometry")
