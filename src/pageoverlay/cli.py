"""CLI entry point for the overlay tool."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from pageoverlay.models import KINDS, AnnotationResponse, read_payload
from pageoverlay.registry import build_registry, target_region
from pageoverlay.renderer import (
    render_header,
    render_marker_report,
    render_overlay_list,
    render_summary,
)
from pageoverlay.session import ViewState, process_response
from pageoverlay.surface import PdfSurfaceProvider
from pageoverlay.viewer import AnchorNavigator, HtmlSink

console = Console()

KIND_CHOICE = click.Choice(list(KINDS))


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _render_scale(scale: float | None) -> float:
    from pageoverlay.config import get_render_scale
    return scale if scale is not None else get_render_scale()


def _previews(no_previews: bool) -> bool:
    from pageoverlay.config import previews_enabled
    return previews_enabled() and not no_previews


def _process(pdf: Path, response: Path, scale: float | None = None,
             previews: bool = False) -> ViewState:
    """Render the PDF and build overlays without writing anything."""
    payload = read_payload(response)
    with PdfSurfaceProvider(pdf, scale=_render_scale(scale)) as surfaces:
        return process_response(payload, surfaces, with_previews=previews)


@click.group()
@click.version_option(package_name="page-overlay-cli")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log skipped fragments and markers.")
def cli(verbose: bool):
    """overlay - Draw extracted references, figures, tables and formulas over PDF pages."""
    _setup_logging(verbose)


@cli.command()
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("response", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Output HTML file (default: <pdf name>.overlay.html).")
@click.option("--scale", type=float, default=None, help="Render zoom (default: PAGEOVERLAY_RENDER_SCALE or 1.5).")
@click.option("--no-previews", is_flag=True, default=False, help="Skip hover previews for markers.")
def render(pdf: Path, response: Path, output: Path | None, scale: float | None, no_previews: bool):
    """Write an HTML viewer with annotations drawn over each page.

    PDF: the source document
    RESPONSE: the annotation response (JSON) for that document
    """
    output = output or pdf.with_suffix(".overlay.html")
    try:
        payload = read_payload(response)
        with PdfSurfaceProvider(pdf, scale=_render_scale(scale)) as surfaces:
            sink = HtmlSink(surfaces, surfaces.page_numbers(), title=pdf.name)
            state = process_response(payload, surfaces, navigator=AnchorNavigator(), sink=sink,
                                     with_previews=_previews(no_previews))
            sink.write(output)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    render_header(pdf.name, state)
    render_summary(state, output)


@cli.command("list")
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("response", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--kind", "-k", type=KIND_CHOICE, default=None, help="Only show one kind.")
@click.option("--bodies/--no-bodies", default=True, help="Include entity fragments (default: yes).")
@click.option("--scale", type=float, default=None, help="Render zoom used for pixel coordinates.")
def list_overlays(pdf: Path, response: Path, kind: str | None, bodies: bool, scale: float | None):
    """List overlay regions in pixel coordinates.

    PDF: the source document
    RESPONSE: the annotation response (JSON) for that document
    """
    try:
        state = _process(pdf, response, scale=scale)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    render_header(pdf.name, state)
    render_overlay_list(state.overlays, kind=kind, bodies=bodies)


@cli.command()
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("response", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--kind", "-k", type=KIND_CHOICE, default=None, help="Only report one kind.")
def markers(pdf: Path, response: Path, kind: str | None):
    """Report which markers resolve to an entity.

    PDF: the source document
    RESPONSE: the annotation response (JSON) for that document
    """
    try:
        state = _process(pdf, response)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    render_header(pdf.name, state)
    render_marker_report(state, kind=kind)


@cli.command()
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("response", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("kind", type=KIND_CHOICE)
@click.argument("entity_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Output PNG (default: <kind>-<id>.png).")
@click.option("--scale", type=float, default=None, help="Render zoom (default: PAGEOVERLAY_RENDER_SCALE or 1.5).")
def preview(pdf: Path, response: Path, kind: str, entity_id: str, output: Path | None, scale: float | None):
    """Save the image a marker shows on hover for one entity.

    PDF: the source document
    RESPONSE: the annotation response (JSON) for that document
    KIND: formula, figure, table or reference
    ENTITY_ID: the entity id, e.g. b12 or fig_3
    """
    from pageoverlay.geometry import CoordinateMapper
    from pageoverlay.pages import PageMetadataStore

    output = output or Path(f"{kind}-{entity_id}.png")
    try:
        parsed = AnnotationResponse.load(response)
        entity = build_registry(parsed.entities_of(kind)).get(entity_id)
        if entity is None:
            console.print(f"[red]No {kind} with id \"{entity_id}\".[/red]")
            raise SystemExit(1)

        region = target_region(entity)
        with PdfSurfaceProvider(pdf, scale=_render_scale(scale)) as surfaces:
            mapper = CoordinateMapper(PageMetadataStore(parsed.pages), surfaces)
            rect = mapper.to_pixels(region.page, region)
            png = surfaces.get_surface(region.page).crop_region(rect.x, rect.y, rect.w, rect.h)
        output.write_bytes(png)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    console.print(f"  [bold green]{kind} {entity_id}[/bold green] on page {region.page}")
    console.print(f"  [dim]Saved to {output}[/dim]")
    console.print()


# --- Settings ---

@cli.group(invoke_without_command=True)
@click.pass_context
def env(ctx):
    """Show or configure settings.

    Run without arguments to see current status.
    Use `overlay env set NAME value` to save a setting to ~/.pageoverlay/.env.
    """
    if ctx.invoked_subcommand is not None:
        return

    from pageoverlay.config import PERSISTENT_ENV, check_env

    console.print("Settings:")
    console.print()
    for var, is_set, info in check_env():
        status = "[green]set[/green]" if is_set else f"[dim]default ({info['default']})[/dim]"
        console.print(f"  {var}: {status}")
        console.print(f"    [dim]{info['description']}[/dim]")
    console.print()
    console.print(f"  [dim]Persistent config: {PERSISTENT_ENV}[/dim]")
    console.print()


@env.command("set")
@click.argument("name")
@click.argument("value")
def env_set(name: str, value: str):
    """Save a setting to ~/.pageoverlay/.env."""
    from pageoverlay.config import save_setting

    try:
        path = save_setting(name, value)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print(f"  [green]Saved {name}[/green] to {path}")
