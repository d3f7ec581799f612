"""Rich terminal output for overlays and marker resolution."""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from pageoverlay.models import KINDS, BoundingRegion, OverlayDescriptor
from pageoverlay.session import ViewState

console = Console()

KIND_STYLES = {"formula": "red", "figure": "green", "table": "blue", "reference": "cyan"}


def _region_label(region: BoundingRegion) -> str:
    return (f"p.{region.page} ({region.x:.1f}, {region.y:.1f}) "
            f"{region.w:.1f}x{region.h:.1f}")


def _overlay_line(o: OverlayDescriptor) -> str:
    style = KIND_STYLES.get(o.kind, "white")
    r = o.pixel_rect
    geometry = f"[dim]px ({r.x:.0f}, {r.y:.0f}) {r.w:.0f}x{r.h:.0f}[/dim]"
    if o.is_entity_body:
        name = o.anchor_id or "[dim](no id)[/dim]"
        line = f"  [{style}]{o.kind}[/{style}] {name} {geometry}"
        if o.href:
            line += f" [dim]→ {o.href}[/dim]"
        return line

    if o.resolved:
        line = f"  [{style}]{o.kind} marker[/{style}] → {o.target_id} {geometry}"
        if o.preview_region is not None:
            line += f" [dim]target {_region_label(o.preview_region)}[/dim]"
        return line
    return f"  [dim]{o.kind} marker (unresolved)[/dim] {geometry}"


def render_header(title: str, state: ViewState) -> None:
    """Print the document name and page count."""
    subtitle = Text(f"{len(state.pages)} page(s) · {len(state.overlays)} overlay(s)", style="dim")
    console.print()
    console.print(Panel(
        Text.assemble(Text(title, style="bold white"), "\n", subtitle),
        border_style="blue",
        padding=(0, 2),
    ))
    console.print()


def render_overlay_list(
    overlays: list[OverlayDescriptor], kind: str | None = None, bodies: bool = True,
) -> None:
    """List overlays grouped by page."""
    shown = [o for o in overlays if (kind is None or o.kind == kind)
             and (bodies or not o.is_entity_body)]
    if not shown:
        label = kind or "annotation"
        console.print(f"  [dim]No {label} overlays.[/dim]")
        console.print()
        return

    current_page = None
    for o in sorted(shown, key=lambda o: o.page):
        if o.page != current_page:
            current_page = o.page
            console.print(f"[bold cyan]Page {o.page}[/bold cyan]")
        console.print(_overlay_line(o))

    console.print()
    console.print(f"  [dim]{len(shown)} overlay(s)[/dim]")
    console.print()


def render_marker_report(state: ViewState, kind: str | None = None) -> None:
    """Summarize marker resolution per kind, then list unresolved markers."""
    markers = [o for o in state.overlays if not o.is_entity_body]
    kinds = [kind] if kind else list(KINDS)

    resolved = Counter(o.kind for o in markers if o.resolved)
    unresolved = Counter(o.kind for o in markers if not o.resolved)
    for k in kinds:
        style = KIND_STYLES.get(k, "white")
        total = resolved[k] + unresolved[k]
        console.print(f"  [bold {style}]{k}[/bold {style}] "
                      f"{resolved[k]}/{total} resolved")
    console.print()

    for o in markers:
        if o.kind in kinds:
            console.print(_overlay_line(o))
    console.print()


def render_summary(state: ViewState, output: Path | None = None) -> None:
    bodies = sum(1 for o in state.overlays if o.is_entity_body)
    console.print(f"  Entity fragments: {bodies}")
    console.print(f"  Markers: {state.resolved_markers} resolved, "
                  f"{state.unresolved_markers} unresolved")
    previews = sum(1 for o in state.overlays if o.preview_image is not None)
    console.print(f"  Previews: {previews}")
    if output is not None:
        console.print(f"  [dim]Viewer written to {output}[/dim]")
    console.print()
