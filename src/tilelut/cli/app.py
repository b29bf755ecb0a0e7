"""TileLUT CLI application.

Commands:
    generate    - Generate the identity tile pattern PNG
    preview     - Render a small preview of the pattern layout
    dims        - Show pattern dimensions and warnings for N/M/layout
    filter      - Apply a per-pixel filter script to a PNG
    test-filter - Run a filter script on a single color
    detect      - Detect N/M/layout from a processed pattern PNG
    extract     - Extract a .cube LUT from a processed pattern PNG
    cube-info   - Summarize a .cube file
"""

from __future__ import annotations

import logging
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from tilelut import __version__
from tilelut.config import DEFAULT_FILTER_SCRIPT, DEFAULT_MAX_DIMENSION, MAX_GENERATE_N
from tilelut.core.types import CancelToken, Layout
from tilelut.errors import TileLutError

app = typer.Typer(
    name="tilelut",
    help="Capture 3D LUTs by round-tripping a tiled identity pattern image.",
    no_args_is_help=True,
)
console = Console()

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)


def version_callback(value: bool):
    if value:
        console.print(f"TileLUT v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", "-V", help="Show version and exit.",
        callback=version_callback, is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    if verbose:
        logging.getLogger("tilelut").setLevel(logging.DEBUG)


def _parse_layout(layout: str) -> Layout:
    try:
        return Layout(layout.strip().lower())
    except ValueError:
        raise typer.BadParameter("Layout must be one of: tall, wide.")


def _read_script(script_file: Optional[Path], code: Optional[str]) -> str:
    """Resolve --script / --code into filter source text."""
    from tilelut.pipeline.filter import load_script

    if script_file is not None and code is not None:
        raise typer.BadParameter("Use either --script or --code, not both.")
    if script_file is not None:
        try:
            return load_script(script_file)
        except (FileNotFoundError, TileLutError) as e:
            raise typer.BadParameter(str(e)) from e
    if code is not None:
        return code
    return DEFAULT_FILTER_SCRIPT


@contextmanager
def _cancel_on_interrupt():
    """Turn Ctrl-C into cooperative cancellation for the duration of a job."""
    token = CancelToken()
    previous = signal.getsignal(signal.SIGINT)

    def handler(signum, frame):
        token.cancel()

    try:
        signal.signal(signal.SIGINT, handler)
    except ValueError:
        # Not on the main thread; cancellation stays manual
        previous = None
    try:
        yield token
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


def _run_with_progress(description: str, job, **kwargs):
    """Run a runner job under a rich progress bar with Ctrl-C cancellation."""
    with _cancel_on_interrupt() as token, Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(description, total=100)

        def on_progress(stage: str, fraction: float, message: str):
            progress.update(
                task,
                completed=fraction * 100,
                description=f"{stage}: {message}" if message else stage,
            )

        try:
            result = job(progress_callback=on_progress, cancel_check=token, **kwargs)
            progress.update(task, completed=100, description="Complete")
        except (TileLutError, OSError) as e:
            console.print(f"\n[red]Error:[/red] {e}")
            raise typer.Exit(code=1)
    return result


@app.command()
def generate(
    n: int = typer.Option(17, "-n", "--lattice", help=f"Lattice size N (2-{MAX_GENERATE_N})."),
    m: int = typer.Option(4, "-m", "--tile-size", help="Tile size M in pixels."),
    layout: str = typer.Option("tall", "-l", "--layout", help="Layout: tall or wide."),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output PNG path."),
    max_dim: int = typer.Option(
        DEFAULT_MAX_DIMENSION, "--max-dim", min=1,
        help="Largest image side the target application supports.",
    ),
):
    """Generate the identity tile pattern PNG."""
    from tilelut.core.geometry import compute_dims
    from tilelut.pipeline.runner import run_generate

    lay = _parse_layout(layout)
    dims = compute_dims(n, m, lay)

    console.print(f"\n[bold]TileLUT Pattern Generation[/bold]")
    console.print(f"  Lattice: {n}^3 = {n**3:,} tiles")
    console.print(f"  Tiles:   {dims.tiles_w:,}x{dims.tiles_h:,} ({lay.value})")
    console.print(f"  Image:   {dims.width:,}x{dims.height:,} px")
    console.print()

    result = _run_with_progress(
        "Generating pattern...", run_generate,
        N=n, M=m, layout=lay, output_path=output, max_dimension=max_dim,
    )

    for w in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {w}")
    console.print(f"[green]Saved:[/green] {result.output_path}")
    console.print(f"\n[dim]Process this image with your editor or filter,[/dim]")
    console.print(f"[dim]then use 'tilelut extract' to recover the LUT.[/dim]\n")


@app.command()
def preview(
    n: int = typer.Option(17, "-n", "--lattice", help="Lattice size N."),
    layout: str = typer.Option("tall", "-l", "--layout", help="Layout: tall or wide."),
    output: Path = typer.Option("tile_lut_preview.png", "-o", "--output", help="Output PNG path."),
):
    """Render a small preview of the pattern layout."""
    from tilelut.core.geometry import validate_lattice_size
    from tilelut.io.image import save_png
    from tilelut.pipeline.pattern import render_preview

    lay = _parse_layout(layout)
    try:
        validate_lattice_size(n)
        path = save_png(render_preview(n, lay), output)
    except (TileLutError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Saved:[/green] {path}")


@app.command()
def dims(
    n: int = typer.Option(17, "-n", "--lattice", help="Lattice size N."),
    m: int = typer.Option(4, "-m", "--tile-size", help="Tile size M in pixels."),
    layout: str = typer.Option("tall", "-l", "--layout", help="Layout: tall or wide."),
    max_dim: int = typer.Option(DEFAULT_MAX_DIMENSION, "--max-dim", min=1, help="Host image limit."),
):
    """Show pattern dimensions and warnings for N/M/layout."""
    from tilelut.core.geometry import (
        compute_dims,
        max_tile_size,
        tile_count,
        validate_lattice_size,
        validate_tile_size,
    )
    from tilelut.pipeline.pattern import pattern_warnings

    lay = _parse_layout(layout)
    try:
        validate_lattice_size(n)
        warnings = validate_tile_size(m)
    except TileLutError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    warnings += pattern_warnings(n, m, lay, max_dim)
    d = compute_dims(n, m, lay)

    table = Table(title="Pattern Dimensions", show_header=True)
    table.add_column("Property", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("PNG", f"{d.width:,}x{d.height:,} px")
    table.add_row("Tiles", f"{d.tiles_w:,}x{d.tiles_h:,} (total {tile_count(n):,})")
    m_max = max_tile_size(n, max_dim)
    table.add_row("Max M for host", str(m_max) if m_max >= 1 else "none")
    console.print(table)

    for w in warnings:
        console.print(f"[yellow]Warning:[/yellow] {w}")


@app.command("filter")
def filter_cmd(
    image: Path = typer.Argument(..., help="Input PNG path."),
    script: Optional[Path] = typer.Option(None, "-s", "--script", help="Filter script file."),
    code: Optional[str] = typer.Option(None, "-c", "--code", help="Filter script text."),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output PNG path."),
):
    """Apply a per-pixel filter script to a PNG."""
    from tilelut.pipeline.runner import run_filter

    source = _read_script(script, code)

    console.print(f"\n[bold]TileLUT Pixel Filter[/bold]")
    console.print(f"  Input: {image}")
    console.print()

    result = _run_with_progress(
        "Processing...", run_filter,
        input_path=image, script=source, output_path=output,
    )

    console.print(f"[green]Saved:[/green] {result.output_path}")
    console.print(f"[dim]Total time: {result.elapsed:.2f}s[/dim]\n")


@app.command("test-filter")
def test_filter(
    color: str = typer.Argument(..., help="Input color as #RRGGBB."),
    script: Optional[Path] = typer.Option(None, "-s", "--script", help="Filter script file."),
    code: Optional[str] = typer.Option(None, "-c", "--code", help="Filter script text."),
):
    """Run a filter script on a single color."""
    from tilelut.color.hexcodes import format_hex_color, parse_hex_color
    from tilelut.pipeline.filter import compile_pixel_filter, test_pixel_filter

    source = _read_script(script, code)
    try:
        rgb = parse_hex_color(color)
        out = test_pixel_filter(compile_pixel_filter(source), *rgb)
    except TileLutError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"{format_hex_color(*rgb)} -> {format_hex_color(*out)}")


@app.command()
def detect(
    image: Path = typer.Argument(..., help="Processed pattern PNG path."),
):
    """Detect N/M/layout from a processed pattern PNG."""
    from tilelut.core.detect import detect_geometry
    from tilelut.io.image import get_image_dimensions

    try:
        width, height = get_image_dimensions(image)
        geom = detect_geometry(width, height)
    except (TileLutError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Detected Geometry", show_header=True)
    table.add_column("Property", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Image", f"{width:,}x{height:,} px")
    table.add_row("N", str(geom.N))
    table.add_row("M", str(geom.M))
    table.add_row("Layout", geom.layout.value)
    console.print(table)


@app.command()
def extract(
    image: Path = typer.Argument(..., help="Processed pattern PNG path."),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output .cube path."),
):
    """Extract a .cube LUT from a processed pattern PNG."""
    from tilelut.pipeline.runner import run_extract

    console.print(f"\n[bold]TileLUT LUT Extraction[/bold]")
    console.print(f"  Input: {image}")
    console.print()

    result = _run_with_progress(
        "Generating LUT...", run_extract,
        input_path=image, output_path=output,
    )

    geom = result.geometry
    console.print(f"  Detected: N={geom.N}, M={geom.M}, layout={geom.layout.value}")
    console.print(f"[green]Saved:[/green] {result.output_path} ({geom.N}^3)")
    console.print(f"[dim]Total time: {result.elapsed:.2f}s[/dim]\n")


@app.command("cube-info")
def cube_info(
    lut_file: Path = typer.Argument(..., help=".cube file to summarize."),
):
    """Summarize a .cube file."""
    from tilelut.io.cube import read_cube

    try:
        lut, meta = read_cube(lut_file)
    except (TileLutError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title=meta["title"] or lut_file.name, show_header=True)
    table.add_column("Channel", style="cyan")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Mean", justify="right")
    for ch, name in enumerate("RGB"):
        values = lut[..., ch]
        table.add_row(name, f"{values.min():.4f}", f"{values.max():.4f}", f"{values.mean():.4f}")
    console.print(f"LUT_3D_SIZE {meta['size']}")
    console.print(table)


def main():
    app()


if __name__ == "__main__":
    main()
