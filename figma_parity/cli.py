"""CLI entry point for figma-parity."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from figma_parity.models.config import ToolConfig
from figma_parity.orchestrator import Orchestrator

console = Console()

DEFAULT_CONFIG_NAME = "figma-parity.json"

_PRIORITY_STYLE = {"high": "red", "medium": "yellow", "low": "green"}
_TIER_STYLE = {
    "perfect": "bold green",
    "excellent": "green",
    "good": "cyan",
    "needs-improvement": "yellow",
    "poor": "red",
    "failing": "bold red",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_config(path: str | None) -> ToolConfig:
    try:
        return ToolConfig.load_default(path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run 'figma-parity init' to create a default config.")
        sys.exit(1)


def print_failure(result: dict) -> None:
    console.print(f"[red]✗ {result['error']}[/red] [dim]({result['errorType']})[/dim]")
    for solution in result.get("solutions", []):
        console.print(f"  • {solution}")


def parse_json_option(value: str | None, name: str) -> dict | None:
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint=name)
    if not isinstance(parsed, dict):
        raise click.BadParameter("must be a JSON object", param_hint=name)
    return parsed


config_option = click.option("--config", "-c", default=None, help="Config file path (or $FIGMA_PARITY_CONFIG)")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression testing of UI components against Figma designs."""
    setup_logging(verbose)


@cli.command()
@click.argument("component")
@click.option("--project", "-p", default=None, help="Project root containing src/components")
@click.option("--port", type=int, default=None, help="Dev server port")
@click.option("--selector", "-s", default=None, help="CSS selector of the component root")
@click.option("--output", "-o", default=None, help="Output PNG path")
@click.option("--scale", type=float, default=None, help="Raster scale factor")
@config_option
def capture(component: str, project, port, selector, output, scale, config) -> None:
    """Capture COMPONENT from the dev server as a PNG."""
    cfg = load_config(config)
    options = {"scale": scale} if scale is not None else None
    result = Orchestrator(cfg).run_capture(
        component, project_path=project, port=port, selector=selector, output_path=output, capture_options=options
    )
    if not result["success"]:
        print_failure(result)
        sys.exit(1)

    console.print(f"[green]Captured {component}:[/green] {result['width']}x{result['height']}px")
    console.print(f"  Selector: {result['selector']}" + (" [yellow](fallback)[/yellow]" if result["usedFallbackSelector"] else ""))
    console.print(f"  File: [blue]{result['path']}[/blue]")


@cli.command()
@click.argument("component")
@click.option("--project", "-p", default=None, help="Project root containing src/components")
@click.option("--port", type=int, default=None, help="Dev server port")
@click.option("--threshold", "-t", type=float, default=None, help="Perceptual threshold (0-0.1)")
@click.option("--selector", "-s", default=None, help="CSS selector of the component root")
@click.option("--skip-capture", is_flag=True, help="Reuse the existing actual.png")
@click.option("--no-report", is_flag=True, help="Do not write report files")
@config_option
def compare(component: str, project, port, threshold, selector, skip_capture, no_report, config) -> None:
    """Capture COMPONENT and compare it with its Figma export."""
    cfg = load_config(config)
    result = Orchestrator(cfg).run_compare(
        component,
        project_path=project,
        port=port,
        threshold=threshold,
        selector=selector,
        skip_capture=skip_capture,
        generate_report=not no_report,
    )
    if not result["success"]:
        print_failure(result)
        sys.exit(1)

    summary = result["comparison"]
    tier = summary["qualityTier"]
    table = Table(title=f"Comparison: {component}")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Match", f"{summary['matchPercentage']:.2f}%")
    table.add_row("Quality", f"[{_TIER_STYLE[tier]}]{tier}[/{_TIER_STYLE[tier]}]")
    table.add_row("Diff pixels", f"{summary['diffPixels']:,} / {summary['totalPixels']:,}")
    table.add_row("Dimensions", f"{summary['dimensions']['width']}x{summary['dimensions']['height']}")
    table.add_row("Regions", str(result["analysis"]["totalRegions"]))
    table.add_row("Gate", "[green]PASS[/green]" if summary["passed"] else "[red]FAIL[/red]")
    console.print(table)

    for rec in result["analysis"]["recommendations"]:
        style = _PRIORITY_STYLE[rec["priority"]]
        console.print(f"  [{style}]{rec['priority'].upper()}[/{style}] {rec['description']}")
        if rec["suggestedFix"]:
            console.print(f"       [dim]{rec['suggestedFix']}[/dim]")

    for fmt, path in result["reports"].items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")

    if not summary["passed"]:
        sys.exit(2)


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Output path (default: overwrite input)")
@click.option("--quality", "-q", type=int, default=85, help="JPEG/WebP quality 1-100")
@click.option("--format", "-f", "fmt", type=click.Choice(["auto", "png", "jpeg", "webp"]), default="auto")
@click.option("--compression-level", type=int, default=9, help="PNG compression level 0-9")
@click.option("--resize", default=None, help='Resize as JSON, e.g. \'{"width": 200, "fit": "inside"}\'')
@config_option
def optimize(input_path: str, output, quality, fmt, compression_level, resize, config) -> None:
    """Optimize an image asset."""
    cfg = load_config(config)
    result = Orchestrator(cfg).run_optimize(
        input_path,
        output_path=output,
        quality=quality,
        format=fmt,
        compression_level=compression_level,
        resize=parse_json_option(resize, "--resize"),
    )
    if not result["success"]:
        print_failure(result)
        sys.exit(1)
    stats = result["optimization"]
    console.print(
        f"[green]Optimized:[/green] {result['summary']['sizeSaved']} saved "
        f"({stats['reductionPercentage']}%), {result['summary']['compressionRatio']}"
    )
    console.print(f"  File: [blue]{result['outputPath']}[/blue]")


@cli.command()
@click.option("--port", type=int, default=None, help="Dev server port")
@click.option("--no-probe", is_flag=True, help="Skip the dev server request")
@config_option
def check(port, no_probe, config) -> None:
    """Check the browser runtime and dev server."""
    cfg = load_config(config)
    result = Orchestrator(cfg).run_check(port=port, probe_dev_server=not no_probe)
    browser = result["browser"]
    dev_server = result["devServer"]

    table = Table(title="Environment")
    table.add_column("Check", style="bold")
    table.add_column("Status")
    table.add_row("Browser runtime", "[green]available[/green]" if browser["available"] else "[red]missing[/red]")
    table.add_row("Bundled Chromium", "yes" if browser["runtimeBundled"] else "no")
    table.add_row("Executable", browser["executablePath"] or "-")
    if "reachable" in dev_server:
        status = "[green]reachable[/green]" if dev_server["reachable"] else "[red]unreachable[/red]"
    else:
        status = "[dim]not probed[/dim]"
    table.add_row("Dev server", f"{dev_server['url']} {status}")
    console.print(table)

    if not browser["available"]:
        console.print("Install a browser runtime with: [blue]playwright install chromium[/blue]")
    if not result["ready"]:
        sys.exit(1)


@cli.command()
@click.option("--project", "-p", default=".", help="Project root")
@click.option("--port", type=int, default=83, help="Dev server port")
def init(project: str, port: int) -> None:
    """Create a default configuration file."""
    config_path = Path(DEFAULT_CONFIG_NAME)
    if config_path.exists():
        if not click.confirm(f"{DEFAULT_CONFIG_NAME} already exists. Overwrite?"):
            return

    cfg = ToolConfig(project_path=project, port=port)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nPlace Figma exports at:")
    console.print(f"  [blue]{cfg.results_dir('<Component>')}/expected.png[/blue]")
    console.print("\nThen run:")
    console.print(f"  [blue]figma-parity --config {config_path} compare <Component>[/blue]")


@cli.command()
@config_option
@click.pass_context
def serve(ctx: click.Context, config) -> None:
    """Start the MCP server on stdio."""
    from figma_parity.server import main

    # The CLI logger writes to stdout, which belongs to the MCP stream.
    logging.getLogger().handlers.clear()
    verbose = ctx.parent.params.get("verbose", False) if ctx.parent else False
    main(config_path=config, verbose=verbose)


if __name__ == "__main__":
    cli()
