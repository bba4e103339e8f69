"""Command-line interface for gametest."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from gametest import __version__
from gametest.config import GameTestConfig, create_example_config
from gametest.core.discovery import TestDiscovery
from gametest.core.groups import Group
from gametest.core.models import Result
from gametest.core.scheduler import Scheduler
from gametest.storage.session import SessionState

log = logging.getLogger(__name__)

console = Console()

RESULT_STYLES = {
    Result.NONE: "[dim]-[/dim]",
    Result.PASS: "[green]PASS[/green]",
    Result.FAIL: "[red]FAIL[/red]",
    Result.SKIPPED: "[yellow]SKIPPED[/yellow]",
}


def print_banner() -> None:
    """Print the gametest banner."""
    console.print(
        Panel.fit(
            "[bold blue]gametest[/bold blue] - frame-stepped test runner",
            subtitle=f"v{__version__}",
        )
    )


def setup_logging(level: int) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="gametest")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False),
    help="Path to configuration file (default: gametest.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """gametest - run game tests one frame at a time.

    Discovers @test functions and @suite classes, then drives them through a
    headless frame loop with pause-on-fail and skip support.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="gametest.json",
    help="Output path for configuration file",
)
@click.option("--module", "-m", "modules", multiple=True, help="Module to scan for tests (repeatable)")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
@click.pass_context
def init(ctx: click.Context, output: str, modules: tuple[str, ...], force: bool) -> None:
    """Initialize a new gametest configuration file."""
    print_banner()

    output_path = Path(output)
    if output_path.exists() and not force:
        console.print(
            f"[yellow]Configuration file already exists:[/yellow] {output_path}"
        )
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        create_example_config(output_path, modules=list(modules))
        console.print(f"[green]Created configuration file:[/green] {output_path}")
        console.print("\nNext steps:")
        console.print("  1. List the modules holding your tests under discovery.modules")
        console.print("  2. Run [bold]gametest list[/bold] to check what was found")
        console.print("  3. Run [bold]gametest run[/bold] to execute tests")
    except Exception as e:
        console.print(f"[red]Error creating configuration:[/red] {e}")
        sys.exit(1)


@main.command(name="list")
@click.option("--search", "-s", help="Only show tests whose path matches this regular expression")
@click.pass_context
def list_tests(ctx: click.Context, search: Optional[str]) -> None:
    """Show discovered tests as a tree."""
    config, base_dir = _load_config(ctx)
    scheduler = _build_scheduler(config, base_dir)

    if search:
        try:
            matches = scheduler.tree.search(search)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)

        table = Table(title=f"Tests matching {search!r}")
        table.add_column("Test", style="cyan")
        table.add_column("Result")
        table.add_column("Origin", style="dim")
        for unit in matches:
            table.add_row(unit.path, RESULT_STYLES[unit.result], unit.descriptor.origin or "-")
        console.print(table)
        console.print(f"[dim]{len(matches)} of {len(scheduler.units)} tests[/dim]")
        return

    tree = Tree(f"[bold]{config.project.name}[/bold]")
    _render_group(scheduler.root, tree)
    console.print(tree)
    console.print(f"[dim]{len(scheduler.units)} tests[/dim]")


@main.command()
@click.option("--select", "-k", "pattern", help="Run only tests whose path matches this regular expression")
@click.option("--max-ticks", type=int, default=None, help="Stop the run after this many frames")
@click.option(
    "--resume-on-pause/--stop-on-pause",
    default=False,
    help="Continue after a pause-on-fail test fails instead of stopping",
)
@click.pass_context
def run(
    ctx: click.Context,
    pattern: Optional[str],
    max_ticks: Optional[int],
    resume_on_pause: bool,
) -> None:
    """Run the selected tests through a headless frame loop."""
    print_banner()

    config, base_dir = _load_config(ctx)
    paths = config.get_absolute_paths(base_dir)
    scheduler = _build_scheduler(config, base_dir)

    if config.session.enabled and paths["state_file"].exists():
        try:
            SessionState.from_file(paths["state_file"]).apply(scheduler)
        except Exception as e:
            console.print(f"[yellow]Warning: could not restore session:[/yellow] {e}")
        scheduler.queue.clear()
        scheduler.queue.clear_finished()

    if pattern:
        try:
            matches = scheduler.tree.search(pattern)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        scheduler.root.deselect()
        for unit in matches:
            unit.selected = True
    elif not scheduler.tree.summary().any_selected:
        scheduler.root.select()

    selected = [unit for unit in scheduler.units.values() if unit.selected]
    if not selected:
        console.print("[yellow]No tests selected[/yellow]")
        sys.exit(1)

    ticks = 0
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Running {len(selected)} tests...", total=None)
        scheduler.on_host_context_entered()
        scheduler.start()
        while scheduler.running:
            remaining = None if max_ticks is None else max_ticks - ticks
            if remaining is not None and remaining <= 0:
                progress.console.print(f"[yellow]Stopping after {max_ticks} frames[/yellow]")
                scheduler.stop()
                break
            ticks += scheduler.run_until_stopped(remaining)
            if scheduler.running and scheduler.paused and scheduler.current_unit is None:
                if resume_on_pause:
                    log.info("Resuming after pause-on-fail")
                    scheduler.resume()
                else:
                    progress.console.print("[yellow]Paused after a failure; stopping the run[/yellow]")
                    scheduler.stop()
        scheduler.on_host_context_exited()
        progress.update(task, completed=True)

    if ctx.obj.get("verbose"):
        console.print(f"[dim]Ran {ticks} frames[/dim]")

    _display_results_summary(scheduler)

    if config.session.enabled:
        try:
            SessionState.capture(scheduler).to_file(paths["state_file"])
            console.print(f"[dim]Session saved to {paths['state_file']}[/dim]")
        except Exception as e:
            console.print(f"[red]Error saving session:[/red] {e}")

    if any(entry.result == Result.FAIL for entry in scheduler.queue.finished):
        sys.exit(1)


@main.command()
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Forget the saved session state."""
    config, base_dir = _load_config(ctx)
    state_file = config.get_absolute_paths(base_dir)["state_file"]
    if not state_file.exists():
        console.print("[yellow]No saved session found[/yellow]")
        return
    state_file.unlink()
    console.print(f"[green]Removed session file:[/green] {state_file}")


def _load_config(ctx: click.Context) -> tuple[GameTestConfig, Path]:
    """Load the configuration and set up logging; exit on failure."""
    config_path = ctx.obj.get("config_path")
    try:
        if config_path:
            config = GameTestConfig.from_file(config_path)
        else:
            config = GameTestConfig.find_and_load()
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print("Run [bold]gametest init[/bold] to create a configuration file")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)

    setup_logging(logging.DEBUG if ctx.obj.get("verbose") else config.logging.numeric_level)
    base_dir = Path(config_path).resolve().parent if config_path else Path.cwd()
    return config, base_dir


def _build_scheduler(config: GameTestConfig, base_dir: Path) -> Scheduler:
    """Discover tests and ingest them into a fresh scheduler."""
    discovery = TestDiscovery(config, base_dir)
    result = discovery.discover()
    if not result.success:
        console.print(f"[yellow]Warning: discovery errors:[/yellow]\n{result.error}")

    scheduler = Scheduler(config=config.scheduler, log_results=config.logging.log_results)
    ingest = scheduler.ingest(result.descriptors, result.invocables)
    for message in ingest.diagnostics:
        console.print(f"[yellow]Warning:[/yellow] {message}")
    return scheduler


def _render_group(group: Group, branch: Tree) -> None:
    for child in group.children(recursive=False):
        label = f"[bold]{child.name}[/bold]"
        if child.is_suite:
            label += " [dim](suite)[/dim]"
        _render_group(child, branch.add(label))
    for unit in group.units:
        lock = " [dim](locked)[/dim]" if unit.locked else ""
        branch.add(f"{RESULT_STYLES[unit.result]} {unit.name}{lock}")


def _display_results_summary(scheduler: Scheduler) -> None:
    """Display a summary of the finished run."""
    finished = list(reversed(scheduler.queue.finished))
    passed = sum(1 for e in finished if e.result == Result.PASS)
    failed = sum(1 for e in finished if e.result == Result.FAIL)
    skipped = sum(1 for e in finished if e.result == Result.SKIPPED)
    not_run = len(scheduler.queue)

    console.print("\n" + "=" * 50)
    console.print("[bold]Test Results Summary[/bold]")
    console.print("=" * 50)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total Tests", str(len(finished)))
    table.add_row("Passed", f"[green]{passed}[/green]")
    table.add_row("Failed", f"[red]{failed}[/red]")
    table.add_row("Skipped", f"[yellow]{skipped}[/yellow]")
    if not_run:
        table.add_row("Not Run", f"[dim]{not_run}[/dim]")

    if finished:
        pass_rate = (passed / len(finished)) * 100
        table.add_row("Pass Rate", f"{pass_rate:.1f}%")

    console.print(table)

    if failed > 0:
        console.print("\n[red]Some tests failed![/red]")
        console.print("\nFailed tests:")
        failures = [e for e in finished if e.result == Result.FAIL]
        for entry in failures[:10]:
            reason = escape("; ".join(entry.unit.failures))
            console.print(f"  [red]✗[/red] {entry.path}" + (f" [dim]{reason}[/dim]" if reason else ""))
        if len(failures) > 10:
            console.print(f"  ... and {len(failures) - 10} more")
    elif finished:
        console.print("\n[green]All tests passed![/green]")


if __name__ == "__main__":
    main()
