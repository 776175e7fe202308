"""CLI commands for smartmon."""

import time
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from smartmon.config import Config
from smartmon.models import cpu_band, memory_band
from smartmon.sampler import Sampler
from smartmon.session import has_alert, request_termination, sort_samples
from smartmon.sources import PsutilSource


def _load_config(path: Path | None) -> Config:
    try:
        return Config.load(path)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml",
)
@click.version_option(package_name="smartmon")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None) -> None:
    """Live terminal process monitor."""
    ctx.obj = config_path
    if ctx.invoked_subcommand is None:
        ctx.invoke(top)


@main.command()
@click.option("--interval", type=float, default=None, help="Seconds between ticks")
@click.pass_obj
def top(config_path: Path | None, interval: float | None = None) -> None:
    """Launch the interactive monitor."""
    from smartmon.app import run
    from smartmon.logging import configure

    config = _load_config(config_path)
    if interval is not None:
        config.tick_interval = max(0.1, interval)
    configure(config)
    run(config)


@main.command()
@click.option("--limit", "-n", default=20, show_default=True, help="Number of rows to show")
@click.option(
    "--sort",
    "sort_key",
    type=click.Choice(["cpu", "mem"], case_sensitive=False),
    default="cpu",
    show_default=True,
)
@click.pass_obj
def snapshot(config_path: Path | None, limit: int, sort_key: str) -> None:
    """Sample once and print the ranked process table."""
    from smartmon.logging import configure

    config = _load_config(config_path)
    configure(config)
    sampler = Sampler(PsutilSource())

    # Two readings are needed for a delta; the first sample seeds process baselines.
    sampler.prime()
    sampler.sample()
    time.sleep(config.tick_interval)
    result = sampler.sample()

    processes = sort_samples(result.processes, by_cpu=sort_key.lower() == "cpu")
    table = Table(header_style="bold cyan", box=None)
    table.add_column("PID", justify="right")
    table.add_column("NAME", max_width=22, no_wrap=True)
    table.add_column("CPU%", justify="right")
    table.add_column("MEM%", justify="right")
    for proc in processes[:limit]:
        table.add_row(
            str(proc.pid),
            proc.name[:22],
            f"[{cpu_band(proc.cpu_percent).value}]{proc.cpu_percent:6.1f}[/]",
            f"[{memory_band(proc.memory_percent).value}]{proc.memory_percent:6.1f}[/]",
        )

    console = Console(highlight=False)
    console.print(f"CPU: {result.cpu_percent:5.1f}%   MEM: {result.memory_percent:5.1f}%")
    if has_alert(processes):
        console.print("[bold red]ALERT: High usage detected![/]")
    console.print(table)


@main.command()
@click.argument("pid")
@click.pass_obj
def kill(config_path: Path | None, pid: str) -> None:
    """Send SIGTERM to PID."""
    from smartmon.logging import configure

    configure(_load_config(config_path))
    status = request_termination(PsutilSource(), pid)
    click.echo(status.message)
    if not status.sent:
        raise SystemExit(1)


@main.command("config")
@click.option("--init", "init", is_flag=True, help="Write a config file with default values")
@click.pass_obj
def config_cmd(config_path: Path | None, init: bool) -> None:
    """Show the effective configuration."""
    config = _load_config(config_path)
    if init:
        written = Config().save(config_path)
        click.echo(f"Wrote {written}")
        return
    click.echo(f"tick_interval = {config.tick_interval}")
    click.echo(f"prime_delay = {config.prime_delay}")
    click.echo(f"log_level = {config.log_level}")
    click.echo(f"log_path = {config.log_path}")
