#!/usr/bin/env python3
"""TimeSync CLI.

Per-project time tracking from the terminal. Every command loads the saved
state, applies one change and writes it back, so a timer started in one
shell keeps running until it is paused from another.

Usage:
    timesync add "Client work"
    timesync list
    timesync start 1718000000000
    timesync pause 1718000000000
    timesync limit 1718000000000 90
    timesync report --period week
    timesync serve --port 7788
"""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console
from rich.progress_bar import ProgressBar
from rich.table import Table

from .aggregation import Period
from .config import get_config, verbose_option
from .store import TimeStore
from .timer import format_duration, format_hours

console = Console()


def _load_store(ctx: click.Context) -> TimeStore:
    config = ctx.obj["config"]
    store = TimeStore(config.repository(), week_start=config.week_start)
    asyncio.run(store.load())
    return store


def _require(result, project_id: int):
    if result is None:
        raise click.ClickException(f"No project with id {project_id}")
    return result


@click.group()
@verbose_option
@click.pass_context
def cli(ctx, verbose):
    """TimeSync - per-project timers, budgets and period reports."""
    config = get_config()
    config.verbose = config.verbose or verbose
    logging.basicConfig(
        level=logging.INFO if config.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    if config.verbose:
        location = config.db_path if config.backend == "sqlite" else config.json_path
        click.echo(f"Using {config.backend} storage at {location}")


@cli.command()
@click.argument("name")
@click.pass_context
def add(ctx, name):
    """Add a project."""
    store = _load_store(ctx)
    project = asyncio.run(store.add(name))
    if project is None:
        console.print("[yellow]Empty project name, nothing added.[/yellow]")
        return
    console.print(f"[green]Added[/green] {project.name} [dim]({project.id})[/dim]")


@cli.command(name="list")
@click.pass_context
def list_projects(ctx):
    """Show projects, running state and budgets."""
    store = _load_store(ctx)
    if not store.projects:
        console.print("[yellow]No projects yet.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("ID", style="dim")
    table.add_column("Project")
    table.add_column("Time", justify="right")
    table.add_column("State")
    table.add_column("Budget")
    table.add_column("Left", justify="right")

    for project in store.projects:
        state = "[green]running[/green]" if project.is_running else "[dim]idle[/dim]"
        status = store.budget(project.id)
        if status is None:
            bar, left = "", ""
        else:
            bar = ProgressBar(total=100, completed=status.percent, width=16)
            left = f"{status.remaining_hours:.1f}h"
        table.add_row(
            str(project.id),
            project.name,
            format_duration(store.displayed_total(project)),
            state,
            bar,
            left,
        )
    console.print(table)


@cli.command()
@click.argument("project_id", type=int)
@click.pass_context
def start(ctx, project_id):
    """Start a project's timer."""
    store = _load_store(ctx)
    project = _require(asyncio.run(store.start(project_id)), project_id)
    console.print(f"[green]Running[/green] {project.name}")


@cli.command()
@click.argument("project_id", type=int)
@click.pass_context
def pause(ctx, project_id):
    """Pause a running timer and log the interval."""
    store = _load_store(ctx)
    project = _require(asyncio.run(store.pause(project_id)), project_id)
    console.print(f"[yellow]Paused[/yellow] {project.name} at {format_duration(project.time)}")


@cli.command()
@click.argument("project_id", type=int)
@click.pass_context
def stop(ctx, project_id):
    """Stop a timer."""
    store = _load_store(ctx)
    project = _require(asyncio.run(store.stop(project_id)), project_id)
    console.print(f"[red]Stopped[/red] {project.name} at {format_duration(project.time)}")


@cli.command()
@click.argument("project_id", type=int)
@click.pass_context
def delete(ctx, project_id):
    """Delete a project and its budget."""
    store = _load_store(ctx)
    project = _require(asyncio.run(store.delete(project_id)), project_id)
    console.print(f"Deleted {project.name}")


@cli.command(name="set-time")
@click.argument("project_id", type=int)
@click.option("--hours", default="0", help="Whole hours")
@click.option("--minutes", default="0", help="Whole minutes")
@click.pass_context
def set_time(ctx, project_id, hours, minutes):
    """Overwrite a project's accumulated time."""
    store = _load_store(ctx)
    project = _require(asyncio.run(store.set_initial_time(project_id, hours, minutes)), project_id)
    console.print(f"{project.name} set to {format_duration(project.time)}")


@cli.command()
@click.argument("project_id", type=int)
@click.argument("minutes", required=False, default="")
@click.pass_context
def limit(ctx, project_id, minutes):
    """Set a budget in minutes; leave MINUTES out to clear it."""
    store = _load_store(ctx)
    _require(store.get(project_id), project_id)
    seconds = asyncio.run(store.set_limit(project_id, minutes))
    if seconds is None:
        console.print("Budget cleared")
    else:
        console.print(f"Budget set to {format_duration(seconds)}")


@cli.command()
@click.argument("project_id", type=int)
@click.argument("hours")
@click.pass_context
def adjust(ctx, project_id, hours):
    """Move a budget up or down by HOURS (never below one minute)."""
    store = _load_store(ctx)
    seconds = _require(asyncio.run(store.adjust_limit(project_id, hours)), project_id)
    console.print(f"Budget now {format_duration(seconds)}")


@cli.command()
@click.option(
    "--period", "-p",
    type=click.Choice([p.value for p in Period]),
    default=Period.DAY.value,
    show_default=True,
    help="Reporting period",
)
@click.pass_context
def report(ctx, period):
    """Time logged per project in the current day, week or month."""
    store = _load_store(ctx)
    rows = store.breakdown(period)
    if not rows:
        console.print("[yellow]No projects yet.[/yellow]")
        return

    console.print(f"[bold]Time Breakdown ({period})[/bold]")
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Project")
    table.add_column("Hours", justify="right")
    for project, seconds in rows:
        table.add_row(project.name, format_hours(seconds))
    console.print(table)


@cli.command()
@click.option("--host", default=None, help="Bind address (default from TIMESYNC_HOST)")
@click.option("--port", type=int, default=None, help="Port (default from TIMESYNC_PORT)")
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP API with the live tick."""
    import uvicorn

    from .api import create_app

    config = ctx.obj["config"]
    uvicorn.run(create_app(config=config), host=host or config.host, port=port or config.server_port)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
