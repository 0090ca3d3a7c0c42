"""Main CLI interface for contribsync."""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from sqlalchemy import select

from contribsync.config import Settings, load_settings
from contribsync.core.ranks import contributors_with_ncontributions
from contribsync.core.store import Store
from contribsync.core.updater import RepoUpdater
from contribsync.errors import ContribSyncError
from contribsync.models import Commit, Contributor, RepoUpdate

console = Console()


def get_settings_or_exit(ctx: click.Context) -> Settings:
    """Load settings or exit with an error message."""
    try:
        return load_settings(ctx.obj.get("config"))
    except ContribSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e


def get_store(settings: Settings) -> Store:
    store = Store(settings.database_url)
    store.ensure_schema()
    return store


@click.group()
@click.version_option(package_name="contribsync")
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON config file",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, config: Optional[Path], verbose: bool):
    """Contribsync - contributors and ranks from a git mirror."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.pass_context
def update(ctx: click.Context, path: Path):
    """Update the database from a pull of the mirror at PATH."""
    settings = get_settings_or_exit(ctx)

    try:
        result = RepoUpdater(path.resolve(), settings=settings).update()
    except ContribSyncError as e:
        console.print(f"[red]Update failed: {e}[/red]")
        raise click.Abort() from e

    console.print(f"[green]✅ {result.ncommits} new commits imported[/green]")
    if result.gone_names:
        console.print(f"[yellow]Gone names:[/yellow] {', '.join(result.gone_names)}")
    console.print(
        f"[bold]Cache:[/bold] {'purged' if result.cache_expired else 'kept'}"
    )
    console.print(f"[bold]Duration:[/bold] {result.duration:.1f}s")


@main.command()
@click.option("--limit", default=20, help="Number of contributors to show")
@click.pass_context
def ranks(ctx: click.Context, limit: int):
    """Show contributors ranked by number of contributions."""
    store = get_store(get_settings_or_exit(ctx))

    with store.session() as session:
        rows = contributors_with_ncontributions(session)[:limit]

    if not rows:
        console.print("[yellow]No contributors yet. Run 'contribsync update' first.[/yellow]")
        return

    table = Table(title="Contributors")
    table.add_column("Rank", style="cyan", justify="right")
    table.add_column("Name", style="green")
    table.add_column("Commits", style="yellow", justify="right")

    for contributor, ncontributions in rows:
        rank = str(contributor.rank) if contributor.rank is not None else "-"
        table.add_row(rank, contributor.name, str(ncontributions))

    console.print(table)


@main.command()
@click.option("--limit", default=10, help="Number of updates to show")
@click.pass_context
def updates(ctx: click.Context, limit: int):
    """Show the most recent updates."""
    store = get_store(get_settings_or_exit(ctx))

    with store.session() as session:
        records = session.scalars(
            select(RepoUpdate).order_by(RepoUpdate.id.desc()).limit(limit)
        ).all()

    if not records:
        console.print("[yellow]No updates recorded yet.[/yellow]")
        return

    table = Table(title="Updates")
    table.add_column("Started", style="magenta")
    table.add_column("Pulled", style="magenta")
    table.add_column("Ended", style="magenta")
    table.add_column("Duration", style="blue", justify="right")
    table.add_column("Commits", style="yellow", justify="right")

    for record in records:
        table.add_row(
            record.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            record.pulled_at.strftime("%H:%M:%S"),
            record.ended_at.strftime("%H:%M:%S"),
            f"{record.duration:.1f}s",
            str(record.ncommits),
        )

    console.print(table)


@main.command()
@click.argument("name")
@click.option("--limit", default=10, help="Number of commits to show")
@click.pass_context
def contributor(ctx: click.Context, name: str, limit: int):
    """Show a contributor and their most recent commits."""
    store = get_store(get_settings_or_exit(ctx))

    with store.session() as session:
        found = session.scalar(select(Contributor).where(Contributor.name == name))
        if found is None:
            console.print(f"[red]Unknown contributor: {name}[/red]")
            raise click.Abort()

        commits = session.scalars(
            select(Commit)
            .where(Commit.contributions.any(contributor_id=found.id))
            .order_by(Commit.authored_at.desc())
            .limit(limit)
        ).all()

        console.print(f"[bold]{found.name}[/bold] (rank {found.rank})")
        for commit in commits:
            subject = commit.message.splitlines()[0] if commit.message else ""
            console.print(
                f"  [cyan]{commit.short_sha1}[/cyan] "
                f"{commit.authored_at.strftime('%Y-%m-%d')} {subject}"
            )


if __name__ == "__main__":
    main()
