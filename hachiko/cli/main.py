# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Hachiko CLI - Main entry point

Usage:
    hachiko state <migration_id>       - Print key=value state outputs (for GitHub Actions)
    hachiko states <id> [<id> ...]     - Table of several migration states
    hachiko prs [--validate]           - List open Hachiko PRs across all migrations

Requires GITHUB_TOKEN and GITHUB_REPOSITORY (owner/repo) in the environment or a .env file.
"""

import asyncio
import sys
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from hachiko import __version__
from hachiko.classes import MigrationStatus
from hachiko.services.pr_detection import get_all_open_hachiko_prs, validate_hachiko_pr
from hachiko.services.state_inference import (
    format_state_outputs,
    get_migration_state_summary,
    get_migration_state_with_document,
    get_multiple_migration_states,
)
from hachiko.utils.config import Settings, get_settings
from hachiko.utils.github_api_tools import GitHubRepository

console = Console()
error_console = Console(stderr=True)

STATUS_COLORS = {
    MigrationStatus.PENDING: 'yellow',
    MigrationStatus.ACTIVE: 'green',
    MigrationStatus.PAUSED: 'red',
    MigrationStatus.COMPLETED: 'dim',
}


def colorize_status(status: MigrationStatus) -> str:
    color = STATUS_COLORS.get(status, 'white')
    return f'[{color}]{status.value}[/{color}]'


def print_error(message: str) -> None:
    error_console.print(f'[red]✗[/red] {message}')


def build_client(settings: Settings) -> GitHubRepository:
    """Create the GitHub client from settings, exiting with code 1 if they are incomplete."""
    errors = settings.validate()
    if errors:
        for error in errors:
            print_error(error)
        sys.exit(1)
    return GitHubRepository(settings.owner, settings.repo, settings.github_token)


@click.group()
@click.version_option(version=__version__, prog_name='hachiko')
def cli():
    """Hachiko - Inspect migration state inferred from pull request activity"""
    pass


@cli.command('state')
@click.argument('migration_id')
@click.option('--ref', default=None, help='Git ref to read the migration document from (default: HACHIKO_REF or main)')
@click.option('--summary', is_flag=True, help='Print the one-line summary instead of key=value outputs')
@click.option('--single-snapshot', is_flag=True, help='Read open and closed PRs in one query')
@click.option('--scan-commits', is_flag=True, help='Also match labelled PRs by commit tracking tokens')
def state_command(migration_id: str, ref: Optional[str], summary: bool, single_snapshot: bool, scan_commits: bool):
    """Get the calculated state of one migration.

    \b
    Examples:
        hachiko state add-jsdoc-comments >> "$GITHUB_OUTPUT"
        hachiko state add-jsdoc-comments --summary
    """
    settings = get_settings()
    client = build_client(settings)

    try:
        state_info = asyncio.run(
            get_migration_state_with_document(
                client,
                migration_id,
                ref=ref or settings.ref,
                migrations_dir=settings.migrations_dir,
                single_snapshot=single_snapshot,
                scan_commits=scan_commits,
            )
        )
    except Exception as e:
        print_error(f'Failed to get migration state: {e}')
        sys.exit(1)

    if summary:
        click.echo(get_migration_state_summary(state_info))
    else:
        click.echo(format_state_outputs(state_info))


@cli.command('states')
@click.argument('migration_ids', nargs=-1, required=True)
@click.option('--ref', default=None, help='Git ref to read migration documents from')
def states_command(migration_ids: Tuple[str, ...], ref: Optional[str]):
    """Show the state of several migrations.

    A migration that cannot be inspected is shown as pending rather than failing the whole run.

    \b
    Examples:
        hachiko states add-jsdoc-comments react-v16-to-v18-hooks-migration
    """
    settings = get_settings()
    client = build_client(settings)

    states = asyncio.run(
        get_multiple_migration_states(
            client, migration_ids, ref=ref or settings.ref, migrations_dir=settings.migrations_dir
        )
    )

    table = Table(show_header=True, header_style='bold magenta')
    table.add_column('Migration', style='cyan')
    table.add_column('Status')
    table.add_column('Step', justify='right')
    table.add_column('Tasks', justify='right')
    table.add_column('Open', justify='right')
    table.add_column('Closed', justify='right')
    table.add_column('Summary', style='dim')

    for migration_id, state_info in states.items():
        table.add_row(
            migration_id,
            colorize_status(state_info.status),
            str(state_info.current_step),
            f'{state_info.completed_tasks}/{state_info.total_tasks}',
            str(len(state_info.open_prs)),
            str(len(state_info.closed_prs)),
            get_migration_state_summary(state_info),
        )

    console.print(table)


@cli.command('prs')
@click.option('--validate', 'show_validation', is_flag=True, help='Show naming convention recommendations')
def prs_command(show_validation: bool):
    """List open Hachiko PRs across all migrations."""
    settings = get_settings()
    client = build_client(settings)

    try:
        hachiko_prs = get_all_open_hachiko_prs(client)
    except Exception as e:
        print_error(f'Failed to list Hachiko PRs: {e}')
        sys.exit(1)

    if not hachiko_prs:
        console.print('[yellow]No open Hachiko PRs found.[/yellow]')
        return

    table = Table(show_header=True, header_style='bold magenta')
    table.add_column('PR', justify='right', style='cyan')
    table.add_column('Migration', style='green')
    table.add_column('Branch')
    table.add_column('Title')
    if show_validation:
        table.add_column('Conventions')

    for pr in hachiko_prs:
        row = [f'#{pr.number}', pr.migration_id, pr.branch, pr.title]
        if show_validation:
            validation = validate_hachiko_pr(pr)
            if validation.is_valid:
                row.append(f"[green]✓[/green] {', '.join(validation.identification_methods)}")
            else:
                row.append('[yellow]' + '\n'.join(validation.recommendations) + '[/yellow]')
        table.add_row(*row)

    console.print(table)


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
