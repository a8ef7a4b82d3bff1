"""Main CLI entry point for the affiliate migration tool."""

import sys
from contextlib import contextmanager
from typing import Iterator, Optional
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
)
from rich.table import Table

from ..api.client import ServiceClientFactory
from ..config.config import Config, JobConfig, create_template
from ..migration.batch import DONE
from ..migration.migrate_users import MigrateUsersBatch
from ..migration.runner import BatchRunner, BatchRunSummary
from ..services.http import HttpAffiliateStore, HttpPermissionService, HttpUserDirectory
from ..services.memory import (
    InMemoryAffiliateStore,
    InMemoryUserDirectory,
    StaticPermissionService,
)
from ..services.progress import JsonFileProgressStore
from ..utils.logging import setup_logging

console = Console()

roles_option = click.option(
    '--roles',
    '-r',
    help='Comma separated roles to migrate (overrides the configuration)',
)


@click.group()
@click.version_option(version='0.1.0', prog_name='affiliate-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """Affiliate Migration Tool - Convert existing users into affiliate accounts."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    setup_logging('DEBUG' if verbose else 'INFO')


@cli.command()
@click.option(
    '--output',
    '-o',
    default='config.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]Affiliate Migration Tool[/bold green]\n'
            'Initializing configuration...',
            border_style='green',
        )
    )

    try:
        create_template(output)

        console.print(f'[green]✓[/green] Configuration template created at: {output}')
        console.print(
            f'[yellow]Please edit {output} with your site API details[/yellow]'
        )

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)


@cli.command()
@roles_option
@click.pass_context
def prefetch(ctx: click.Context, roles: Optional[str]) -> None:
    """Snapshot existing affiliates and count the users to migrate."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        with _open_batch(config, roles) as batch:
            batch.pre_fetch()
            progress = batch.progress()

        console.print(
            f'[green]✓[/green] {progress.total_count} users to migrate, '
            f'{len(progress.excluded_user_ids or [])} already affiliates'
        )

    except Exception as e:
        _fail(ctx, 'Pre-fetch failed', e)


@cli.command()
@click.argument('step')
@roles_option
@click.pass_context
def step(ctx: click.Context, step: str, roles: Optional[str]) -> None:
    """Run a single step and print the next one."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        with _open_batch(config, roles) as batch:
            BatchRunner(batch).ensure_permission()
            next_step = batch.process_step(step)
            progress = batch.progress()

        if next_step == DONE:
            console.print(
                f'[green]✓[/green] Migration done: {progress.migrated_count} users '
                'migrated. Run "affiliate-migrate finish" to clear the job state.'
            )
        else:
            console.print(
                f'[blue]Next step:[/blue] {next_step} '
                f'({progress.migrated_count}/{progress.total_count} users)'
            )

    except Exception as e:
        _fail(ctx, 'Step failed', e)


@cli.command()
@roles_option
@click.option(
    '--start-step',
    type=click.IntRange(min=1),
    help='Step to start from (default: resume from stored progress)',
)
@click.option(
    '--no-finish',
    is_flag=True,
    help='Keep the job state after the last step',
)
@click.pass_context
def run(
    ctx: click.Context,
    roles: Optional[str],
    start_step: Optional[int],
    no_finish: bool,
) -> None:
    """Run the whole migration with a progress bar."""
    console.print(
        Panel.fit(
            '[bold blue]Affiliate Migration Tool[/bold blue]\n'
            'Starting user migration...',
            border_style='blue',
        )
    )

    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        with _open_batch(config, roles) as batch:
            summary = _run_with_progress(batch, start_step, not no_finish)

        console.print('[green]✓[/green] Migration completed successfully')
        _display_run_summary(summary)

    except Exception as e:
        _fail(ctx, 'Migration failed', e)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show migration progress."""
    console.print(
        Panel.fit(
            '[bold magenta]Affiliate Migration Tool[/bold magenta]\nMigration Status',
            border_style='magenta',
        )
    )

    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        batch = _create_local_batch(config)
        progress = batch.progress()

        table = Table(title='Migration Progress')
        table.add_column('Setting', style='cyan')
        table.add_column('Value', style='green')

        table.add_row('Batch ID', progress.batch_id)
        table.add_row('Progress File', config.progress.path)
        table.add_row('Roles', ', '.join(sorted(config.job.roles)) or '-')
        table.add_row(
            'Existing Affiliates',
            '-'
            if progress.excluded_user_ids is None
            else str(len(progress.excluded_user_ids)),
        )
        table.add_row(
            'Users To Migrate',
            '-' if progress.total_count is None else str(progress.total_count),
        )
        table.add_row('Users Migrated', str(progress.migrated_count))
        table.add_row('Percent Done', f'{progress.percentage:.1f}%')
        table.add_row('Resume Step', str(batch.resume_step()))

        console.print(table)

    except Exception as e:
        _fail(ctx, 'Failed to load status', e)


@cli.command()
@click.pass_context
def finish(ctx: click.Context) -> None:
    """Clear the stored state of the migration job."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        _create_local_batch(config).finish()
        console.print('[green]✓[/green] Migration state cleared')

    except Exception as e:
        _fail(ctx, 'Failed to clear migration state', e)


@cli.command()
@click.argument('key')
@click.pass_context
def clear(ctx: click.Context, key: str) -> None:
    """Delete a single progress value by KEY."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        batch = _create_local_batch(config)
        if batch.get_items_total(key) is None:
            console.print(f'[yellow]No stored value for {key}[/yellow]')
        batch.clear_items_total(key)
        console.print(f'[green]✓[/green] Cleared {key}')

    except Exception as e:
        _fail(ctx, f'Failed to clear {key}', e)


def _fail(ctx: click.Context, prefix: str, error: Exception) -> None:
    """Report an error and exit with status 1."""
    console.print(f'[red]✗[/red] {prefix}: {error}')
    if ctx.obj.get('verbose'):
        console.print_exception()
    sys.exit(1)


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')
        return Config.from_file(config_path)
    else:
        default_paths = ['config.yaml', 'config.yml', '.affiliate-migrate.yaml']
        for path in default_paths:
            if Path(path).exists():
                return Config.from_file(path)

        try:
            return Config.from_env()
        except Exception:
            raise FileNotFoundError(
                'No configuration found. Use --config to specify a file or run "affiliate-migrate init" to create one.'
            )


def _setup_logging_with_config(ctx: click.Context, config: Config) -> None:
    """Setup logging with configuration from config file."""
    verbose = ctx.obj.get('verbose', False)

    log_level = 'DEBUG' if verbose else config.logging.level
    # None keeps the built-in formats showing the component
    setup_logging(
        level=log_level,
        log_file=config.logging.file,
        log_format=config.logging.format,
    )


def _job_config(config: Config, roles: Optional[str]) -> JobConfig:
    """Return the job settings, with ``--roles`` taking precedence."""
    if roles:
        return JobConfig(roles=roles)
    return config.job


def _create_local_batch(config: Config) -> MigrateUsersBatch:
    """Batch process for commands that only touch the progress store.

    The other collaborators are empty in-memory stand-ins, so nothing here
    reaches the site API.
    """
    return MigrateUsersBatch.from_config(
        config,
        users=InMemoryUserDirectory(),
        affiliates=InMemoryAffiliateStore(),
        progress_store=JsonFileProgressStore(config.progress.path),
        permissions=StaticPermissionService(),
    )


@contextmanager
def _open_batch(config: Config, roles: Optional[str]) -> Iterator[MigrateUsersBatch]:
    """Build the batch process against the site API and close it afterwards."""
    with ServiceClientFactory.create_client(config.service) as client:
        yield MigrateUsersBatch.from_config(
            config,
            users=HttpUserDirectory(client),
            affiliates=HttpAffiliateStore(client),
            progress_store=JsonFileProgressStore(config.progress.path),
            permissions=HttpPermissionService(client),
            job=_job_config(config, roles),
        )


def _run_with_progress(
    batch: MigrateUsersBatch, start_step: Optional[int], finish_job: bool
) -> BatchRunSummary:
    """Run the batch while rendering a progress bar."""
    with Progress(
        SpinnerColumn(),
        TextColumn('[progress.description]{task.description}'),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task('[blue]Migrating users...', total=None)

        def update_progress(migrated: int, total: Optional[int]) -> None:
            progress.update(task, completed=migrated, total=total)

        try:
            summary = BatchRunner(batch).run(
                start_step=start_step,
                progress_callback=update_progress,
                finish=finish_job,
            )
        except Exception as e:
            progress.update(task, description=f'[red]Failed: {e}')
            raise

        progress.update(task, description='[green]Migration completed')

    return summary


def _display_run_summary(summary: BatchRunSummary) -> None:
    """Display the run summary."""
    table = Table(title='Migration Summary')
    table.add_column('Batch', style='cyan')
    table.add_column('Steps', style='blue')
    table.add_column('Migrated', style='green')
    table.add_column('Expected', style='yellow')

    table.add_row(
        summary.batch_id,
        str(summary.steps_run),
        str(summary.migrated_count),
        '-' if summary.total_count is None else str(summary.total_count),
    )

    console.print(table)

    if summary.completed_at:
        duration = summary.completed_at - summary.started_at
        console.print(f'\n[blue]Migration Duration:[/blue] {duration}')

    if not summary.finished:
        console.print(
            '[yellow]Job state kept; run "affiliate-migrate finish" to clear it[/yellow]'
        )


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Migration interrupted by user[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
