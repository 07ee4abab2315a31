"""Main CLI entry point for box."""

import os
import sys
import logging
from contextlib import contextmanager
from typing import Optional, Tuple

import click
from rich.console import Console

from ..core.configuration import ConfigurationManager
from ..core.engine import BoxEngine
from ..core.exceptions import BoxError, ConfigurationError
from ..core.workspace import ScratchWorkspace

# Initialize rich console for colored output
console = Console(highlight=False)


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    # Check environment variable for log level override
    env_log_level = os.getenv('BOX_LOG_LEVEL', '').upper()
    if env_log_level in ['DEBUG', 'INFO', 'WARNING', 'ERROR']:
        level = getattr(logging, env_log_level)
    else:
        level = logging.DEBUG if verbose else logging.WARNING

    # Check environment variable for log format override
    log_format = os.getenv('BOX_LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    logging.basicConfig(
        level=level,
        format=log_format
    )


class BoxGroup(click.Group):
    """Command group that treats an unknown first word as a search query."""

    def resolve_command(self, ctx, args):
        if args and not args[0].startswith('-') and self.get_command(ctx, args[0]) is None:
            return super().resolve_command(ctx, ['search'] + list(args))
        return super().resolve_command(ctx, args)


def get_engine(ctx) -> BoxEngine:
    """Build the engine for this invocation, once."""
    if ctx.obj.get('engine') is None:
        ctx.obj['engine'] = BoxEngine.from_config(ctx.obj['config'], ctx.obj['workspace'], console)
    return ctx.obj['engine']


@contextmanager
def report_errors(ctx):
    """Print errors the way every command does and exit non-zero."""
    try:
        yield
    except BoxError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except click.exceptions.Abort:
        raise
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@click.group(cls=BoxGroup, invoke_without_command=True,
             context_settings={'help_option_names': ['-h', '--help']})
@click.option('--official-only', is_flag=True, envvar='BOX_OFFICIAL_ONLY',
              help='Only use the official repositories, never the AUR (env: BOX_OFFICIAL_ONLY)')
@click.option('--no-fzf', is_flag=True, envvar='BOX_NO_FZF',
              help='Use the numbered prompt instead of fzf (env: BOX_NO_FZF)')
@click.option('--noconfirm', '-y', 'no_confirm', is_flag=True, envvar='BOX_NOCONFIRM',
              help='Pass --noconfirm to pacman and makepkg (env: BOX_NOCONFIRM)')
@click.option('--config', '-c', type=click.Path(),
              default=lambda: os.getenv('BOX_CONFIG'),
              help='Path to configuration file (env: BOX_CONFIG)')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging (env: BOX_VERBOSE)')
@click.pass_context
def cli(ctx, official_only, no_fzf, no_confirm, config, verbose):
    """
    Box - minimal AUR helper.

    Search, add, remove and update packages from the official repositories
    and the AUR.

    \b
    Examples:

      # Search both sources and pick a package to add
      box search editor

      # Same thing, the search command is optional
      box editor

      # Add a package by name (official or AUR)
      box add yay

      # Remove a package and the dependencies only it needed
      box remove --recursive somepkg

      # Pick an installed package to remove
      box remove

      # Upgrade the system, then rebuild outdated AUR packages
      box update
    """
    ctx.ensure_object(dict)

    # Apply environment variable for verbose if not provided via CLI
    if not verbose and os.getenv('BOX_VERBOSE', '').lower() in ['true', '1', 'yes']:
        verbose = True

    ctx.obj['verbose'] = verbose
    setup_logging(verbose)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    if ctx.invoked_subcommand == 'help':
        return

    try:
        manager = ConfigurationManager(config)
        ctx.obj['config'] = manager.build_config(
            official_only=official_only,
            no_fzf=no_fzf,
            no_confirm=no_confirm
        )
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    workspace = ScratchWorkspace(ctx.obj['config'].workspace_dir)
    workspace.acquire()
    ctx.call_on_close(workspace.release)
    ctx.obj['workspace'] = workspace


@cli.command()
@click.argument('query', nargs=-1, required=True)
@click.pass_context
def search(ctx, query: Tuple[str, ...]):
    """
    Search packages and pick one to add.

    Official repository results are listed before AUR results.
    """
    with report_errors(ctx):
        get_engine(ctx).search_and_install(' '.join(query))


@cli.command()
@click.argument('package')
@click.pass_context
def add(ctx, package: str):
    """
    Add (install) a package by exact name.

    The official repositories are checked first, then the AUR.
    """
    with report_errors(ctx):
        get_engine(ctx).add(package)


@cli.command()
@click.argument('package', required=False)
@click.option('--recursive', '-r', is_flag=True,
              help='Also remove dependencies not required by other packages')
@click.pass_context
def remove(ctx, package: Optional[str], recursive: bool):
    """
    Remove a package.

    Without PACKAGE, pick one of the explicitly installed packages.
    """
    with report_errors(ctx):
        engine = get_engine(ctx)
        if package:
            engine.remove(package, recursive=recursive)
        else:
            engine.remove_interactive(recursive=recursive)


@cli.command()
@click.pass_context
def update(ctx):
    """Update all packages (pacman first, then the AUR)."""
    with report_errors(ctx):
        get_engine(ctx).update()


@cli.command('help')
@click.pass_context
def help_command(ctx):
    """Show this help."""
    click.echo(ctx.parent.get_help())


def main() -> int:
    """Main CLI entry point."""
    try:
        cli(standalone_mode=False)
        return 0
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except (KeyboardInterrupt, click.exceptions.Abort):
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 130
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
