"""
Main CLI interface for Playlist-Fixer

The CLI is built using Click and provides:
- fix: log in, pick playlists, and rebuild each one in reverse order
- config show: print the effective configuration with secrets masked
- config check: validate the configuration before a run
"""

import sys
import click
import functools

import yaml

from . import __version__
from .config.settings import get_settings, reload_settings
from .exceptions import ConfigurationError
from .rebuild.orchestrator import PlaylistFixer
from .spotify.models import JobStatus
from .utils.logger import configure_from_settings, get_logger, get_current_log_file


logger = get_logger(__name__)


def print_banner():
    """Print application banner to console"""
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                        Playlist-Fixer                         ║
║                                                               ║
║     Rebuild Spotify playlists so recently added reads right   ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Ctrl-C exits with 130, any other error is logged, printed in red and
    exits with 1.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Command failed: {e}", exc_info=True)
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    Playlist-Fixer - Rebuild Spotify playlists in reverse order

    Creates "<name> Fixed" copies whose tracks are added newest-first, so
    Spotify's recently added sort shows them in the original order.
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    if version:
        click.echo(f"Playlist-Fixer v{__version__}")
        return

    try:
        settings = reload_settings(config) if config else get_settings()
    except (OSError, yaml.YAMLError, ConfigurationError) as e:
        click.echo(click.style(f"Error: Could not load config: {e}", fg='red'), err=True)
        sys.exit(1)

    configure_from_settings(settings, verbose=verbose)
    logger.debug(f"Using {settings}")
    if config:
        click.echo(f"Loaded config: {config}")
    if verbose:
        logger.info("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@click.option('--select', 'selection', help='Playlist numbers to fix, e.g. "1,3" (skips the prompt)')
@click.option('--pace', type=click.FloatRange(min=0), help='Seconds between two track additions')
@click.option('--page-size', type=click.IntRange(1, 100), help='Tracks requested per page')
@click.option('--login-timeout', type=click.FloatRange(min=0, min_open=True),
              help='Give up if the browser login takes longer (seconds)')
@handle_error
def fix(selection, pace, page_size, login_timeout):
    """
    Fix playlists by rebuilding them in reverse order

    Opens a local login listener, lists your playlists, and for every playlist
    you select creates "<name> Fixed" with the tracks added one by one.
    """
    settings = get_settings()
    if pace is not None:
        settings.rebuild.pace_seconds = pace
    if page_size is not None:
        settings.rebuild.page_size = page_size
    if login_timeout is not None:
        settings.rebuild.login_timeout = login_timeout

    fixer = PlaylistFixer(settings)
    jobs = fixer.run(selection=selection)

    problems = [job for job in jobs if job.status not in (JobStatus.COMPLETED, JobStatus.EMPTY)]
    if problems:
        click.echo(click.style(f"\n{len(problems)} playlist(s) finished with errors:", fg='yellow'))
        for job in problems:
            reason = job.error or f"{len(job.failed_tracks)} track(s) not added"
            click.echo(f"   • {job.source.name}: {reason}")

    log_file = get_current_log_file()
    if log_file:
        click.echo(f"Log file: {log_file}")


@cli.group()
def config():
    """
    Configuration management

    Command group for viewing and validating the application configuration.
    """
    pass


@config.command()
@handle_error
def show():
    """
    Show current configuration

    Prints every section as YAML. The client secret is masked.
    """
    settings = get_settings()

    click.echo("Current Configuration:\n")
    if settings.loaded_from:
        click.echo(f"Loaded from: {settings.loaded_from}\n")
    click.echo(yaml.safe_dump(settings.to_dict(mask_secrets=True), sort_keys=False, default_flow_style=False))


@config.command()
@handle_error
def check():
    """
    Validate the configuration

    Reports missing credentials and unusable values. Exits with 1 when a
    problem is found.
    """
    settings = get_settings()
    problems = settings.validate()

    if not problems:
        click.echo(click.style("Configuration OK", fg='green'))
        return

    click.echo(click.style("Configuration problems:", fg='red'))
    for problem in problems:
        click.echo(f"   • {problem}")
    sys.exit(1)


if __name__ == '__main__':
    cli()
