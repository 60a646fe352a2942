#!/usr/bin/env python3
"""
digiKam Select CLI

Select digiKam images by tag, rating or album, then copy, link or convert
them into another directory tree.
"""

import sys
import logging
import click
from pathlib import Path
from colorama import init, Fore, Style

# Add the digikam_select package to path
sys.path.insert(0, str(Path(__file__).parent))

from digikam_select import (
    __version__,
    Config,
    FileMaterializer,
    OutputSynchronizer,
    PhotoSelector,
    RunReporter,
    Verbosity,
    build_options,
)
from digikam_select.exceptions import ConfigurationError, DataAccessError
from digikam_select.utils import get_current_timestamp

# Initialize colorama for cross-platform colored output
init()

EXIT_CONFIGURATION_ERROR = 1
EXIT_DATA_ACCESS_ERROR = 2

_handlers = []

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: int = logging.INFO, log_file: str = None):
    """Set up logging configuration."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    root_logger = logging.getLogger()

    # Remove handlers from a previous invocation
    for handler in _handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    _handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        _handlers.append(file_handler)

    root_logger.setLevel(level)
    for handler in _handlers:
        root_logger.addHandler(handler)


def print_header(title: str):
    """Print a formatted header."""
    click.echo(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{title.center(60)}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")

def print_success(message: str):
    """Print success message."""
    click.echo(f"{Fore.GREEN}OK: {message}{Style.RESET_ALL}")

def print_warning(message: str):
    """Print warning message."""
    click.echo(f"{Fore.YELLOW}WARN: {message}{Style.RESET_ALL}")

def print_error(message: str):
    """Print error message."""
    click.echo(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}", err=True)

def print_info(message: str):
    """Print info message."""
    click.echo(f"{Fore.BLUE}INFO: {message}{Style.RESET_ALL}")


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.option('-i', '--input', 'input_db', metavar='DBFILE',
              help='Input digiKam database (digikam4.db)')
@click.option('-o', '--output', metavar='DIR', help='Output directory')
@click.option('-m', '--mode', metavar='MODE',
              help='Transfer mode: copy (default), link, hardlink, symlink, convert')
@click.option('-c', '--compress', metavar='OPTS',
              help="Process JPEG images with ImageMagick 'convert', e.g. "
                   "'-quality 80 -geometry 1920x1080'. Sets --mode=convert; "
                   "other files are copied.")
@click.option('--convert-bin', metavar='PATH',
              help="Conversion executable (default: 'convert' in PATH)")
@click.option('-f', '--force', is_flag=True,
              help='Overwrite existing images in the target tree (default: skip)')
@click.option('-s', '--sync', is_flag=True,
              help='Also delete files in the target tree that are not selected')
@click.option('-t', '--tags', metavar='x,y,z',
              help='Match images with any of these tags (exact flat names)')
@click.option('-r', '--minrating', metavar='N', help='Match images with at least N stars')
@click.option('-a', '--album', metavar='STR', help='Match albums whose path contains STR')
@click.option('--no-albums', is_flag=True, help='Do not create album folders')
@click.option('-v', '--verbose', count=True, help='Show detailed progress (repeat for debug)')
@click.option('-q', '--quiet', is_flag=True, help='Only show a progress bar and errors')
@click.option('-d', '--dry-run', is_flag=True, help='Pretend mode, do not write any files')
@click.option('--interactive', is_flag=True, help='Ask before writing or deleting each file')
@click.option('--config', 'config_path', metavar='PATH', help='YAML file with default options')
@click.option('--report', metavar='PATH', help='Write the run summary to a file')
@click.version_option(__version__, '--version', prog_name='digikam-select')
def cli(input_db, output, mode, compress, convert_bin, force, sync, tags, minrating,
        album, no_albums, verbose, quiet, dry_run, interactive, config_path, report):
    """digiKam Select - copy, link or convert selected digiKam images."""

    try:
        config = Config(config_path)
        options = build_options({
            'input': input_db,
            'output': output,
            'mode': mode,
            'compress': compress,
            'convert_bin': convert_bin,
            'force': force,
            'sync': sync,
            'tags': tags,
            'minrating': minrating,
            'album': album,
            'no_albums': no_albums,
            'verbose': verbose,
            'quiet': quiet,
            'dry_run': dry_run,
            'interactive': interactive,
        }, config)
    except ConfigurationError as e:
        print_error("Configuration validation failed:")
        for error in e.errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(EXIT_CONFIGURATION_ERROR)

    setup_logging(options.log_level, config.get_log_file())
    show = options.verbosity >= Verbosity.NORMAL

    if show:
        print_header("DIGIKAM SELECT")
        if options.dry_run:
            print_info("DRY RUN - no files will be written or deleted")

    try:
        records = PhotoSelector(options).select()
    except DataAccessError as e:
        print_error(str(e))
        sys.exit(EXIT_DATA_ACCESS_ERROR)

    materializer = FileMaterializer(options)
    results = materializer.materialize_all(records)
    results['timestamp'] = get_current_timestamp()

    sync_results = None
    if options.sync:
        sync_results = OutputSynchronizer(options).sync(records)

    reporter = RunReporter(options)
    if show:
        click.echo("\n" + reporter.generate_summary_report(results, sync_results))
        if results['failed_files']:
            print_warning(f"{results['failed_files']:,} files could not be materialized")
        else:
            print_success(f"{results['materialized_files']:,} files "
                          f"{'planned' if options.dry_run else 'materialized'}")

    if report:
        reporter.save_report(results, report, sync_results)


if __name__ == '__main__':
    cli()
