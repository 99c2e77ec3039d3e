#!/usr/bin/env python3
"""
Photo Replication CLI

Copies photos from a source tree into a YYYY/MM destination tree keyed by
capture date, verifying every copy by size and checksum.
"""

import sys
import logging
import click
from pathlib import Path
from colorama import init, Fore, Style

from .config import Config
from .errors import ReplicationError
from .hashing import verify_file
from .manifest import load_manifest, save_manifest
from .models import SKIP_DUPLICATE, SKIP_EXISTS, SKIP_MISSING_METADATA
from .pipeline import ReplicationPipeline
from .utils import format_bytes, parse_duration

# Initialize colorama for cross-platform colored output
init()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Reconfigured on every invocation
_console_handler = None
_file_handler = None


def setup_logging(level: str = 'INFO', log_dir: Path = None, log_name: str = 'photo_replicator'):
    """Set up logging configuration."""
    global _console_handler
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)
    _console_handler = logging.StreamHandler(sys.stdout)
    _console_handler.setFormatter(formatter)
    root_logger.addHandler(_console_handler)

    if log_dir:
        _setup_file_logging(Path(log_dir), formatter, root_logger, log_name)

    # Reduce noise from libraries
    logging.getLogger('exifread').setLevel(logging.ERROR)


def _setup_file_logging(log_dir: Path, formatter: logging.Formatter, root_logger: logging.Logger,
                        log_name: str = 'photo_replicator'):
    """Add file handler to root logger."""
    global _file_handler
    log_dir.mkdir(parents=True, exist_ok=True)

    # Remove previous file handler if any
    if _file_handler is not None:
        root_logger.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = logging.FileHandler(log_dir / f'{log_name}.log')
    _file_handler.setFormatter(formatter)
    root_logger.addHandler(_file_handler)


def print_header(title: str):
    """Print a formatted header."""
    click.echo(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{title.center(60)}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")
    sys.stdout.flush()

def print_success(message: str):
    """Print success message."""
    click.echo(f"{Fore.GREEN}OK: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_warning(message: str):
    """Print warning message."""
    click.echo(f"{Fore.YELLOW}WARN: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_error(message: str):
    """Print error message."""
    click.echo(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_info(message: str):
    """Print info message."""
    click.echo(f"{Fore.BLUE}INFO: {message}{Style.RESET_ALL}")
    sys.stdout.flush()


class DurationType(click.ParamType):
    """Durations like 500ms, 1s, 2m or plain seconds."""
    name = 'duration'

    def convert(self, value, param, ctx):
        if isinstance(value, float):
            return value
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationType()


def replication_options(f):
    """Options shared by the run and plan commands."""
    options = [
        click.option('--src', '-src', type=click.Path(file_okay=False), help='Source directory'),
        click.option('--dest', '-dest', type=click.Path(file_okay=False), help='Destination directory'),
        click.option('--include', '-include', default=None, help='Only files whose name contains this'),
        click.option('--exclude', '-exclude', default=None, help='Skip files whose name contains this'),
        click.option('--jpg', '-jpg', is_flag=True, help='Select JPEG files (default)'),
        click.option('--raw', '-raw', is_flag=True, help='Select RAW files'),
        click.option('--both', '-both', is_flag=True, help='Select JPEG and RAW files'),
        click.option('--cleanup/--no-cleanup', '-cleanup', default=None,
                     help="Remove destination files whose hash doesn't match"),
        click.option('--workers', '-workers', type=click.IntRange(1, 64), default=None,
                     help='Number of copy workers [default: 3]'),
        click.option('--tick', '-tick', type=DURATION, default=None,
                     help='Progress line period [default: 1s]'),
        click.option('--update', '-update', type=DURATION, default=None,
                     help='Rate recalculation period [default: 1s]'),
        click.option('--add-delay/--no-add-delay', '-add-delay', default=None,
                     help='Add random delay per file in dry run [default: on]'),
        click.option('--overwrite/--no-overwrite', '-overwrite', default=None,
                     help='Overwrite destination files if they exist'),
        click.option('--dry-run/--no-dry-run', '-dry-run', default=None, help='Perform dry run'),
        click.option('--skip-missing-metadata/--fail-on-missing-metadata', default=None,
                     help='Skip files without a capture date instead of aborting'),
        click.option('--collision-policy', type=click.Choice(['suffix', 'fail']), default=None,
                     help='What to do when two files map to the same destination'),
        click.option('--preserve-times/--no-preserve-times', default=None,
                     help='Set destination mtime/atime to the capture time [default: on]'),
        click.option('--progress', is_flag=True, help='Show a progress bar'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _selected_kind(jpg: bool, raw: bool, both: bool):
    if both or (jpg and raw):
        return 'both'
    if raw:
        return 'raw'
    if jpg:
        return 'jpg'
    return None


def _configure(ctx, opts) -> Config:
    """Apply command-line options on top of the loaded configuration."""
    config = ctx.obj['config']
    config.apply_overrides({
        'replication.source_dir': opts['src'],
        'replication.dest_dir': opts['dest'],
        'replication.workers': opts['workers'],
        'replication.tick_interval': opts['tick'],
        'replication.update_interval': opts['update'],
        'replication.add_delay': opts['add_delay'],
        'replication.overwrite': opts['overwrite'],
        'replication.dry_run': opts['dry_run'],
        'replication.cleanup_on_error': opts['cleanup'],
        'replication.skip_missing_metadata': opts['skip_missing_metadata'],
        'replication.collision_policy': opts['collision_policy'],
        'replication.preserve_times': opts['preserve_times'],
        'replication.show_progress_bar': opts['progress'] or None,
        'selection.include': opts['include'],
        'selection.exclude': opts['exclude'],
        'selection.kind': _selected_kind(opts['jpg'], opts['raw'], opts['both']),
    })

    errors = config.validate_config()
    if errors:
        print_error("Configuration validation failed:")
        for error in errors:
            click.echo(f"  - {error}")
        sys.exit(1)
    return config


def _report_skipped(manifest):
    exists = len(manifest.skipped_by_reason(SKIP_EXISTS))
    duplicates = len(manifest.skipped_by_reason(SKIP_DUPLICATE))
    missing = len(manifest.skipped_by_reason(SKIP_MISSING_METADATA))
    if exists:
        print_info(f"Skipped (destination exists): {exists:,}")
    if duplicates:
        print_info(f"Skipped (duplicate content): {duplicates:,}")
    if missing:
        print_warning(f"Skipped (missing metadata): {missing:,}")


@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--log-level', '-l', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level')
@click.option('--log-dir', type=click.Path(file_okay=False), help='Also write logs to this directory')
@click.pass_context
def cli(ctx, config, log_level, log_dir):
    """Photo Replication Tool - verified copy of photos into a date-keyed tree."""

    # Initial logging setup (console only)
    setup_logging(log_level or 'INFO')

    try:
        config_obj = Config(config)
    except Exception as e:
        print_error(f"Failed to load configuration: {e}")
        sys.exit(1)

    level = log_level or config_obj.get_log_level()
    log_dir = log_dir or config_obj.get_log_dir()
    setup_logging(level, log_dir, ctx.invoked_subcommand or 'photo_replicator')

    ctx.ensure_object(dict)
    ctx.obj['config'] = config_obj


@cli.command()
@replication_options
@click.pass_context
def run(ctx, **opts):
    """Build the manifest and replicate files into the destination tree."""

    print_header("PHOTO REPLICATION")
    config = _configure(ctx, opts)

    try:
        pipeline = ReplicationPipeline(config)
        manifest = pipeline.plan()
        _report_skipped(manifest)
        print_info(f"Replicating {len(manifest):,} files ({format_bytes(manifest.total_bytes)}) "
                   f"with {config.get_workers()} workers")

        stats = pipeline.run(manifest)

        if config.is_dry_run():
            print_info("DRY RUN completed - no files were actually copied")

        if stats.failures:
            print_warning(f"Replication completed with {stats.errors:,} errors:")
            for failure in stats.failures[:5]:
                click.echo(f"  - {failure.error}")
            if len(stats.failures) > 5:
                click.echo(f"  - ... and {len(stats.failures) - 5} more errors")

        print_success(stats.summary())

    except ReplicationError as e:
        print_error(f"Replication failed: {e}")
        sys.exit(1)


@cli.command()
@replication_options
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write the manifest JSON here')
@click.pass_context
def plan(ctx, output, **opts):
    """Build the manifest only and optionally save it as JSON."""

    print_header("REPLICATION PLAN")
    config = _configure(ctx, opts)

    try:
        pipeline = ReplicationPipeline(config)
        manifest = pipeline.plan()
    except ReplicationError as e:
        print_error(f"Planning failed: {e}")
        sys.exit(1)

    _report_skipped(manifest)
    print_success(f"{len(manifest):,} files to copy ({format_bytes(manifest.total_bytes)})")

    if output:
        manifest_file = save_manifest(manifest, Path(output))
        print_success(f"Manifest saved: {manifest_file}")
    else:
        for entry in manifest.entries:
            click.echo(f"  {entry.source_path} -> {entry.dest_path}")


@cli.command()
@click.option('--manifest', '-m', 'manifest_path', required=True,
              type=click.Path(exists=True, dir_okay=False), help='Manifest JSON written by plan')
@click.pass_context
def verify(ctx, manifest_path):
    """Re-hash every destination in a manifest and report mismatches."""

    print_header("REPLICATION VERIFY")
    config = ctx.obj['config']
    try:
        manifest = load_manifest(Path(manifest_path))
    except (KeyError, TypeError, ValueError) as e:
        print_error(f"Invalid manifest {manifest_path}: {e!r}")
        sys.exit(1)

    failures = 0
    for entry in manifest.entries:
        try:
            verify_file(entry.dest_path, entry.content_hash, entry.byte_count,
                        config.get_hash_algorithm())
        except (ReplicationError, OSError) as e:
            failures += 1
            print_warning(str(e))

    if failures:
        print_error(f"{failures:,} of {len(manifest):,} files failed verification")
        sys.exit(1)
    print_success(f"All {len(manifest):,} files verified")


if __name__ == '__main__':
    cli()
