"""Main entry point for mac-cleanup."""

from __future__ import annotations

import argparse
import logging
import os
import platform
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm
from rich.table import Table

from . import __version__
from .config import CleanupConfig
from .errors import CleanupError, PrivilegeRequiredError
from .models import CategoryKind, CleanupReport, RemovalMode
from .orchestrator import CleanupOrchestrator
from .probes import format_bytes

MIN_MACOS_MAJOR = 12

_VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="mac-cleanup",
        description="Safe, whitelist-only disk cleanup for macOS",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command (default)
    run_parser = subparsers.add_parser("run", help="Run the cleanup")
    _add_run_arguments(run_parser)

    # Config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    if argv is None:
        argv = sys.argv[1:]
    args, extra = parser.parse_known_args(argv)
    if args.command is None:
        # No subcommand: "mac-cleanup --dry-run" means "mac-cleanup run --dry-run"
        args = run_parser.parse_args(extra, namespace=args)
        args.command = "run"
    elif extra:
        parser.error(f"unrecognized arguments: {' '.join(extra)}")
    return args


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview what would be cleaned without deleting",
    )
    backup = parser.add_mutually_exclusive_group()
    backup.add_argument(
        "--backup",
        action="store_const",
        const=True,
        dest="backup",
        help="Move files to Trash instead of deleting",
    )
    backup.add_argument(
        "--no-backup",
        action="store_const",
        const=False,
        dest="backup",
        help="Delete directly",
    )
    parser.add_argument(
        "--system",
        action="store_true",
        help="Include system-level caches (requires sudo)",
    )
    parser.add_argument(
        "--downloads",
        action="store_true",
        help="Include old files in Downloads",
    )
    parser.add_argument(
        "--snapshots",
        action="store_true",
        help="Include old local Time Machine snapshots",
    )
    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show every candidate on the console",
    )


def setup_logging(config: CleanupConfig, *, verbose: bool = False) -> logging.Logger:
    """Set up console and file logging.

    Args:
        config: Cleanup configuration.
        verbose: Show debug records on the console.

    Returns:
        Configured logger instance.

    Raises:
        ValueError: If the configured log level is unknown.

    """
    level = config.log_level.upper()
    if level not in _VALID_LEVELS:
        raise ValueError(f"Invalid log_level: {config.log_level}")

    logger = logging.getLogger("mac-cleanup")
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates on repeated setup
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(console_handler)

    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(config.log_file)
    file_handler.setLevel(getattr(logging, level))
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    logger.addHandler(file_handler)

    return logger


def build_run_config(config: CleanupConfig, args: argparse.Namespace) -> CleanupConfig:
    """Apply ``run`` flags to the loaded configuration."""
    enable: set[CategoryKind] = set()
    if args.system:
        enable.add(CategoryKind.SYSTEM_CACHES)
    if args.downloads:
        enable.add(CategoryKind.DOWNLOADS)
    if args.snapshots:
        enable.add(CategoryKind.SNAPSHOTS)

    return config.with_overrides(
        dry_run=args.dry_run,
        backup=args.backup,
        enable=frozenset(enable),
        elevated=os.geteuid() == 0,
    )


def check_macos_version(logger: logging.Logger) -> None:
    """Warn when running on an older macOS release."""
    version = platform.mac_ver()[0]
    if not version:
        logger.warning("Not running on macOS; default cleanup paths may not exist")
        return

    logger.debug("macOS version: %s", version)
    if int(version.split(".")[0]) < MIN_MACOS_MAJOR:
        logger.warning("macOS %d or later is recommended (found %s)", MIN_MACOS_MAJOR, version)


def show_summary(console: Console, config: CleanupConfig) -> None:
    """Print what the run is about to do."""
    table = Table(title="Cleanup Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for kind in CategoryKind:
        table.add_row(kind.label, "yes" if config.is_enabled(kind) else "no")
    table.add_row("Temp file age", f"{config.temp_file_age_days} days")
    table.add_row("Download file age", f"{config.download_file_age_days} days")
    table.add_row("Backup to Trash", str(config.mode is RemovalMode.TRASH_BACKUP))
    table.add_row("Dry-run mode", str(config.mode is RemovalMode.DRY_RUN))

    console.print(table)
    if config.mode is RemovalMode.DRY_RUN:
        console.print("[yellow]This is a dry-run. No files will actually be deleted.[/yellow]")


def show_results(console: Console, report: CleanupReport, config: CleanupConfig) -> None:
    """Print the per-category results of a finished run."""
    dry_run = config.mode is RemovalMode.DRY_RUN
    table = Table(title="Cleanup Results")
    table.add_column("Category", style="cyan")
    table.add_column("Would free" if dry_run else "Freed", style="green", justify="right")

    for kind, size in report.bytes_by_category().items():
        table.add_row(kind.label, format_bytes(size))
    console.print(table)

    if report.skipped:
        skipped = Table(title=f"Skipped ({len(report.skipped)})")
        skipped.add_column("Path", style="dim")
        skipped.add_column("Reason", style="red")
        for outcome in report.skipped:
            skipped.add_row(str(outcome.path), outcome.reason or "")
        console.print(skipped)

    if dry_run:
        total = sum(o.size_bytes for o in report.simulated)
        console.print(f"Dry-run completed. No files were deleted ({format_bytes(total)} reclaimable).")
    elif report.total_bytes_freed:
        console.print(f"[green]Cleanup completed. Space freed: {format_bytes(report.total_bytes_freed)}[/green]")
    else:
        console.print("No files were removed")

    console.print(f"Free space before: {format_bytes(report.free_space_before)}")
    if report.free_space_after is not None:
        console.print(f"Free space after:  {format_bytes(report.free_space_after)}")
    console.print(f"[dim]Log file: {config.log_file}[/dim]")


def cmd_run(config: CleanupConfig, args: argparse.Namespace) -> int:
    """Execute run command.

    Args:
        config: Loaded configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()
    run_config = build_run_config(config, args)
    logger = setup_logging(run_config, verbose=args.verbose)
    check_macos_version(logger)

    show_summary(console, run_config)
    if not args.yes and not Confirm.ask("Proceed with cleanup?", console=console, default=False):
        console.print("[yellow]Cleanup cancelled by user[/yellow]")
        return 0

    try:
        report = CleanupOrchestrator(logger).run(run_config)
    except CleanupError as e:
        logger.error("%s", e)
        if isinstance(e, PrivilegeRequiredError):
            console.print("Please run with: sudo mac-cleanup --system")
        return 1

    show_results(console, report, run_config)
    return 0


def cmd_config(config: CleanupConfig, args: argparse.Namespace) -> int:
    """Execute config command.

    Args:
        config: Loaded configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()

    if args.init:
        config_path = args.config or CleanupConfig.get_config_path()
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            return 1
        config.save(config_path)
        console.print(f"[green]Created config: {config_path}[/green]")
        return 0

    if args.show:
        show_summary(console, config)
        console.print(f"Log file: {config.log_file} ({config.log_level})")
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    try:
        config = CleanupConfig.load(args.config)
    except ValueError as e:
        Console(stderr=True).print(f"[red]{e}[/red]")
        return 1

    if args.command == "config":
        return cmd_config(config, args)
    return cmd_run(config, args)


if __name__ == "__main__":
    sys.exit(main())
