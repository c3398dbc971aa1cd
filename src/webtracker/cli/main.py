# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main CLI entry point for the web tracker.
"""

import math
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console

from .. import __version__
from ..capture.config import LOG_LEVELS, Config
from ..processing.database.errors import OpenError
from ..processing.server import TrackerServer, setup_logging

# Errors go to stderr so stdout stays clean
console = Console(stderr=True)

EXIT_DB_OPEN_FAILED = 9


def parse_number(value: str) -> Optional[float]:
    """Parse a finite float, None if the value is not one."""
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def split_positionals(
    first: Optional[str], second: Optional[str]
) -> Tuple[Optional[float], Optional[str]]:
    """
    Work out which positional argument is the interval and which the database path.

    Whichever argument parses as a number is the interval; when both do,
    the first one wins and the second is taken as the path.

    Returns:
        (interval or None, database path or None)

    Raises:
        click.UsageError: Two arguments given and neither is a number
    """
    if first is None:
        return None, None

    if second is None:
        interval = parse_number(first)
        if interval is not None:
            return interval, None
        return None, first

    interval = parse_number(first)
    if interval is not None:
        return interval, second
    interval = parse_number(second)
    if interval is not None:
        return interval, first
    raise click.UsageError(
        f"one of the arguments must be the interval in seconds, got {first!r} and {second!r}"
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("first", required=False, metavar="[INTERVAL]")
@click.argument("second", required=False, metavar="[DB_PATH]")
@click.option(
    "--config-dir",
    envvar="WEBTRACKER_CONFIG_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding config.yaml"
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level"
)
@click.option(
    "--once",
    is_flag=True,
    help="Scan the browser once and exit"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit"
)
@click.pass_context
def cli(
    ctx,
    first: Optional[str],
    second: Optional[str],
    config_dir: Optional[Path],
    log_level: Optional[str],
    once: bool,
    version: bool,
):
    """
    Web Tracker - log every new browser tab to a local SQLite database.

    INTERVAL (seconds, default 5) and DB_PATH may be given in either order.

    Examples:
        webtracker
        webtracker 10
        webtracker ~/tabs.db 2.5
    """
    if version:
        click.echo(f"Web Tracker version {__version__}")
        ctx.exit()

    interval, db_path = split_positionals(first, second)

    config = Config(config_dir=config_dir)
    if interval is not None:
        config.interval = interval
    if db_path is not None:
        config.db_path = Path(db_path).expanduser()
    if log_level:
        config.log_level = log_level.upper()

    problems = config.validate()
    if problems:
        raise click.UsageError("; ".join(problems))

    setup_logging(config.log_level)

    server = TrackerServer(config)
    try:
        server.run(once=once)
    except OpenError as e:
        console.print(f"[red]✗[/red] Cannot open database {config.db_path}", style="bold red")
        console.print(f"Error message: {e.message}\nError code: {e.code}")
        ctx.exit(EXIT_DB_OPEN_FAILED)
    except KeyboardInterrupt:
        console.print("Interrupted")


def main():
    """Main entry point."""
    cli(prog_name="webtracker")


if __name__ == "__main__":
    sys.exit(main())
