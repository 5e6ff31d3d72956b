"""
Main CLI entry point for Kontent Restore.

This module provides the command-line interface for restoring an exported
project snapshot into a target Kontent project.
"""

import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from kontent_restore import __version__
from kontent_restore.cli.commands import restore as restore_commands
from kontent_restore.cli.context import RestoreContext
from kontent_restore.utils.logging import configure_logging, get_logger

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="kontent-restore")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Set console logging level (file logging stays at DEBUG)",
    envvar="KONTENT_RESTORE_LOG_LEVEL",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write a JSON log to this file",
    envvar="KONTENT_RESTORE_LOG_FILE",
)
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str,
    log_file: Path | None,
) -> None:
    """Kontent Restore - Restore a project snapshot into a target project.

    Content model, assets and content are created in dependency order and
    every reference is rewritten to the identities assigned by the target.

    Examples:

        # Restore a snapshot
        kontent-restore import --config restore.yaml --source ./snapshot

        # Verbose console logging and a JSON log file
        kontent-restore --log-level INFO --log-file logs/restore.log import -s ./snapshot
    """
    configure_logging(level=log_level, log_file=str(log_file) if log_file else None)

    ctx.obj = RestoreContext(log_level=log_level, log_file=log_file)

    logger.debug("cli_initialized", log_level=log_level)


cli.add_command(restore_commands.import_cmd, name="import")


def main() -> int:
    """Main entry point for CLI."""
    try:
        # Without standalone mode click returns the exit code of click.exceptions.Exit
        result = cli(standalone_mode=False)
        return result if isinstance(result, int) else 0
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except Exception as e:
        logger.error("unexpected_error", error=str(e), exc_info=True)
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
