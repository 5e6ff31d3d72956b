"""
Import command.

This module provides the command that restores a snapshot directory into the
target project.
"""

import asyncio
from pathlib import Path

import click

from kontent_restore.cli.context import RestoreContext
from kontent_restore.cli.decorators import handle_errors, pass_context
from kontent_restore.cli.utils import (
    echo_info,
    echo_success,
    echo_warning,
    format_count,
    format_duration,
    print_table,
)
from kontent_restore.config import ImportHooks
from kontent_restore.restore.models import ImportItemResult
from kontent_restore.restore.orchestrator import ImportOrchestrator
from kontent_restore.restore.source import load_import_source
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)


async def _run_import(ctx: RestoreContext, source_dir: Path) -> tuple[list[ImportItemResult], ImportOrchestrator]:
    source = load_import_source(source_dir)
    try:
        orchestrator = ImportOrchestrator(
            config=ctx.config,
            client=ctx.client,
            hooks=ImportHooks(),
        )
        results = await orchestrator.import_from_source(source)
    finally:
        await ctx.aclose()
    return results, orchestrator


@click.command(name="import")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (environment variables are used when omitted)",
    envvar="KONTENT_RESTORE_CONFIG",
)
@click.option(
    "--source",
    "-s",
    "source_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=True,
    help="Snapshot directory to restore",
)
@click.option(
    "--publish/--no-publish",
    default=None,
    help="Publish variants that were published in the source project",
)
@click.option(
    "--fix-languages/--no-fix-languages",
    default=None,
    help="Rename the target default language and reactivate inactive languages",
)
@click.option(
    "--workflow-step-id",
    type=str,
    default=None,
    help="Move every imported variant to this workflow step",
)
@click.option(
    "--log/--no-log",
    "enable_log",
    default=None,
    help="Print a line for every imported entity",
)
@pass_context
@handle_errors
def import_cmd(
    ctx: RestoreContext,
    config_path: Path | None,
    source_dir: Path,
    publish: bool | None,
    fix_languages: bool | None,
    workflow_step_id: str | None,
    enable_log: bool | None,
) -> None:
    """Restore a snapshot directory into the target project.

    Examples:

        # Restore using a configuration file
        kontent-restore import --config restore.yaml --source ./snapshot

        # Restore and publish what was published in the source project
        kontent-restore import -c restore.yaml -s ./snapshot --publish
    """
    if config_path is not None:
        ctx.config_path = config_path

    ctx.override(
        enable_publish=publish,
        fix_languages=fix_languages,
        workflow_id_for_imported_items=workflow_step_id,
        enable_log=enable_log,
    )

    echo_info(
        f"Restoring {source_dir} into project {ctx.config.management.project_id}"
    )

    results, orchestrator = asyncio.run(_run_import(ctx, source_dir))
    summary = orchestrator.get_summary()

    print_table(orchestrator.reporter.summary_table())

    for asset_id in summary["unsupported_binary_files"]:
        echo_warning(f"Binary data of asset {asset_id} was not uploaded due to its size")

    duration = (summary["end_time"] - summary["start_time"]).total_seconds()
    echo_success(
        f"Imported {format_count(len(results))} entities in {format_duration(duration)}"
    )
    logger.info("import_command_completed", entries=len(results), per_kind=summary["per_kind"])
