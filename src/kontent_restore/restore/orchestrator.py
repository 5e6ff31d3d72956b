"""Import orchestrator for restoring a snapshot into a target project.

This module provides the orchestrator that runs a complete restore:
filter -> normalize references -> import every stage in dependency order ->
publish -> move to workflow step.
"""

from datetime import UTC, datetime
from typing import Any, cast

from kontent_restore.client.management_client import ManagementClient
from kontent_restore.config import ImportConfig, ImportHooks
from kontent_restore.reporting.reporter import ImportReporter
from kontent_restore.resources import (
    ASSET,
    ASSET_FOLDER,
    LANGUAGE,
    LANGUAGE_VARIANT,
    get_kind_info,
    get_kinds_in_import_order,
)
from kontent_restore.restore.filters import filter_source
from kontent_restore.restore.importer import (
    EntityImporter,
    LanguageImporter,
    Prepared,
    WorkflowPass,
    create_importer,
)
from kontent_restore.restore.ledger import ImportLedger
from kontent_restore.restore.models import ImportItemResult, ImportSource, UpsertedVariant
from kontent_restore.restore.translator import ReferenceTranslator
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)


class ImportOrchestrator:
    """Coordinates a restore run.

    Stages run sequentially; every entity is awaited before the next one is
    sent, so each ledger entry is visible to every later stage. The first
    failure aborts the run.
    """

    # Import stages in dependency order, as registered in resources
    IMPORT_STAGES = [
        {"name": info.source_field, "description": info.description, "kind": info.name}
        for info in map(get_kind_info, get_kinds_in_import_order())
    ]

    def __init__(
        self,
        config: ImportConfig,
        client: ManagementClient,
        hooks: ImportHooks | None = None,
        reporter: ImportReporter | None = None,
    ):
        """Initialize import orchestrator.

        Args:
            config: Import configuration
            client: Management API client of the target project
            hooks: Inclusion predicates and observer callbacks
            reporter: Progress sink (built from config and hooks if omitted)
        """
        self.config = config
        self.client = client
        self.hooks = hooks or ImportHooks()
        self.reporter = reporter or ImportReporter(
            enable_log=config.enable_log,
            on_import=self.hooks.on_import,
            on_error=self.hooks.on_error,
            on_unsupported_binary_file=self.hooks.on_unsupported_binary_file,
        )
        self.ledger = ImportLedger()
        self.importers: dict[str, EntityImporter] = {}
        self.translator: ReferenceTranslator | None = None

        self.metrics: dict[str, Any] = {
            "start_time": None,
            "end_time": None,
            "stages_completed": 0,
            "stages_skipped": 0,
            "variants_published": 0,
            "variants_moved": 0,
        }

    async def import_from_source(self, source: ImportSource) -> list[ImportItemResult]:
        """Restore a snapshot into the target project.

        Args:
            source: Snapshot to restore

        Returns:
            One result per ledger entry, in the order entities were imported

        Raises:
            PreconditionError: If an entity cannot be sent
            APIError: If the target rejects a request
            NetworkError: If the target cannot be reached after retries
        """
        self.metrics["start_time"] = datetime.now(UTC)
        self.ledger = ImportLedger()

        # The index covers the unfiltered snapshot so references to excluded
        # entities are recognized and fail at resolution
        translator = ReferenceTranslator.from_source(source)
        self.translator = translator
        filtered = filter_source(source, self.hooks.process)

        self.reporter.info("Translating object ids to codenames")
        prepared = self._prepare(filtered, translator)
        self.importers = self._create_importers(translator, filtered)

        logger.info("import_started", counts=filtered.counts())

        language_importer = cast(LanguageImporter, self.importers[LANGUAGE])
        if prepared[LANGUAGE] and not self.config.fix_languages:
            await language_importer.verify_default_language(prepared[LANGUAGE])

        upserted: list[UpsertedVariant] = []
        for stage in self.IMPORT_STAGES:
            entities = prepared[stage["kind"]]
            if not entities:
                self.reporter.stage_skipped(stage["description"])
                self.metrics["stages_skipped"] += 1
                continue

            try:
                logger.info(
                    "stage_starting",
                    stage_name=stage["name"],
                    description=stage["description"],
                    total=len(entities),
                )
                self.reporter.stage_started(stage["description"], len(entities))

                result = await self.importers[stage["kind"]].import_all(entities)
                if stage["kind"] == LANGUAGE_VARIANT:
                    upserted = result

                self.metrics["stages_completed"] += 1
                logger.info(
                    "stage_completed",
                    stage_name=stage["name"],
                    stats=self.importers[stage["kind"]].get_stats(),
                )
            except Exception as e:
                logger.error(
                    "stage_failed",
                    stage_name=stage["name"],
                    error=str(e),
                    exc_info=True,
                )
                raise

        await self._run_workflow_passes(upserted, filtered)

        self.metrics["end_time"] = datetime.now(UTC)
        logger.info(
            "import_completed",
            entries=len(self.ledger),
            per_kind=self.ledger.stats(),
            duration_seconds=(self.metrics["end_time"] - self.metrics["start_time"]).total_seconds(),
        )
        self.reporter.info("Finished import")

        return self.ledger.results()

    def _prepare(
        self, source: ImportSource, translator: ReferenceTranslator
    ) -> dict[str, list[Prepared]]:
        """Pair every entity of each stage with its normalized copy."""
        prepared: dict[str, list[Prepared]] = {}
        for stage in self.IMPORT_STAGES:
            kind = stage["kind"]
            originals = getattr(source, get_kind_info(kind).source_field)
            if kind == ASSET_FOLDER:
                # Folders carry no references; the importer assigns external ids
                prepared[kind] = [(folder, folder) for folder in originals]
                continue
            normalized = translator.normalize_to_symbolic(originals, kind)
            prepared[kind] = list(zip(originals, normalized, strict=True))
        return prepared

    def _create_importers(
        self, translator: ReferenceTranslator, source: ImportSource
    ) -> dict[str, EntityImporter]:
        importers = {}
        for stage in self.IMPORT_STAGES:
            kind = stage["kind"]
            kwargs = {"binary_files": source.binary_files} if kind == ASSET else {}
            importers[kind] = create_importer(
                kind,
                self.client,
                self.ledger,
                translator,
                self.reporter,
                self.config,
                **kwargs,
            )
        return importers

    async def _run_workflow_passes(
        self, upserted: list[UpsertedVariant], source: ImportSource
    ) -> None:
        """Publish and move upserted variants as configured."""
        if not upserted:
            return

        workflow = WorkflowPass(self.client, self.reporter)

        if self.config.enable_publish:
            self.reporter.info("Publishing imported items")
            self.metrics["variants_published"] = await workflow.publish_variants(
                upserted, source.workflow_steps
            )

        if self.config.workflow_id_for_imported_items:
            self.reporter.info(
                f"Moving imported items to workflow step "
                f"'{self.config.workflow_id_for_imported_items}'"
            )
            self.metrics["variants_moved"] = await workflow.move_variants(
                upserted, self.config.workflow_id_for_imported_items
            )

    def get_summary(self) -> dict[str, Any]:
        """Summary of the last run."""
        return {
            **self.metrics,
            "entries": len(self.ledger),
            "per_kind": self.ledger.stats(),
            "unsupported_binary_files": [
                binary.asset_id
                for binary in getattr(self.importers.get(ASSET), "unsupported_binary_files", [])
            ],
        }
