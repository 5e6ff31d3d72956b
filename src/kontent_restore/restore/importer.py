"""Entity importers for restoring a snapshot into a target project.

This module provides a base importer class and one importer per entity kind.
Every importer follows the same pattern for each entity: resolve references,
issue one Management API call, record the outcome in the import ledger and
report it. A failure is logged, reported and re-raised, which aborts the run.

Importers receive ``(original, normalized)`` pairs: the contract as exported
(recorded in the ledger) and its copy with references in symbolic form (used
to build the request).
"""

from abc import ABC, abstractmethod
from typing import Any

from kontent_restore.client.exceptions import (
    FolderMismatchError,
    LanguageMismatchError,
    MissingBinaryFileError,
    MissingCodenameError,
    PreconditionError,
    UnresolvedReferenceError,
)
from kontent_restore.client.management_client import ManagementClient
from kontent_restore.config import ImportConfig
from kontent_restore.reporting.reporter import ImportReporter
from kontent_restore.resources import (
    ASSET,
    ASSET_FOLDER,
    CHANGE_WORKFLOW_STEP,
    CONTENT_ITEM,
    CONTENT_TYPE,
    CONTENT_TYPE_SNIPPET,
    DEFAULT_LANGUAGE_ID,
    LANGUAGE,
    LANGUAGE_VARIANT,
    MAX_ASSET_SIZE_BYTES,
    PUBLISH,
    PUBLISHED_WORKFLOW_STEP_NAME,
    TAXONOMY,
)
from kontent_restore.restore.ledger import ImportLedger
from kontent_restore.restore.models import BinaryFile, Contract, UpsertedVariant
from kontent_restore.restore.translator import ReferenceTranslator
from kontent_restore.utils.logging import get_logger, log_stage_progress

logger = get_logger(__name__)

Prepared = tuple[Contract, Contract]

# Fields returned by the API that are never sent back
READ_ONLY_FIELDS = frozenset({"id", "last_modified"})


def is_default_language(language: Contract) -> bool:
    """Check whether a language contract is the project's default language."""
    return language.get("id") == DEFAULT_LANGUAGE_ID or bool(language.get("is_default"))


def flatten_folders(folders: list[Contract]) -> list[Contract]:
    """Flatten a folder tree in pre-order (parent before its children)."""
    flattened: list[Contract] = []
    for folder in folders:
        flattened.append(folder)
        flattened.extend(flatten_folders(folder.get("folders") or []))
    return flattened


def assign_folder_external_ids(folders: list[Contract]) -> list[Contract]:
    """Return a copy of a folder tree where every folder's external_id is its id."""
    return [
        {
            **folder,
            "external_id": folder["id"],
            "folders": assign_folder_external_ids(folder.get("folders") or []),
        }
        for folder in folders
    ]


def _without_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


class EntityImporter(ABC):
    """Base class for importing one kind of entity.

    Handles ledger recording, progress reporting and error handling.
    """

    KIND = ""

    def __init__(
        self,
        client: ManagementClient,
        ledger: ImportLedger,
        translator: ReferenceTranslator,
        reporter: ImportReporter,
        config: ImportConfig,
    ):
        """Initialize entity importer.

        Args:
            client: Management API client of the target project
            ledger: Ledger of the current run
            translator: Reference translator built from the full snapshot
            reporter: Progress and error sink
            config: Import configuration
        """
        self.client = client
        self.ledger = ledger
        self.translator = translator
        self.reporter = reporter
        self.config = config
        self.stats = {
            "imported_count": 0,
            "skipped_count": 0,
            "error_count": 0,
        }

    @abstractmethod
    async def import_all(self, entities: list[Prepared]) -> Any:
        """Import every entity of the stage in order."""

    def _title(self, entity: Contract) -> str:
        return entity.get("name") or entity.get("codename") or entity.get("id") or "unknown"

    def _record(self, original: Contract, imported: Contract, title: str) -> None:
        """Record an acknowledged entity and report it."""
        self.ledger.record(
            kind=self.KIND,
            original_id=original["id"],
            imported_id=imported["id"],
            original=original,
            imported=imported,
        )
        self.stats["imported_count"] += 1
        self.reporter.item_imported(title, self.KIND, imported)

    def _handle_import_error(self, error: Exception, title: str, kind: str | None = None) -> None:
        """Log and report a failure. The caller re-raises."""
        kind = kind or self.KIND
        self.stats["error_count"] += 1
        logger.error(
            "entity_import_failed",
            kind=kind,
            title=title,
            error_type=type(error).__name__,
            error=str(error),
        )
        self.reporter.item_failed(title, kind, error)

    def _log_progress(self, completed: int, total: int) -> None:
        log_stage_progress(logger, stage=self.KIND, completed=completed, total=total)

    def get_stats(self) -> dict[str, int]:
        """Get import statistics."""
        return self.stats.copy()


class LanguageImporter(EntityImporter):
    """Importer for languages.

    Languages whose codename already exists in the target are skipped. With
    fix_languages enabled, the target's default language is renamed to the
    source default codename and inactive languages are reactivated.
    """

    KIND = LANGUAGE

    async def verify_default_language(self, entities: list[Prepared]) -> None:
        """Fail early when default language codenames differ.

        Raises:
            LanguageMismatchError: If source and target default codenames differ
        """
        source_default = next(
            (language for _, language in entities if is_default_language(language)), None
        )
        if source_default is None:
            return

        title = self._title(source_default)
        try:
            current = await self.client.list_languages()
            target_default = self._find_target_default(current)
            if target_default and target_default["codename"] != source_default["codename"]:
                raise LanguageMismatchError(source_default["codename"], target_default["codename"])
        except Exception as e:
            self._handle_import_error(e, title)
            raise

    async def import_all(self, entities: list[Prepared]) -> None:
        current = await self.client.list_languages()

        if self.config.fix_languages:
            source_default = next(
                (language for _, language in entities if is_default_language(language)), None
            )
            if source_default is not None:
                try:
                    renamed = await self._fix_default_language(current, source_default)
                except Exception as e:
                    self._handle_import_error(e, self._title(source_default))
                    raise
                if renamed:
                    # Re-read so lookups below see the renamed codename
                    current = await self.client.list_languages()

        for position, (original, language) in enumerate(entities, start=1):
            title = self._title(language)
            try:
                if self.config.fix_languages and await self._activate_language(current, language):
                    current = await self.client.list_languages()

                payload = self._build_language(current, language)
                if payload is None:
                    self.stats["skipped_count"] += 1
                    continue

                response = await self.client.add_language(payload)
            except Exception as e:
                self._handle_import_error(e, title)
                raise

            self._record(original, response, response.get("name") or title)
            self._log_progress(position, len(entities))

    @staticmethod
    def _find_target_default(current: list[Contract]) -> Contract | None:
        return next((language for language in current if is_default_language(language)), None)

    @staticmethod
    def _find_by_codename(current: list[Contract], codename: str | None) -> Contract | None:
        return next((language for language in current if language.get("codename") == codename), None)

    async def _fix_default_language(self, current: list[Contract], language: Contract) -> bool:
        """Rename the target default language to the source default codename.

        Returns:
            True if the target was modified
        """
        target_default = self._find_target_default(current)
        if target_default is None:
            raise PreconditionError(
                f"Invalid default existing language. Language with id '{DEFAULT_LANGUAGE_ID}' "
                f"was not found in target project"
            )

        if target_default["codename"] == language["codename"]:
            return False

        if self._find_by_codename(current, language["codename"]):
            logger.warning(
                "default_language_rename_skipped",
                codename=language["codename"],
                reason="Language with this codename already exists in target project",
            )
            return False

        logger.info(
            "default_language_renamed",
            from_codename=target_default["codename"],
            to_codename=language["codename"],
        )
        self.reporter.info(
            f"Changing default language codename in target project from "
            f"'{target_default['codename']}' to '{language['codename']}'"
        )
        await self.client.modify_language(
            target_default["codename"],
            [{"op": "replace", "property_name": "codename", "value": language["codename"]}],
        )
        return True

    async def _activate_language(self, current: list[Contract], language: Contract) -> bool:
        """Reactivate an inactive target language with the same codename.

        Returns:
            True if the target was modified
        """
        existing = self._find_by_codename(current, language.get("codename"))
        if existing is None or existing.get("is_active", True):
            return False

        logger.info("language_activated", codename=existing["codename"])
        self.reporter.info(
            f"Language '{existing.get('name')}' with codename '{existing['codename']}' "
            f"is not active in target project. Activating language."
        )
        await self.client.modify_language(
            existing["codename"],
            [{"op": "replace", "property_name": "is_active", "value": True}],
        )
        return True

    def _build_language(self, current: list[Contract], language: Contract) -> Contract | None:
        """Build the create request, or None if the language already exists."""
        existing = self._find_by_codename(current, language.get("codename"))
        if existing:
            logger.info("language_skipped", codename=existing["codename"], reason="exists")
            self.reporter.info(
                f"Skipping language '{existing.get('name')}' with codename "
                f"'{existing['codename']}'"
            )
            return None

        if is_default_language(language):
            target_default = self._find_target_default(current)
            if target_default and target_default["codename"] != language["codename"]:
                raise LanguageMismatchError(language["codename"], target_default["codename"])

        fallback = language.get("fallback_language") or {}
        fallback_codename = fallback.get("codename")

        if fallback.get("id") == DEFAULT_LANGUAGE_ID and not fallback_codename:
            fallback_language: Contract = {"id": DEFAULT_LANGUAGE_ID}
        elif not fallback_codename:
            raise MissingCodenameError(
                f"Language '{self._title(language)}' has unset fallback language codename"
            )
        elif fallback_codename == language["codename"]:
            fallback_language = {"id": DEFAULT_LANGUAGE_ID}
        else:
            fallback_language = {"codename": fallback_codename}

        return _without_none(
            {
                "name": language.get("name"),
                "codename": language["codename"],
                "external_id": language.get("external_id"),
                "fallback_language": fallback_language,
                "is_active": language.get("is_active", True),
            }
        )


class SchemaImporter(EntityImporter):
    """Importer for content model entities created with one call each.

    No existence check is made; a duplicate codename or external id is
    rejected by the target and aborts the run.
    """

    async def _create(self, payload: Contract) -> Contract:
        raise NotImplementedError

    def _build_payload(self, entity: Contract) -> Contract:
        return {key: value for key, value in entity.items() if key not in READ_ONLY_FIELDS}

    async def import_all(self, entities: list[Prepared]) -> None:
        for position, (original, entity) in enumerate(entities, start=1):
            title = self._title(entity)
            try:
                response = await self._create(self._build_payload(entity))
            except Exception as e:
                self._handle_import_error(e, title)
                raise

            self._record(original, response, response.get("name") or title)
            self._log_progress(position, len(entities))


class TaxonomyImporter(SchemaImporter):
    """Importer for taxonomy groups."""

    KIND = TAXONOMY

    async def _create(self, payload: Contract) -> Contract:
        return await self.client.add_taxonomy(payload)


class ContentTypeSnippetImporter(SchemaImporter):
    """Importer for content type snippets."""

    KIND = CONTENT_TYPE_SNIPPET

    def _build_payload(self, entity: Contract) -> Contract:
        return _without_none(
            {
                "name": entity.get("name"),
                "codename": entity.get("codename"),
                "external_id": entity.get("external_id"),
                "elements": entity.get("elements", []),
            }
        )

    async def _create(self, payload: Contract) -> Contract:
        return await self.client.add_content_type_snippet(payload)


class ContentTypeImporter(SchemaImporter):
    """Importer for content types. Snippets they use must already exist."""

    KIND = CONTENT_TYPE

    async def _create(self, payload: Contract) -> Contract:
        return await self.client.add_content_type(payload)


class AssetFolderImporter(EntityImporter):
    """Importer for the asset folder tree.

    The whole tree is created in a single request. Every folder is sent with
    ``external_id = id`` so the flattened response can be matched back to the
    original folders.
    """

    KIND = ASSET_FOLDER

    async def import_all(self, entities: list[Prepared]) -> None:
        folders = [original for original, _ in entities]
        prepared = assign_folder_external_ids(folders)
        title = f"{len(flatten_folders(prepared))} folders"

        try:
            response = await self.client.add_asset_folders(
                [self._map_folder(folder) for folder in prepared]
            )
            matched = self._match_folders(folders, response.get("folders", []))
        except Exception as e:
            self._handle_import_error(e, title)
            raise

        for original, imported in matched:
            self._record(original, imported, imported.get("name") or self._title(original))

    def _map_folder(self, folder: Contract) -> Contract:
        return {
            "name": folder.get("name"),
            "external_id": folder["external_id"],
            "folders": [self._map_folder(child) for child in folder.get("folders") or []],
        }

    @staticmethod
    def _match_folders(
        originals: list[Contract], imported: list[Contract]
    ) -> list[tuple[Contract, Contract]]:
        """Pair every imported folder with its original by external id.

        Raises:
            FolderMismatchError: If a folder cannot be matched either way
        """
        originals_by_id = {folder["id"]: folder for folder in flatten_folders(originals)}
        matched: list[tuple[Contract, Contract]] = []
        seen: set[str] = set()

        for folder in flatten_folders(imported):
            external_id = folder.get("external_id")
            original = originals_by_id.get(external_id) if external_id else None
            if original is None or external_id in seen:
                raise FolderMismatchError(
                    f"Could not find original folder with id '{external_id}' "
                    f"with name '{folder.get('name')}'"
                )
            seen.add(external_id)
            matched.append((original, folder))

        missing = set(originals_by_id) - seen
        if missing:
            raise FolderMismatchError(
                f"Folders missing from created folder tree: {', '.join(sorted(missing))}"
            )

        return matched


class AssetImporter(EntityImporter):
    """Importer for assets.

    The binary payload is uploaded first; the asset is then created with the
    returned file reference. Oversized payloads are replaced with empty
    content so the asset still exists for content to reference.
    """

    KIND = ASSET

    def __init__(self, *args: Any, binary_files: list[BinaryFile] | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.binary_files = {binary.asset_id: binary for binary in binary_files or []}
        self.unsupported_binary_files: list[BinaryFile] = []

    async def import_all(self, entities: list[Prepared]) -> None:
        for position, (original, asset) in enumerate(entities, start=1):
            title = asset.get("file_name") or self._title(asset)
            try:
                binary_file = self.binary_files.get(original["id"])
                if binary_file is None:
                    raise MissingBinaryFileError(original["id"])

                data = binary_file.data
                if binary_file.size_bytes >= MAX_ASSET_SIZE_BYTES:
                    self.unsupported_binary_files.append(binary_file)
                    self.reporter.unsupported_binary_file(binary_file, title)
                    data = b""

                uploaded = await self.client.upload_binary_file(
                    filename=asset.get("file_name") or original["id"],
                    data=data,
                    content_type=asset.get("type") or "application/octet-stream",
                )
                payload = self._build_asset(asset, uploaded, title)
                response = await self.client.add_asset(payload)
            except Exception as e:
                self._handle_import_error(e, title)
                raise

            self._record(original, response, response.get("file_name") or title)
            self._log_progress(position, len(entities))

    def _build_asset(self, asset: Contract, uploaded: Contract, title: str) -> Contract:
        model = _without_none(
            {
                "file_reference": {
                    "id": uploaded["id"],
                    "type": uploaded.get("type") or "internal",
                },
                "title": asset.get("title"),
                "external_id": asset.get("external_id"),
                "folder": asset.get("folder"),
                "descriptions": asset.get("descriptions", []),
            }
        )
        return self.translator.resolve_to_target_ids(model, self.ledger, context=f"asset {title}")


class ContentItemImporter(EntityImporter):
    """Importer for content items. Their content types must already exist."""

    KIND = CONTENT_ITEM

    async def import_all(self, entities: list[Prepared]) -> None:
        for position, (original, item) in enumerate(entities, start=1):
            title = self._title(item)
            try:
                type_codename = (item.get("type") or {}).get("codename")
                if not type_codename:
                    raise MissingCodenameError(
                        f"Content item '{item.get('codename')}' has unset type codename"
                    )

                response = await self.client.add_content_item(
                    _without_none(
                        {
                            "name": item.get("name"),
                            "type": {"codename": type_codename},
                            "codename": item.get("codename"),
                            "external_id": item.get("external_id"),
                        }
                    )
                )
            except Exception as e:
                self._handle_import_error(e, title)
                raise

            self._record(original, response, response.get("name") or title)
            self._log_progress(position, len(entities))


class LanguageVariantImporter(EntityImporter):
    """Importer for language variants.

    Variants are upserted by item and language codename after their element
    payload has been resolved against the ledger.
    """

    KIND = LANGUAGE_VARIANT

    async def import_all(self, entities: list[Prepared]) -> list[UpsertedVariant]:
        upserted: list[UpsertedVariant] = []

        for position, (original, variant) in enumerate(entities, start=1):
            title = self._variant_title(original)
            try:
                item_codename = self._item_codename(variant)
                language_codename = (variant.get("language") or {}).get("codename")
                if not language_codename:
                    raise MissingCodenameError(f"Missing language codename for variant {title}")

                title = f"{item_codename} ({language_codename})"
                elements = self.translator.resolve_to_target_ids(
                    variant.get("elements", []), self.ledger, context=f"language variant {title}"
                )
                response = await self.client.upsert_language_variant(
                    item_codename, language_codename, elements
                )
            except Exception as e:
                self._handle_import_error(e, title)
                raise

            self.ledger.record(
                kind=self.KIND,
                original_id=self._variant_key(original),
                imported_id=self._variant_key(response) or self._variant_key(original),
                original=original,
                imported=response,
            )
            self.stats["imported_count"] += 1
            self.reporter.item_imported(title, self.KIND, response)
            self._log_progress(position, len(entities))

            upserted.append(
                UpsertedVariant(
                    item_codename=item_codename,
                    language_codename=language_codename,
                    original=original,
                    imported=response,
                )
            )

        return upserted

    @staticmethod
    def _variant_key(variant: Contract) -> str | None:
        """Identity of a variant: item id and language id."""
        item_id = (variant.get("item") or {}).get("id")
        language_id = (variant.get("language") or {}).get("id")
        if not item_id or not language_id:
            return None
        return f"{item_id}:{language_id}"

    @staticmethod
    def _variant_title(variant: Contract) -> str:
        item = variant.get("item") or {}
        language = variant.get("language") or {}
        return f"{item.get('codename') or item.get('id')} ({language.get('codename') or language.get('id')})"

    def _item_codename(self, variant: Contract) -> str:
        reference = variant.get("item") or {}
        item_id = reference.get("id")

        entry = self.ledger.get(CONTENT_ITEM, item_id) if item_id else None
        if entry is not None and entry.imported.get("codename"):
            return entry.imported["codename"]

        if item_id and self.translator.index.get(item_id, CONTENT_ITEM) is not None:
            raise UnresolvedReferenceError(CONTENT_ITEM, item_id, "language variant")

        codename = reference.get("codename")
        if not codename:
            raise MissingCodenameError("Missing item codename for language variant")
        return codename


class WorkflowPass:
    """Post-import workflow passes over upserted language variants.

    Publishing and moving act on variants that already exist in the target,
    so nothing is recorded in the ledger; each action is only reported.
    """

    def __init__(self, client: ManagementClient, reporter: ImportReporter):
        self.client = client
        self.reporter = reporter
        self.stats = {
            "published_count": 0,
            "moved_count": 0,
            "error_count": 0,
        }

    def _handle_failure(self, error: Exception, title: str, action: str) -> None:
        """Log and report a failed action. The caller re-raises."""
        self.stats["error_count"] += 1
        logger.error(
            "workflow_action_failed",
            action=action,
            title=title,
            error_type=type(error).__name__,
            error=str(error),
        )
        self.reporter.item_failed(title, action, error)

    async def publish_variants(
        self, variants: list[UpsertedVariant], workflow_steps: list[Contract]
    ) -> int:
        """Publish variants that were in the published step in the source project.

        The published step is identified by name, since step ids differ
        between projects.

        Returns:
            Number of published variants
        """
        published_step = next(
            (step for step in workflow_steps if step.get("name") == PUBLISHED_WORKFLOW_STEP_NAME),
            None,
        )
        if published_step is None:
            logger.info("publish_skipped", reason="Published workflow step not found")
            return 0

        to_publish = [
            variant
            for variant in variants
            if (variant.original.get("workflow_step") or {}).get("id") == published_step["id"]
        ]

        for variant in to_publish:
            title = f"{variant.item_codename} ({variant.language_codename})"
            try:
                response = await self.client.publish_language_variant(
                    variant.item_codename, variant.language_codename
                )
            except Exception as e:
                self._handle_failure(e, title, PUBLISH)
                raise
            self.stats["published_count"] += 1
            self.reporter.item_imported(title, PUBLISH, response)

        logger.info("variants_published", count=len(to_publish))
        return len(to_publish)

    async def move_variants(self, variants: list[UpsertedVariant], workflow_step_id: str) -> int:
        """Move every upserted variant to a workflow step of the target project.

        Returns:
            Number of moved variants
        """
        for variant in variants:
            title = f"{variant.item_codename} ({variant.language_codename})"
            try:
                response = await self.client.change_workflow_step(
                    variant.item_codename, variant.language_codename, workflow_step_id
                )
            except Exception as e:
                self._handle_failure(e, title, CHANGE_WORKFLOW_STEP)
                raise
            self.stats["moved_count"] += 1
            self.reporter.item_imported(title, CHANGE_WORKFLOW_STEP, response)

        logger.info("variants_moved", count=len(variants), workflow_step_id=workflow_step_id)
        return len(variants)


def create_importer(
    kind: str,
    client: ManagementClient,
    ledger: ImportLedger,
    translator: ReferenceTranslator,
    reporter: ImportReporter,
    config: ImportConfig,
    **kwargs: Any,
) -> EntityImporter:
    """Factory function to create the importer for an entity kind.

    Args:
        kind: Entity kind
        client: Management API client
        ledger: Ledger of the current run
        translator: Reference translator
        reporter: Progress and error sink
        config: Import configuration
        **kwargs: Extra importer arguments (binary_files for assets)

    Returns:
        Importer instance

    Raises:
        ValueError: If no importer exists for the kind
    """
    importers: dict[str, type[EntityImporter]] = {
        ASSET_FOLDER: AssetFolderImporter,
        LANGUAGE: LanguageImporter,
        TAXONOMY: TaxonomyImporter,
        CONTENT_TYPE_SNIPPET: ContentTypeSnippetImporter,
        CONTENT_TYPE: ContentTypeImporter,
        ASSET: AssetImporter,
        CONTENT_ITEM: ContentItemImporter,
        LANGUAGE_VARIANT: LanguageVariantImporter,
    }

    importer_class = importers.get(kind)
    if importer_class is None:
        raise ValueError(f"No importer available for entity kind: {kind}")

    return importer_class(client, ledger, translator, reporter, config, **kwargs)
