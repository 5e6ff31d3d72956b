"""Inclusion filtering of a snapshot.

Callers can exclude entities from a restore by supplying one predicate per
kind. Filtering returns a new ImportSource and never touches the one it was
given.
"""

from dataclasses import replace

from kontent_restore.config import EntityPredicate, ProcessFilters
from kontent_restore.restore.models import Contract, ImportSource
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)


def _keep(collection: list[Contract], predicate: EntityPredicate | None) -> list[Contract]:
    if predicate is None:
        return list(collection)
    return [entity for entity in collection if predicate(entity)]


def _keep_folders(folders: list[Contract], predicate: EntityPredicate | None) -> list[Contract]:
    """Filter a folder tree; a rejected folder is removed with its subtree."""
    if predicate is None:
        return list(folders)

    kept = []
    for folder in folders:
        if not predicate(folder):
            continue
        kept.append({**folder, "folders": _keep_folders(folder.get("folders") or [], predicate)})
    return kept


def filter_source(source: ImportSource, process: ProcessFilters | None) -> ImportSource:
    """Apply per-kind inclusion predicates to a snapshot.

    An entity is kept if its kind has no predicate or the predicate returns
    True. Binary files follow the assets they belong to.

    Args:
        source: Snapshot to filter
        process: Inclusion predicates

    Returns:
        A new ImportSource with the excluded entities removed
    """
    if process is None:
        return source

    assets = _keep(source.assets, process.asset)
    asset_ids = {asset["id"] for asset in assets}

    filtered = replace(
        source,
        languages=_keep(source.languages, process.language),
        taxonomies=_keep(source.taxonomies, process.taxonomy),
        content_type_snippets=_keep(source.content_type_snippets, process.content_type_snippet),
        content_types=_keep(source.content_types, process.content_type),
        asset_folders=_keep_folders(source.asset_folders, process.asset_folder),
        assets=assets,
        binary_files=[f for f in source.binary_files if f.asset_id in asset_ids],
        content_items=_keep(source.content_items, process.content_item),
        language_variants=_keep(source.language_variants, process.language_variant),
    )

    before = source.counts()
    after = filtered.counts()
    removed = {name: before[name] - after[name] for name in before if before[name] != after[name]}
    if removed:
        logger.info("entities_filtered", removed=removed)

    return filtered
