"""Data models for a restore run.

Entity contracts are kept as plain JSON dictionaries exactly as they were
exported; the models here describe the snapshot as a whole and the records
produced while importing it.
"""

from dataclasses import dataclass, field
from typing import Any

Contract = dict[str, Any]


@dataclass(frozen=True)
class BinaryFile:
    """Binary payload of one asset, keyed by the asset's original id."""

    asset_id: str
    data: bytes
    size_bytes: int

    def __repr__(self) -> str:
        return f"<BinaryFile(asset_id={self.asset_id}, size_bytes={self.size_bytes})>"


@dataclass(frozen=True)
class ImportSource:
    """A project snapshot to restore.

    Collections are ordered as exported. Asset folders form a tree through
    each folder's ``folders`` list; only root folders are listed here.
    """

    languages: list[Contract] = field(default_factory=list)
    taxonomies: list[Contract] = field(default_factory=list)
    content_type_snippets: list[Contract] = field(default_factory=list)
    content_types: list[Contract] = field(default_factory=list)
    asset_folders: list[Contract] = field(default_factory=list)
    assets: list[Contract] = field(default_factory=list)
    binary_files: list[BinaryFile] = field(default_factory=list)
    content_items: list[Contract] = field(default_factory=list)
    language_variants: list[Contract] = field(default_factory=list)
    workflow_steps: list[Contract] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        """Number of entities per collection (root folders only)."""
        return {
            "languages": len(self.languages),
            "taxonomies": len(self.taxonomies),
            "content_type_snippets": len(self.content_type_snippets),
            "content_types": len(self.content_types),
            "asset_folders": len(self.asset_folders),
            "assets": len(self.assets),
            "content_items": len(self.content_items),
            "language_variants": len(self.language_variants),
            "workflow_steps": len(self.workflow_steps),
        }


@dataclass(frozen=True)
class ImportItemResult:
    """Outcome of one created or updated entity, as returned to the caller."""

    imported: Contract
    original: Contract
    import_id: str
    original_id: str


@dataclass(frozen=True)
class LedgerEntry:
    """One acknowledged entity in the import ledger."""

    kind: str
    original_id: str
    imported_id: str
    original: Contract
    imported: Contract

    def to_result(self) -> ImportItemResult:
        return ImportItemResult(
            imported=self.imported,
            original=self.original,
            import_id=self.imported_id,
            original_id=self.original_id,
        )


@dataclass(frozen=True)
class ImportEvent:
    """Progress event reported to the on_import observer."""

    title: str
    type: str
    data: Any


@dataclass(frozen=True)
class ImportFailure:
    """Failure reported to the on_error observer before the run aborts."""

    title: str
    type: str
    error: Exception


@dataclass(frozen=True)
class UpsertedVariant:
    """A language variant that was upserted, with the codenames that address it."""

    item_codename: str
    language_codename: str
    original: Contract
    imported: Contract
