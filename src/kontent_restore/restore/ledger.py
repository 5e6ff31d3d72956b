"""Import ledger.

This module provides the ImportLedger class, the run-scoped record mapping
the original (source project) identity of every imported entity to the
identity the target project assigned to it.
"""

from collections.abc import Iterator

from kontent_restore.client.exceptions import DuplicateLedgerEntryError
from kontent_restore.restore.models import Contract, ImportItemResult, LedgerEntry
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)


class ImportLedger:
    """
    Append-only mapping of ``(kind, original id)`` to imported entities.

    An entry exists for every entity that was sent to the target and
    acknowledged, and for nothing else. Importers run sequentially, so entries
    are visible to the next lookup as soon as ``record`` returns.

    Usage:
        ledger = ImportLedger()
        ledger.record("contentItem", "old-id", "new-id", original, imported)
        ledger.lookup("contentItem", "old-id")  # -> "new-id"
    """

    def __init__(self) -> None:
        self._entries: list[LedgerEntry] = []
        self._index: dict[tuple[str, str], LedgerEntry] = {}

    def record(
        self,
        kind: str,
        original_id: str,
        imported_id: str,
        original: Contract,
        imported: Contract,
    ) -> LedgerEntry:
        """
        Append an entry for a successfully imported entity.

        Raises:
            DuplicateLedgerEntryError: If the entity is already recorded
        """
        key = (kind, original_id)
        if key in self._index:
            raise DuplicateLedgerEntryError(kind, original_id)

        entry = LedgerEntry(
            kind=kind,
            original_id=original_id,
            imported_id=imported_id,
            original=original,
            imported=imported,
        )
        self._entries.append(entry)
        self._index[key] = entry

        logger.debug(
            "ledger_entry_recorded",
            kind=kind,
            original_id=original_id,
            imported_id=imported_id,
        )
        return entry

    def lookup(self, kind: str, original_id: str) -> str | None:
        """Get the imported id for an original id, or None if it was not imported."""
        entry = self._index.get((kind, original_id))
        return entry.imported_id if entry else None

    def get(self, kind: str, original_id: str) -> LedgerEntry | None:
        """Get the full entry for an original id."""
        return self._index.get((kind, original_id))

    def has(self, kind: str, original_id: str) -> bool:
        """Check whether an entity has been imported."""
        return (kind, original_id) in self._index

    def entries(self, kind: str | None = None) -> list[LedgerEntry]:
        """Entries in insertion order, optionally restricted to one kind."""
        if kind is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.kind == kind]

    def results(self) -> list[ImportItemResult]:
        """Entries converted to the result tuples returned by a run."""
        return [entry.to_result() for entry in self._entries]

    def stats(self) -> dict[str, int]:
        """Number of entries per kind."""
        counts: dict[str, int] = {}
        for entry in self._entries:
            counts[entry.kind] = counts.get(entry.kind, 0) + 1
        return counts

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(list(self._entries))
