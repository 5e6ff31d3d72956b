"""
Restore module for Kontent Restore.

This module provides the snapshot models, the import ledger and reference
translation used to restore a snapshot into a target project. The
orchestrator lives in ``kontent_restore.restore.orchestrator``.
"""

# Ledger
from kontent_restore.restore.ledger import ImportLedger

# Snapshot models
from kontent_restore.restore.models import (
    BinaryFile,
    ImportEvent,
    ImportFailure,
    ImportItemResult,
    ImportSource,
    LedgerEntry,
)

# Snapshot loading
from kontent_restore.restore.source import load_import_source

# Reference translation
from kontent_restore.restore.translator import ReferenceTranslator, SymbolIndex

__all__ = [
    # Models
    "BinaryFile",
    "ImportEvent",
    "ImportFailure",
    "ImportItemResult",
    "ImportSource",
    "LedgerEntry",
    # Ledger
    "ImportLedger",
    # Loading
    "load_import_source",
    # Translation
    "ReferenceTranslator",
    "SymbolIndex",
]
