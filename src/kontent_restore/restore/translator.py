"""Reference translation for snapshot entities.

Exported entities reference each other by the opaque ids of the source
project. Those ids mean nothing in the target project, so references are
rewritten twice:

1. Before any network call, references are normalized to symbolic form:
   codenames for most kinds, external ids inside the content model (taxonomies,
   snippets, content types), which is created with ``external_id = id``.
   References to ledger-tracked kinds (content items, assets, asset folders)
   keep their original id.
2. Right before an entity is sent, the remaining original ids are replaced
   with the ids the target assigned, as recorded in the import ledger.

A reference is a JSON object whose keys are a non-empty subset of
``{id, codename, external_id}``. Anything with other keys is a definition
(an entity, element, term, option, component...).
"""

import copy
import re
from dataclasses import dataclass
from typing import Any

from kontent_restore.client.exceptions import UnresolvedReferenceError
from kontent_restore.resources import (
    ASSET,
    ASSET_FOLDER,
    CONTENT_ITEM,
    CONTENT_TYPE,
    CONTENT_TYPE_SNIPPET,
    ENTITY_REGISTRY,
    LANGUAGE,
    NESTED,
    TAXONOMY,
    WORKFLOW_STEP,
    get_kind_info,
    is_ledger_tracked,
)
from kontent_restore.restore.ledger import ImportLedger
from kontent_restore.restore.models import Contract, ImportSource
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)

REFERENCE_KEYS = frozenset({"id", "codename", "external_id"})

# Rich text stores references in attributes rather than reference objects
RICH_TEXT_REFERENCE = re.compile(r'(data-item-id|data-asset-id|data-id)="([^"]+)"')

# Kind a reference may point at, by the field holding it. Ids are only unique
# per kind: the all-zeros id is both the default language and the root folder.
REFERENCE_FIELD_KINDS = {
    "folder": ASSET_FOLDER,
    "language": LANGUAGE,
    "fallback_language": LANGUAGE,
    "item": CONTENT_ITEM,
    "type": CONTENT_TYPE,
    "snippet": CONTENT_TYPE_SNIPPET,
    "taxonomy_group": TAXONOMY,
    "workflow_step": WORKFLOW_STEP,
}

RICH_TEXT_ATTRIBUTE_KINDS = {
    "data-item-id": CONTENT_ITEM,
    "data-asset-id": ASSET,
}


def is_reference(value: Any) -> bool:
    """Check whether a value is a reference object."""
    return isinstance(value, dict) and bool(value) and set(value) <= REFERENCE_KEYS


@dataclass(frozen=True)
class Symbol:
    """Identity of one entity or nested definition of the snapshot."""

    kind: str
    id: str
    codename: str | None = None
    external_id: str | None = None


class SymbolIndex:
    """Lookup of every id defined anywhere in a snapshot.

    Symbols are keyed by ``(id, kind)``, since two kinds may share an id.
    Top-level entities are registered with their kind; nested definitions
    (elements, terms, options, components) as ``nested``. Child asset folders
    are registered as asset folders.
    """

    def __init__(self) -> None:
        self._symbols: dict[str, dict[str, Symbol]] = {}

    @classmethod
    def from_source(cls, source: ImportSource) -> "SymbolIndex":
        index = cls()
        # Top-level entities first so they win over nested definitions sharing an id
        for kind, info in ENTITY_REGISTRY.items():
            for entity in getattr(source, info.source_field):
                index._register_entity(kind, entity)
        for kind, info in ENTITY_REGISTRY.items():
            for entity in getattr(source, info.source_field):
                index._register_nested(kind, entity)
        return index

    def _add(self, kind: str, definition: Contract, overwrite: bool) -> None:
        symbol_id = definition.get("id")
        if not isinstance(symbol_id, str):
            return
        by_kind = self._symbols.setdefault(symbol_id, {})
        if not overwrite and kind in by_kind:
            return
        by_kind[kind] = Symbol(
            kind=kind,
            id=symbol_id,
            codename=definition.get("codename"),
            external_id=definition.get("external_id"),
        )

    def _register_entity(self, kind: str, entity: Contract) -> None:
        self._add(kind, entity, overwrite=True)
        if kind == ASSET_FOLDER:
            for child in entity.get("folders") or []:
                self._register_entity(kind, child)

    def _register_nested(self, kind: str, value: Any, top: bool = True) -> None:
        if isinstance(value, list):
            for item in value:
                self._register_nested(kind, item, top=False)
        elif isinstance(value, dict):
            if not top and "id" in value and not is_reference(value):
                self._add(NESTED, value, overwrite=False)
            for key, child in value.items():
                if kind == ASSET_FOLDER and key == "folders":
                    continue
                self._register_nested(kind, child, top=False)

    def get(self, symbol_id: str, kind: str | None = None) -> Symbol | None:
        """Look up a symbol.

        Args:
            symbol_id: Original id
            kind: Kind the reference must point at; when omitted, the first
                registered symbol wins (top-level entities before nested ones)
        """
        by_kind = self._symbols.get(symbol_id)
        if not by_kind:
            return None
        if kind is not None:
            return by_kind.get(kind)
        return next(iter(by_kind.values()))

    def __contains__(self, symbol_id: str) -> bool:
        return symbol_id in self._symbols

    def __len__(self) -> int:
        return sum(len(by_kind) for by_kind in self._symbols.values())


class ReferenceTranslator:
    """Rewrites references between snapshot entities.

    The translator must be built from the unfiltered snapshot: references to
    entities that were filtered out are still recognized, and resolving them
    fails instead of silently passing a stale id to the target.
    """

    def __init__(self, index: SymbolIndex):
        self.index = index

    @classmethod
    def from_source(cls, source: ImportSource) -> "ReferenceTranslator":
        index = SymbolIndex.from_source(source)
        logger.debug("symbol_index_built", symbols=len(index))
        return cls(index)

    # Normalization
    def normalize_to_symbolic(
        self,
        collection: list[Contract],
        kind: str,
        overrides: dict[str, str] | None = None,
    ) -> list[Contract]:
        """Return a copy of a collection with references in symbolic form.

        Args:
            collection: Entities of one kind, as exported
            kind: Entity kind of the collection
            overrides: Optional id -> codename mapping that wins over the index

        Returns:
            New list of normalized entities; the input is not modified
        """
        info = get_kind_info(kind)
        if info.reference_style == "external_id":
            return [self._to_external_ids(copy.deepcopy(entity), top=True) for entity in collection]
        return [self._to_codenames(copy.deepcopy(entity), overrides or {}) for entity in collection]

    def _to_codenames(self, value: Any, overrides: dict[str, str], field: str | None = None) -> Any:
        if isinstance(value, list):
            return [self._to_codenames(item, overrides, field) for item in value]
        if isinstance(value, dict):
            if is_reference(value) and "id" in value:
                return self._codename_reference(value, overrides, REFERENCE_FIELD_KINDS.get(field))
            return {
                key: self._to_codenames(child, overrides, key) for key, child in value.items()
            }
        return value

    def _codename_reference(
        self, reference: Contract, overrides: dict[str, str], kind: str | None
    ) -> Contract:
        ref_id = reference["id"]
        if ref_id in overrides:
            return {"codename": overrides[ref_id]}

        symbol = self.index.get(ref_id, kind)
        if symbol is None:
            # Not part of the snapshot; optional references may dangle
            return dict(reference)
        if is_ledger_tracked(symbol.kind):
            return {"id": ref_id}

        codename = symbol.codename or reference.get("codename")
        if codename:
            return {"codename": codename}
        external_id = symbol.external_id or reference.get("external_id")
        if external_id:
            return {"external_id": external_id}
        return dict(reference)

    def _to_external_ids(self, value: Any, top: bool = False, field: str | None = None) -> Any:
        if isinstance(value, list):
            return [self._to_external_ids(item, field=field) for item in value]
        if not isinstance(value, dict):
            return value
        if is_reference(value) and "id" in value:
            return self._external_id_reference(value, REFERENCE_FIELD_KINDS.get(field))

        # Definitions are created with external_id = original id; only the
        # top-level id survives so the ledger can record it
        result = {
            key: self._to_external_ids(child, field=key)
            for key, child in value.items()
            if top or key != "id"
        }
        if "id" in value and not result.get("external_id"):
            result["external_id"] = value["id"]
        return result

    def _external_id_reference(self, reference: Contract, kind: str | None) -> Contract:
        symbol = self.index.get(reference["id"], kind)
        if symbol is None or is_ledger_tracked(symbol.kind):
            return dict(reference)
        return {"external_id": symbol.external_id or symbol.id}

    # Resolution
    def resolve_to_target_ids(
        self, value: Any, ledger: ImportLedger, context: str | None = None
    ) -> Any:
        """Return a copy of value with original ids replaced by imported ids.

        Reference objects and rich-text attributes are rewritten at any depth.
        Ids that do not belong to a ledger-tracked kind are left unchanged.

        Args:
            value: Any JSON value
            ledger: Ledger of the current run
            context: Description of the referencing entity, used in errors

        Raises:
            UnresolvedReferenceError: If a ledger-tracked entity was not imported
        """
        return self._resolve(value, ledger, context, None)

    def _resolve(
        self, value: Any, ledger: ImportLedger, context: str | None, field: str | None
    ) -> Any:
        if isinstance(value, list):
            return [self._resolve(item, ledger, context, field) for item in value]
        if isinstance(value, dict):
            if is_reference(value) and "id" in value:
                kind = REFERENCE_FIELD_KINDS.get(field)
                resolved = self._resolve_id(value["id"], ledger, context, kind)
                if resolved != value["id"]:
                    return {"id": resolved}
                return dict(value)
            return {key: self._resolve(child, ledger, context, key) for key, child in value.items()}
        if isinstance(value, str) and "data-" in value:

            def replace(match: re.Match[str]) -> str:
                attribute, original_id = match.groups()
                kind = RICH_TEXT_ATTRIBUTE_KINDS.get(attribute)
                return f'{attribute}="{self._resolve_id(original_id, ledger, context, kind)}"'

            return RICH_TEXT_REFERENCE.sub(replace, value)
        return value

    def _resolve_id(
        self, original_id: str, ledger: ImportLedger, context: str | None, kind: str | None
    ) -> str:
        symbol = self.index.get(original_id, kind)
        if symbol is None or not is_ledger_tracked(symbol.kind):
            return original_id

        imported_id = ledger.lookup(symbol.kind, original_id)
        if imported_id is None:
            logger.error(
                "unresolved_reference",
                kind=symbol.kind,
                original_id=original_id,
                context=context,
            )
            raise UnresolvedReferenceError(symbol.kind, original_id, context)
        return imported_id
