"""Central entity kind definitions - single source of truth.

Every kind of entity that can appear in a snapshot is registered here together
with the metadata the translator, ledger and orchestrator need: where the
collection lives on the import source, whether the kind is referenced by
original id (and therefore resolved through the ledger), how references inside
the kind are normalized, and where it sits in the import order.
"""

from dataclasses import dataclass

# Entity kinds. The values double as the event types reported to observers.
LANGUAGE = "language"
TAXONOMY = "taxonomy"
CONTENT_TYPE_SNIPPET = "contentTypeSnippet"
CONTENT_TYPE = "contentType"
ASSET_FOLDER = "assetFolder"
ASSET = "asset"
CONTENT_ITEM = "contentItem"
LANGUAGE_VARIANT = "languageVariant"
WORKFLOW_STEP = "workflowStep"

# Actions reported to observers that are not entity kinds
PUBLISH = "publish"
CHANGE_WORKFLOW_STEP = "changeWorkflowStep"

# Nested definitions (elements, terms, options, content groups, components)
NESTED = "nested"

# Identity of the default language in every project
DEFAULT_LANGUAGE_ID = "00000000-0000-0000-0000-000000000000"

PUBLISHED_WORKFLOW_STEP_NAME = "Published"

# Binary payloads at or above this size (bytes) are not uploaded
MAX_ASSET_SIZE_BYTES = 100_000_000


@dataclass(frozen=True)
class EntityKindInfo:
    """Metadata for an entity kind."""

    name: str
    description: str
    source_field: str  # attribute of ImportSource holding the collection
    import_order: int | None  # lower = earlier; None when the kind is not imported
    ledger_tracked: bool = False  # referenced by original id, resolved via the ledger
    reference_style: str = "codename"  # how references inside this kind are normalized


ENTITY_REGISTRY: dict[str, EntityKindInfo] = {
    ASSET_FOLDER: EntityKindInfo(
        name=ASSET_FOLDER,
        description="Asset folders",
        source_field="asset_folders",
        import_order=10,
        ledger_tracked=True,
    ),
    LANGUAGE: EntityKindInfo(
        name=LANGUAGE,
        description="Languages",
        source_field="languages",
        import_order=20,
    ),
    TAXONOMY: EntityKindInfo(
        name=TAXONOMY,
        description="Taxonomies",
        source_field="taxonomies",
        import_order=30,
        reference_style="external_id",
    ),
    CONTENT_TYPE_SNIPPET: EntityKindInfo(
        name=CONTENT_TYPE_SNIPPET,
        description="Content type snippets",
        source_field="content_type_snippets",
        import_order=40,
        reference_style="external_id",
    ),
    CONTENT_TYPE: EntityKindInfo(
        name=CONTENT_TYPE,
        description="Content types",
        source_field="content_types",
        import_order=50,
        reference_style="external_id",
    ),
    ASSET: EntityKindInfo(
        name=ASSET,
        description="Assets",
        source_field="assets",
        import_order=60,
        ledger_tracked=True,
    ),
    CONTENT_ITEM: EntityKindInfo(
        name=CONTENT_ITEM,
        description="Content items",
        source_field="content_items",
        import_order=70,
        ledger_tracked=True,
    ),
    LANGUAGE_VARIANT: EntityKindInfo(
        name=LANGUAGE_VARIANT,
        description="Language variants",
        source_field="language_variants",
        import_order=80,
    ),
    WORKFLOW_STEP: EntityKindInfo(
        name=WORKFLOW_STEP,
        description="Workflow steps",
        source_field="workflow_steps",
        import_order=None,  # read only to find the published step
    ),
}

LEDGER_TRACKED_KINDS = frozenset(k for k, info in ENTITY_REGISTRY.items() if info.ledger_tracked)

EVENT_TYPES = frozenset(
    {
        LANGUAGE,
        TAXONOMY,
        ASSET,
        ASSET_FOLDER,
        CONTENT_TYPE,
        CONTENT_TYPE_SNIPPET,
        CONTENT_ITEM,
        LANGUAGE_VARIANT,
        PUBLISH,
        CHANGE_WORKFLOW_STEP,
    }
)


def get_kind_info(kind: str) -> EntityKindInfo:
    """Get metadata for an entity kind.

    Raises:
        KeyError: If the kind is not registered
    """
    if kind not in ENTITY_REGISTRY:
        raise KeyError(f"Unknown entity kind: {kind}")
    return ENTITY_REGISTRY[kind]


def get_kinds_in_import_order() -> list[str]:
    """Get the imported entity kinds sorted by import order."""
    imported = [info for info in ENTITY_REGISTRY.values() if info.import_order is not None]
    return [info.name for info in sorted(imported, key=lambda i: i.import_order)]


def is_ledger_tracked(kind: str) -> bool:
    """Check whether references to a kind are resolved through the ledger."""
    return kind in LEDGER_TRACKED_KINDS
