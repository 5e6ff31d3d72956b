import pytest

from fakes import make_source
from kontent_restore.client.exceptions import UnresolvedReferenceError
from kontent_restore.resources import (
    ASSET,
    ASSET_FOLDER,
    CONTENT_ITEM,
    CONTENT_TYPE,
    DEFAULT_LANGUAGE_ID,
    LANGUAGE,
    LANGUAGE_VARIANT,
    TAXONOMY,
)
from kontent_restore.restore.ledger import ImportLedger
from kontent_restore.restore.translator import ReferenceTranslator, is_reference


def test_is_reference():
    assert is_reference({"id": "x"})
    assert is_reference({"codename": "x", "external_id": "y"})
    assert not is_reference({})
    assert not is_reference({"id": "x", "name": "Title"})
    assert not is_reference(["id"])


def test_variant_references_become_codenames(source):
    translator = ReferenceTranslator.from_source(source)

    variant = translator.normalize_to_symbolic(source.language_variants, LANGUAGE_VARIANT)[0]

    assert variant["language"] == {"codename": "en-US"}
    assert variant["workflow_step"] == {"codename": "published"}
    assert variant["elements"][0]["element"] == {"codename": "title"}
    assert variant["elements"][4]["value"] == [{"codename": "news"}]
    # Ledger-tracked kinds keep their original id until resolution
    assert variant["item"] == {"id": "item-1"}
    assert variant["elements"][2]["value"] == [{"id": "item-2"}]
    assert variant["elements"][3]["value"] == [{"id": "asset-1"}]


def test_normalization_does_not_modify_input(source):
    translator = ReferenceTranslator.from_source(source)

    translator.normalize_to_symbolic(source.language_variants, LANGUAGE_VARIANT)

    assert source.language_variants[0]["language"] == {"id": DEFAULT_LANGUAGE_ID}


def test_overrides_win_over_index(source):
    translator = ReferenceTranslator.from_source(source)

    item = translator.normalize_to_symbolic(
        source.content_items, CONTENT_ITEM, overrides={"type-article": "blog_post"}
    )[0]

    assert item["type"] == {"codename": "blog_post"}


def test_schema_kinds_use_external_ids(source):
    translator = ReferenceTranslator.from_source(source)

    content_type = translator.normalize_to_symbolic(source.content_types, CONTENT_TYPE)[0]

    assert content_type["id"] == "type-article"
    assert content_type["external_id"] == "type-article"
    title = content_type["elements"][0]
    assert "id" not in title
    assert title["external_id"] == "el-title"
    assert content_type["elements"][4]["taxonomy_group"] == {"external_id": "tax-1"}
    assert content_type["elements"][5]["snippet"] == {"external_id": "snip-1"}

    taxonomy = translator.normalize_to_symbolic(source.taxonomies, TAXONOMY)[0]
    assert taxonomy["terms"][0] == {
        "name": "News",
        "codename": "news",
        "terms": [],
        "external_id": "term-1",
    }


def test_unknown_ids_are_left_unchanged(source):
    translator = ReferenceTranslator.from_source(source)
    variant = {"item": {"id": "item-1"}, "language": {"id": "not-in-snapshot"}, "elements": []}

    normalized = translator.normalize_to_symbolic([variant], LANGUAGE_VARIANT)[0]

    assert normalized["language"] == {"id": "not-in-snapshot"}


def test_resolution_rewrites_nested_lists_and_rich_text(source):
    translator = ReferenceTranslator.from_source(source)
    ledger = ImportLedger()
    ledger.record(CONTENT_ITEM, "item-2", "item-2-new", {}, {})
    ledger.record(ASSET, "asset-1", "asset-1-new", {}, {})

    value = [
        {"element": {"codename": "related"}, "value": [{"id": "item-2"}]},
        {
            "element": {"codename": "body"},
            "value": '<a data-item-id="item-2">x</a><figure data-asset-id="asset-1"></figure>',
            "components": [{"id": "component-1", "elements": [{"value": [{"id": "asset-1"}]}]}],
        },
        {"value": [{"id": "not-in-snapshot"}]},
    ]

    resolved = translator.resolve_to_target_ids(value, ledger)

    assert resolved[0]["value"] == [{"id": "item-2-new"}]
    assert resolved[1]["value"] == (
        '<a data-item-id="item-2-new">x</a><figure data-asset-id="asset-1-new"></figure>'
    )
    assert resolved[1]["components"][0]["elements"][0]["value"] == [{"id": "asset-1-new"}]
    assert resolved[2]["value"] == [{"id": "not-in-snapshot"}]
    assert value[0]["value"] == [{"id": "item-2"}]


def test_resolution_fails_for_tracked_entity_missing_from_ledger(source):
    translator = ReferenceTranslator.from_source(source)

    with pytest.raises(UnresolvedReferenceError) as exc_info:
        translator.resolve_to_target_ids({"value": [{"id": "item-2"}]}, ImportLedger(), "variant")

    assert exc_info.value.original_id == "item-2"


def test_index_covers_child_asset_folders():
    source = make_source()
    translator = ReferenceTranslator.from_source(source)

    assert "f-3" in translator.index
    assert translator.index.get("f-3").kind == "assetFolder"


def test_root_folder_reference_is_not_the_default_language(source):
    # The all-zeros id names both the default language and the root folder
    translator = ReferenceTranslator.from_source(source)
    asset = {**source.assets[0], "folder": {"id": DEFAULT_LANGUAGE_ID}}

    normalized = translator.normalize_to_symbolic([asset], ASSET)[0]
    resolved = translator.resolve_to_target_ids(normalized, ImportLedger())

    assert normalized["folder"] == {"id": DEFAULT_LANGUAGE_ID}
    assert normalized["descriptions"][0]["language"] == {"codename": "en-US"}
    assert resolved["folder"] == {"id": DEFAULT_LANGUAGE_ID}


def test_index_lookup_is_scoped_by_kind(source):
    translator = ReferenceTranslator.from_source(source)

    assert translator.index.get(DEFAULT_LANGUAGE_ID, LANGUAGE).codename == "en-US"
    assert translator.index.get(DEFAULT_LANGUAGE_ID, ASSET_FOLDER) is None
    assert translator.index.get("f-3", ASSET_FOLDER).kind == ASSET_FOLDER
