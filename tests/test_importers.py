import pytest

from fakes import FakeManagementClient, default_target_language, make_source
from kontent_restore.client.exceptions import (
    ConflictError,
    FolderMismatchError,
    LanguageMismatchError,
    MissingBinaryFileError,
    MissingCodenameError,
)
from kontent_restore.reporting.reporter import ImportReporter
from kontent_restore.resources import (
    ASSET,
    ASSET_FOLDER,
    CHANGE_WORKFLOW_STEP,
    DEFAULT_LANGUAGE_ID,
    LANGUAGE,
    PUBLISH,
)
from kontent_restore.restore.importer import (
    AssetFolderImporter,
    AssetImporter,
    EntityImporter,
    LanguageImporter,
    WorkflowPass,
    assign_folder_external_ids,
    flatten_folders,
)
from kontent_restore.restore.ledger import ImportLedger
from kontent_restore.restore.models import BinaryFile, UpsertedVariant
from kontent_restore.restore.translator import ReferenceTranslator


def _importer(cls, client, config, source=None, reporter=None, **kwargs):
    source = source or make_source()
    return cls(
        client,
        ImportLedger(),
        ReferenceTranslator.from_source(source),
        reporter or ImportReporter(),
        config,
        **kwargs,
    )


def _pairs(entities):
    return [(entity, entity) for entity in entities]


def test_flatten_folders_is_pre_order():
    tree = [
        {"id": "a", "folders": [{"id": "a1", "folders": [{"id": "a11"}]}, {"id": "a2"}]},
        {"id": "b", "folders": []},
    ]

    assert [f["id"] for f in flatten_folders(tree)] == ["a", "a1", "a11", "a2", "b"]


def test_assign_folder_external_ids_copies_tree():
    tree = [{"id": "a", "name": "A", "folders": [{"id": "b", "name": "B"}]}]

    prepared = assign_folder_external_ids(tree)

    assert prepared[0]["external_id"] == "a"
    assert prepared[0]["folders"][0]["external_id"] == "b"
    assert "external_id" not in tree[0]


@pytest.mark.asyncio
async def test_every_folder_at_any_depth_gets_a_ledger_entry(fake_client, config, source):
    importer = _importer(AssetFolderImporter, fake_client, config, source)

    await importer.import_all(_pairs(source.asset_folders))

    entries = importer.ledger.entries(ASSET_FOLDER)
    assert [e.original_id for e in entries] == ["f-1", "f-2", "f-3"]
    assert all(e.imported["external_id"] == e.original_id for e in entries)
    assert fake_client.call_names() == ["add_asset_folders"]
    sent = fake_client.calls[0][1][0]
    assert sent[0]["folders"][0]["folders"][0] == {"name": "2024", "external_id": "f-3", "folders": []}


class _FolderDroppingClient(FakeManagementClient):
    async def add_asset_folders(self, folders):
        response = await super().add_asset_folders(folders)
        response["folders"][0]["folders"] = []
        return response


@pytest.mark.asyncio
async def test_missing_folder_in_response_is_fatal(config, source):
    failures = []
    reporter = ImportReporter(on_error=failures.append)
    importer = _importer(
        AssetFolderImporter, _FolderDroppingClient(), config, source, reporter=reporter
    )

    with pytest.raises(FolderMismatchError):
        await importer.import_all(_pairs(source.asset_folders))

    assert len(failures) == 1
    assert failures[0].type == ASSET_FOLDER


@pytest.mark.asyncio
async def test_inactive_language_is_reactivated_without_duplicate(config):
    config = config.model_copy(update={"fix_languages": True})
    client = FakeManagementClient(
        languages=[
            default_target_language(),
            {
                "id": "target-cz",
                "name": "Czech",
                "codename": "cs-CZ",
                "is_active": False,
                "fallback_language": {"id": DEFAULT_LANGUAGE_ID},
            },
        ]
    )
    source = make_source()
    importer = _importer(LanguageImporter, client, config, source)
    languages = importer.translator.normalize_to_symbolic(source.languages, LANGUAGE)

    await importer.import_all(list(zip(source.languages, languages)))

    assert "add_language" not in client.call_names()
    assert client.languages[1]["is_active"] is True
    assert len(importer.ledger) == 0
    assert importer.get_stats()["skipped_count"] == 2


@pytest.mark.asyncio
async def test_fix_mode_renames_target_default_language_first(config):
    config = config.model_copy(update={"fix_languages": True})
    client = FakeManagementClient(languages=[default_target_language("default")])
    source = make_source()
    importer = _importer(LanguageImporter, client, config, source)
    languages = importer.translator.normalize_to_symbolic(source.languages, LANGUAGE)

    await importer.import_all(list(zip(source.languages, languages)))

    names = client.call_names()
    assert names[:3] == ["list_languages", "modify_language", "list_languages"]
    assert client.calls[1][1] == (
        "default",
        [{"op": "replace", "property_name": "codename", "value": "en-US"}],
    )
    created = [args[0] for name, args in client.calls if name == "add_language"]
    assert [language["codename"] for language in created] == ["cs-CZ"]
    assert created[0]["fallback_language"] == {"codename": "en-US"}
    assert importer.ledger.lookup(LANGUAGE, "lang-cz") is not None


@pytest.mark.asyncio
async def test_default_language_mismatch_is_fatal_without_fix_mode(config):
    client = FakeManagementClient(languages=[default_target_language("default")])
    importer = _importer(LanguageImporter, client, config)
    source = make_source()

    with pytest.raises(LanguageMismatchError):
        await importer.verify_default_language(_pairs(source.languages))

    assert client.call_names() == ["list_languages"]


@pytest.mark.asyncio
async def test_fallback_to_self_uses_default_sentinel(fake_client, config):
    language = {
        "id": "lang-de",
        "name": "German",
        "codename": "de-DE",
        "fallback_language": {"codename": "de-DE"},
    }
    importer = _importer(LanguageImporter, fake_client, config)

    await importer.import_all([(language, language)])

    sent = fake_client.calls[1][1][0]
    assert sent["fallback_language"] == {"id": DEFAULT_LANGUAGE_ID}


@pytest.mark.asyncio
async def test_fallback_without_codename_is_fatal(fake_client, config):
    language = {
        "id": "lang-de",
        "name": "German",
        "codename": "de-DE",
        "fallback_language": {"id": "missing-language"},
    }
    importer = _importer(LanguageImporter, fake_client, config)

    with pytest.raises(MissingCodenameError):
        await importer.import_all([(language, language)])

    assert "add_language" not in fake_client.call_names()


@pytest.mark.asyncio
async def test_oversized_asset_is_created_with_empty_content(fake_client, config, source):
    oversized = BinaryFile(asset_id="asset-1", data=b"x" * 16, size_bytes=100_000_000)
    unsupported = []
    reporter = ImportReporter(on_unsupported_binary_file=unsupported.append)
    importer = _importer(
        AssetImporter, fake_client, config, source, reporter=reporter, binary_files=[oversized]
    )
    importer.ledger.record(ASSET_FOLDER, "f-3", "folder-new", {}, {})

    await importer.import_all(_pairs(source.assets))

    assert unsupported == [oversized]
    assert fake_client.uploads == [("cat.png", b"", "image/png")]
    asset = fake_client.calls[-1][1][0]
    assert asset["folder"] == {"id": "folder-new"}
    assert asset["file_reference"]["type"] == "internal"
    assert importer.ledger.lookup(ASSET, "asset-1") is not None


@pytest.mark.asyncio
async def test_missing_binary_file_is_fatal(fake_client, config, source):
    importer = _importer(AssetImporter, fake_client, config, source, binary_files=[])

    with pytest.raises(MissingBinaryFileError):
        await importer.import_all(_pairs(source.assets))

    assert fake_client.calls == []


def _variant(item, step_id):
    return UpsertedVariant(
        item_codename=item,
        language_codename="en-US",
        original={"workflow_step": {"id": step_id}},
        imported={},
    )


@pytest.mark.asyncio
async def test_only_variants_in_published_step_are_published(fake_client, source):
    events = []
    workflow = WorkflowPass(fake_client, ImportReporter(on_import=events.append))

    count = await workflow.publish_variants(
        [_variant("hello", "wf-published"), _variant("world", "wf-draft")], source.workflow_steps
    )

    assert count == 1
    assert fake_client.calls == [("publish_language_variant", ("hello", "en-US"))]
    assert [e.type for e in events] == [PUBLISH]


@pytest.mark.asyncio
async def test_every_variant_is_moved_to_workflow_step(fake_client):
    events = []
    workflow = WorkflowPass(fake_client, ImportReporter(on_import=events.append))

    await workflow.move_variants(
        [_variant("hello", "wf-published"), _variant("world", "wf-draft")], "target-step"
    )

    assert fake_client.call_names() == ["change_workflow_step", "change_workflow_step"]
    assert fake_client.calls[1][1] == ("world", "en-US", "target-step")
    assert {e.type for e in events} == {CHANGE_WORKFLOW_STEP}


class RejectingWorkflowClient(FakeManagementClient):
    async def change_workflow_step(self, item_codename, language_codename, workflow_step_id):
        raise ConflictError("Variant is already in this step", status_code=409)


@pytest.mark.asyncio
async def test_failed_workflow_move_is_reported_and_raised():
    failures = []
    workflow = WorkflowPass(RejectingWorkflowClient(), ImportReporter(on_error=failures.append))

    with pytest.raises(ConflictError):
        await workflow.move_variants([_variant("hello", "wf-draft")], "target-step")

    assert [(f.type, f.title) for f in failures] == [(CHANGE_WORKFLOW_STEP, "hello (en-US)")]
    assert workflow.stats == {"published_count": 0, "moved_count": 0, "error_count": 1}


def test_entity_importer_requires_import_all(fake_client, config):
    class IncompleteImporter(EntityImporter):
        KIND = LANGUAGE

    with pytest.raises(TypeError):
        _importer(IncompleteImporter, fake_client, config)
