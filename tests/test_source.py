import json

import pytest

from kontent_restore.client.exceptions import SourceError
from kontent_restore.restore.source import load_import_source


def _write(directory, name, data):
    (directory / name).write_text(json.dumps(data), encoding="utf-8")


def test_snapshot_directory_is_loaded(tmp_path):
    _write(tmp_path, "languages.json", [{"id": "l1", "codename": "en-US"}])
    _write(tmp_path, "assets.json", [{"id": "asset-1", "file_name": "a.txt", "size": 5}, {"id": "asset-2"}])
    _write(tmp_path, "contentItems.json", [{"id": "item-1", "codename": "hello"}])
    (tmp_path / "files").mkdir()
    (tmp_path / "files" / "asset-1").write_bytes(b"hello")

    source = load_import_source(tmp_path)

    assert source.languages == [{"id": "l1", "codename": "en-US"}]
    assert [item["codename"] for item in source.content_items] == ["hello"]
    assert source.taxonomies == []
    assert source.workflow_steps == []
    assert [(b.asset_id, b.data, b.size_bytes) for b in source.binary_files] == [
        ("asset-1", b"hello", 5)
    ]


def test_missing_directory_is_reported(tmp_path):
    with pytest.raises(SourceError):
        load_import_source(tmp_path / "missing")


def test_invalid_json_is_reported(tmp_path):
    (tmp_path / "taxonomies.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(SourceError, match="taxonomies.json"):
        load_import_source(tmp_path)


def test_collection_must_be_an_array(tmp_path):
    _write(tmp_path, "contentTypes.json", {"types": []})

    with pytest.raises(SourceError, match="JSON array"):
        load_import_source(tmp_path)
