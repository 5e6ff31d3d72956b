"""Loading of exported snapshots from disk.

A snapshot directory holds one JSON array per collection and the binary
payload of every asset under ``files/<asset id>``. Missing collection files
are treated as empty.
"""

import json
from pathlib import Path

from kontent_restore.client.exceptions import SourceError
from kontent_restore.restore.models import BinaryFile, Contract, ImportSource
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)

# ImportSource field -> file name inside the snapshot directory
SOURCE_FILES = {
    "languages": "languages.json",
    "taxonomies": "taxonomies.json",
    "content_type_snippets": "contentTypeSnippets.json",
    "content_types": "contentTypes.json",
    "asset_folders": "assetFolders.json",
    "assets": "assets.json",
    "content_items": "contentItems.json",
    "language_variants": "languageVariants.json",
    "workflow_steps": "workflowSteps.json",
}

BINARY_FILES_DIR = "files"


def _read_collection(path: Path) -> list[Contract]:
    if not path.exists():
        logger.debug("snapshot_file_missing", path=str(path))
        return []

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SourceError(f"Failed to read snapshot file {path}: {e}") from e

    if not isinstance(data, list):
        raise SourceError(f"Snapshot file {path} must contain a JSON array")
    return data


def _read_binary_files(directory: Path, assets: list[Contract]) -> list[BinaryFile]:
    files_dir = directory / BINARY_FILES_DIR
    binary_files = []

    for asset in assets:
        path = files_dir / asset["id"]
        if not path.is_file():
            # Reported by the asset importer when the asset is processed
            continue
        data = path.read_bytes()
        binary_files.append(
            BinaryFile(
                asset_id=asset["id"],
                data=data,
                size_bytes=int(asset.get("size") or len(data)),
            )
        )

    return binary_files


def load_import_source(directory: str | Path) -> ImportSource:
    """Load a snapshot directory into an ImportSource.

    Args:
        directory: Snapshot directory

    Returns:
        ImportSource with every collection found in the directory

    Raises:
        SourceError: If the directory or one of its files cannot be read
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise SourceError(f"Snapshot directory not found: {directory}")

    collections = {
        field_name: _read_collection(directory / file_name)
        for field_name, file_name in SOURCE_FILES.items()
    }
    binary_files = _read_binary_files(directory, collections["assets"])

    source = ImportSource(**collections, binary_files=binary_files)
    logger.info(
        "snapshot_loaded",
        directory=str(directory),
        counts=source.counts(),
        binary_files=len(binary_files),
    )
    return source
