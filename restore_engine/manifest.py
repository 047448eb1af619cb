"""
Manifest resolution and block namespace addressing.

A backup lives under a root path (the *basename*)::

    <basename>/<subdir>/<manifest file>
    <basename>/blocks/<c[0:2]>/<c[2:4]>/<checksum>.blk

Blocks are sharded two levels deep by the leading hex characters of their
checksum so no single prefix holds every block of a large backup.

Everything in this module is a pure function of its inputs; fetching the
manifest bytes is the object store's job.
"""

from __future__ import annotations

import json
from typing import Any

from .compression import parse_compression_method
from .data_models import BackupManifest, BlockDescriptor
from .errors import ManifestError, PathError

BLOCKS_DIRNAME = "blocks"
BLOCK_SUFFIX = ".blk"


def derive_basename(manifest_path: str) -> str:
    """
    Derive the backup root from the manifest's own storage path.

    Parameters
    ----------
    manifest_path:
        Object path of the manifest, e.g. ``backups/host1/2023-01-01/index.json``.

    Returns
    -------
    str
        Everything before the second-to-last ``/`` (``backups/host1`` above).

    Raises
    ------
    PathError
        If the path has fewer than two ``/`` separators.
    """
    last = manifest_path.rfind("/")
    second_last = manifest_path.rfind("/", 0, last) if last > 0 else -1
    if last == -1 or second_last == -1:
        raise PathError(
            f"Manifest path must have at least 2 slashes so the backup root can be found: "
            f"{manifest_path!r}"
        )
    return manifest_path[:second_last]


def block_object_path(basename: str, checksum: str) -> str:
    """Return the object path of the block with the given checksum."""
    return f"{basename}/{BLOCKS_DIRNAME}/{checksum[0:2]}/{checksum[2:4]}/{checksum}{BLOCK_SUFFIX}"


def resolve_manifest(raw: bytes) -> BackupManifest:
    """
    Parse and validate a backup manifest document.

    Parameters
    ----------
    raw:
        Manifest bytes as fetched from the object store (UTF-8 JSON).

    Returns
    -------
    BackupManifest
        Validated manifest with blocks in document order.

    Raises
    ------
    ManifestError
        If the document is not JSON, does not match the expected schema, lists
        no blocks, or names an unsupported compression method.
    """
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # ValueError covers JSONDecodeError, UnicodeDecodeError and oversized integer literals.
        raise ManifestError(f"Manifest is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ManifestError("Manifest must be a JSON object")

    missing = [k for k in ("CompressionMethod", "Blocks") if k not in payload]
    if missing:
        raise ManifestError(f"Manifest missing required keys: {missing}")

    compression_method = parse_compression_method(payload["CompressionMethod"])

    raw_blocks = payload["Blocks"]
    if not isinstance(raw_blocks, list):
        raise ManifestError("Manifest 'Blocks' must be a list")

    blocks: list[BlockDescriptor] = []
    for index, entry in enumerate(raw_blocks):
        blocks.append(_parse_block(index, entry))

    try:
        return BackupManifest(compression_method=compression_method, blocks=tuple(blocks))
    except ValueError as exc:
        raise ManifestError(str(exc)) from exc


def _parse_block(index: int, entry: Any) -> BlockDescriptor:
    if not isinstance(entry, dict):
        raise ManifestError(f"Block {index} must be a JSON object")
    try:
        return BlockDescriptor.from_dict(entry)
    except ValueError as exc:
        raise ManifestError(f"Invalid block {index}: {exc}") from exc
