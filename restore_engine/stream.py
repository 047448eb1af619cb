"""
Block stream engine.

Turns a manifest's block list into a lazy sequence of ``(offset, payload)``
pairs. Each element is fetched and decoded only when the consumer asks for it,
strictly in manifest order and one block at a time, so at most one block's
decompressed bytes are held in memory.

The sequence is a generator: it is forward-only and single-use. Restarting a
restore means calling :func:`stream_blocks` again with the same descriptors.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Sequence

from .compression import decompress_block
from .data_models import BlockDescriptor, CompressionMethod, GapPolicy
from .errors import RemoteError, SkippedDataError
from .journal import RestoreExecutionJournal
from .manifest import block_object_path
from .object_store import ObjectStore

logger = logging.getLogger(__name__)


def check_block_offset(expected_offset: int, block: BlockDescriptor, block_index: int) -> None:
    """
    Verify that `block` starts where the previous block ended.

    Raises
    ------
    SkippedDataError
        If the declared offset differs from `expected_offset`.
    """
    if block.offset != expected_offset:
        raise SkippedDataError(
            expected_offset=expected_offset,
            found_offset=block.offset,
            block_index=block_index,
        )


def stream_blocks(
    store: ObjectStore,
    basename: str,
    blocks: Sequence[BlockDescriptor],
    *,
    compression_method: CompressionMethod,
    gap_policy: GapPolicy = GapPolicy.ADVISORY,
    journal: RestoreExecutionJournal | None = None,
    on_gap: Callable[[SkippedDataError], None] | None = None,
) -> Iterator[tuple[int, bytes]]:
    """
    Fetch and decode blocks one at a time, in manifest order.

    Parameters
    ----------
    store:
        Object store holding the backup.
    basename:
        Backup root under which blocks are sharded.
    blocks:
        Block descriptors in manifest order.
    compression_method:
        Codec used for every block.
    gap_policy:
        STRICT raises on the first offset discontinuity, before fetching the
        offending block. ADVISORY logs and journals it, then continues.
    journal:
        Optional execution journal.
    on_gap:
        Called with each tolerated discontinuity under GapPolicy.ADVISORY.

    Yields
    ------
    tuple[int, bytes]
        Absolute destination offset and decompressed payload of each block.

    Raises
    ------
    SkippedDataError
        On an offset discontinuity under GapPolicy.STRICT.
    RemoteError
        If a block object cannot be fetched.
    DecodeError
        If a block cannot be decompressed.
    """
    expected_offset = 0

    for index, block in enumerate(blocks):
        try:
            check_block_offset(expected_offset, block, index)
        except SkippedDataError as gap:
            if gap_policy is GapPolicy.STRICT:
                raise
            logger.warning("%s; continuing (advisory gap policy)", gap)
            if journal is not None:
                journal.append("block_gap_detected", gap.to_dict())
            if on_gap is not None:
                on_gap(gap)

        path = block_object_path(basename, block.checksum)
        logger.debug("Fetching block %d/%d: %s", index + 1, len(blocks), path)
        try:
            stored = store.get_object(path)
        except RemoteError as exc:
            raise RemoteError(
                f"Block {index} ({block.checksum}) fetch failed: {exc}",
                key=exc.key,
                code=exc.code,
            ) from exc

        payload = decompress_block(
            compression_method,
            stored,
            label=f"block {index} ({block.checksum})",
        )
        expected_offset = block.offset + len(payload)

        yield block.offset, payload
