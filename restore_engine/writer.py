from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .data_models import WriteSummary
from .errors import RestoreIOError
from .journal import RestoreExecutionJournal

logger = logging.getLogger(__name__)


def write_blocks(
    destination: Path,
    blocks: Iterable[tuple[int, bytes]],
    *,
    journal: RestoreExecutionJournal | None = None,
) -> WriteSummary:
    """
    Write each ``(offset, payload)`` pair at its absolute offset.

    The destination is created or truncated first. Pairs are pulled one at a
    time, so an exception raised by `blocks` (fetch or decode failure) stops
    the run after the preceding blocks are already on disk.

    Parameters
    ----------
    destination:
        Output file path.
    blocks:
        Lazy sequence of offsets and decompressed payloads.
    journal:
        Optional execution journal; one ``block_restored`` event per block.

    Returns
    -------
    WriteSummary
        Counts and the highest byte position written.

    Raises
    ------
    RestoreIOError
        If the file cannot be opened, seeked or written.
    """
    blocks_written = 0
    bytes_written = 0
    high_water_mark = 0

    try:
        handle = destination.open("wb")
    except OSError as exc:
        raise RestoreIOError(f"Failed to open destination for writing: {destination}") from exc

    with handle:
        for offset, payload in blocks:
            try:
                handle.seek(offset)
                handle.write(payload)
            except (OSError, OverflowError) as exc:
                raise RestoreIOError(
                    f"Failed to write {len(payload)} bytes at offset {offset} to {destination}"
                ) from exc

            blocks_written += 1
            bytes_written += len(payload)
            if payload:
                high_water_mark = max(high_water_mark, offset + len(payload))
            logger.debug("Wrote %d bytes at offset %d", len(payload), offset)
            if journal is not None:
                journal.append(
                    "block_restored",
                    {"index": blocks_written - 1, "offset": offset, "length": len(payload)},
                )

        try:
            handle.flush()
        except OSError as exc:
            raise RestoreIOError(f"Failed to flush destination: {destination}") from exc

    return WriteSummary(
        blocks_written=blocks_written,
        bytes_written=bytes_written,
        high_water_mark=high_water_mark,
    )
