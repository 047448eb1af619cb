from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .data_models import GapPolicy, RestoreSummary
from .errors import RestoreEngineError, SkippedDataError
from .journal import Clock, RestoreExecutionJournal
from .manifest import derive_basename, resolve_manifest
from .object_store import ObjectStore
from .stream import stream_blocks
from .writer import write_blocks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemClock(Clock):
    """Wall-clock implementation for production runs."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def run_restore(
    *,
    store: ObjectStore,
    manifest_path: str,
    destination: Path,
    gap_policy: GapPolicy = GapPolicy.ADVISORY,
    journal_path: Path | None = None,
    clock: Clock | None = None,
) -> RestoreSummary:
    """
    Restore one backup into one destination file.

    Parameters
    ----------
    store:
        Object store holding the manifest and its blocks.
    manifest_path:
        Object path of the manifest, ``<basename>/<subdir>/<file>``.
    destination:
        Local file to create or truncate and fill.
    gap_policy:
        How offset discontinuities between blocks are treated. The default
        restores sparse backups (all-zero blocks omitted) and reports the gaps.
    journal_path:
        If given, a JSONL execution journal is appended there.
    clock:
        Injectable clock for journal timestamps.

    Returns
    -------
    RestoreSummary
        What was restored.

    Raises
    ------
    PathError
        If the backup root cannot be derived (before any fetch).
    ManifestError
        If the manifest is malformed or unsupported (before any block fetch).
    RemoteError, DecodeError, SkippedDataError, RestoreIOError
        If the run fails mid-stream. The destination is left partially written.
    """
    basename = derive_basename(manifest_path)

    journal: RestoreExecutionJournal | None = None
    if journal_path is not None:
        journal = RestoreExecutionJournal(
            journal_path, clock=clock if clock is not None else SystemClock()
        )
        logger.info("Appending execution journal to %s", journal.path)
        journal.append(
            "restore_run_started",
            {
                "manifest_path": manifest_path,
                "basename": basename,
                "destination": str(destination),
                "gap_policy": gap_policy.value,
            },
        )

    try:
        return _restore(
            store=store,
            manifest_path=manifest_path,
            basename=basename,
            destination=destination,
            gap_policy=gap_policy,
            journal=journal,
        )
    except RestoreEngineError as exc:
        if journal is not None:
            journal.append(
                "restore_run_failed",
                {"error_type": type(exc).__name__, "error": str(exc)},
            )
        raise


def _restore(
    *,
    store: ObjectStore,
    manifest_path: str,
    basename: str,
    destination: Path,
    gap_policy: GapPolicy,
    journal: RestoreExecutionJournal | None,
) -> RestoreSummary:
    logger.info("Fetching manifest %s", manifest_path)
    manifest = resolve_manifest(store.get_object(manifest_path))
    logger.info(
        "Manifest lists %d block(s), compression %s",
        len(manifest.blocks),
        manifest.compression_method.value,
    )
    if journal is not None:
        journal.append(
            "manifest_resolved",
            {
                "compression_method": manifest.compression_method.value,
                "blocks_count": len(manifest.blocks),
            },
        )

    gaps: list[dict[str, Any]] = []

    def _record_gap(gap: SkippedDataError) -> None:
        gaps.append(gap.to_dict())

    blocks = stream_blocks(
        store,
        basename,
        manifest.blocks,
        compression_method=manifest.compression_method,
        gap_policy=gap_policy,
        journal=journal,
        on_gap=_record_gap,
    )
    written = write_blocks(destination, blocks, journal=journal)

    summary = RestoreSummary(
        manifest_path=manifest_path,
        basename=basename,
        destination=str(destination),
        compression_method=manifest.compression_method,
        blocks_restored=written.blocks_written,
        bytes_written=written.bytes_written,
        final_size=written.high_water_mark,
        gaps=gaps,
    )
    logger.info(
        "Restored %d block(s), %d bytes to %s",
        summary.blocks_restored,
        summary.bytes_written,
        destination,
    )
    if journal is not None:
        journal.append("restore_run_completed", summary.to_dict())
    return summary
