from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Protocol

from .errors import RestoreIOError


class Clock(Protocol):
    """Source of journal timestamps; injectable so journals are reproducible under test."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""


@dataclass(frozen=True)
class JournalEvent:
    """
    A single append-only journal record.

    Parameters
    ----------
    timestamp : datetime
        Event time (timezone-aware).
    event : str
        Stable event identifier (e.g. 'restore_run_started', 'block_restored').
    data : Mapping[str, Any]
        Structured event payload. Must be JSON-serializable.
    """

    timestamp: datetime
    event: str
    data: Mapping[str, Any]


class RestoreExecutionJournal:
    """
    Append-only JSONL journal for a restore run.

    Notes
    -----
    - Each call to `append()` writes one JSON object per line (JSONL).
    - The journal sits beside the destination file, never inside the object store.
    """

    def __init__(self, journal_path: Path, *, clock: Clock) -> None:
        self._journal_path = journal_path
        self._clock = clock
        try:
            self._journal_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RestoreIOError(
                f"Failed to create journal directory: {self._journal_path.parent}"
            ) from exc

    @property
    def path(self) -> Path:
        """Return the on-disk path to the journal file."""
        return self._journal_path

    def append(self, event: str, data: Mapping[str, Any]) -> None:
        """
        Append a new event record.

        Parameters
        ----------
        event : str
            Stable event identifier.
        data : Mapping[str, Any]
            JSON-serializable event payload.

        Raises
        ------
        RestoreIOError
            If the journal cannot be written.
        TypeError
            If `data` contains non-JSON-serializable values.
        """
        record = JournalEvent(timestamp=self._clock.now(), event=event, data=data)
        line = json.dumps(
            {
                "ts": record.timestamp.isoformat(),
                "event": record.event,
                "data": record.data,
            },
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":"),
        )

        try:
            with self._journal_path.open("a", encoding="utf-8", newline="\n") as handle:
                handle.write(line + "\n")
                handle.flush()
        except OSError as exc:
            raise RestoreIOError(f"Failed to append to journal: {self._journal_path}") from exc
