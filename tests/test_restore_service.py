from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fakes import FakeObjectStore, build_backup

from restore_engine.data_models import GapPolicy
from restore_engine.errors import ManifestError, PathError, RemoteError, SkippedDataError
from restore_engine.service import run_restore


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now


def test_restore_round_trip(tmp_path: Path) -> None:
    payloads = [os.urandom(1000), b"\x00" * 4096, b"tail bytes"]
    backup = build_backup(payloads)
    destination = tmp_path / "restored.img"

    summary = run_restore(
        store=backup.store,
        manifest_path=backup.manifest_path,
        destination=destination,
    )

    assert destination.read_bytes() == b"".join(payloads)
    assert summary.basename == "backups/host1"
    assert summary.blocks_restored == 3
    assert summary.bytes_written == sum(len(p) for p in payloads)
    assert summary.final_size == summary.bytes_written
    assert summary.gaps == []


def test_restore_fetches_manifest_then_blocks_in_manifest_order(tmp_path: Path) -> None:
    backup = build_backup([b"c" * 8, b"a" * 8, b"b" * 8])

    run_restore(
        store=backup.store,
        manifest_path=backup.manifest_path,
        destination=tmp_path / "out.img",
    )

    assert backup.store.requests == [backup.manifest_path, *backup.block_paths]


def test_unsupported_codec_is_rejected_before_any_block_fetch(tmp_path: Path) -> None:
    backup = build_backup([b"payload"], compression_method="gzip")
    destination = tmp_path / "out.img"

    with pytest.raises(ManifestError, match="gzip"):
        run_restore(
            store=backup.store,
            manifest_path=backup.manifest_path,
            destination=destination,
        )

    assert backup.store.requests == [backup.manifest_path]
    assert not destination.exists()


def test_path_error_happens_before_any_fetch(tmp_path: Path) -> None:
    store = FakeObjectStore()

    with pytest.raises(PathError):
        run_restore(store=store, manifest_path="host1/index.json", destination=tmp_path / "x")

    assert store.requests == []


def test_missing_manifest_raises_remote_error(tmp_path: Path) -> None:
    store = FakeObjectStore()

    with pytest.raises(RemoteError) as excinfo:
        run_restore(
            store=store,
            manifest_path="backups/host1/2023-01-01/index.json",
            destination=tmp_path / "x",
        )

    assert excinfo.value.code == "NoSuchKey"


def test_second_fetch_failure_keeps_first_block_and_stops(tmp_path: Path) -> None:
    backup = build_backup([b"first block", b"second block", b"third block"])
    backup.store.fail_keys.add(backup.block_paths[1])
    destination = tmp_path / "out.img"

    with pytest.raises(RemoteError):
        run_restore(
            store=backup.store,
            manifest_path=backup.manifest_path,
            destination=destination,
        )

    assert destination.read_bytes() == b"first block"
    assert backup.block_paths[2] not in backup.store.requests


def test_strict_gap_aborts_restore(tmp_path: Path) -> None:
    backup = build_backup([b"x" * 100, b"y" * 100, b"z" * 100], offsets=[0, 100, 250])

    with pytest.raises(SkippedDataError) as excinfo:
        run_restore(
            store=backup.store,
            manifest_path=backup.manifest_path,
            destination=tmp_path / "out.img",
            gap_policy=GapPolicy.STRICT,
        )

    assert (excinfo.value.expected_offset, excinfo.value.found_offset) == (200, 250)


def test_advisory_gap_restores_sparse_file(tmp_path: Path) -> None:
    backup = build_backup([b"x" * 100, b"y" * 100, b"z" * 100], offsets=[0, 100, 250])
    destination = tmp_path / "out.img"

    summary = run_restore(
        store=backup.store,
        manifest_path=backup.manifest_path,
        destination=destination,
    )

    data = destination.read_bytes()
    assert len(data) == 350
    assert data[200:250] == b"\x00" * 50
    assert data[250:] == b"z" * 100
    assert summary.final_size == 350
    assert summary.gaps == [
        {"expected_offset": 200, "found_offset": 250, "block_index": 2, "overlap": False}
    ]


def test_restore_writes_execution_journal(tmp_path: Path) -> None:
    backup = build_backup([b"one", b"two"])
    journal_path = tmp_path / "journal.jsonl"
    clock = FixedClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))

    run_restore(
        store=backup.store,
        manifest_path=backup.manifest_path,
        destination=tmp_path / "out.img",
        journal_path=journal_path,
        clock=clock,
    )

    records = [json.loads(line) for line in journal_path.read_text(encoding="utf-8").splitlines()]
    assert [r["event"] for r in records] == [
        "restore_run_started",
        "manifest_resolved",
        "block_restored",
        "block_restored",
        "restore_run_completed",
    ]
    assert records[1]["data"] == {"compression_method": "lz4", "blocks_count": 2}
    assert records[3]["data"] == {"index": 1, "offset": 3, "length": 3}
    assert records[-1]["data"]["bytes_written"] == 6
    assert all(r["ts"] == "2024-01-01T12:00:00+00:00" for r in records)


def test_failed_restore_is_journaled(tmp_path: Path) -> None:
    backup = build_backup([b"payload"], compression_method="gzip")
    journal_path = tmp_path / "journal.jsonl"

    with pytest.raises(ManifestError):
        run_restore(
            store=backup.store,
            manifest_path=backup.manifest_path,
            destination=tmp_path / "out.img",
            journal_path=journal_path,
        )

    last = json.loads(journal_path.read_text(encoding="utf-8").splitlines()[-1])
    assert last["event"] == "restore_run_failed"
    assert last["data"]["error_type"] == "ManifestError"
