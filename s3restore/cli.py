"""
Command-line interface for s3restore.

Notes
-----
The CLI is intentionally thin. It parses arguments, builds the object-store
capability and delegates to :func:`restore_engine.service.run_restore`.

Exit codes
----------
- 0: restore completed.
- 1: manifest, path-derivation or configuration error (nothing was fetched
  beyond the manifest).
- 2: restore failed mid-run (fetch, decode, gap or local I/O error). The
  destination file may be partially written.
- 3: usage error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

from restore_engine.data_models import GapPolicy
from restore_engine.errors import ConfigError, ManifestError, PathError, RestoreEngineError
from restore_engine.object_store import ObjectStoreConfig, S3ObjectStore
from restore_engine.service import run_restore

EXIT_OK = 0
EXIT_MANIFEST_ERROR = 1
EXIT_RESTORE_FAILED = 2
EXIT_USAGE = 3

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_HANDLER_NAME = "s3restore"


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with EXIT_USAGE."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def setup_logging(verbose: bool = False) -> None:
    """
    Configure root logging on stderr.

    Parameters
    ----------
    verbose:
        Log at DEBUG instead of INFO.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
        root_logger.addHandler(handler)

    # Suppress noisy third-party loggers
    for name in ("boto3", "botocore", "urllib3", "s3transfer"):
        logging.getLogger(name).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser.
    """
    parser = _ArgumentParser(
        prog="s3restore",
        description="Restore a block-based backup image from an S3-compatible bucket",
    )
    parser.add_argument("endpoint", help="S3 endpoint URL or host[:port]")
    parser.add_argument("region", help="Region name")
    parser.add_argument("bucket", help="Bucket holding the backup")
    parser.add_argument(
        "manifest",
        help="Object path of the backup manifest (<root>/<subdir>/<file>)",
    )
    parser.add_argument("dest", type=Path, help="Destination file (created or truncated)")
    parser.add_argument(
        "--strict-gaps",
        action="store_true",
        help=(
            "Abort on the first offset gap/overlap between blocks. By default gaps are "
            "logged and left zero-filled (sparse backups)."
        ),
    )
    parser.add_argument(
        "--journal",
        type=Path,
        default=None,
        help="Append a JSONL execution journal to this path.",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Named profile from the shared AWS credentials/config files.",
    )
    parser.add_argument(
        "--path-style",
        action="store_true",
        help="Use path-style bucket addressing (common for MinIO and other self-hosted stores).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv:
        Optional argument vector. If None, argparse uses sys.argv.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    gap_policy = GapPolicy.STRICT if args.strict_gaps else GapPolicy.ADVISORY

    try:
        config = ObjectStoreConfig(
            endpoint=args.endpoint,
            region=args.region,
            bucket=args.bucket,
            profile_name=args.profile,
            addressing_style="path" if args.path_style else "auto",
        )
        summary = run_restore(
            store=S3ObjectStore(config),
            manifest_path=args.manifest,
            destination=args.dest,
            gap_policy=gap_policy,
            journal_path=args.journal,
        )
    except (ConfigError, ManifestError, PathError) as exc:
        print(f"ERROR: {exc}")
        return EXIT_MANIFEST_ERROR
    except RestoreEngineError as exc:
        print(f"ERROR: {exc}")
        return EXIT_RESTORE_FAILED

    print("Restore complete:")
    print(f"  Manifest      : {summary.manifest_path}")
    print(f"  Destination   : {summary.destination}")
    print(f"  Blocks        : {summary.blocks_restored}")
    print(f"  Bytes written : {summary.bytes_written}")
    print(f"  File size     : {summary.final_size}")
    if summary.gaps:
        print(f"  Gaps tolerated: {len(summary.gaps)}")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
