"""
Module entrypoint for the s3restore CLI.

This file exists so that `python -m s3restore ...` works when the
console-script wrapper is not installed.
"""

from __future__ import annotations

from s3restore.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
