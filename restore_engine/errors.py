"""
Domain exceptions for the block restore engine.

Notes
-----
Engine code does not raise generic exceptions for expected failure modes.
Every failure maps to one subclass of :class:`RestoreEngineError` so callers
(and the CLI exit-code mapping) can discriminate the failing stage.
"""

from __future__ import annotations


class RestoreEngineError(RuntimeError):
    """Base exception for all restore engine failures."""


class ConfigError(RestoreEngineError):
    """Raised when object-store configuration is invalid."""


class ManifestError(RestoreEngineError):
    """Raised when a backup manifest is malformed or uses an unsupported codec."""


class PathError(RestoreEngineError):
    """Raised when the backup root cannot be derived from the manifest path."""


class RemoteError(RestoreEngineError):
    """
    Raised when an object cannot be fetched from the remote store.

    Attributes
    ----------
    key:
        Object path that was requested.
    code:
        Store-specific error code (e.g. ``NoSuchKey``), if known.
    """

    def __init__(self, message: str, *, key: str, code: str | None = None) -> None:
        super().__init__(message)
        self.key = key
        self.code = code


class DecodeError(RestoreEngineError):
    """Raised when a stored block cannot be decompressed."""


class SkippedDataError(RestoreEngineError):
    """
    Raised when a block's declared offset does not continue the previous block.

    A ``found_offset`` greater than ``expected_offset`` is a hole in the restored
    file; a smaller one is an overlap or reorder.

    Attributes
    ----------
    expected_offset:
        End offset of the previous block (0 before the first block).
    found_offset:
        Offset declared by the next block in the manifest.
    block_index:
        Manifest index of the block whose offset was unexpected.
    """

    def __init__(self, *, expected_offset: int, found_offset: int, block_index: int) -> None:
        super().__init__(
            f"Gap in data: expected to find a block for offset {expected_offset}, "
            f"found {found_offset} (block {block_index})"
        )
        self.expected_offset = expected_offset
        self.found_offset = found_offset
        self.block_index = block_index

    @property
    def is_overlap(self) -> bool:
        """Return True when the declared offset lies before the expected one."""
        return self.found_offset < self.expected_offset

    def to_dict(self) -> dict[str, int | bool]:
        """Convert to a JSON-serializable payload."""
        return {
            "expected_offset": self.expected_offset,
            "found_offset": self.found_offset,
            "block_index": self.block_index,
            "overlap": self.is_overlap,
        }


class RestoreIOError(RestoreEngineError):
    """Raised when the destination file cannot be opened, seeked or written."""
