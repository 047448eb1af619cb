"""Data models for the block restore engine.

A backup is described by a manifest listing its compression method and an
ordered list of blocks. Each block is a content-addressed object whose
decompressed bytes belong at an absolute offset of the restored file.

The models are frozen dataclasses; they are built once by the manifest
resolver and only read afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Self

MAX_OFFSET = 2**64 - 1
MIN_CHECKSUM_LENGTH = 4
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class CompressionMethod(str, Enum):
    """Supported block compression methods."""

    LZ4 = "lz4"


class GapPolicy(str, Enum):
    """How the stream engine treats an offset discontinuity between blocks."""

    STRICT = "strict"
    ADVISORY = "advisory"


def _require_keys(payload: Mapping[str, Any], keys: set[str], *, context: str) -> None:
    missing = keys.difference(payload.keys())
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ValueError(f"Missing required keys in {context}: {missing_str}")


@dataclass(frozen=True, slots=True)
class BlockDescriptor:
    """
    One block of a backup.

    Attributes
    ----------
    offset:
        Absolute byte position in the destination file where the block's
        decompressed bytes begin.
    checksum:
        Hex content hash of the stored (compressed) bytes; also the block's
        address in the object namespace.
    """

    offset: int
    checksum: str

    def __post_init__(self) -> None:
        if isinstance(self.offset, bool) or not isinstance(self.offset, int):
            raise ValueError(f"Block offset must be an integer, got {self.offset!r}")
        if not 0 <= self.offset <= MAX_OFFSET:
            raise ValueError(f"Block offset out of range: {self.offset}")
        if not isinstance(self.checksum, str):
            raise ValueError(f"Block checksum must be a string, got {self.checksum!r}")
        if len(self.checksum) < MIN_CHECKSUM_LENGTH:
            raise ValueError(
                f"Block checksum must have at least {MIN_CHECKSUM_LENGTH} hex characters: "
                f"{self.checksum!r}"
            )
        if not set(self.checksum) <= _HEX_DIGITS:
            raise ValueError(f"Block checksum is not hexadecimal: {self.checksum!r}")

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self:
        """Construct a :class:`BlockDescriptor` from a manifest block entry."""
        _require_keys(payload, {"Offset", "BlockChecksum"}, context="block")
        return cls(offset=payload["Offset"], checksum=payload["BlockChecksum"])

    def to_dict(self) -> dict[str, Any]:
        """Convert to the manifest block entry shape."""
        return {"Offset": self.offset, "BlockChecksum": self.checksum}


@dataclass(frozen=True, slots=True)
class BackupManifest:
    """
    Canonical representation of a backup manifest.

    Attributes
    ----------
    compression_method:
        Codec used for every block of the backup.
    blocks:
        Blocks in fetch order. Offsets are expected, but not guaranteed, to be
        ascending.
    """

    compression_method: CompressionMethod
    blocks: tuple[BlockDescriptor, ...]

    def __post_init__(self) -> None:
        if not self.blocks:
            raise ValueError("Manifest must list at least one block")

    def to_dict(self) -> dict[str, Any]:
        """Convert the manifest to its JSON document shape."""
        return {
            "CompressionMethod": self.compression_method.value,
            "Blocks": [block.to_dict() for block in self.blocks],
        }


@dataclass(frozen=True, slots=True)
class WriteSummary:
    """
    Outcome of writing a block sequence to the destination file.

    Attributes
    ----------
    blocks_written:
        Number of blocks written.
    bytes_written:
        Total decompressed bytes written across all blocks.
    high_water_mark:
        Largest ``offset + len(payload)`` over non-empty payloads, i.e. the size
        of the destination file after the run.
    """

    blocks_written: int
    bytes_written: int
    high_water_mark: int


@dataclass(frozen=True, slots=True)
class RestoreSummary:
    """Result of a completed restore run."""

    manifest_path: str
    basename: str
    destination: str
    compression_method: CompressionMethod
    blocks_restored: int
    bytes_written: int
    final_size: int
    gaps: list[Mapping[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable payload."""
        return {
            "manifest_path": self.manifest_path,
            "basename": self.basename,
            "destination": self.destination,
            "compression_method": self.compression_method.value,
            "blocks_restored": self.blocks_restored,
            "bytes_written": self.bytes_written,
            "final_size": self.final_size,
            "gaps": [dict(gap) for gap in self.gaps],
        }
