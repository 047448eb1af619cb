from __future__ import annotations

import lz4.frame

from .data_models import CompressionMethod
from .errors import DecodeError, ManifestError


def parse_compression_method(value: object) -> CompressionMethod:
    """
    Parse a manifest compression method name.

    Parameters
    ----------
    value:
        The ``CompressionMethod`` field as read from the manifest.

    Returns
    -------
    CompressionMethod
        The supported codec.

    Raises
    ------
    ManifestError
        If the name is not a supported codec.
    """
    if not isinstance(value, str):
        raise ManifestError(f"CompressionMethod must be a string, got {value!r}")
    try:
        return CompressionMethod(value)
    except ValueError as exc:
        supported = ", ".join(repr(m.value) for m in CompressionMethod)
        raise ManifestError(
            f"Unsupported CompressionMethod {value!r} (supported: {supported})"
        ) from exc


def decompress_block(
    method: CompressionMethod,
    payload: bytes,
    *,
    label: str = "block",
) -> bytes:
    """
    Decode a stored block to completion.

    Parameters
    ----------
    method:
        Codec the block was written with.
    payload:
        Full stored bytes of the block object.
    label:
        Human-readable block identifier used in error messages.

    Returns
    -------
    bytes
        The decompressed block payload.

    Raises
    ------
    DecodeError
        If the payload is empty, truncated, malformed or fails the codec's
        integrity check.
    """
    if method is CompressionMethod.LZ4:
        return _decode_lz4_frames(payload, label=label)

    raise DecodeError(f"No decoder for compression method {method!r} ({label})")


def _decode_lz4_frames(payload: bytes, *, label: str) -> bytes:
    # A stored object may hold several concatenated frames; decode them in order.
    if not payload:
        raise DecodeError(f"Empty LZ4 payload for {label}")

    out = bytearray()
    remaining = payload
    frame_index = 0
    while remaining:
        decompressor = lz4.frame.LZ4FrameDecompressor()
        try:
            out += decompressor.decompress(remaining)
        except RuntimeError as exc:
            raise DecodeError(f"Corrupt LZ4 frame {frame_index} in {label}: {exc}") from exc
        if not decompressor.eof:
            raise DecodeError(f"Truncated LZ4 frame {frame_index} in {label}")
        remaining = decompressor.unused_data
        frame_index += 1
    return bytes(out)
