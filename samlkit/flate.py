"""Raw DEFLATE decompression with an upper bound on output size."""

from __future__ import annotations

import zlib

__all__ = ["FLATE_UNCOMPRESS_LIMIT", "FlateLimitExceeded", "inflate_limited"]

FLATE_UNCOMPRESS_LIMIT = 10 * 1024 * 1024  # 10MB


class FlateLimitExceeded(ValueError):
    """Raised when decompressed data would exceed the allowed size."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"flate: uncompress limit exceeded ({limit} bytes)")
        self.limit = limit


def inflate_limited(data: bytes, limit: int = FLATE_UNCOMPRESS_LIMIT) -> bytes:
    """Decompress a raw DEFLATE stream, refusing output larger than ``limit``.

    Raises :class:`FlateLimitExceeded` when the output is too large and
    :class:`ValueError` when the stream is corrupt or truncated.
    """
    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        output = decompressor.decompress(data, limit + 1)
    except zlib.error as exc:
        raise ValueError(f"flate: corrupt input: {exc}") from exc
    if len(output) > limit:
        raise FlateLimitExceeded(limit)
    if not decompressor.eof:
        raise ValueError("flate: unexpected EOF")
    return output