"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
Decompression of entry data.

Each supported method maps to a function returning an iterator that reads
a bounded region of the byte source in chunks and yields decompressed
bytes. The set of methods is closed: stored and deflate. decompressor_for()
rejects anything else before a single byte is read.
"""

import zlib
from typing import Callable, Iterator

from .constants import READ_CHUNK_SIZE, CompressionMethod
from .errors import ZipCompressionError, ZipSizeMismatchError, ZipUnsupportedCompressionMethod

Decompressor = Callable[..., Iterator[bytes]]


def _read_chunks(source, offset: int, size: int, chunk_size: int) -> Iterator[bytes]:
    """Yield the region [offset, offset + size) in chunks, stopping early at end of data."""
    end = offset + size
    while offset < end:
        chunk = source.read_at(offset, min(chunk_size, end - offset))
        if not chunk:
            return
        offset += len(chunk)
        yield chunk


def iter_stored(
    source,
    data_offset: int,
    compressed_size: int,
    uncompressed_size: int,
    chunk_size: int = READ_CHUNK_SIZE,
) -> Iterator[bytes]:
    """Return an iterator over stored (uncompressed) entry data.

    The declared sizes are compared before anything is read.

    Raises:
        ZipSizeMismatchError: If the declared sizes differ, or (while
            iterating) fewer than compressed_size bytes are available.
    """
    if compressed_size != uncompressed_size:
        raise ZipSizeMismatchError(
            f"Stored entry sizes differ: compressed {compressed_size}, "
            f"uncompressed {uncompressed_size}"
        )
    return _iter_stored(source, data_offset, compressed_size, chunk_size)


def _iter_stored(source, data_offset: int, compressed_size: int, chunk_size: int) -> Iterator[bytes]:
    produced = 0
    for chunk in _read_chunks(source, data_offset, compressed_size, chunk_size):
        produced += len(chunk)
        yield chunk

    if produced != compressed_size:
        raise ZipSizeMismatchError(
            f"Stored data truncated: expected {compressed_size} bytes, got {produced}"
        )


def iter_deflated(
    source,
    data_offset: int,
    compressed_size: int,
    uncompressed_size: int,
    chunk_size: int = READ_CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield inflated entry data from a raw deflate stream.

    Output is produced at most chunk_size bytes at a time, so a small
    compressed input cannot expand into one huge buffer.

    Raises:
        ZipCompressionError: If the stream is malformed, ends early, is
            followed by extra data, or inflates to a length other than
            uncompressed_size.
    """
    # Some writers emit an empty deflate entry with no stream at all
    if compressed_size == 0 and uncompressed_size == 0:
        return

    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
    produced = 0
    consumed = 0

    def check(data: bytes) -> bytes:
        nonlocal produced
        produced += len(data)
        if produced > uncompressed_size:
            raise ZipCompressionError(
                f"Decompressed data exceeds declared size of {uncompressed_size} bytes"
            )
        return data

    try:
        for chunk in _read_chunks(source, data_offset, compressed_size, chunk_size):
            consumed += len(chunk)
            pending = chunk
            while pending and not decompressor.eof:
                data = decompressor.decompress(pending, chunk_size)
                pending = decompressor.unconsumed_tail
                if data:
                    yield check(data)
            if decompressor.eof:
                if decompressor.unused_data or consumed < compressed_size:
                    raise ZipCompressionError("Extra data after compressed stream")
                break

        if consumed < compressed_size:
            raise ZipCompressionError(
                f"Compressed data truncated: expected {compressed_size} bytes, got {consumed}"
            )

        data = decompressor.flush()
        if data:
            yield check(data)
    except zlib.error as e:
        raise ZipCompressionError(f"Deflate decompression failed: {e}") from e

    if not decompressor.eof:
        raise ZipCompressionError("Deflate stream ended before its final block")
    if decompressor.unused_data:
        raise ZipCompressionError("Extra data after compressed stream")
    if produced != uncompressed_size:
        raise ZipCompressionError(
            f"Decompressed size mismatch: expected {uncompressed_size} bytes, got {produced}"
        )


DECOMPRESSORS: dict[CompressionMethod, Decompressor] = {
    CompressionMethod.STORED: iter_stored,
    CompressionMethod.DEFLATED: iter_deflated,
}


def decompressor_for(method: int, name: str = "") -> Decompressor:
    """Return the decompressor for a method code.

    Args:
        method: Raw compression method code from the archive.
        name: Entry name used in the error message.

    Raises:
        ZipUnsupportedCompressionMethod: For any method other than stored
            or deflate.
    """
    try:
        return DECOMPRESSORS[CompressionMethod(method)]
    except ValueError:
        raise ZipUnsupportedCompressionMethod(method, name) from None
