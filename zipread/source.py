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
Byte sources: positioned, read-only access to archive bytes.

The reader never seeks a shared cursor. Every read names its absolute
offset, so several extractions can run over the same source without
coordinating file positions.
"""

import io
import os
import threading
from typing import BinaryIO

from .errors import ZipFormatError


class ByteSource:
    """Positioned read access to a fixed-length run of bytes.

    Subclasses implement read_at() and total_length(). read_at() may return
    fewer bytes than requested only when the request runs past the end.
    """

    def read_at(self, offset: int, length: int) -> bytes:
        raise NotImplementedError

    def total_length(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        """Release the source. The default does nothing."""


class BytesSource(ByteSource):
    """Byte source over an in-memory buffer (bytes, bytearray, memoryview, mmap)."""

    def __init__(self, data):
        self._view = memoryview(data).cast("B")

    def read_at(self, offset: int, length: int) -> bytes:
        return self._view[offset : offset + length].tobytes()

    def total_length(self) -> int:
        return len(self._view)

    def close(self) -> None:
        self._view.release()


class FileSource(ByteSource):
    """Byte source over a seekable binary file object.

    Uses os.pread() when the object wraps a real file descriptor. Otherwise
    each read is a seek followed by a read under a lock, so concurrent
    readers still see consistent data. The file object is not closed by
    this class; its owner closes it.
    """

    def __init__(self, file: BinaryIO):
        if not hasattr(file, "read"):
            raise ZipFormatError("File-like object must have a read() method")
        if not hasattr(file, "seek"):
            raise ZipFormatError("File-like object must have a seek() method")
        if not hasattr(file, "tell"):
            raise ZipFormatError("File-like object must have a tell() method")

        self._file = file
        self._lock = threading.Lock()
        self._fd = self._descriptor(file)

        with self._lock:
            position = file.tell()
            file.seek(0, io.SEEK_END)
            self._length = file.tell()
            file.seek(position)

    @staticmethod
    def _descriptor(file: BinaryIO):
        if not hasattr(os, "pread"):
            return None
        # Buffered writers may hold data the descriptor has not seen yet
        if hasattr(file, "writable") and file.writable():
            return None
        try:
            return file.fileno()
        except (AttributeError, OSError, io.UnsupportedOperation):
            return None

    def read_at(self, offset: int, length: int) -> bytes:
        if length <= 0 or offset >= self._length:
            return b""
        length = min(length, self._length - offset)

        if self._fd is not None:
            chunks = []
            while length > 0:
                chunk = os.pread(self._fd, length, offset)
                if not chunk:
                    break
                chunks.append(chunk)
                offset += len(chunk)
                length -= len(chunk)
            return b"".join(chunks)

        with self._lock:
            self._file.seek(offset)
            return self._file.read(length)

    def total_length(self) -> int:
        return self._length


def as_byte_source(source) -> ByteSource:
    """Wrap 'source' in a ByteSource.

    Args:
        source: A ByteSource, a bytes-like object, or a seekable binary file
            object.

    Returns:
        ByteSource reading from 'source'.

    Raises:
        ZipFormatError: If 'source' is none of the accepted kinds.
    """
    if isinstance(source, ByteSource):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return BytesSource(source)
    if isinstance(source, (str, os.PathLike)):
        raise ZipFormatError(
            "Paths are not accepted; open the file and pass the file object"
        )
    return FileSource(source)
